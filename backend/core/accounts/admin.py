from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from accounts.models import Company, CompanyMembership, User


@admin.register(User)
class BrokerUserAdmin(UserAdmin):
    list_display = ("id", "username", "email", "role", "is_active")
    list_filter = ("role", "is_active")
    fieldsets = UserAdmin.fieldsets + (("Authorization", {"fields": ("role",)}),)


class CompanyMembershipInline(admin.TabularInline):
    model = CompanyMembership
    extra = 0
    raw_id_fields = ("user",)


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "is_active")
    search_fields = ("name", "slug")
    inlines = [CompanyMembershipInline]
