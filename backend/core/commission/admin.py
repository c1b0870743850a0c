from django.contrib import admin

from commission.models import CommissionRule


@admin.register(CommissionRule)
class CommissionRuleAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "company",
        "insurer_id",
        "insurance_type_id",
        "rate_percentage",
        "effective_from",
        "effective_to",
    )
    list_filter = ("company",)
    search_fields = ("insurer_id",)
    ordering = ("company", "insurer_id", "-effective_from")

    def get_queryset(self, request):
        # Default manager is tenant-scoped; admin must see every tenant's rules.
        return CommissionRule.all_objects.select_related("company")
