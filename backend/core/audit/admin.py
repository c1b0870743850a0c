from django.contrib import admin

from audit.models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "chain_id",
        "action",
        "entity_type",
        "entity_id",
        "occurred_at",
        "actor_username",
        "ip_address",
    )
    list_filter = ("action", "entity_type")
    search_fields = ("entity_type", "actor_username", "chain_id", "correlation_id")
    ordering = ("-occurred_at", "-id")
    readonly_fields = [field.name for field in AuditLogEntry._meta.fields]

    def get_queryset(self, request):
        # Default manager is tenant-scoped; admin must see all entries.
        return AuditLogEntry.all_objects.all()

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
