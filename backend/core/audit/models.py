from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from tenancy.context import get_current_tenant_id


class AuditLogQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ValidationError("Audit log entries are immutable; updates are not allowed.")

    def delete(self):
        raise ValidationError("Audit log entries are immutable; deletes are not allowed.")

    def for_entity(self, entity_type: str, entity_id: int):
        return self.filter(entity_type=entity_type, entity_id=entity_id)


class TenantAuditLogManager(models.Manager.from_queryset(AuditLogQuerySet)):
    def get_queryset(self):
        queryset = super().get_queryset()
        tenant_id = get_current_tenant_id()
        if tenant_id is None:
            return queryset.none()
        return queryset.filter(company_id=tenant_id)


class AuditLogEntry(models.Model):
    """Append-only (immutable) record of one mutating operation.

    Entries are tamper-evident through a hash chain per `chain_id` (one chain per
    tenant plus a platform chain). This is an application-level guarantee: DB
    superusers can still mutate rows, but `audit.services.verify_chain` detects it.
    """

    ACTION_CREATE = "CREATE"
    ACTION_UPDATE = "UPDATE"
    ACTION_DELETE = "DELETE"
    ACTION_CHOICES = [
        (ACTION_CREATE, "Create"),
        (ACTION_UPDATE, "Update"),
        (ACTION_DELETE, "Delete"),
    ]

    UNKNOWN_ENTITY_ID = 0

    company = models.ForeignKey(
        "accounts.Company",
        on_delete=models.PROTECT,
        related_name="audit_entries",
        null=True,
        blank=True,
    )
    # Plain ids, not foreign keys: entries outlive the user row.
    actor_user_id = models.BigIntegerField(db_index=True)
    actor_username = models.CharField(max_length=150, blank=True)

    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    entity_type = models.CharField(max_length=120)
    entity_id = models.BigIntegerField(default=UNKNOWN_ENTITY_ID)

    previous_values = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    new_values = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(null=True, blank=True)
    correlation_id = models.CharField(max_length=64, blank=True)
    request_method = models.CharField(max_length=12, blank=True)
    request_path = models.CharField(max_length=255, blank=True)
    occurred_at = models.DateTimeField(default=timezone.now)

    # Hash chain fields (per chain_id).
    chain_id = models.CharField(max_length=80, db_index=True)
    prev_hash = models.CharField(max_length=64, blank=True, default="")
    entry_hash = models.CharField(max_length=64, unique=True)

    objects = TenantAuditLogManager()
    all_objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ("-occurred_at", "-id")
        constraints = [
            models.UniqueConstraint(
                fields=("chain_id", "prev_hash"),
                name="uq_audit_prev_hash_per_chain",
            ),
        ]
        indexes = [
            models.Index(
                fields=("chain_id", "occurred_at"),
                name="idx_audit_chain_occurred",
            ),
            models.Index(
                fields=("company", "entity_type", "entity_id"),
                name="idx_audit_entity",
            ),
        ]
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log Entries"

    def __str__(self) -> str:  # pragma: no cover - admin/debug helper
        return f"{self.occurred_at:%Y-%m-%d %H:%M:%S} [{self.chain_id}] {self.entity_type}#{self.entity_id}:{self.action}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValidationError("Audit log entries are immutable; updates are not allowed.")

        expected_chain = f"tenant:{self.company_id}" if self.company_id else "platform"
        if self.chain_id != expected_chain:
            raise ValidationError("chain_id does not match the entry company.")

        if not self.entry_hash:
            raise ValidationError(
                "entry_hash is required. Use audit.services.append_audit_entry()."
            )

        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Audit log entries are immutable; deletes are not allowed.")
