# Generated manually. Keep in sync with audit/models.py.

import django.core.serializers.json
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor_user_id", models.BigIntegerField(db_index=True)),
                ("actor_username", models.CharField(blank=True, max_length=150)),
                ("action", models.CharField(choices=[("CREATE", "Create"), ("UPDATE", "Update"), ("DELETE", "Delete")], max_length=20)),
                ("entity_type", models.CharField(max_length=120)),
                ("entity_id", models.BigIntegerField(default=0)),
                ("previous_values", models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ("new_values", models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.TextField(blank=True, null=True)),
                ("correlation_id", models.CharField(blank=True, max_length=64)),
                ("request_method", models.CharField(blank=True, max_length=12)),
                ("request_path", models.CharField(blank=True, max_length=255)),
                ("occurred_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("chain_id", models.CharField(db_index=True, max_length=80)),
                ("prev_hash", models.CharField(blank=True, default="", max_length=64)),
                ("entry_hash", models.CharField(max_length=64, unique=True)),
                ("company", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="audit_entries", to="accounts.company")),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log Entries",
                "ordering": ("-occurred_at", "-id"),
            },
        ),
        migrations.AddConstraint(
            model_name="auditlogentry",
            constraint=models.UniqueConstraint(fields=("chain_id", "prev_hash"), name="uq_audit_prev_hash_per_chain"),
        ),
        migrations.AddIndex(
            model_name="auditlogentry",
            index=models.Index(fields=("chain_id", "occurred_at"), name="idx_audit_chain_occurred"),
        ),
        migrations.AddIndex(
            model_name="auditlogentry",
            index=models.Index(fields=("company", "entity_type", "entity_id"), name="idx_audit_entity"),
        ),
    ]
