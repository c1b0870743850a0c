from __future__ import annotations

from typing import Iterable, Protocol


class RuleStore(Protocol):
    def candidate_rules(self, tenant_id: int, insurer_id: int) -> Iterable: ...


class DjangoRuleStore:
    """Loads every rule of (tenant, insurer); date and type filtering is the resolver's job."""

    def candidate_rules(self, tenant_id: int, insurer_id: int) -> list:
        from commission.models import CommissionRule

        return list(
            CommissionRule.all_objects.filter(company_id=tenant_id, insurer_id=insurer_id).only(
                "id",
                "insurance_type_id",
                "rate_percentage",
                "effective_from",
                "effective_to",
            )
        )
