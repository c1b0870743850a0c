from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from django.utils import timezone

from commission.stores import DjangoRuleStore, RuleStore

logger = logging.getLogger(__name__)

_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")

# Lower is more specific / preferred.
_RANK_EXACT_TYPE = 0
_RANK_ALL_TYPES = 1


class CommissionResolutionError(RuntimeError):
    """Base error for commission resolution failures."""


class InvalidCommissionQuery(CommissionResolutionError):
    """Raised when resolver inputs cannot be interpreted."""


class AmbiguousRule(CommissionResolutionError):
    """Two or more equally specific rules took effect on the same date.

    This signals malformed rule data, not a business outcome.
    """

    def __init__(self, message: str, *, rule_ids: tuple[int, ...]):
        super().__init__(message)
        self.rule_ids = rule_ids


@dataclass(frozen=True, slots=True)
class RateResolution:
    rate_percentage: Decimal
    rule_id: int | None
    specific: bool


@dataclass(frozen=True, slots=True)
class NoApplicableRate:
    """Explicit 'no rate' outcome. Callers decide whether it is fatal."""

    tenant_id: int
    insurer_id: int
    insurance_type_id: int | None
    on_date: date

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class CommissionQuote:
    base_amount: Decimal
    rate_percentage: Decimal
    amount: Decimal
    rule_id: int | None


def _as_date(value: Any) -> date:
    if value is None:
        return timezone.localdate()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidCommissionQuery("Invalid date value.")


def _to_decimal(value: Any, *, field: str) -> Decimal:
    try:
        if isinstance(value, Decimal):
            return value
        if value is None or value == "":
            raise InvalidCommissionQuery(f"Missing {field}.")
        return Decimal(str(value))
    except (InvalidOperation, TypeError) as exc:
        raise InvalidCommissionQuery(f"Invalid decimal for {field}.") from exc


def _round_money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _is_effective(rule: Any, on_date: date) -> bool:
    if rule.effective_from > on_date:
        return False
    return rule.effective_to is None or on_date <= rule.effective_to


def _specificity_rank(rule: Any, insurance_type_id: int | None) -> int | None:
    if rule.insurance_type_id is None:
        return _RANK_ALL_TYPES
    if insurance_type_id is not None and rule.insurance_type_id == insurance_type_id:
        return _RANK_EXACT_TYPE
    return None


class CommissionRuleResolver:
    """Picks exactly one rate for (tenant, insurer, insurance type, date).

    - Candidates: rules of (tenant, insurer) effective on the date.
    - A rule for the exact insurance type outranks an "all types" rule.
    - Within equal specificity the latest `effective_from` wins; a tie there raises
      AmbiguousRule instead of silently picking one.
    - No candidate yields a NoApplicableRate value.

    Read-only and stateless; safe to share between concurrent requests.
    """

    def __init__(self, store: RuleStore | None = None):
        self.store = store or DjangoRuleStore()

    def resolve(
        self,
        tenant_id: int,
        insurer_id: int,
        insurance_type_id: int | None = None,
        on_date: Any = None,
    ) -> RateResolution | NoApplicableRate:
        as_of = _as_date(on_date)

        ranked: list[tuple[int, Any]] = []
        for rule in self.store.candidate_rules(tenant_id, insurer_id):
            if not _is_effective(rule, as_of):
                continue
            rank = _specificity_rank(rule, insurance_type_id)
            if rank is not None:
                ranked.append((rank, rule))

        if not ranked:
            return NoApplicableRate(
                tenant_id=tenant_id,
                insurer_id=insurer_id,
                insurance_type_id=insurance_type_id,
                on_date=as_of,
            )

        best_rank = min(rank for rank, _rule in ranked)
        tier = [rule for rank, rule in ranked if rank == best_rank]
        latest_start = max(rule.effective_from for rule in tier)
        winners = sorted(
            (rule for rule in tier if rule.effective_from == latest_start),
            key=lambda rule: rule.id or 0,
        )

        if len(winners) > 1:
            rule_ids = tuple(rule.id for rule in winners)
            logger.error(
                "commission.rule.ambiguous tenant_id=%s insurer_id=%s insurance_type_id=%s on_date=%s rule_ids=%s",
                tenant_id,
                insurer_id,
                insurance_type_id,
                as_of.isoformat(),
                list(rule_ids),
            )
            raise AmbiguousRule(
                f"{len(winners)} commission rules share specificity and effective_from {latest_start.isoformat()}.",
                rule_ids=rule_ids,
            )

        winner = winners[0]
        return RateResolution(
            rate_percentage=_to_decimal(winner.rate_percentage, field="rate_percentage"),
            rule_id=winner.id,
            specific=best_rank == _RANK_EXACT_TYPE,
        )


def resolve_commission_rate(
    tenant_id: int,
    insurer_id: int,
    insurance_type_id: int | None = None,
    on_date: Any = None,
    *,
    store: RuleStore | None = None,
) -> RateResolution | NoApplicableRate:
    return CommissionRuleResolver(store=store).resolve(
        tenant_id,
        insurer_id,
        insurance_type_id=insurance_type_id,
        on_date=on_date,
    )


def calculate_commission(base_amount: Any, rate_percentage: Any) -> Decimal:
    """base_amount * rate / 100, rounded half-up to cents."""

    amount = _to_decimal(base_amount, field="base_amount")
    if amount < 0:
        raise InvalidCommissionQuery("base_amount must be >= 0.")
    rate = _to_decimal(rate_percentage, field="rate_percentage")
    if rate < 0 or rate > _HUNDRED:
        raise InvalidCommissionQuery("rate_percentage must be between 0 and 100.")
    return _round_money(amount * (rate / _HUNDRED))


def quote_commission(
    tenant_id: int,
    insurer_id: int,
    base_amount: Any,
    *,
    insurance_type_id: int | None = None,
    on_date: Any = None,
    override_rate: Any = None,
    resolver: CommissionRuleResolver | None = None,
) -> CommissionQuote | NoApplicableRate:
    """Commission owed on a premium payment.

    A policy-level `override_rate` takes precedence over the rule table.
    """

    if override_rate is not None and override_rate != "":
        rate = _to_decimal(override_rate, field="override_rate")
        rule_id = None
    else:
        resolution = (resolver or CommissionRuleResolver()).resolve(
            tenant_id,
            insurer_id,
            insurance_type_id=insurance_type_id,
            on_date=on_date,
        )
        if isinstance(resolution, NoApplicableRate):
            return resolution
        rate = resolution.rate_percentage
        rule_id = resolution.rule_id

    return CommissionQuote(
        base_amount=_to_decimal(base_amount, field="base_amount"),
        rate_percentage=rate,
        amount=calculate_commission(base_amount, rate),
        rule_id=rule_id,
    )

