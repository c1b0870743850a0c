from commission.services.rule_resolver import (
    AmbiguousRule,
    CommissionQuote,
    CommissionResolutionError,
    CommissionRuleResolver,
    InvalidCommissionQuery,
    NoApplicableRate,
    RateResolution,
    calculate_commission,
    quote_commission,
    resolve_commission_rate,
)

__all__ = [
    "AmbiguousRule",
    "CommissionQuote",
    "CommissionResolutionError",
    "CommissionRuleResolver",
    "InvalidCommissionQuery",
    "NoApplicableRate",
    "RateResolution",
    "calculate_commission",
    "quote_commission",
    "resolve_commission_rate",
]
