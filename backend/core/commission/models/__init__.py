from commission.models.rule import CommissionRule

__all__ = ["CommissionRule"]
