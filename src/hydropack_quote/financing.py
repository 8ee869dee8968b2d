"""Installment financing estimate from published payment factors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .rates import coerce_amount

APR = 7.99

# No-payment period (days) -> term (months) -> payment factor and financed-amount range
PLANS: dict[str, dict[int, dict[str, float]]] = {
    "45": {
        120: {"factor": 0.0123, "min": 7500, "max": 100000},
        180: {"factor": 0.0097, "min": 10000, "max": 100000},
        240: {"factor": 0.0085, "min": 12500, "max": 100000},
    },
    "180": {
        120: {"factor": 0.0126, "min": 7500, "max": 100000},
        180: {"factor": 0.0099, "min": 10000, "max": 100000},
        240: {"factor": 0.0087, "min": 12500, "max": 100000},
    },
}


@dataclass(frozen=True)
class FinancingEstimate:
    monthly_payment: float
    in_range: bool
    min: float
    max: float
    amount_financed: float
    factor: float
    apr: float = APR

    def to_dict(self) -> dict[str, Any]:
        return {
            "monthly_payment": self.monthly_payment,
            "in_range": self.in_range,
            "min": self.min,
            "max": self.max,
            "amount_financed": self.amount_financed,
            "factor": self.factor,
            "apr": self.apr,
        }


def estimate_monthly_payment(total: Any, down_payment: Any, plan_id: str, term_months: int) -> FinancingEstimate:
    """
    Monthly payment for financing (total - down_payment) on a plan.

    Amounts outside the plan's [min, max] are reported with in_range=False and a
    zero payment. Raises ValueError for an unknown plan or term.
    """
    terms = PLANS.get(str(plan_id))
    if terms is None:
        raise ValueError(f"Unknown financing plan: {plan_id!r}")
    try:
        plan = terms[int(term_months)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Unknown term {term_months!r} for plan {plan_id!r}") from None

    amount = max(coerce_amount(total) - coerce_amount(down_payment), 0.0)
    in_range = plan["min"] <= amount <= plan["max"]
    payment = round(amount * plan["factor"] + 1e-9, 2) if in_range else 0.0
    return FinancingEstimate(
        monthly_payment=payment,
        in_range=in_range,
        min=plan["min"],
        max=plan["max"],
        amount_financed=round(amount, 2),
        factor=plan["factor"],
    )
