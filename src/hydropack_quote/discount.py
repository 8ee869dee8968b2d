"""Discount campaign: optional percentage off the engine total."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any

from .rates import coerce_amount

DEFAULT_CAMPAIGN_LABEL = "End of Year Discount"
DEFAULT_CAMPAIGN_RATE = 0.13


@dataclass(frozen=True)
class DiscountCampaign:
    label: str
    rate: float  # fraction, e.g. 0.13


@dataclass(frozen=True)
class DiscountResult:
    discount_amount: float
    final_total: float


@dataclass(frozen=True)
class QuoteTotal:
    """Frozen result of a calculate: engine total, discount applied to it, and what the customer pays."""
    original_total: float
    discount_amount: float
    final_total: float
    campaign_label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_total": self.original_total,
            "discount_amount": self.discount_amount,
            "final_total": self.final_total,
            "campaign_label": self.campaign_label,
        }


def active_campaign() -> DiscountCampaign | None:
    """Campaign configured in the environment, or None when the feature is off (default)."""
    if os.environ.get("DISCOUNT_CAMPAIGN_ENABLED", "0").strip().lower() not in ("1", "true", "yes"):
        return None
    rate = coerce_amount(os.environ.get("DISCOUNT_CAMPAIGN_RATE", DEFAULT_CAMPAIGN_RATE))
    if not 0 < rate < 1:
        print(f"[discount] Ignoring DISCOUNT_CAMPAIGN_RATE={rate!r}; must be between 0 and 1", file=sys.stderr)
        return None
    label = (os.environ.get("DISCOUNT_CAMPAIGN_LABEL") or "").strip() or DEFAULT_CAMPAIGN_LABEL
    return DiscountCampaign(label=label, rate=rate)


def apply_discount(original_total: float, campaign: DiscountCampaign | None) -> DiscountResult:
    """
    Apply campaign to original_total.

    Always computed from the stored original total, so switching the campaign off
    returns exactly to original_total.
    """
    if campaign is None or campaign.rate <= 0:
        return DiscountResult(discount_amount=0.0, final_total=original_total)
    discount = round(original_total * campaign.rate + 1e-9, 2)
    return DiscountResult(discount_amount=discount, final_total=round(original_total - discount, 2))


def freeze_total(original_total: float, campaign: DiscountCampaign | None) -> QuoteTotal:
    result = apply_discount(original_total, campaign)
    return QuoteTotal(
        original_total=original_total,
        discount_amount=result.discount_amount,
        final_total=result.final_total,
        campaign_label=campaign.label if campaign and result.discount_amount else None,
    )
