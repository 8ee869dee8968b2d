"""
Quote session: owns one configuration, its frozen total, and the stale/fresh gate.

Any configuration change makes the session stale. Only calculate() makes it fresh,
and export, save and financing refuse to run on a stale session.
"""

from __future__ import annotations

import sys
import threading
from datetime import date
from types import ModuleType
from typing import Any

from . import document, financing, notifications, quote_store
from .customer import CustomerInfo
from .discount import DiscountCampaign, QuoteTotal, freeze_total
from .errors import MissingCustomerFieldsError, SaveInProgressError, StaleQuoteError
from .partners import Partner, rates_for_partner
from .pricing import CustomAdjustment, PriceBreakdown, QuoteConfiguration, Section, compute_breakdown
from .rates import RateTable

STALE = "stale"
FRESH = "fresh"

_SECTION_LISTS = {"trench": "trenching_sections", "above_ground": "above_ground_sections"}


class QuoteSession:
    def __init__(
        self,
        rates: RateTable | None = None,
        partner: Partner | None = None,
        campaign: DiscountCampaign | None = None,
        store: ModuleType | Any = quote_store,
    ) -> None:
        self.partner = partner
        self.rates = rates if rates is not None else rates_for_partner(partner)
        self.campaign = campaign
        self.store = store
        self.discount_active = campaign is not None
        self.state = STALE
        self._config = QuoteConfiguration()
        self._customer = CustomerInfo()
        self._breakdown: PriceBreakdown | None = None
        self._total: QuoteTotal | None = None
        self._quote_id: str | None = None
        self._quote_number: str | None = None
        self._save_lock = threading.Lock()

    # --- read-only views -------------------------------------------------

    @property
    def configuration(self) -> QuoteConfiguration:
        return self._config

    @property
    def customer(self) -> CustomerInfo:
        return self._customer

    @property
    def breakdown(self) -> PriceBreakdown | None:
        return self._breakdown

    @property
    def total(self) -> QuoteTotal | None:
        return self._total

    @property
    def quote_id(self) -> str | None:
        return self._quote_id

    @property
    def quote_number(self) -> str | None:
        return self._quote_number

    @property
    def is_fresh(self) -> bool:
        return self.state == FRESH

    def _campaign(self) -> DiscountCampaign | None:
        return self.campaign if self.discount_active else None

    # --- configuration edits (all mark the session stale) ----------------

    def _mark_stale(self) -> None:
        self.state = STALE

    def set_configuration(self, config: QuoteConfiguration) -> None:
        self._config = config.normalized()
        self._mark_stale()

    def update(self, **changes: Any) -> None:
        """Replace configuration attributes, e.g. update(model="x", tank="3000")."""
        self._config = self._config.with_changes(**changes)
        self._mark_stale()

    def _sections(self, kind: str) -> list[Section]:
        return list(getattr(self._config, _SECTION_LISTS[kind]))

    def add_section(self, kind: str, section_type: str = "", distance_feet: Any = 0) -> None:
        """Append a trench ("trench") or above-ground ("above_ground") run."""
        sections = self._sections(kind)
        sections.append(Section(type=section_type, distance_feet=distance_feet))
        self.update(**{_SECTION_LISTS[kind]: sections})

    def set_section(self, kind: str, index: int, section_type: str | None = None, distance_feet: Any = None) -> None:
        sections = self._sections(kind)
        current = sections[index]
        sections[index] = Section(
            type=current.type if section_type is None else section_type,
            distance_feet=current.distance_feet if distance_feet is None else distance_feet,
        )
        self.update(**{_SECTION_LISTS[kind]: sections})

    def remove_section(self, kind: str, index: int) -> None:
        sections = self._sections(kind)
        del sections[index]
        self.update(**{_SECTION_LISTS[kind]: sections})

    def add_adjustment(self, label: str = "", amount: Any = 0, notes: str = "", enabled: bool = True) -> None:
        adjustments = list(self._config.custom_adjustments)
        adjustments.append(CustomAdjustment(enabled=enabled, label=label, amount=amount, notes=notes))
        self.update(custom_adjustments=adjustments)

    def set_adjustment(self, index: int, **fields: Any) -> None:
        adjustments = list(self._config.custom_adjustments)
        adjustments[index] = CustomAdjustment.from_dict({**adjustments[index].to_dict(), **fields})
        self.update(custom_adjustments=adjustments)

    def remove_adjustment(self, index: int) -> None:
        adjustments = list(self._config.custom_adjustments)
        del adjustments[index]
        self.update(custom_adjustments=adjustments)

    def set_customer(self, customer: CustomerInfo) -> None:
        # Customer details do not affect price; the session stays fresh.
        self._customer = customer

    # --- calculate / discount / reset -------------------------------------

    def calculate(self) -> QuoteTotal:
        """Price the current configuration, freeze the total and mark the session fresh."""
        self._breakdown = compute_breakdown(self._config, self.rates)
        self._total = freeze_total(self._breakdown.grand_total, self._campaign())
        self.state = FRESH
        return self._total

    def set_discount_active(self, active: bool) -> QuoteTotal | None:
        """Toggle the campaign; a fresh total is re-discounted from its original_total."""
        self.discount_active = bool(active) and self.campaign is not None
        if self.is_fresh and self._total is not None:
            self._total = freeze_total(self._total.original_total, self._campaign())
        return self._total

    def reset(self) -> None:
        """Back to an empty configuration and customer; id and number are forgotten."""
        self._config = QuoteConfiguration()
        self._customer = CustomerInfo()
        self._breakdown = None
        self._total = None
        self._quote_id = None
        self._quote_number = None
        self.discount_active = self.campaign is not None
        self._mark_stale()

    # --- gated actions ------------------------------------------------------

    def require_fresh(self, action: str) -> None:
        if not self.is_fresh or self._total is None or self._breakdown is None:
            raise StaleQuoteError(action)

    def _require_customer(self) -> None:
        missing = self._customer.missing_required()
        if missing:
            raise MissingCustomerFieldsError(missing)

    def export_document(self, today: date | None = None) -> dict[str, Any]:
        self.require_fresh("export the PDF")
        self._require_customer()
        return document.build_document(
            self._breakdown,
            self._total,
            self._config,
            self._customer,
            quote_number=self._quote_number,
            partner=self.partner,
            today=today,
        )

    def financing_estimate(self, down_payment: Any, plan_id: str, term_months: int) -> financing.FinancingEstimate:
        self.require_fresh("view financing options")
        return financing.estimate_monthly_payment(self._total.final_total, down_payment, plan_id, term_months)

    def to_record(self) -> dict[str, Any]:
        """Stored quote columns for the current (fresh) state."""
        if self.partner is not None:
            partner_id, partner_name = self.partner.partner_code, self.partner.company_name
            logo = self.partner.logo_url
        else:
            partner_id, partner_name, logo = quote_store.hq_partner_code(), document.hq_company_name(), None
        return {
            "quote_number": self._quote_number,
            **self._customer.to_record(),
            "partner_id": partner_id,
            "partner_name": partner_name,
            "partner_logo_url": logo,
            "quote_config": self._config.to_dict(),
            "partner_pricing": self.rates.to_dict(),
            "original_total": self._total.original_total,
            "discount_amount": self._total.discount_amount,
            "final_total": self._total.final_total,
            "status": "draft",
            "notes": None,
        }

    def save(self) -> dict[str, Any]:
        """
        Create the quote on first save, update it afterwards. Returns the stored record.

        Raises StaleQuoteError, MissingCustomerFieldsError, SaveInProgressError or
        QuoteStoreError. On failure the session's id and number are unchanged.
        """
        self.require_fresh("save the quote")
        self._require_customer()
        if not self._save_lock.acquire(blocking=False):
            raise SaveInProgressError()
        try:
            record = self.to_record()
            if self._quote_id:
                record.pop("status")
                stored = self.store.update_quote(self._quote_id, record)
                created = False
            else:
                record["quote_number"] = quote_store.generate_quote_number(record["partner_id"])
                stored = self.store.create_quote(record)
                created = True
            self._quote_id = stored.get("id") or self._quote_id
            self._quote_number = stored.get("quote_number") or record["quote_number"]
        finally:
            self._save_lock.release()
        print(f"[lifecycle] Saved quote {self._quote_number} ({'created' if created else 'updated'})", file=sys.stderr)
        if created:
            notifications.notify_quote_saved(stored)
        return stored

    def load(self, record: dict[str, Any]) -> QuoteTotal:
        """Restore a stored quote; the session becomes fresh with the stored totals."""
        if record.get("partner_pricing"):
            self.rates = RateTable.from_dict(record["partner_pricing"])
        self._config = QuoteConfiguration.from_dict(record.get("quote_config"))
        self._customer = CustomerInfo.from_record(record)
        self._breakdown = compute_breakdown(self._config, self.rates)
        original = float(record.get("original_total") or 0)
        discount = float(record.get("discount_amount") or 0)
        self.discount_active = discount > 0 and self.campaign is not None
        self._total = QuoteTotal(
            original_total=original,
            discount_amount=discount,
            final_total=float(record.get("final_total") if record.get("final_total") is not None else original - discount),
            campaign_label=self.campaign.label if self.discount_active else None,
        )
        self._quote_id = record.get("id")
        self._quote_number = record.get("quote_number")
        self.state = FRESH
        return self._total
