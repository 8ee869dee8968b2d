"""Unit tests for QuoteSession: stale/fresh gating, discount toggling, save and load."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from src.hydropack_quote.customer import CustomerInfo
from src.hydropack_quote.discount import DiscountCampaign
from src.hydropack_quote.errors import (
    MissingCustomerFieldsError,
    QuoteStoreError,
    SaveInProgressError,
    StaleQuoteError,
)
from src.hydropack_quote.lifecycle import FRESH, STALE, QuoteSession
from src.hydropack_quote.partners import Partner
from src.hydropack_quote.rates import apply_partner_overrides, DEFAULT_RATES

CAMPAIGN = DiscountCampaign(label="End of Year Discount", rate=0.13)

CUSTOMER = CustomerInfo(
    contact_name="Dana Reyes",
    service_street="12 Mesa Dr",
    service_city="Austin",
    service_state="TX",
    service_zip="78704",
)


def _store():
    store = MagicMock()
    store.create_quote.side_effect = lambda record: {**record, "id": "q-1", "created_at": "2026-01-01T00:00:00"}
    store.update_quote.side_effect = lambda quote_id, updates: {**updates, "id": quote_id}
    return store


def _fresh_session(store=None, **kwargs) -> QuoteSession:
    session = QuoteSession(store=store or _store(), **kwargs)
    session.update(model="s")
    session.set_customer(CUSTOMER)
    session.calculate()
    return session


def test_new_session_is_stale():
    session = QuoteSession(store=_store())
    assert session.state == STALE
    assert session.total is None


def test_calculate_marks_fresh_and_edits_mark_stale():
    session = _fresh_session()
    assert session.state == FRESH
    assert session.total.final_total == 11244

    session.add_section("trench", "trench_elec", 100)
    assert session.state == STALE
    session.calculate()
    assert session.total.original_total == 11244 + 3250 + 3200

    session.remove_section("trench", 0)
    assert session.state == STALE


def test_section_and_adjustment_helpers():
    session = QuoteSession(store=_store())
    session.add_section("above_ground", "ab_elec", 10)
    session.set_section("above_ground", 0, distance_feet="20")
    assert session.configuration.above_ground_sections[0].distance_feet == 20.0

    session.add_adjustment("Credit", -100)
    session.set_adjustment(0, amount="-250")
    assert session.configuration.custom_adjustments[0].amount == -250.0
    session.remove_adjustment(0)
    assert session.configuration.custom_adjustments == []


def test_stale_actions_raise_without_side_effects():
    store = _store()
    session = _fresh_session(store)
    session.update(tank="500")
    with pytest.raises(StaleQuoteError):
        session.save()
    with pytest.raises(StaleQuoteError):
        session.export_document()
    with pytest.raises(StaleQuoteError):
        session.financing_estimate(0, "45", 120)
    store.create_quote.assert_not_called()
    assert session.quote_id is None


def test_customer_edit_keeps_session_fresh():
    session = _fresh_session()
    session.set_customer(replace(CUSTOMER, phone="512-555-0100"))
    assert session.state == FRESH


def test_discount_toggle_round_trip():
    session = _fresh_session(campaign=CAMPAIGN)
    assert session.total.discount_amount == pytest.approx(1461.72)
    session.set_discount_active(False)
    assert session.total.final_total == 11244
    session.set_discount_active(True)
    assert session.total.final_total == pytest.approx(11244 - 1461.72)
    assert session.state == FRESH


def test_reset_clears_everything():
    session = _fresh_session()
    session.reset()
    assert session.state == STALE
    assert session.total is None
    assert session.configuration.model == ""
    assert session.customer.contact_name == ""


def test_save_requires_customer_fields():
    store = _store()
    session = _fresh_session(store)
    session.set_customer(CustomerInfo(contact_name="  ", service_city="Austin"))
    with pytest.raises(MissingCustomerFieldsError) as exc_info:
        session.save()
    assert exc_info.value.fields == ["contactName", "serviceStreet", "serviceState", "serviceZip"]
    store.create_quote.assert_not_called()


@patch("src.hydropack_quote.lifecycle.notifications.notify_quote_saved")
def test_first_save_creates_then_updates(mock_notify):
    store = _store()
    session = _fresh_session(store)

    record = session.save()
    assert session.quote_id == "q-1"
    assert session.quote_number.startswith("AQ-")
    assert record["quote_config"]["model"] == "s"
    assert record["final_total"] == 11244
    assert record["customer_name"] == "Dana Reyes"
    assert record["customer_email"] is None
    assert record["status"] == "draft"
    mock_notify.assert_called_once()

    session.update(tank="500")
    session.calculate()
    session.save()
    store.create_quote.assert_called_once()
    quote_id, updates = store.update_quote.call_args.args
    assert quote_id == "q-1"
    assert updates["quote_number"] == session.quote_number
    assert updates["final_total"] == pytest.approx(1434.50 + 11244 - 600)
    assert mock_notify.call_count == 1


@patch("src.hydropack_quote.lifecycle.notifications.notify_quote_saved")
def test_failed_save_keeps_session_unsaved(mock_notify):
    store = _store()
    store.create_quote.side_effect = QuoteStoreError("Failed to save quote")
    session = _fresh_session(store)
    with pytest.raises(QuoteStoreError):
        session.save()
    assert session.quote_id is None
    assert session.quote_number is None
    mock_notify.assert_not_called()

    # retry succeeds
    store.create_quote.side_effect = lambda record: {**record, "id": "q-2"}
    session.save()
    assert session.quote_id == "q-2"


@patch("src.hydropack_quote.lifecycle.notifications.notify_quote_saved")
def test_second_save_while_in_flight_is_rejected(mock_notify):
    store = MagicMock()
    session = _fresh_session(store)

    def create(record):
        with pytest.raises(SaveInProgressError):
            session.save()
        return {**record, "id": "q-1"}

    store.create_quote.side_effect = create
    session.save()
    store.create_quote.assert_called_once()


@patch("src.hydropack_quote.lifecycle.notifications.notify_quote_saved")
def test_partner_quote_number_and_record(mock_notify):
    partner = Partner(partner_code="SUNCOAST", company_name="Suncoast Water", logo_url="https://x/logo.png")
    session = _fresh_session(partner=partner)
    record = session.save()
    assert session.quote_number.startswith("SU-")
    assert record["partner_id"] == "SUNCOAST"
    assert record["partner_name"] == "Suncoast Water"
    assert record["partner_logo_url"] == "https://x/logo.png"


def test_load_restores_stored_quote():
    rates = apply_partner_overrides(DEFAULT_RATES, {"tankPrices": {"500": 700}})
    source = QuoteSession(rates=rates, store=_store())
    source.update(tank="500", city="Houston")
    source.calculate()
    record = {
        "id": "q-9",
        "quote_number": "SU-20260101-ABC123",
        **CUSTOMER.to_record(),
        "quote_config": source.configuration.to_dict(),
        "partner_pricing": rates.to_dict(),
        "original_total": source.total.original_total,
        "discount_amount": 0,
        "final_total": source.total.final_total,
    }

    session = QuoteSession(store=_store())
    total = session.load(record)
    assert session.state == FRESH
    assert session.quote_id == "q-9"
    assert session.quote_number == "SU-20260101-ABC123"
    assert session.configuration == source.configuration
    assert session.customer == CUSTOMER
    assert total.final_total == source.total.final_total
    assert session.rates.tank_prices == {"500": 700.0}
    # recalculating with the stored rates yields the same total
    assert session.calculate().final_total == source.total.final_total


def test_financing_uses_final_total():
    session = _fresh_session()
    est = session.financing_estimate(1244, "45", 120)
    assert est.amount_financed == 10000
    assert est.monthly_payment == 123.0


def test_export_document():
    session = _fresh_session()
    doc = session.export_document(today=date(2026, 3, 4))
    assert doc["header"]["company_name"] == "Aquaria"
    assert doc["totals"] == {"total": 11244}
    assert doc["filename"] == "Hydropack_Quote_Dana_Reyes_12_Mesa_Dr_Austin_TX_78704_2026-03-04.pdf"


def _stored_record(config: dict, pricing: dict, total: float) -> dict:
    return {
        "id": "q-5",
        "quote_number": "SU-20250101-OLD001",
        **CUSTOMER.to_record(),
        "quote_config": config,
        "partner_pricing": pricing,
        "original_total": total,
        "discount_amount": 0,
        "final_total": total,
    }


def test_load_snapshot_with_flat_fees_only():
    pricing = DEFAULT_RATES.to_dict()
    pricing["fees"] = {"admin": 500, "commission": 2500, "aquariaManagement": 500, "disposal": 200, "net30": 100}
    record = _stored_record({"panelUpgrade": "panel", "pump": "dab"}, pricing, 14056.75)

    session = QuoteSession(store=_store())
    session.load(record)
    assert session.breakdown.grand_total == pytest.approx(14056.75)
    assert "Panel Upgrade" in [item.description for item in session.breakdown.line_items]
    assert session.calculate().final_total == pytest.approx(14056.75)


def test_load_snapshot_missing_fees_category():
    pricing = DEFAULT_RATES.to_dict()
    del pricing["fees"]
    record = _stored_record({"model": "s"}, pricing, 11244)

    session = QuoteSession(store=_store())
    session.load(record)
    assert session.rates.fees == DEFAULT_RATES.fees
    assert session.calculate().final_total == 11244
