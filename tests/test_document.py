"""Unit tests for document payload assembly and file naming."""

from __future__ import annotations

from datetime import date

import pytest

from src.hydropack_quote.customer import CustomerInfo
from src.hydropack_quote.discount import DiscountCampaign, freeze_total
from src.hydropack_quote.document import build_document, document_filename, sanitize_filename
from src.hydropack_quote.partners import Partner
from src.hydropack_quote.pricing import CustomAdjustment, QuoteConfiguration, Section, compute_breakdown
from src.hydropack_quote.rates import DEFAULT_RATES

CUSTOMER = CustomerInfo(
    company="Café Luna",
    contact_name="Ana Ruiz",
    service_street="5 Elm St",
    service_city="San Antonio",
    service_state="TX",
    service_zip="78205",
)


def test_sanitize_filename():
    assert sanitize_filename('Café "Luna": a/b?') == "Cafe_Luna_ab"
    assert len(sanitize_filename("x" * 500)) == 180


def test_filename_prefers_company():
    assert document_filename(CUSTOMER, date(2026, 10, 19)) == (
        "Hydropack_Quote_Cafe_Luna_5_Elm_St_San_Antonio_TX_78205_2026-10-19.pdf"
    )
    assert document_filename(CustomerInfo(), date(2026, 10, 19)) == "Hydropack_Quote_Customer_2026-10-19.pdf"


def _document(config, campaign=None, partner=None):
    breakdown = compute_breakdown(config, DEFAULT_RATES)
    total = freeze_total(breakdown.grand_total, campaign)
    return build_document(
        breakdown, total, config, CUSTOMER, quote_number="SU-20261019-ABC123", partner=partner, today=date(2026, 10, 19),
    )


def test_document_sections_and_labels():
    config = QuoteConfiguration(
        model="x",
        tank="3000",
        filter="x",
        filter_quantity=2,
        unit_pad=True,
        trenching_sections=[Section(type="trench_plumb", distance_feet=40)],
        connection_type="3way-t-valve",
        custom_adjustments=[
            CustomAdjustment(enabled=True, label="Crane rental", amount=600),
            CustomAdjustment(enabled=True, label="", amount=50),
            CustomAdjustment(enabled=True, label="Zero", amount=0),
        ],
    )
    doc = _document(config)
    sections = doc["sections"]
    assert sections["main_product"] == "Hydropack X"
    assert sections["tank"] == "3000 gallon"
    assert sections["sensor"] == "None"
    assert sections["filters"] == "Hydropack X x2"
    assert [row["component"] for row in sections["services"]] == [
        "Unit Concrete Pad", "Trenching - Plumbing", "Connection Type",
    ]
    assert [adj["label"] for adj in sections["custom_adjustments"]] == ["Crane rental"]
    assert sections["warranty"]["component"] == "Standard Warranty"
    assert doc["tax_label"] == "8.25% Sales Tax"
    assert doc["header"]["company_name"] == "Aquaria"
    assert doc["header"]["address"] == "600 Congress Ave, Austin, TX 78701"
    assert doc["customer"]["attention"] == "Ana Ruiz"


def test_document_discount_lines_only_when_discounted():
    config = QuoteConfiguration(model="s")
    assert "discount_amount" not in _document(config)["totals"]

    totals = _document(config, DiscountCampaign(label="End of Year Discount", rate=0.13))["totals"]
    assert totals["original_total"] == 11244
    assert totals["discount_label"] == "End of Year Discount"
    assert totals["total"] == pytest.approx(totals["original_total"] - totals["discount_amount"])


def test_partner_branding():
    partner = Partner(partner_code="SUNCOAST", company_name="Suncoast Water", display_address="1 Bay Rd, Corpus Christi, TX")
    doc = _document(QuoteConfiguration(model="s"), partner=partner)
    assert doc["header"]["company_name"] == "Suncoast Water"
    assert doc["header"]["address"] == "1 Bay Rd, Corpus Christi, TX"
    assert doc["footer"].startswith("Thank you for your interest in Suncoast Water.")
