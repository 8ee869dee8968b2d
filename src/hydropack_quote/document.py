"""Inputs for the quote PDF renderer: labeled sections, totals, footer and file name."""

from __future__ import annotations

import os
import re
import unicodedata
from datetime import date
from typing import Any

from .customer import CustomerInfo
from .discount import QuoteTotal
from .labels import display_label
from .partners import Partner
from .pricing import PriceBreakdown, QuoteConfiguration

DEFAULT_HQ_NAME = "Aquaria"
DEFAULT_HQ_ADDRESS = "600 Congress Ave, Austin, TX 78701"
FOOTER = (
    "Thank you for your interest in {company}. This quote is valid for 30 days. "
    "Aquaria Atmospheric Water Generator units are exempt from sales tax."
)


def hq_company_name() -> str:
    return os.environ.get("HQ_COMPANY_NAME", DEFAULT_HQ_NAME)


def _hq_address() -> str:
    return os.environ.get("HQ_ADDRESS", DEFAULT_HQ_ADDRESS)


def sanitize_filename(name: str) -> str:
    """Strip accents and path-unsafe characters, underscores for spaces, max 180 chars."""
    text = unicodedata.normalize("NFKD", name)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r'[\\/:"*?<>|]+', "", text)
    text = re.sub(r"\s+", " ", text).strip().replace(" ", "_")
    return text[:180]


def document_filename(customer: CustomerInfo, today: date | None = None) -> str:
    address = " ".join(
        [customer.service_street, customer.service_city, customer.service_state, customer.service_zip]
    ).strip()
    who = customer.company or customer.contact_name or "Customer"
    parts = [who, address, (today or date.today()).isoformat()]
    return sanitize_filename("Hydropack_Quote_" + "_".join(p for p in parts if p) + ".pdf")


def _service_lines(config: QuoteConfiguration) -> list[dict[str, str]]:
    """Component / qty / description rows of the "Additional Services" section."""
    rows: list[dict[str, str]] = []

    def row(component: str, qty: str, description: str) -> None:
        rows.append({"component": component, "qty": qty, "description": description})

    if config.unit_pad:
        row("Unit Concrete Pad", "1", "Concrete base for main system")
    if config.tank_pad:
        row("Tank Concrete Pad", "1", "Concrete base for tank support")
    for category, sections in (("trench", config.trenching_sections), ("above_ground", config.above_ground_sections)):
        for s in sections:
            if s.type and s.distance_feet > 0:
                row(display_label(category, s.type), f"{s.distance_feet:g} ft", "Trenching Services")
    if config.connection_type == "2way-t-valve":
        row("Connection Type", "", "Manual 2-way T-valve install")
    elif config.connection_type == "3way-t-valve":
        row("Connection Type", "", "Automatic 3-way T-valve install")
    if config.panel_upgrade == "panel":
        row("Panel Upgrade", "", "Electrical panel enhancement")
    elif config.panel_upgrade == "subpanel":
        row("Subpanel Upgrade", "", "Electrical subpanel support")
    if config.pump:
        row(f"{display_label('pump', config.pump)} Pump", "1", "Pump supply and installation")
    if config.demolition.enabled and config.demolition.distance_feet > 0:
        row("Demolition", f"{config.demolition.distance_feet:g} ft", "Removal of existing structures")
    return rows


def _warranty_line(config: QuoteConfiguration) -> dict[str, str]:
    if config.model and config.warranty in ("warranty5", "warranty8"):
        return {"component": display_label("warranty", config.warranty), "description": "Extended protection for system"}
    return {"component": "Standard Warranty", "description": "Basic coverage included at no cost"}


def build_document(
    breakdown: PriceBreakdown,
    total: QuoteTotal,
    config: QuoteConfiguration,
    customer: CustomerInfo,
    *,
    quote_number: str | None = None,
    partner: Partner | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Everything the renderer needs; layout, fonts and pagination are the renderer's job."""
    day = today or date.today()
    company = partner.company_name if partner else hq_company_name()
    address = (partner.display_address if partner else None) or _hq_address()

    adjustments = [
        {"label": adj.label, "amount": adj.amount, "notes": adj.notes}
        for adj in config.custom_adjustments
        if adj.enabled and adj.label.strip() and adj.amount != 0
    ]

    totals: dict[str, Any] = {"total": total.final_total}
    if total.discount_amount:
        totals.update(
            original_total=total.original_total,
            discount_label=total.campaign_label,
            discount_amount=total.discount_amount,
        )

    return {
        "header": {
            "company_name": company,
            "logo_url": partner.logo_url if partner else None,
            "address": address,
            "quote_number": quote_number,
            "date": day.strftime("%m/%d/%Y"),
        },
        "customer": {
            "name": customer.company or customer.contact_name,
            "attention": customer.contact_name if customer.company else None,
            "phone": customer.phone or None,
            "email": customer.email or None,
            "service_address": customer.service_address,
            "po_number": customer.po_number or None,
        },
        "sections": {
            "main_product": display_label("model", config.model),
            "tank": display_label("tank", config.tank),
            "filters": f"{display_label('filter', config.filter)} x{config.filter_quantity}",
            "sensor": display_label("sensor", config.sensor),
            "nearest_city": config.city or "None",
            "services": _service_lines(config),
            "custom_adjustments": adjustments,
            "warranty": _warranty_line(config),
        },
        "line_items": [item.to_dict() for item in breakdown.line_items],
        "tax_label": f"{breakdown.tax_rate * 100:g}% Sales Tax",
        "totals": totals,
        "footer": FOOTER.format(company=company),
        "filename": document_filename(customer, day),
    }
