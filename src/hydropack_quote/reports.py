"""Admin dashboard numbers over stored quotes."""

from __future__ import annotations

from typing import Any, Iterable

from .partners import Partner


def _value(quote: dict[str, Any]) -> float:
    try:
        return float(quote.get("final_total") or 0)
    except (TypeError, ValueError):
        return 0.0


def summarize_quotes(quotes: Iterable[dict[str, Any]], partners: Iterable[Partner]) -> dict[str, Any]:
    """Total count and value, plus count and value per partner (partners with no quotes show 0)."""
    quotes = list(quotes)
    by_partner = []
    for partner in partners:
        own = [q for q in quotes if q.get("partner_id") == partner.partner_code]
        by_partner.append({
            "partner_code": partner.partner_code,
            "company_name": partner.company_name,
            "quote_count": len(own),
            "total_value": round(sum(_value(q) for q in own), 2),
        })
    return {
        "total_quotes": len(quotes),
        "total_value": round(sum(_value(q) for q in quotes), 2),
        "by_partner": by_partner,
    }
