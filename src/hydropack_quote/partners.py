"""Partner directory (DynamoDB): lookup, quoting permission, and partner rate tables."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from . import dynamo
from .errors import PartnerNotFoundError, PartnerQuotingDisabledError, QuoteStoreError
from .quote_store import hq_partner_code
from .rates import DEFAULT_RATES, RateTable, apply_partner_overrides

PK = "partner_code"


def _table_name() -> str:
    return os.environ.get("DYNAMODB_PARTNERS_TABLE", "hydropack_partners")


@dataclass
class Partner:
    partner_code: str
    company_name: str
    is_active: bool = True
    can_create_quotes: bool = True
    pricing_overrides: dict[str, Any] | None = None
    logo_url: str | None = None
    display_address: str | None = None
    display_phone: str | None = None
    display_email: str | None = None
    display_website: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Partner":
        return cls(
            partner_code=str(record.get(PK) or ""),
            company_name=str(record.get("company_name") or record.get(PK) or ""),
            is_active=bool(record.get("is_active", True)),
            can_create_quotes=bool(record.get("can_create_quotes", True)),
            pricing_overrides=record.get("pricing_overrides") or None,
            logo_url=record.get("logo_url"),
            display_address=record.get("display_address"),
            display_phone=record.get("display_phone"),
            display_email=record.get("display_email"),
            display_website=record.get("display_website"),
        )


def get_partner(partner_code: str) -> Partner | None:
    """Return the partner or None if no such code."""
    try:
        resp = dynamo.client().get_item(TableName=_table_name(), Key={PK: {"S": partner_code}})
    except (ClientError, BotoCoreError) as exc:
        print(f"[partners] Failed to load partner {partner_code}: {exc!r}", file=sys.stderr)
        raise QuoteStoreError(f"Failed to load partner {partner_code}") from exc
    item = resp.get("Item")
    return Partner.from_record(dynamo.from_item(item)) if item else None


def list_partners() -> list[Partner]:
    """Active partners sorted by company name."""
    partners: list[Partner] = []
    try:
        paginator = dynamo.client().get_paginator("scan")
        for page in paginator.paginate(TableName=_table_name()):
            for item in page.get("Items") or []:
                partner = Partner.from_record(dynamo.from_item(item))
                if partner.is_active:
                    partners.append(partner)
    except (ClientError, BotoCoreError) as exc:
        print(f"[partners] Failed to load partners: {exc!r}", file=sys.stderr)
        raise QuoteStoreError("Failed to load partners") from exc
    partners.sort(key=lambda p: p.company_name.lower())
    return partners


def resolve_quoting_partner(partner_code: str) -> Partner:
    """
    Partner allowed to create quotes, or raise.

    The headquarters code is not a partner; inactive partners are treated as missing.
    """
    code = (partner_code or "").strip()
    if code == hq_partner_code():
        raise PartnerNotFoundError(code, "Aquaria is not a partner. Please use the main calculator.")
    if not code:
        raise PartnerNotFoundError(code)
    try:
        partner = get_partner(code)
    except QuoteStoreError as exc:
        raise PartnerNotFoundError(code, "Failed to load partner information") from exc
    if partner is None or not partner.is_active:
        raise PartnerNotFoundError(code)
    if not partner.can_create_quotes:
        raise PartnerQuotingDisabledError(code)
    return partner


def rates_for_partner(partner: Partner | None) -> RateTable:
    """Default rates with the partner's overridden categories swapped in."""
    if partner is None:
        return DEFAULT_RATES
    return apply_partner_overrides(DEFAULT_RATES, partner.pricing_overrides)
