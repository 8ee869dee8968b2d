"""Text the sales line when a new quote is saved."""

from __future__ import annotations

import os
import sys
from typing import Any

from twilio.base.exceptions import TwilioException
from twilio.rest import Client


def _sales_phone() -> str | None:
    return (os.environ.get("SALES_PHONE_NUMBER") or "").strip() or None


def _twilio_settings() -> tuple[str, str, str]:
    """(account sid, auth token, sender number); raises ValueError naming any that are unset."""
    names = ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_PHONE_NUMBER")
    values = [(os.environ.get(name) or "").strip() for name in names]
    missing = [name for name, value in zip(names, values) if not value]
    if missing:
        raise ValueError(", ".join(missing) + " must be set")
    return values[0], values[1], values[2]


def send_sms(to_phone: str, body: str) -> str | None:
    """Text to_phone from the configured Twilio number. Returns the message SID, or None if not sent."""
    try:
        sid, token, sender = _twilio_settings()
        return Client(sid, token).messages.create(to=to_phone, from_=sender, body=body).sid
    except (TwilioException, ValueError, OSError) as exc:
        print(f"[notifications] SMS to {to_phone} not sent: {exc!r}", file=sys.stderr)
        return None


def quote_saved_body(record: dict[str, Any]) -> str:
    who = record.get("customer_company") or record.get("customer_name") or "Customer"
    city = record.get("service_city") or "?"
    partner = record.get("partner_name") or "Aquaria"
    total = float(record.get("final_total") or 0)
    return f"[Hydropack] New quote {record.get('quote_number')} | {who} ({city}) | ${total:,.2f} | via {partner}"


def notify_quote_saved(record: dict[str, Any]) -> bool:
    """Send a summary of a newly saved quote to SALES_PHONE_NUMBER. Returns True if sent."""
    phone = _sales_phone()
    if not phone:
        print("[notifications] SALES_PHONE_NUMBER not set; skipping quote SMS", file=sys.stderr)
        return False
    sid = send_sms(phone, quote_saved_body(record))
    if sid:
        print(f"[notifications] Quote alert sent to sales (SID {sid})", file=sys.stderr)
    return sid is not None
