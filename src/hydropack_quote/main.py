"""FastAPI app: Hydropack quoting sessions, stored quotes, partner rates and admin summary."""

from __future__ import annotations

import os
import sys
import threading
import time
import traceback
from pathlib import Path
from typing import Any
from uuid import uuid4

from dotenv import load_dotenv

# Load .env when running locally (repo root .env / .env.local)
_repo_root = Path(__file__).resolve().parent.parent.parent
load_dotenv(_repo_root / ".env")
load_dotenv(_repo_root / ".env.local")

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import discount, financing, partners, quote_store, reports
from .customer import CustomerInfo
from .errors import (
    MissingCustomerFieldsError,
    PartnerNotFoundError,
    PartnerQuotingDisabledError,
    QuoteError,
    QuoteStoreError,
    SaveInProgressError,
    StaleQuoteError,
)
from .lifecycle import QuoteSession
from .pricing import WIRE_FIELDS, QuoteConfiguration, compute_breakdown

app = FastAPI(title="Hydropack Quote Service", version="0.1.0")

SAVE_FAILED = "Failed to save quote. Please try again."

_sessions: dict[str, QuoteSession] = {}
_last_seen: dict[str, float] = {}
_sessions_lock = threading.Lock()

_STATUS = (
    (StaleQuoteError, 409),
    (SaveInProgressError, 409),
    (MissingCustomerFieldsError, 422),
    (PartnerNotFoundError, 404),
    (PartnerQuotingDisabledError, 403),
    (QuoteStoreError, 502),
)


class SessionCreate(BaseModel):
    partner_code: str | None = None


class CustomerBody(BaseModel):
    company: str = ""
    contactName: str = ""
    email: str = ""
    phone: str = ""
    serviceStreet: str = ""
    serviceCity: str = ""
    serviceState: str = ""
    serviceZip: str = ""
    poNumber: str = ""


class DiscountBody(BaseModel):
    active: bool


class FinancingBody(BaseModel):
    down_payment: float = 0
    plan_id: str = "45"
    term_months: int = 120


class EstimateBody(FinancingBody):
    total: float = Field(ge=0)


class CalculateBody(BaseModel):
    configuration: dict[str, Any] = Field(default_factory=dict)
    partner_code: str | None = None


@app.exception_handler(QuoteError)
async def quote_error_handler(request: Request, exc: QuoteError) -> JSONResponse:
    status = next((code for cls, code in _STATUS if isinstance(exc, cls)), 400)
    content: dict[str, Any] = {"detail": str(exc)}
    if isinstance(exc, MissingCustomerFieldsError):
        content["fields"] = exc.fields
    return JSONResponse(status_code=status, content=content)


def _partner_or_none(partner_code: str | None) -> partners.Partner | None:
    if not partner_code:
        return None
    return partners.resolve_quoting_partner(partner_code)


def _session_ttl() -> float:
    try:
        return float(os.environ.get("SESSION_TTL_SECONDS", "3600"))
    except ValueError:
        return 3600.0


def _now() -> float:
    return time.monotonic()


def _evict_idle(now: float) -> None:
    """Drop sessions untouched for longer than SESSION_TTL_SECONDS. Caller holds _sessions_lock."""
    cutoff = now - _session_ttl()
    idle = [sid for sid, seen in _last_seen.items() if seen < cutoff]
    for sid in idle:
        _sessions.pop(sid, None)
        _last_seen.pop(sid, None)
    if idle:
        print(f"[main] Evicted {len(idle)} idle session(s)", file=sys.stderr)


def _session(session_id: str) -> QuoteSession:
    now = _now()
    with _sessions_lock:
        _evict_idle(now)
        session = _sessions.get(session_id)
        if session is not None:
            _last_seen[session_id] = now
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _merge_config(current: QuoteConfiguration, changes: dict[str, Any]) -> QuoteConfiguration:
    """Apply a partial update given in stored keys or attribute names."""
    attr_to_wire = {attr: wire for wire, attr in WIRE_FIELDS.items()}
    merged = current.to_dict()
    for key, value in changes.items():
        wire = key if key in WIRE_FIELDS else attr_to_wire.get(key)
        if wire is None:
            raise HTTPException(status_code=422, detail=f"Unknown configuration field: {key}")
        merged[wire] = value
    return QuoteConfiguration.from_dict(merged)


def _session_view(session_id: str, session: QuoteSession) -> dict[str, Any]:
    return {
        "session_id": session_id,
        "state": session.state,
        "partner_code": session.partner.partner_code if session.partner else None,
        "quote_id": session.quote_id,
        "quote_number": session.quote_number,
        "configuration": session.configuration.to_dict(),
        "customer": session.customer.to_dict(),
        "discount_active": session.discount_active,
        "breakdown": session.breakdown.to_dict() if session.breakdown and session.is_fresh else None,
        "total": session.total.to_dict() if session.total and session.is_fresh else None,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/partners/{partner_code}/rates")
def partner_rates(partner_code: str) -> dict[str, Any]:
    partner = partners.resolve_quoting_partner(partner_code)
    return {
        "partner_code": partner.partner_code,
        "company_name": partner.company_name,
        "logo_url": partner.logo_url,
        "rates": partners.rates_for_partner(partner).to_dict(),
    }


@app.post("/api/quotes/calculate")
def calculate_quote(body: CalculateBody) -> dict[str, Any]:
    """Stateless price check: configuration in, breakdown and discounted total out."""
    partner = _partner_or_none(body.partner_code)
    config = QuoteConfiguration.from_dict(body.configuration)
    breakdown = compute_breakdown(config, partners.rates_for_partner(partner))
    total = discount.freeze_total(breakdown.grand_total, discount.active_campaign())
    return {"breakdown": breakdown.to_dict(), "total": total.to_dict()}


@app.post("/api/financing/estimate")
def financing_estimate(body: EstimateBody) -> dict[str, Any]:
    try:
        estimate = financing.estimate_monthly_payment(body.total, body.down_payment, body.plan_id, body.term_months)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return estimate.to_dict()


@app.get("/api/quotes")
def list_quotes(partner_id: str | None = None) -> list[dict[str, Any]]:
    return quote_store.list_quotes(partner_id)


@app.get("/api/quotes/by-number/{quote_number}")
def get_quote_by_number(quote_number: str) -> dict[str, Any]:
    record = quote_store.get_quote_by_number(quote_number)
    if record is None:
        raise HTTPException(status_code=404, detail="Quote not found")
    return record


@app.get("/api/quotes/{quote_id}")
def get_quote(quote_id: str) -> dict[str, Any]:
    record = quote_store.get_quote(quote_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Quote not found")
    return record


@app.delete("/api/quotes/{quote_id}")
def delete_quote(quote_id: str) -> dict[str, Any]:
    if not quote_store.delete_quote(quote_id):
        raise HTTPException(status_code=404, detail="Quote not found")
    return {"deleted": quote_id}


@app.get("/api/admin/summary")
def admin_summary() -> dict[str, Any]:
    return reports.summarize_quotes(quote_store.list_quotes(), partners.list_partners())


@app.post("/api/sessions", status_code=201)
def create_session(body: SessionCreate | None = None) -> dict[str, Any]:
    partner = _partner_or_none(body.partner_code if body else None)
    session = QuoteSession(partner=partner, campaign=discount.active_campaign())
    session_id = uuid4().hex
    now = _now()
    with _sessions_lock:
        _evict_idle(now)
        _sessions[session_id] = session
        _last_seen[session_id] = now
    return _session_view(session_id, session)


@app.delete("/api/sessions/{session_id}")
def close_session(session_id: str) -> dict[str, Any]:
    with _sessions_lock:
        session = _sessions.pop(session_id, None)
        _last_seen.pop(session_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"deleted": session_id}


@app.patch("/api/sessions/{session_id}/configuration")
def update_configuration(session_id: str, changes: dict[str, Any] = Body(...)) -> dict[str, Any]:
    session = _session(session_id)
    session.set_configuration(_merge_config(session.configuration, changes))
    return _session_view(session_id, session)


@app.put("/api/sessions/{session_id}/customer")
def set_customer(session_id: str, body: CustomerBody) -> dict[str, Any]:
    session = _session(session_id)
    session.set_customer(CustomerInfo.from_dict(body.model_dump()))
    return _session_view(session_id, session)


@app.post("/api/sessions/{session_id}/calculate")
def calculate_session(session_id: str) -> dict[str, Any]:
    session = _session(session_id)
    session.calculate()
    return _session_view(session_id, session)


@app.post("/api/sessions/{session_id}/discount")
def toggle_discount(session_id: str, body: DiscountBody) -> dict[str, Any]:
    session = _session(session_id)
    session.set_discount_active(body.active)
    return _session_view(session_id, session)


@app.post("/api/sessions/{session_id}/reset")
def reset_session(session_id: str) -> dict[str, Any]:
    session = _session(session_id)
    session.reset()
    return _session_view(session_id, session)


@app.post("/api/sessions/{session_id}/save")
def save_session(session_id: str) -> dict[str, Any]:
    session = _session(session_id)
    try:
        record = session.save()
    except QuoteStoreError as exc:
        traceback.print_exc(file=sys.stderr)
        raise HTTPException(status_code=502, detail=SAVE_FAILED) from exc
    return {**_session_view(session_id, session), "record": record}


@app.post("/api/sessions/{session_id}/load/{quote_id}")
def load_into_session(session_id: str, quote_id: str) -> dict[str, Any]:
    session = _session(session_id)
    record = quote_store.get_quote(quote_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Quote not found")
    session.load(record)
    return _session_view(session_id, session)


@app.get("/api/sessions/{session_id}/document")
def export_document(session_id: str) -> dict[str, Any]:
    return _session(session_id).export_document()


@app.post("/api/sessions/{session_id}/financing")
def session_financing(session_id: str, body: FinancingBody) -> dict[str, Any]:
    session = _session(session_id)
    try:
        estimate = session.financing_estimate(body.down_payment, body.plan_id, body.term_months)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return estimate.to_dict()
