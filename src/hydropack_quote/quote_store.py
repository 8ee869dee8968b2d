"""DynamoDB quote store: one item per quote id, config and pricing snapshot as nested maps."""

from __future__ import annotations

import os
import random
import string
import sys
from datetime import date, datetime, timezone
from typing import Any
from uuid import uuid4

from botocore.exceptions import BotoCoreError, ClientError

from . import dynamo
from .errors import QuoteStoreError

PK = "id"
DEFAULT_PREFIX = "AQ"
QUOTE_STATUSES = ("draft", "sent", "accepted", "ordered")

# Never overwritten by update_quote
_IMMUTABLE = {PK, "created_at"}

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def _table_name() -> str:
    return os.environ.get("DYNAMODB_QUOTES_TABLE", "hydropack_quotes")


def hq_partner_code() -> str:
    return os.environ.get("HQ_PARTNER_CODE", "AQUARIA_HQ")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _fail(action: str, exc: Exception) -> QuoteStoreError:
    print(f"[quote_store] Failed to {action}: {exc!r}", file=sys.stderr)
    return QuoteStoreError(f"Failed to {action}")


def generate_quote_number(partner_code: str | None = None, today: date | None = None) -> str:
    """
    Human-readable quote number: PREFIX-YYYYMMDD-XXXXXX.

    PREFIX is the first two letters of the partner code, uppercased, or "AQ" for
    headquarters / no partner. The six-character suffix is random base36.
    """
    prefix = DEFAULT_PREFIX
    if partner_code and partner_code != hq_partner_code():
        prefix = partner_code[:2].upper()
    day = (today or date.today()).strftime("%Y%m%d")
    rng = random.SystemRandom()
    suffix = "".join(rng.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{prefix}-{day}-{suffix}"


def create_quote(record: dict[str, Any]) -> dict[str, Any]:
    """Insert a new quote; assigns id, created_at and updated_at. Returns the stored record."""
    now = _now()
    stored = {**record, PK: str(uuid4()), "created_at": now, "updated_at": now}
    stored.setdefault("status", "draft")
    try:
        dynamo.client().put_item(
            TableName=_table_name(),
            Item=dynamo.to_item(stored),
            ConditionExpression="attribute_not_exists(#pk)",
            ExpressionAttributeNames={"#pk": PK},
        )
    except (ClientError, BotoCoreError) as exc:
        raise _fail("save quote", exc) from exc
    return stored


def update_quote(quote_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    """
    Replace the given fields on an existing quote and refresh updated_at.

    id and created_at are never changed. Fails (no write) if the quote does not exist.
    Uses generated ExpressionAttributeNames because `status` and others are reserved words.
    """
    fields = {k: v for k, v in updates.items() if k not in _IMMUTABLE}
    fields["updated_at"] = _now()

    update_expr_parts: list[str] = []
    expr_names: dict[str, str] = {"#pk": PK}
    expr_values: dict[str, dict[str, Any]] = {}
    for i, (name, value) in enumerate(fields.items()):
        update_expr_parts.append(f"#f{i} = :v{i}")
        expr_names[f"#f{i}"] = name
        expr_values[f":v{i}"] = dynamo.to_ddb(value)

    try:
        resp = dynamo.client().update_item(
            TableName=_table_name(),
            Key={PK: {"S": quote_id}},
            UpdateExpression="SET " + ", ".join(update_expr_parts),
            ConditionExpression="attribute_exists(#pk)",
            ExpressionAttributeNames=expr_names,
            ExpressionAttributeValues=expr_values,
            ReturnValues="ALL_NEW",
        )
    except (ClientError, BotoCoreError) as exc:
        raise _fail(f"update quote {quote_id}", exc) from exc
    return dynamo.from_item(resp.get("Attributes") or {})


def get_quote(quote_id: str) -> dict[str, Any] | None:
    """Return the stored quote or None if it does not exist."""
    try:
        resp = dynamo.client().get_item(TableName=_table_name(), Key={PK: {"S": quote_id}})
    except (ClientError, BotoCoreError) as exc:
        raise _fail(f"load quote {quote_id}", exc) from exc
    item = resp.get("Item")
    return dynamo.from_item(item) if item else None


def _scan(**kwargs: Any) -> list[dict[str, Any]]:
    paginator = dynamo.client().get_paginator("scan")
    records: list[dict[str, Any]] = []
    for page in paginator.paginate(TableName=_table_name(), **kwargs):
        records.extend(dynamo.from_item(item) for item in page.get("Items") or [])
    return records


def get_quote_by_number(quote_number: str) -> dict[str, Any] | None:
    try:
        matches = _scan(
            FilterExpression="quote_number = :n",
            ExpressionAttributeValues={":n": {"S": quote_number}},
        )
    except (ClientError, BotoCoreError) as exc:
        raise _fail(f"load quote {quote_number}", exc) from exc
    return matches[0] if matches else None


def list_quotes(partner_id: str | None = None) -> list[dict[str, Any]]:
    """All quotes (optionally one partner's), newest first."""
    kwargs: dict[str, Any] = {}
    if partner_id:
        kwargs = {
            "FilterExpression": "partner_id = :p",
            "ExpressionAttributeValues": {":p": {"S": partner_id}},
        }
    try:
        records = _scan(**kwargs)
    except (ClientError, BotoCoreError) as exc:
        raise _fail("load quotes", exc) from exc
    records.sort(key=lambda r: r.get("created_at") or "", reverse=True)
    return records


def delete_quote(quote_id: str) -> bool:
    """Hard delete. False if the quote did not exist."""
    try:
        dynamo.client().delete_item(
            TableName=_table_name(),
            Key={PK: {"S": quote_id}},
            ConditionExpression="attribute_exists(#pk)",
            ExpressionAttributeNames={"#pk": PK},
        )
    except ClientError as exc:
        if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
            return False
        raise _fail(f"delete quote {quote_id}", exc) from exc
    except BotoCoreError as exc:
        raise _fail(f"delete quote {quote_id}", exc) from exc
    return True
