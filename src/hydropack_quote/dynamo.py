"""Shared DynamoDB client and attribute (de)serialization for the quote and partner tables."""

from __future__ import annotations

import os
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.config import Config

_SERIALIZER = TypeSerializer()
_DESERIALIZER = TypeDeserializer()


def client():
    endpoint = os.environ.get("DYNAMODB_ENDPOINT_URL")
    region = os.environ.get("AWS_REGION", "us-west-2")
    kwargs = {"region_name": region}
    if endpoint:
        kwargs["endpoint_url"] = endpoint
    return boto3.client("dynamodb", config=Config(retries={"mode": "standard", "max_attempts": 3}), **kwargs)


def _floats_to_decimal(value: Any) -> Any:
    """Recursively convert floats to Decimal so DynamoDB serializer accepts them."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _floats_to_decimal(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_floats_to_decimal(v) for v in value]
    return value


def _decimals_to_numbers(value: Any) -> Any:
    """Inverse of _floats_to_decimal: whole Decimals become int, the rest float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _decimals_to_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decimals_to_numbers(v) for v in value]
    return value


def to_ddb(value: Any) -> dict[str, Any]:
    """Serialize a Python value to DynamoDB attribute format (floats converted to Decimal)."""
    return _SERIALIZER.serialize(_floats_to_decimal(value))


def from_ddb(attr: dict[str, Any]) -> Any:
    """Deserialize a DynamoDB attribute value to Python (numbers back to int/float)."""
    return _decimals_to_numbers(_DESERIALIZER.deserialize(attr))


def to_item(record: dict[str, Any]) -> dict[str, Any]:
    return {k: to_ddb(v) for k, v in record.items()}


def from_item(item: dict[str, Any]) -> dict[str, Any]:
    return {k: from_ddb(v) for k, v in item.items()}
