"""Unit tests for the DynamoDB quote store (boto3 client mocked)."""

from __future__ import annotations

import re
from datetime import date
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from src.hydropack_quote import dynamo, quote_store
from src.hydropack_quote.errors import QuoteStoreError


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "Operation")


def test_generate_quote_number_format():
    number = quote_store.generate_quote_number(None, today=date(2026, 10, 19))
    assert re.fullmatch(r"AQ-20261019-[A-Z0-9]{6}", number)


def test_generate_quote_number_partner_prefix():
    assert quote_store.generate_quote_number("suncoast").startswith("SU-")
    assert quote_store.generate_quote_number("AQUARIA_HQ").startswith("AQ-")


def test_decimal_round_trip():
    record = {"final_total": 1434.5, "count": 3, "nested": {"rates": [32.5, 100]}, "notes": None}
    assert dynamo.from_item(dynamo.to_item(record)) == record


@patch("src.hydropack_quote.dynamo.client")
def test_create_quote_assigns_id_and_timestamps(mock_client):
    ddb = MagicMock()
    mock_client.return_value = ddb
    stored = quote_store.create_quote({"quote_number": "AQ-20261019-ABCDEF", "final_total": 11244.0})
    assert stored["id"]
    assert stored["status"] == "draft"
    assert stored["created_at"] == stored["updated_at"]
    kwargs = ddb.put_item.call_args.kwargs
    assert kwargs["TableName"] == "hydropack_quotes"
    assert "N" in kwargs["Item"]["final_total"]
    assert kwargs["ConditionExpression"] == "attribute_not_exists(#pk)"


@patch("src.hydropack_quote.dynamo.client")
def test_create_quote_failure_raises_store_error(mock_client):
    mock_client.return_value.put_item.side_effect = _client_error("ProvisionedThroughputExceededException")
    with pytest.raises(QuoteStoreError):
        quote_store.create_quote({"quote_number": "AQ-1"})


@patch("src.hydropack_quote.dynamo.client")
def test_update_quote_skips_immutable_fields(mock_client):
    ddb = MagicMock()
    ddb.update_item.return_value = {"Attributes": dynamo.to_item({"id": "q-1", "status": "sent"})}
    mock_client.return_value = ddb
    result = quote_store.update_quote("q-1", {"id": "other", "created_at": "x", "status": "sent"})
    assert result == {"id": "q-1", "status": "sent"}
    kwargs = ddb.update_item.call_args.kwargs
    names = set(kwargs["ExpressionAttributeNames"].values())
    assert names == {"id", "status", "updated_at"}
    assert kwargs["ConditionExpression"] == "attribute_exists(#pk)"


@patch("src.hydropack_quote.dynamo.client")
def test_update_missing_quote_raises(mock_client):
    mock_client.return_value.update_item.side_effect = _client_error("ConditionalCheckFailedException")
    with pytest.raises(QuoteStoreError):
        quote_store.update_quote("missing", {"status": "sent"})


@patch("src.hydropack_quote.dynamo.client")
def test_get_quote(mock_client):
    mock_client.return_value.get_item.return_value = {"Item": dynamo.to_item({"id": "q-1", "final_total": 7050})}
    assert quote_store.get_quote("q-1") == {"id": "q-1", "final_total": 7050}
    mock_client.return_value.get_item.return_value = {}
    assert quote_store.get_quote("q-2") is None


@patch("src.hydropack_quote.dynamo.client")
def test_list_quotes_newest_first(mock_client):
    paginator = mock_client.return_value.get_paginator.return_value
    paginator.paginate.return_value = [
        {"Items": [dynamo.to_item({"id": "a", "created_at": "2026-01-01T00:00:00"})]},
        {"Items": [dynamo.to_item({"id": "b", "created_at": "2026-02-01T00:00:00"})]},
    ]
    assert [q["id"] for q in quote_store.list_quotes()] == ["b", "a"]

    quote_store.list_quotes("SUNCOAST")
    kwargs = paginator.paginate.call_args.kwargs
    assert kwargs["FilterExpression"] == "partner_id = :p"
    assert kwargs["ExpressionAttributeValues"] == {":p": {"S": "SUNCOAST"}}


@patch("src.hydropack_quote.dynamo.client")
def test_delete_quote(mock_client):
    assert quote_store.delete_quote("q-1") is True
    mock_client.return_value.delete_item.side_effect = _client_error("ConditionalCheckFailedException")
    assert quote_store.delete_quote("q-1") is False
    mock_client.return_value.delete_item.side_effect = _client_error("InternalServerError")
    with pytest.raises(QuoteStoreError):
        quote_store.delete_quote("q-1")


@patch("src.hydropack_quote.dynamo.client")
def test_get_quote_by_number(mock_client):
    paginator = mock_client.return_value.get_paginator.return_value
    paginator.paginate.return_value = [{"Items": [dynamo.to_item({"id": "q-3", "quote_number": "AQ-20261019-ABC123"})]}]
    assert quote_store.get_quote_by_number("AQ-20261019-ABC123")["id"] == "q-3"
    kwargs = paginator.paginate.call_args.kwargs
    assert kwargs["FilterExpression"] == "quote_number = :n"
    assert kwargs["ExpressionAttributeValues"] == {":n": {"S": "AQ-20261019-ABC123"}}

    paginator.paginate.return_value = [{"Items": []}]
    assert quote_store.get_quote_by_number("AQ-20261019-NOPE00") is None
