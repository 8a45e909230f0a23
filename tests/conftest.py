"""Shared test fixtures and fake-API helpers."""

from __future__ import annotations

import json
from pathlib import Path

import httpx

from smartbudget.api.client import ApiClient

# Test fixture config directory with synthetic data
FIXTURE_CONFIG_DIR = Path(__file__).parent / "fixtures" / "config"

BASE_URL = "http://api.test/api"


def envelope(data=None, status: str = "success", message: str | None = None) -> dict:
    body = {"status": status, "data": data}
    if message is not None:
        body["message"] = message
    return body


def make_client(handler, **kwargs) -> ApiClient:
    """ApiClient whose requests are answered by handler(request) -> httpx.Response."""
    return ApiClient(BASE_URL, token="test-token", transport=httpx.MockTransport(handler), **kwargs)


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content.decode())


def txn_row(
    txn_id,
    day: str = "2024-03-10",
    amount="10.00",
    txn_type: str = "expense",
    category_id=1,
    category_name: str | None = None,
    description: str = "Coffee",
) -> dict:
    row = {
        "id": txn_id,
        "description": description,
        "amount": amount,
        "type": txn_type,
        "category_id": category_id,
        "transaction_date": day,
    }
    if category_name is not None:
        row["category"] = {"id": category_id, "name": category_name, "type": txn_type}
    return row
