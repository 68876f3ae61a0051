"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Generator
from typing import Any

import pytest

from config import Config

NOCODB_URL = "https://nocodb.test"
PROXY_URL = "https://n8n.test/webhook/shopify"


def v2_records_url(table: str) -> str:
    return f"{NOCODB_URL}/api/v2/tables/{table}/records"


@pytest.fixture
def test_settings() -> Config:
    """Config pointing at fake NocoDB and proxy hosts."""
    return Config(
        nocodb_url=NOCODB_URL,
        nocodb_token="test-token",
        shopify_proxy_webhook_url=PROXY_URL,
    )


@pytest.fixture
def client(test_settings: Config, monkeypatch: pytest.MonkeyPatch) -> Generator[Any, None, None]:
    """Flask test client wired to the fake NocoDB host."""
    monkeypatch.setattr("api.routes.settings", test_settings)

    from api.app import create_app

    app = create_app()
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


@pytest.fixture
def shopify_product() -> dict[str, Any]:
    """A Shopify product as delivered by products/create webhooks."""
    return {
        "id": 8001,
        "title": "Trail Runner",
        "variants": [
            {
                "id": 101,
                "title": "Red / S",
                "sku": "TR-RED-S",
                "price": "89.00",
                "option1": "Red",
                "option2": "S",
                "inventory_quantity": 4,
                "taxable": True,
            },
            {
                "id": 102,
                "title": "Red / M",
                "sku": "TR-RED-M",
                "price": "89.00",
                "option1": "Red",
                "option2": "M",
                "inventory_quantity": 0,
                "taxable": True,
            },
        ],
    }


@pytest.fixture
def webhook_row(shopify_product: dict[str, Any]) -> dict[str, Any]:
    """Stored webhook row whose payload is JSON text, as NocoDB returns it."""
    return {
        "Id": 1,
        "shopify_product_id": "8001",
        "raw_payload": json.dumps(shopify_product),
    }


@pytest.fixture
def products_row() -> dict[str, Any]:
    """AI products-table row with string-embedded generated content."""
    content = {
        "title": "Trail Runner",
        "variants": [
            {"variant_id": "v-1", "variant_name": "Red / S", "sku": "TR-RED-S"},
            {"variant_id": "v-2", "variant_name": "Red / M", "sku": "TR-RED-M"},
        ],
    }
    return {
        "Id": 7,
        "shopify_product_id": "8001",
        "title": "Trail Runner",
        "ai_generated_content": json.dumps(content),
    }


@pytest.fixture
def local_variant_rows() -> list[dict[str, Any]]:
    """Locally stored variant rows for product 8001."""
    return [
        {
            "Id": 31,
            "shopify_product_id": "8001",
            "shopify_variant_id": "101",
            "variant_name": "red / s",
            "tech_specs_summary": "Lightweight mesh",
            "full_specification": None,
        },
        {
            "Id": 32,
            "shopify_product_id": "8001",
            "shopify_variant_id": "102",
            "variant_name": "Red / M",
            "tech_specs_summary": None,
            "full_specification": None,
        },
    ]
