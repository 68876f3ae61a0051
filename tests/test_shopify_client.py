"""Tests for services.shopify_client — Shopify product fetch."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
import responses

from api.exceptions import ConfigurationError, ShopifyFetchError
from services import shopify_client
from services.shopify_client import ShopifyClient, get_shopify_client, numeric_product_id
from tests.conftest import PROXY_URL

STORE = "test.myshopify.com"
PRODUCT_URL = f"https://{STORE}/admin/api/2025-10/products/8001.json"
TOKEN_URL = f"https://{STORE}/admin/oauth/access_token"

_PRODUCT = {"id": 8001, "title": "Trail Runner", "variants": [{"id": 101, "title": "Red / S"}]}


@pytest.fixture(autouse=True)
def _clear_token_cache() -> None:
    shopify_client._token_cache.clear()


# =========================================================================
# TestProxyWebhook
# =========================================================================


class TestProxyWebhook:
    @responses.activate
    def test_request_body_and_product_unwrap(self) -> None:
        responses.add(responses.POST, PROXY_URL, json={"product": _PRODUCT}, status=200)

        product = ShopifyClient(proxy_url=PROXY_URL).fetch_product("8001")

        assert product == _PRODUCT
        body = json.loads(responses.calls[0].request.body)
        assert body == {"action": "fetch_product", "shopify_product_id": "8001"}

    @responses.activate
    def test_bare_product_object(self) -> None:
        responses.add(responses.POST, PROXY_URL, json=_PRODUCT, status=200)
        assert ShopifyClient(proxy_url=PROXY_URL).fetch_product("8001") == _PRODUCT

    @responses.activate
    def test_list_response_takes_first_item(self) -> None:
        responses.add(responses.POST, PROXY_URL, json=[{"product": _PRODUCT}], status=200)
        assert ShopifyClient(proxy_url=PROXY_URL).fetch_product("8001") == _PRODUCT

    @responses.activate
    def test_empty_response_is_not_found(self) -> None:
        responses.add(responses.POST, PROXY_URL, json=[], status=200)
        assert ShopifyClient(proxy_url=PROXY_URL).fetch_product("8001") is None

    @responses.activate
    def test_error_status_raises(self) -> None:
        responses.add(responses.POST, PROXY_URL, body="workflow inactive", status=500)

        with pytest.raises(ShopifyFetchError, match="Proxy webhook error: 500"):
            ShopifyClient(proxy_url=PROXY_URL).fetch_product("8001")

    @responses.activate
    def test_proxy_wins_over_admin_api(self) -> None:
        responses.add(responses.POST, PROXY_URL, json=_PRODUCT, status=200)

        client = ShopifyClient(store_url=STORE, access_token="shpat_x", proxy_url=PROXY_URL)
        client.fetch_product("8001")

        assert responses.calls[0].request.url == PROXY_URL


# =========================================================================
# TestAdminApi
# =========================================================================


class TestAdminApi:
    @responses.activate
    def test_static_token(self) -> None:
        responses.add(responses.GET, PRODUCT_URL, json={"product": _PRODUCT}, status=200)

        product = ShopifyClient(store_url=STORE, access_token="shpat_test").fetch_product("8001")

        assert product == _PRODUCT
        assert responses.calls[0].request.headers["X-Shopify-Access-Token"] == "shpat_test"

    @responses.activate
    def test_gid_is_reduced_to_numeric_id(self) -> None:
        responses.add(responses.GET, PRODUCT_URL, json={"product": _PRODUCT}, status=200)

        client = ShopifyClient(store_url=STORE, access_token="shpat_test")
        client.fetch_product("gid://shopify/Product/8001")

        assert responses.calls[0].request.url == PRODUCT_URL

    @responses.activate
    def test_not_found(self) -> None:
        responses.add(responses.GET, PRODUCT_URL, json={"errors": "Not Found"}, status=404)
        client = ShopifyClient(store_url=STORE, access_token="shpat_test")
        assert client.fetch_product("8001") is None

    @responses.activate
    def test_server_error_raises(self) -> None:
        responses.add(responses.GET, PRODUCT_URL, body="boom", status=503)
        client = ShopifyClient(store_url=STORE, access_token="shpat_test")
        with pytest.raises(ShopifyFetchError, match="503"):
            client.fetch_product("8001")

    @responses.activate
    def test_client_credentials_token_is_cached(self) -> None:
        responses.add(
            responses.POST,
            TOKEN_URL,
            json={"access_token": "shpat_granted", "expires_in": 86399},
            status=200,
        )
        responses.add(responses.GET, PRODUCT_URL, json={"product": _PRODUCT}, status=200)

        client = ShopifyClient(store_url=STORE, client_id="cid", client_secret="secret")
        client.fetch_product("8001")
        client.fetch_product("8001")

        token_calls = [c for c in responses.calls if c.request.url == TOKEN_URL]
        assert len(token_calls) == 1
        assert responses.calls[-1].request.headers["X-Shopify-Access-Token"] == "shpat_granted"

    @responses.activate
    def test_token_shared_across_clients(self, test_settings) -> None:
        """Each request builds a new client; the grant must still happen once."""
        responses.add(
            responses.POST,
            TOKEN_URL,
            json={"access_token": "shpat_granted", "expires_in": 86399},
            status=200,
        )
        responses.add(responses.GET, PRODUCT_URL, json={"product": _PRODUCT}, status=200)
        cfg = test_settings.model_copy(
            update={
                "shopify_proxy_webhook_url": "",
                "shopify_store_url": STORE,
                "shopify_client_id": "cid",
                "shopify_client_secret": "secret",
            }
        )

        get_shopify_client(cfg).fetch_product("8001")
        get_shopify_client(cfg).fetch_product("8001")

        token_calls = [c for c in responses.calls if c.request.url == TOKEN_URL]
        assert len(token_calls) == 1

    @responses.activate
    def test_tokens_are_cached_per_store(self) -> None:
        other_store = "other.myshopify.com"
        responses.add(responses.POST, TOKEN_URL, json={"access_token": "a"}, status=200)
        responses.add(
            responses.POST,
            f"https://{other_store}/admin/oauth/access_token",
            json={"access_token": "b"},
            status=200,
        )
        responses.add(responses.GET, PRODUCT_URL, json={"product": _PRODUCT}, status=200)
        responses.add(
            responses.GET,
            f"https://{other_store}/admin/api/2025-10/products/8001.json",
            json={"product": _PRODUCT},
            status=200,
        )

        ShopifyClient(store_url=STORE, client_id="cid", client_secret="s").fetch_product("8001")
        ShopifyClient(store_url=other_store, client_id="cid", client_secret="s").fetch_product(
            "8001"
        )

        assert responses.calls[-1].request.headers["X-Shopify-Access-Token"] == "b"

    @responses.activate
    def test_rate_limit_backoff(self) -> None:
        responses.add(
            responses.GET,
            PRODUCT_URL,
            json={"product": _PRODUCT},
            status=200,
            headers={"X-Shopify-Shop-Api-Call-Limit": "38/40"},
        )

        client = ShopifyClient(store_url=STORE, access_token="shpat_test")
        with patch("services.shopify_client.time.sleep") as mock_sleep:
            client.fetch_product("8001")

        mock_sleep.assert_called_once_with(1.0)

    @responses.activate
    def test_no_backoff_with_headroom(self) -> None:
        responses.add(
            responses.GET,
            PRODUCT_URL,
            json={"product": _PRODUCT},
            status=200,
            headers={"X-Shopify-Shop-Api-Call-Limit": "2/40"},
        )

        client = ShopifyClient(store_url=STORE, access_token="shpat_test")
        with patch("services.shopify_client.time.sleep") as mock_sleep:
            client.fetch_product("8001")

        mock_sleep.assert_not_called()

    def test_missing_credentials(self) -> None:
        with pytest.raises(ConfigurationError, match="credentials not configured"):
            ShopifyClient(store_url=STORE).fetch_product("8001")

    def test_nothing_configured(self) -> None:
        with pytest.raises(ConfigurationError, match="Shopify not configured"):
            ShopifyClient().fetch_product("8001")


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("8001", "8001"), ("gid://shopify/Product/8001", "8001"), (8001, "8001")],
    )
    def test_numeric_product_id(self, value: object, expected: str) -> None:
        assert numeric_product_id(value) == expected  # type: ignore[arg-type]

    def test_factory_reads_config(self, test_settings) -> None:
        client = get_shopify_client(test_settings)
        assert client.proxy_url == PROXY_URL
        assert client.api_version == "2025-10"
