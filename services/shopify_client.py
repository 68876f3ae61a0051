"""Shopify product fetch, direct or through a proxy webhook.

Two transports are supported:

* a proxy webhook (typically an n8n workflow) that receives
  ``{"action": "fetch_product", "shopify_product_id": ...}`` and answers
  with the product JSON, and
* the REST Admin API, using either a legacy static access token
  (``SHOPIFY_ACCESS_TOKEN``) or the client-credentials grant
  (``SHOPIFY_CLIENT_ID`` + ``SHOPIFY_CLIENT_SECRET``), in which case
  short-lived tokens are obtained and refreshed automatically.

The proxy URL wins when both are configured.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import requests

from api.exceptions import ConfigurationError, ShopifyFetchError
from config import Config

logger = logging.getLogger(__name__)

# Rate-limit back-off thresholds (REST leaky bucket)
RATE_LIMIT_REMAINING_THRESHOLD = 5
RATE_LIMIT_BACKOFF_SECONDS = 1.0

# Client-credentials tokens: (store_url, client_id) -> (token, expires_at)
_token_cache: dict[tuple[str, str], tuple[str, float]] = {}
_token_lock = threading.Lock()


def numeric_product_id(shopify_product_id: str) -> str:
    """Reduce ``gid://shopify/Product/123`` to ``123``; plain ids pass through."""
    return str(shopify_product_id).rstrip("/").rsplit("/", 1)[-1]


def _unwrap_product(data: Any) -> dict[str, Any] | None:
    """Pull the product object out of the shapes proxies tend to return."""
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict) or not data:
        return None
    if isinstance(data.get("product"), dict):
        return data["product"]
    return data


class ShopifyClient:
    """Fetches a single product (with variants) from Shopify."""

    def __init__(
        self,
        store_url: str = "",
        access_token: str = "",
        client_id: str = "",
        client_secret: str = "",
        api_version: str = "2025-10",
        proxy_url: str = "",
        timeout: int = 30,
    ) -> None:
        self.store_url = store_url
        self.access_token = access_token
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_version = api_version
        self.proxy_url = proxy_url
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Token management (client-credentials grant)
    # ------------------------------------------------------------------

    def _obtain_access_token(self) -> str:
        """Return a valid Admin API access token.

        Client-credentials tokens live in the module-level cache, keyed by
        store and client id, so they outlive the per-request client.
        """
        if not self.client_id or not self.client_secret:
            if not self.access_token:
                msg = (
                    "Shopify credentials not configured. "
                    "Set SHOPIFY_CLIENT_ID + SHOPIFY_CLIENT_SECRET, "
                    "or the legacy SHOPIFY_ACCESS_TOKEN."
                )
                raise ConfigurationError(msg)
            return self.access_token

        cache_key = (self.store_url, self.client_id)
        with _token_lock:
            cached = _token_cache.get(cache_key)
            # Reused until 60 s before expiry
            if cached and time.time() < cached[1] - 60:
                return cached[0]

            resp = requests.post(
                f"https://{self.store_url}/admin/oauth/access_token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()

            token = data["access_token"]
            expires_in = data.get("expires_in", 86399)
            _token_cache[cache_key] = (token, time.time() + expires_in)

            logger.info(
                "Obtained Shopify access token for %s (expires in %ds)",
                self.store_url,
                expires_in,
            )
            return token

    # ------------------------------------------------------------------
    # Transports
    # ------------------------------------------------------------------

    def _fetch_via_proxy(self, product_id: str) -> dict[str, Any] | None:
        try:
            resp = requests.post(
                self.proxy_url,
                json={"action": "fetch_product", "shopify_product_id": product_id},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ShopifyFetchError(f"Proxy webhook request failed: {exc}") from exc

        if not resp.ok:
            msg = f"Proxy webhook error: {resp.status_code} - {resp.text}"
            raise ShopifyFetchError(msg)

        try:
            return _unwrap_product(resp.json())
        except ValueError as exc:
            raise ShopifyFetchError("Proxy webhook returned invalid JSON") from exc

    def _fetch_via_admin_api(self, product_id: str) -> dict[str, Any] | None:
        if not self.store_url:
            msg = "Shopify not configured. Set SHOPIFY_PROXY_WEBHOOK_URL or SHOPIFY_STORE_URL."
            raise ConfigurationError(msg)

        url = (
            f"https://{self.store_url}/admin/api/{self.api_version}"
            f"/products/{numeric_product_id(product_id)}.json"
        )
        headers = {
            "X-Shopify-Access-Token": self._obtain_access_token(),
            "Content-Type": "application/json",
        }

        try:
            resp = requests.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ShopifyFetchError(f"Shopify request failed: {exc}") from exc

        if resp.status_code == 404:
            return None
        if not resp.ok:
            msg = f"Shopify Admin API error: {resp.status_code} - {resp.text}"
            raise ShopifyFetchError(msg)

        self._respect_call_limit(resp)
        return _unwrap_product(resp.json())

    def _respect_call_limit(self, resp: requests.Response) -> None:
        """Sleep briefly when the REST call bucket is nearly full."""
        header = resp.headers.get("X-Shopify-Shop-Api-Call-Limit", "")
        try:
            used, limit = (int(part) for part in header.split("/"))
        except ValueError:
            return
        remaining = limit - used
        if remaining < RATE_LIMIT_REMAINING_THRESHOLD:
            logger.warning(
                "Shopify rate limit low (%s/%s used), sleeping %.1fs",
                used,
                limit,
                RATE_LIMIT_BACKOFF_SECONDS,
            )
            time.sleep(RATE_LIMIT_BACKOFF_SECONDS)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch_product(self, shopify_product_id: str) -> dict[str, Any] | None:
        """Return the product with its ``variants`` list, or None if not found.

        Raises:
            ConfigurationError: neither transport is configured.
            ShopifyFetchError: the upstream call failed.
        """
        if self.proxy_url:
            return self._fetch_via_proxy(shopify_product_id)
        return self._fetch_via_admin_api(shopify_product_id)


def get_shopify_client(cfg: Config) -> ShopifyClient:
    """Return a client configured from *cfg*."""
    return ShopifyClient(
        store_url=cfg.shopify_store_url,
        access_token=cfg.shopify_access_token,
        client_id=cfg.shopify_client_id,
        client_secret=cfg.shopify_client_secret,
        api_version=cfg.shopify_api_version,
        proxy_url=cfg.shopify_proxy_webhook_url,
        timeout=cfg.request_timeout,
    )
