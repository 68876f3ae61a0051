"""Reconciliation service: compare generated content with its Shopify sources.

Two comparisons are offered:

* webhook vs content: the stored Shopify webhook payload (side A) against
  the AI products-table row (side B), summarised by the discrepancy report;
* Shopify live vs local: a fresh Shopify pull (side A) against the locally
  stored variant rows (side B), feeding the sync planner.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pydantic import BaseModel

import store.models as models
from api.exceptions import NotFoundError, StoreUnavailableError
from services import sync_planner
from services.comparison import (
    CONTENT_COMPARE_FIELDS,
    SYNC_COMPARE_FIELDS,
    ComparisonEntry,
    compare,
    count_by_status,
)
from services.discrepancy import DiscrepancyReport, summarize
from services.shopify_client import ShopifyClient
from services.variants import (
    SourceKind,
    VariantRecord,
    normalize,
    parse_embedded_object,
)
from store.client import NocoDBClient

logger = logging.getLogger(__name__)

NO_WEBHOOK_MESSAGE = "No webhook data found for this product."
NO_PRODUCTS_MESSAGE = "No products data found for this product."


class SourceSnapshot(BaseModel):
    """The two source rows for one product, either of which may be absent."""

    webhook: dict[str, Any] | None = None
    products_row: dict[str, Any] | None = None
    webhook_error: str | None = None
    products_row_error: str | None = None


class SourceComparison(BaseModel):
    entries: list[ComparisonEntry]
    counts: dict[str, int]
    report: DiscrepancyReport
    notices: list[str]


class ShopifyPull(BaseModel):
    product: dict[str, Any]
    entries: list[ComparisonEntry]
    counts: dict[str, int]
    selected: list[str]


# ---------------------------------------------------------------------------
# Source loading
# ---------------------------------------------------------------------------


def load_source_snapshot(client: NocoDBClient, shopify_product_id: str) -> SourceSnapshot:
    """Fetch the webhook row and the products row concurrently.

    A failed fetch is logged and treated as absent.  Only when both fail is
    the store considered unreachable.  The products fetch runs on a cloned
    client so the two threads never share a session.
    """
    products_client = client.clone()
    try:
        with ThreadPoolExecutor(max_workers=2) as pool:
            webhook_future = pool.submit(models.get_raw_webhook, client, shopify_product_id)
            products_future = pool.submit(
                models.get_products_row, products_client, shopify_product_id
            )
    finally:
        products_client.close()

    snapshot = SourceSnapshot()
    try:
        snapshot.webhook = webhook_future.result()
    except Exception as exc:
        logger.warning("Webhook fetch failed for %s: %s", shopify_product_id, exc)
        snapshot.webhook_error = str(exc)
    try:
        snapshot.products_row = products_future.result()
    except Exception as exc:
        logger.warning("Products row fetch failed for %s: %s", shopify_product_id, exc)
        snapshot.products_row_error = str(exc)

    if snapshot.webhook_error and snapshot.products_row_error:
        msg = f"Could not load source data for product {shopify_product_id}"
        raise StoreUnavailableError(msg)
    return snapshot


def webhook_payload(webhook_row: dict[str, Any] | None) -> dict[str, Any]:
    """Return the Shopify product object stored in a webhook row."""
    if not webhook_row:
        return {}
    payload = parse_embedded_object(webhook_row.get("raw_payload")) or webhook_row
    product = payload.get("product")
    return product if isinstance(product, dict) else payload


def generated_content(products_row: dict[str, Any] | None) -> dict[str, Any]:
    """Return the decoded ``ai_generated_content`` of a products row."""
    if not products_row:
        return {}
    return parse_embedded_object(products_row.get("ai_generated_content"))


def webhook_variants(webhook_row: dict[str, Any] | None) -> list[VariantRecord]:
    return normalize(SourceKind.SHOPIFY_WEBHOOK, webhook_payload(webhook_row).get("variants"))


def content_variants(products_row: dict[str, Any] | None) -> list[VariantRecord]:
    content = generated_content(products_row)
    raw = content.get("variants")
    if raw is None and products_row:
        raw = products_row.get("variants")
    return normalize(SourceKind.AI_CONTENT_TABLE, raw)


def expected_variant_count(parent: dict[str, Any] | None) -> int | None:
    """Return the variant count the parent row claims, if it has one."""
    if not parent:
        return None
    value = parent.get("product_content_variants")
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Webhook vs generated content
# ---------------------------------------------------------------------------


def compare_sources(
    snapshot: SourceSnapshot,
    expected_count: int | None = None,
) -> SourceComparison:
    """Diff webhook variants against generated-content variants."""
    list_a = webhook_variants(snapshot.webhook)
    list_b = content_variants(snapshot.products_row)

    entries = compare(list_a, list_b, CONTENT_COMPARE_FIELDS)
    report = summarize(
        entries,
        expected_count,
        len(list_b),
        label_a="Shopify webhook",
        label_b="generated content",
    )

    notices = []
    if snapshot.webhook is None:
        notices.append(NO_WEBHOOK_MESSAGE)
    if snapshot.products_row is None:
        notices.append(NO_PRODUCTS_MESSAGE)

    return SourceComparison(
        entries=entries,
        counts=count_by_status(entries),
        report=report,
        notices=notices,
    )


# ---------------------------------------------------------------------------
# Shopify live vs local variants
# ---------------------------------------------------------------------------


def pull_from_shopify(
    shopify: ShopifyClient,
    client: NocoDBClient,
    shopify_product_id: str,
) -> ShopifyPull:
    """Fetch the live product and compare it with the stored variant rows."""
    product = shopify.fetch_product(shopify_product_id)
    if product is None:
        raise NotFoundError("Product not found in Shopify")

    local_rows = models.list_product_variants(client, shopify_product_id)
    entries = compare(
        normalize(SourceKind.SHOPIFY_WEBHOOK, product.get("variants")),
        normalize(SourceKind.LOCAL_STORE, local_rows),
        SYNC_COMPARE_FIELDS,
    )
    logger.info(
        "Pulled %d Shopify variant(s) for %s against %d local row(s)",
        sum(1 for e in entries if e.side_a is not None),
        shopify_product_id,
        len(local_rows),
    )
    return ShopifyPull(
        product=product,
        entries=entries,
        counts=count_by_status(entries),
        selected=sync_planner.default_selection(entries),
    )


def sync_selected(
    shopify: ShopifyClient,
    client: NocoDBClient,
    shopify_product_id: str,
    selected_keys: list[str],
) -> sync_planner.SyncResult:
    """Re-pull, plan the selected updates and apply them sequentially."""
    pull = pull_from_shopify(shopify, client, shopify_product_id)
    instructions = sync_planner.plan(pull.entries, selected_keys)

    def _update(target_id: str, fields: dict[str, Any]) -> Any:
        return models.update_product_variant(client, target_id, **fields)

    result = sync_planner.execute(instructions, _update)
    logger.info(
        "Synced %s: %d updated, %d failed",
        shopify_product_id,
        result.success_count,
        result.error_count,
    )
    return result
