"""Product content CRUD operations over NocoDB.

Implements the data-access functions for parent products, their content
variants, the raw Shopify webhook log and the AI products table.
"""

from __future__ import annotations

from typing import Any

from config import settings
from store.client import NocoDBClient

REVIEW_STATUSES = ("pending", "approved", "rejected")

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def row_id(row: dict[str, Any]) -> Any:
    """Return the primary key of a NocoDB row (v2 ``Id`` or v1 ``id``)."""
    return row.get("Id", row.get("id"))


def _eq_filter(column: str, value: Any) -> str:
    return f"({column},eq,{value})"


def _pick_fields(fields: dict[str, Any], allowed: set[str]) -> dict[str, Any]:
    """Keep only whitelisted columns.

    Raises ``ValueError`` when nothing is left to write.
    """
    to_set = {k: v for k, v in fields.items() if k in allowed}
    if not to_set:
        msg = "No valid fields to update"
        raise ValueError(msg)
    return to_set


def _first_by_product(
    client: NocoDBClient, table: str, shopify_product_id: str
) -> dict[str, Any] | None:
    rows = client.list_records(
        table,
        {"where": _eq_filter("shopify_product_id", shopify_product_id), "limit": 1},
    )
    return rows[0] if rows else None


# ---------------------------------------------------------------------------
# Parent products
# ---------------------------------------------------------------------------

_PARENT_UPDATE_ALLOWED = {
    "generic_title",
    "generic_description",
    "generic_keywords",
    "base_tech_specs",
    "status",
}


def _with_default_status(row: dict[str, Any]) -> dict[str, Any]:
    return {**row, "status": row.get("status") or "pending"}


def list_parent_products(client: NocoDBClient) -> list[dict[str, Any]]:
    """Return parent products, capped at the configured page size."""
    rows = client.list_records(settings.parents_table, {"limit": settings.nocodb_page_size})
    return [_with_default_status(r) for r in rows]


def get_parent_product(client: NocoDBClient, parent_id: int) -> dict[str, Any] | None:
    """Return a single parent product by its row ID."""
    for row in list_parent_products(client):
        if str(row_id(row)) == str(parent_id):
            return row
    return None


def update_parent_product(
    client: NocoDBClient, parent_id: int, **fields: Any
) -> dict[str, Any]:
    """Patch whitelisted fields on a parent product."""
    to_set = _pick_fields(fields, _PARENT_UPDATE_ALLOWED)
    if "status" in to_set and to_set["status"] not in REVIEW_STATUSES:
        msg = f"Invalid status '{to_set['status']}'"
        raise ValueError(msg)
    return client.update_record(settings.parents_table, parent_id, to_set)


# ---------------------------------------------------------------------------
# Content variants
# ---------------------------------------------------------------------------

_VARIANT_UPDATE_ALLOWED = {
    "variant_name",
    "tech_specs_summary",
    "full_specification",
}


def list_product_variants(
    client: NocoDBClient, shopify_product_id: str
) -> list[dict[str, Any]]:
    """Return the locally stored variant rows of one product."""
    return client.list_records(
        settings.variants_table,
        {
            "where": _eq_filter("shopify_product_id", shopify_product_id),
            "limit": settings.variant_page_size,
        },
    )


def update_product_variant(
    client: NocoDBClient, variant_id: int | str, **fields: Any
) -> dict[str, Any]:
    """Patch whitelisted fields on a variant row."""
    to_set = _pick_fields(fields, _VARIANT_UPDATE_ALLOWED)
    return client.update_record(settings.variants_table, variant_id, to_set)


# ---------------------------------------------------------------------------
# Source data (read-only)
# ---------------------------------------------------------------------------


def get_raw_webhook(client: NocoDBClient, shopify_product_id: str) -> dict[str, Any] | None:
    """Return the stored Shopify webhook row for a product, or None."""
    return _first_by_product(client, settings.webhooks_table, shopify_product_id)


def get_products_row(client: NocoDBClient, shopify_product_id: str) -> dict[str, Any] | None:
    """Return the AI products-table row for a product, or None."""
    return _first_by_product(client, settings.products_table, shopify_product_id)
