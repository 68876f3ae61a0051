"""API endpoints for the product content review dashboard."""

from __future__ import annotations

import logging

from flask import Blueprint, g, jsonify, request

import store.models as models
from api.errors import error_response, handle_errors
from api.exceptions import AppError
from config import settings
from services import reconciliation
from services.notifier import Notifier
from services.shopify_client import get_shopify_client
from store.client import get_client

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")

_REVIEW_DECISIONS = ("approved", "rejected")


# ---------------------------------------------------------------------------
# Store lifecycle
# ---------------------------------------------------------------------------


@api_bp.before_request
def _open_store() -> None:
    """Open a NocoDB session and store it on flask.g."""
    g.store = get_client(settings)


@api_bp.teardown_request
def _close_store(exc: BaseException | None = None) -> None:
    """Close the per-request NocoDB session."""
    store = g.pop("store", None)
    if store is not None:
        store.close()


def _json_body() -> dict | None:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _failed(notifier: Notifier, message: str, exc: AppError) -> tuple:
    """Return an error response that still carries the toast for *message*."""
    logger.warning("%s: %s", message, exc)
    notifier.error(message)
    return error_response(
        message, exc.status_code, details={"reason": str(exc), "notifications": notifier.messages}
    )


# ===========================================================================
# Parent products
# ===========================================================================


@api_bp.route("/products", methods=["GET"])
@handle_errors
def list_products() -> tuple:
    """List parent products awaiting or finished review."""
    products = models.list_parent_products(g.store)
    return jsonify(products), 200


@api_bp.route("/products/<int:parent_id>", methods=["GET"])
@handle_errors
def get_product(parent_id: int) -> tuple:
    """Get a single parent product."""
    product = models.get_parent_product(g.store, parent_id)
    if product is None:
        return error_response("Product not found", 404)
    return jsonify(product), 200


@api_bp.route("/products/<int:parent_id>", methods=["PATCH"])
@handle_errors
def update_product(parent_id: int) -> tuple:
    """Save edited title, description, keywords or tech specs."""
    data = _json_body()
    if not data:
        return error_response("Request body must be JSON", 400)
    data.pop("status", None)  # status changes go through /status

    notifier = Notifier()
    try:
        updated = models.update_parent_product(g.store, parent_id, **data)
    except AppError as exc:
        return _failed(notifier, "Failed to save changes", exc)
    notifier.success("Product updated successfully")
    return jsonify({"product": updated, "notifications": notifier.messages}), 200


@api_bp.route("/products/<int:parent_id>/status", methods=["POST"])
@handle_errors
def set_product_status(parent_id: int) -> tuple:
    """Approve or reject a parent product."""
    data = _json_body() or {}
    status = data.get("status")
    if status not in _REVIEW_DECISIONS:
        return error_response("status must be 'approved' or 'rejected'", 400)

    notifier = Notifier()
    try:
        updated = models.update_parent_product(g.store, parent_id, status=status)
    except AppError as exc:
        return _failed(notifier, "Failed to update status", exc)
    notifier.success(f"Product {status}")
    return jsonify(
        {"product": {**updated, "status": status}, "notifications": notifier.messages}
    ), 200


# ===========================================================================
# Variants
# ===========================================================================


@api_bp.route("/products/<shopify_product_id>/variants", methods=["GET"])
@handle_errors
def list_variants(shopify_product_id: str) -> tuple:
    """List stored variant rows for one Shopify product."""
    variants = models.list_product_variants(g.store, shopify_product_id)
    return jsonify(variants), 200


@api_bp.route("/variants/<int:variant_id>", methods=["PATCH"])
@handle_errors
def update_variant(variant_id: int) -> tuple:
    """Save an edited variant specification."""
    data = _json_body()
    if not data:
        return error_response("Request body must be JSON", 400)

    notifier = Notifier()
    try:
        updated = models.update_product_variant(g.store, variant_id, **data)
    except AppError as exc:
        return _failed(notifier, "Failed to save changes", exc)
    notifier.success("Variant updated")
    return jsonify({"variant": updated, "notifications": notifier.messages}), 200


# ===========================================================================
# Source data and discrepancies
# ===========================================================================


@api_bp.route("/products/<shopify_product_id>/source", methods=["GET"])
@handle_errors
def source_data(shopify_product_id: str) -> tuple:
    """Return the raw webhook and the AI products row side by side."""
    try:
        snapshot = reconciliation.load_source_snapshot(g.store, shopify_product_id)
    except AppError as exc:
        return _failed(Notifier(), "Failed to load source data", exc)
    notices = []
    if snapshot.webhook is None:
        notices.append(reconciliation.NO_WEBHOOK_MESSAGE)
    if snapshot.products_row is None:
        notices.append(reconciliation.NO_PRODUCTS_MESSAGE)
    return jsonify(
        {
            "webhook": snapshot.webhook,
            "webhook_payload": reconciliation.webhook_payload(snapshot.webhook) or None,
            "products_row": snapshot.products_row,
            "ai_generated_content": reconciliation.generated_content(snapshot.products_row)
            or None,
            "notices": notices,
        }
    ), 200


@api_bp.route("/products/<shopify_product_id>/discrepancies", methods=["GET"])
@handle_errors
def discrepancies(shopify_product_id: str) -> tuple:
    """Compare webhook variants with generated content variants."""
    parent_id = request.args.get("parent_id", type=int)
    parent = models.get_parent_product(g.store, parent_id) if parent_id is not None else None
    if parent_id is not None and parent is None:
        return error_response("Product not found", 404)

    try:
        snapshot = reconciliation.load_source_snapshot(g.store, shopify_product_id)
    except AppError as exc:
        return _failed(Notifier(), "Failed to load source data", exc)
    result = reconciliation.compare_sources(
        snapshot, reconciliation.expected_variant_count(parent)
    )
    return jsonify(result.model_dump(mode="json")), 200


# ===========================================================================
# Shopify pull / sync
# ===========================================================================


@api_bp.route("/products/<shopify_product_id>/shopify/pull", methods=["POST"])
@handle_errors
def pull_from_shopify(shopify_product_id: str) -> tuple:
    """Fetch live Shopify variants and compare them with the stored rows."""
    notifier = Notifier()
    try:
        pull = reconciliation.pull_from_shopify(
            get_shopify_client(settings), g.store, shopify_product_id
        )
    except AppError as exc:
        return _failed(notifier, str(exc), exc)

    notifier.success(f"Pulled {len(pull.product.get('variants') or [])} variants from Shopify")
    body = pull.model_dump(mode="json")
    body["notifications"] = notifier.messages
    return jsonify(body), 200


@api_bp.route("/products/<shopify_product_id>/shopify/sync", methods=["POST"])
@handle_errors
def sync_from_shopify(shopify_product_id: str) -> tuple:
    """Apply the selected Shopify changes to the stored variant rows."""
    data = _json_body() or {}
    selected = data.get("selected")
    if not isinstance(selected, list) or not selected:
        return error_response("No variants selected", 400)

    notifier = Notifier()
    try:
        result = reconciliation.sync_selected(
            get_shopify_client(settings), g.store, shopify_product_id, [str(k) for k in selected]
        )
    except AppError as exc:
        return _failed(notifier, str(exc), exc)

    if result.success_count:
        notifier.success(f"Updated {result.success_count} variant(s)")
    if result.error_count:
        notifier.error(f"Failed to update {result.error_count} variant(s)")

    body = result.model_dump()
    body["notifications"] = notifier.messages
    return jsonify(body), 200
