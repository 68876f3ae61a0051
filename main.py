"""CLI entry point for the product content review service."""

from __future__ import annotations

import logging

import click

from config import settings


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Product content review dashboard backend."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@cli.command()
def web() -> None:
    """Start the Flask API server."""
    from api.app import create_app

    app = create_app()
    app.run(
        host=settings.flask_host,
        port=settings.flask_port,
        debug=settings.flask_debug,
    )


@cli.command("list-products")
@click.option("--status", type=click.Choice(["pending", "approved", "rejected"]))
def list_products(status: str | None) -> None:
    """List parent products and their review status."""
    import store.models as models
    from store.client import get_client

    client = get_client(settings)
    try:
        products = models.list_parent_products(client)
    finally:
        client.close()

    if status:
        products = [p for p in products if p["status"] == status]
    if not products:
        print("No products found.")
        return

    for p in products:
        title = p.get("generic_title") or "N/A"
        print(f"  [{p['status']:<8}] {p.get('shopify_product_id', ''):<16} {title}")
    print(f"\n{len(products)} product(s)")


@cli.command()
@click.argument("shopify_product_id")
@click.option("--expected", type=int, default=None, help="Expected variant count.")
def discrepancies(shopify_product_id: str, expected: int | None) -> None:
    """Compare webhook variants with generated content for a product."""
    from services.reconciliation import compare_sources, load_source_snapshot
    from store.client import get_client

    client = get_client(settings)
    try:
        snapshot = load_source_snapshot(client, shopify_product_id)
    finally:
        client.close()

    result = compare_sources(snapshot, expected)
    for notice in result.notices:
        print(notice)

    for entry in result.entries:
        print(f"  {entry.status.value:<10} {entry.key}")
        for diff in entry.differences:
            print(f"      {diff}")

    if result.report.overall_ok:
        print("\nNo discrepancies found.")
    else:
        print("\nDiscrepancies:")
        for message in result.report.messages:
            print(f"  - {message}")


def _print_pull(pull) -> None:
    for entry in pull.entries:
        marker = "*" if entry.key in pull.selected else " "
        print(f" {marker} {entry.status.value:<10} {entry.key}")
        for diff in entry.differences:
            print(f"      {diff}")
    counts = pull.counts
    print(
        f"\n{counts['matched']} in sync, {counts['changed']} different, "
        f"{counts['only_in_a']} new in Shopify, {counts['only_in_b']} missing in Shopify"
    )


@cli.command()
@click.argument("shopify_product_id")
def pull(shopify_product_id: str) -> None:
    """Pull live Shopify variants and compare them with stored rows."""
    from api.exceptions import AppError
    from services.reconciliation import pull_from_shopify
    from services.shopify_client import get_shopify_client
    from store.client import get_client

    client = get_client(settings)
    try:
        result = pull_from_shopify(get_shopify_client(settings), client, shopify_product_id)
    except AppError as exc:
        print(f"Error: {exc}")
        return
    finally:
        client.close()

    _print_pull(result)


@cli.command()
@click.argument("shopify_product_id")
@click.option("--key", "keys", multiple=True, help="Variant name to sync (repeatable).")
@click.option("--all-changed", is_flag=True, help="Sync every variant that differs.")
def sync(shopify_product_id: str, keys: tuple[str, ...], all_changed: bool) -> None:
    """Write Shopify variant names onto the stored variant rows."""
    from api.exceptions import AppError
    from services.reconciliation import pull_from_shopify, sync_selected
    from services.shopify_client import get_shopify_client
    from store.client import get_client

    shopify = get_shopify_client(settings)
    client = get_client(settings)
    try:
        selected = list(keys)
        if all_changed:
            selected.extend(pull_from_shopify(shopify, client, shopify_product_id).selected)
        if not selected:
            print("No variants selected. Use --key or --all-changed.")
            return
        result = sync_selected(shopify, client, shopify_product_id, selected)
    except AppError as exc:
        print(f"Error: {exc}")
        return
    finally:
        client.close()

    print(f"Updated {result.success_count} variant(s)")
    if result.error_count:
        print(f"Failed to update {result.error_count} variant(s): {', '.join(result.failed_keys)}")


if __name__ == "__main__":
    cli()
