"""Store package — NocoDB client and product content access."""

from store.client import NocoDBClient, get_client

__all__ = ["NocoDBClient", "get_client"]
