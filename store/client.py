"""NocoDB REST client with endpoint fallback.

NocoDB deployments expose the same tables under several URL schemes
depending on version and on whether the table is addressed by id or by
name.  Reads try the v2 records endpoint first, then the two v1 forms;
writes try v2 (``{"Id": ..., **fields}`` body) and then v1 (``/{id}``).
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from api.exceptions import StoreUnavailableError
from config import Config

logger = logging.getLogger(__name__)


def _extract_rows(data: Any) -> list[dict[str, Any]]:
    """Return the row list from a v1 or v2 list response."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("list"), list):
            return data["list"]
        if isinstance(data.get("records"), list):
            return data["records"]
    return []


class NocoDBClient:
    """Thin wrapper around a ``requests.Session`` bound to one NocoDB base."""

    def __init__(
        self,
        base_url: str,
        token: str,
        base_name: str = "product_content",
        timeout: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.base_name = base_name
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"xc-token": token, "Content-Type": "application/json"})

    def close(self) -> None:
        self.session.close()

    def clone(self) -> NocoDBClient:
        """Return a client for the same base with its own session.

        ``requests.Session`` is not thread-safe, so each worker thread gets one.
        """
        return NocoDBClient(
            self.base_url, self.token, base_name=self.base_name, timeout=self.timeout
        )

    # ------------------------------------------------------------------
    # Endpoint layout
    # ------------------------------------------------------------------

    def _read_endpoints(self, table: str) -> list[str]:
        return [
            f"{self.base_url}/api/v2/tables/{table}/records",
            f"{self.base_url}/api/v1/db/data/noco/{self.base_name}/{table}",
            f"{self.base_url}/api/v1/db/data/v1/{table}",
        ]

    def _write_endpoints(self, table: str, record_id: int | str) -> list[tuple[str, bool]]:
        """Return ``(url, is_v2)`` pairs in the order they should be tried."""
        return [
            (f"{self.base_url}/api/v2/tables/{table}/records", True),
            (f"{self.base_url}/api/v1/db/data/noco/{self.base_name}/{table}/{record_id}", False),
        ]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def list_records(
        self,
        table: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Return rows of *table*, trying each endpoint layout in turn.

        Raises:
            StoreUnavailableError: if no endpoint answered successfully.
        """
        last_error: Exception | None = None

        for url in self._read_endpoints(table):
            try:
                resp = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as exc:
                logger.info("NocoDB endpoint %s error: %s", url, exc)
                last_error = exc
                continue

            if not resp.ok:
                logger.info("NocoDB endpoint %s failed: %s %s", url, resp.status_code, resp.text)
                continue

            try:
                return _extract_rows(resp.json())
            except ValueError as exc:
                logger.info("NocoDB endpoint %s returned non-JSON body: %s", url, exc)
                last_error = exc

        msg = f"All NocoDB endpoints failed for table '{table}'"
        if last_error is not None:
            msg = f"{msg}: {last_error}"
        raise StoreUnavailableError(msg)

    def update_record(
        self,
        table: str,
        record_id: int | str,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        """Patch *fields* on one row and return the store's response body.

        Raises:
            StoreUnavailableError: if every endpoint rejected the update.
        """
        for url, is_v2 in self._write_endpoints(table, record_id):
            body = {"Id": record_id, **fields} if is_v2 else fields
            try:
                resp = self.session.patch(url, json=body, timeout=self.timeout)
            except requests.RequestException as exc:
                logger.info("Update endpoint %s error: %s", url, exc)
                continue

            if not resp.ok:
                logger.info("Update endpoint %s failed: %s", url, resp.status_code)
                continue
            if not resp.content:
                return {}

            try:
                data = resp.json()
            except ValueError as exc:
                logger.info("Update endpoint %s returned non-JSON body: %s", url, exc)
                continue
            return data if isinstance(data, dict) else {}

        msg = f"Failed to update record {record_id} in '{table}'"
        raise StoreUnavailableError(msg)


def get_client(cfg: Config) -> NocoDBClient:
    """Return a client configured from *cfg*."""
    return NocoDBClient(
        cfg.nocodb_url,
        cfg.nocodb_token,
        base_name=cfg.nocodb_base_name,
        timeout=cfg.request_timeout,
    )
