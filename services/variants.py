"""Variant normalisation across the three product data sources.

Shopify webhook payloads, AI content-table rows and locally stored variant
rows all describe the same variants with different field names.  Each
source kind gets one fixed mapping table; ``normalize`` resolves the shape
once and returns canonical ``VariantRecord`` values, so nothing downstream
inspects a raw record again.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    SHOPIFY_WEBHOOK = "shopify_webhook"
    AI_CONTENT_TABLE = "ai_content_table"
    LOCAL_STORE = "local_store"


class _FieldMap(NamedTuple):
    id_fields: tuple[str, ...]
    name_fields: tuple[str, ...]
    record_id_fields: tuple[str, ...]


_FIELD_MAPS: dict[SourceKind, _FieldMap] = {
    SourceKind.SHOPIFY_WEBHOOK: _FieldMap(("id",), ("title",), ("id",)),
    SourceKind.AI_CONTENT_TABLE: _FieldMap(("variant_id",), ("variant_name",), ("variant_id",)),
    SourceKind.LOCAL_STORE: _FieldMap(("shopify_variant_id",), ("variant_name",), ("Id", "id")),
}

_OPTION_FIELDS = ("option1", "option2", "option3")


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class VariantRecord(BaseModel):
    """A variant reduced to the canonical comparable field set.

    Unset fields are ``None``; only display code renders them as "N/A".
    """

    model_config = ConfigDict(frozen=True)

    identity_key: str
    display_name: str
    record_id: str | None = None
    sku: str | None = None
    price: str | None = None  # decimal string, never parsed to float
    compare_at_price: str | None = None
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None
    inventory_quantity: int | None = None
    weight: float | None = None
    weight_unit: str | None = None
    taxable: bool | None = None
    barcode: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)


# ---------------------------------------------------------------------------
# Embedded JSON
# ---------------------------------------------------------------------------


def _loads(value: Any) -> Any:
    """Decode *value* if it is JSON text, unwrapping double encoding."""
    while isinstance(value, (str, bytes, bytearray)):
        try:
            value = json.loads(value)
        except (ValueError, TypeError):
            logger.debug("Ignoring malformed embedded JSON")
            return None
    return value


def parse_embedded_json(value: Any) -> list[Any]:
    """Return *value* as a list, decoding it first if it is a JSON string.

    Absent, malformed or non-list input yields an empty list.
    """
    parsed = _loads(value)
    return parsed if isinstance(parsed, list) else []


def parse_embedded_object(value: Any) -> dict[str, Any]:
    """Return *value* as a dict, decoding it first if it is a JSON string."""
    parsed = _loads(value)
    return parsed if isinstance(parsed, dict) else {}


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def _float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
    return None


def _first_text(raw: dict[str, Any], fields: tuple[str, ...]) -> str | None:
    for field in fields:
        text = _text(raw.get(field))
        if text is not None:
            return text
    return None


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


def _normalize_one(raw: dict[str, Any], index: int, field_map: _FieldMap) -> VariantRecord:
    options = [_text(raw.get(f)) for f in _OPTION_FIELDS]
    composed = " / ".join(o for o in options if o)
    title = _first_text(raw, field_map.name_fields)
    source_id = _first_text(raw, field_map.id_fields)

    display_name = title or composed or f"Variant {index}"
    identity_key = source_id or composed or title or display_name

    return VariantRecord(
        identity_key=identity_key,
        display_name=display_name,
        record_id=_first_text(raw, field_map.record_id_fields),
        sku=_text(raw.get("sku")),
        price=_text(raw.get("price")),
        compare_at_price=_text(raw.get("compare_at_price")),
        option1=options[0],
        option2=options[1],
        option3=options[2],
        inventory_quantity=_int(raw.get("inventory_quantity")),
        weight=_float(raw.get("weight")),
        weight_unit=_text(raw.get("weight_unit")),
        taxable=_bool(raw.get("taxable")),
        barcode=_text(raw.get("barcode")),
        raw=raw,
    )


def normalize(source_kind: SourceKind | str, raw_variants: Any) -> list[VariantRecord]:
    """Convert a raw variant list from *source_kind* into ``VariantRecord``s.

    *raw_variants* may be a list, a JSON-encoded list or ``None``.  Items
    that are not mappings are skipped but still count towards the
    ``"Variant {n}"`` fallback numbering.
    """
    field_map = _FIELD_MAPS[SourceKind(source_kind)]
    records = []
    for index, item in enumerate(parse_embedded_json(raw_variants), start=1):
        if not isinstance(item, dict):
            logger.debug("Skipping non-object variant entry at position %d", index)
            continue
        records.append(_normalize_one(item, index, field_map))
    return records
