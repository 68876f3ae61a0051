"""Name-based variant comparison between two normalised sources.

Side A is the source of truth (the Shopify webhook or live Shopify data),
side B is the copy being checked (AI content or local rows).  Records are
paired by case-insensitive display name because the sources use disjoint
id spaces.  Two different physical variants that share a display name are
paired as well; there is no stricter identity available across sources.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, computed_field

from services.variants import VariantRecord

# Field sets for the two comparisons the dashboard performs.
CONTENT_COMPARE_FIELDS = frozenset({"sku"})
SYNC_COMPARE_FIELDS = frozenset({"display_name"})

FIELD_LABELS = {
    "display_name": "Name",
    "sku": "SKU",
    "price": "Price",
    "compare_at_price": "Compare-at price",
    "option1": "Option 1",
    "option2": "Option 2",
    "option3": "Option 3",
    "inventory_quantity": "Stock",
    "weight": "Weight",
    "weight_unit": "Weight unit",
    "taxable": "Taxable",
    "barcode": "Barcode",
}


class ComparisonStatus(str, Enum):
    MATCHED = "matched"
    CHANGED = "changed"
    ONLY_IN_A = "only_in_a"
    ONLY_IN_B = "only_in_b"


class FieldChange(BaseModel):
    """One differing field; *old* is side B's value, *new* is side A's."""

    model_config = ConfigDict(frozen=True)

    field: str
    old: Any = None
    new: Any = None

    def describe(self) -> str:
        label = FIELD_LABELS.get(self.field, self.field)
        return f'{label}: "{_as_text(self.old)}" → "{_as_text(self.new)}"'


class ComparisonEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    side_a: VariantRecord | None = None
    side_b: VariantRecord | None = None
    status: ComparisonStatus
    field_changes: tuple[FieldChange, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def differences(self) -> list[str]:
        """Human-readable change list for display."""
        if self.status is ComparisonStatus.ONLY_IN_A:
            return ["Variant exists in the source but not in the comparison target"]
        if self.status is ComparisonStatus.ONLY_IN_B:
            return ["Variant exists in the comparison target but not in the source"]
        return [change.describe() for change in self.field_changes]


def _as_text(value: Any) -> str:
    """Render a field value as trimmed text; unset becomes the empty string."""
    if value is None:
        return ""
    return str(value).strip()


def _fold(name: str) -> str:
    return name.casefold()


def field_changes(
    record_a: VariantRecord,
    record_b: VariantRecord,
    fields: Iterable[str],
) -> tuple[FieldChange, ...]:
    """Return the fields whose text values differ, in sorted field order."""
    changes = []
    for field in sorted(fields):
        new = getattr(record_a, field)
        old = getattr(record_b, field)
        if _as_text(new) != _as_text(old):
            changes.append(FieldChange(field=field, old=old, new=new))
    return tuple(changes)


def compare(
    list_a: Sequence[VariantRecord],
    list_b: Sequence[VariantRecord],
    fields_to_compare: Iterable[str],
) -> list[ComparisonEntry]:
    """Diff two variant collections by case-insensitive display name.

    Output keeps A's order for matched, changed and only-in-A entries,
    followed by only-in-B entries in B's order.  Each B record pairs with at
    most one A record; the first A record with a given name wins.
    """
    fields = tuple(fields_to_compare)

    lookup: dict[str, int] = {}
    for position, record in enumerate(list_b):
        lookup.setdefault(_fold(record.display_name), position)

    entries: list[ComparisonEntry] = []
    consumed: set[int] = set()

    for record_a in list_a:
        position = lookup.pop(_fold(record_a.display_name), None)
        if position is None:
            entries.append(
                ComparisonEntry(
                    key=record_a.display_name,
                    side_a=record_a,
                    status=ComparisonStatus.ONLY_IN_A,
                )
            )
            continue

        consumed.add(position)
        record_b = list_b[position]
        changes = field_changes(record_a, record_b, fields)
        entries.append(
            ComparisonEntry(
                key=record_a.display_name,
                side_a=record_a,
                side_b=record_b,
                status=ComparisonStatus.CHANGED if changes else ComparisonStatus.MATCHED,
                field_changes=changes,
            )
        )

    for position, record_b in enumerate(list_b):
        if position not in consumed:
            entries.append(
                ComparisonEntry(
                    key=record_b.display_name,
                    side_b=record_b,
                    status=ComparisonStatus.ONLY_IN_B,
                )
            )

    return entries


def count_by_status(entries: Iterable[ComparisonEntry]) -> dict[str, int]:
    """Return ``{status: count}`` for every status, zeros included."""
    counts = {status.value: 0 for status in ComparisonStatus}
    for entry in entries:
        counts[entry.status.value] += 1
    return counts
