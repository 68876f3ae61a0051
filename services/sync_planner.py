"""Plan and apply variant updates pulled from Shopify.

Only existing local rows are updated; variants that are new in Shopify are
reported by the comparison but never created here.  Only the variant name
is synced for now, pricing and inventory are not written back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from services.comparison import ComparisonEntry, ComparisonStatus

logger = logging.getLogger(__name__)

# canonical field -> local variant column
SYNCABLE_FIELDS = {"display_name": "variant_name"}

_PLANNABLE = (ComparisonStatus.CHANGED, ComparisonStatus.ONLY_IN_A)


class UpdateInstruction(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    target_id: str
    fields: dict[str, Any]


class SyncResult(BaseModel):
    success_count: int = 0
    error_count: int = 0
    failed_keys: list[str] = []


def default_selection(entries: Iterable[ComparisonEntry]) -> list[str]:
    """Return the keys pre-selected after a pull: everything that differs."""
    return [e.key for e in entries if e.status in _PLANNABLE]


def plan(
    entries: Sequence[ComparisonEntry],
    selected_keys: Iterable[str],
) -> list[UpdateInstruction]:
    """Return update instructions for selected entries that have a local row."""
    selected = set(selected_keys)
    instructions = []
    for entry in entries:
        if entry.status not in _PLANNABLE or entry.key not in selected:
            continue
        if entry.side_a is None or entry.side_b is None or entry.side_b.record_id is None:
            continue
        fields = {
            column: getattr(entry.side_a, field) for field, column in SYNCABLE_FIELDS.items()
        }
        instructions.append(
            UpdateInstruction(key=entry.key, target_id=entry.side_b.record_id, fields=fields)
        )
    return instructions


def execute(
    instructions: Sequence[UpdateInstruction],
    update: Callable[[str, dict[str, Any]], Any],
) -> SyncResult:
    """Apply *instructions* one by one through *update(target_id, fields)*.

    A failing instruction is logged and counted; the remaining ones are
    still attempted.
    """
    result = SyncResult()
    for instruction in instructions:
        try:
            update(instruction.target_id, instruction.fields)
        except Exception:
            logger.exception(
                "Failed to update variant %s (row %s)", instruction.key, instruction.target_id
            )
            result.error_count += 1
            result.failed_keys.append(instruction.key)
        else:
            result.success_count += 1
    return result
