"""Discrepancy summary for missing / extra variants."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel

from services.comparison import ComparisonEntry, ComparisonStatus


class DiscrepancyReport(BaseModel):
    overall_ok: bool
    messages: list[str]
    only_in_a_names: list[str]
    only_in_b_names: list[str]


def summarize(
    entries: Sequence[ComparisonEntry],
    expected_count: int | None,
    side_b_count: int,
    *,
    label_a: str = "source",
    label_b: str = "generated content",
) -> DiscrepancyReport:
    """Build the single alert shown above a comparison.

    Every rule is evaluated, so several messages can appear together.  Field
    level drift (``changed`` entries) is not reported here.
    """
    messages: list[str] = []

    if expected_count is not None and expected_count != side_b_count:
        messages.append(
            f"Expected {expected_count} variants but found {side_b_count} in {label_b}"
        )

    count_a = sum(1 for e in entries if e.side_a is not None)
    count_b = sum(1 for e in entries if e.side_b is not None)
    if count_a != count_b:
        messages.append(
            f"Variant count mismatch: {count_a} in {label_a} vs {count_b} in {label_b}"
        )

    only_a = [
        e.side_a.display_name
        for e in entries
        if e.status is ComparisonStatus.ONLY_IN_A and e.side_a is not None
    ]
    only_b = [
        e.side_b.display_name
        for e in entries
        if e.status is ComparisonStatus.ONLY_IN_B and e.side_b is not None
    ]

    if only_a:
        messages.append(
            f"{len(only_a)} variant(s) missing from {label_b}: {', '.join(only_a)}"
        )
    if only_b:
        messages.append(
            f"{len(only_b)} variant(s) not found in {label_a}: {', '.join(only_b)}"
        )

    return DiscrepancyReport(
        overall_ok=not messages,
        messages=messages,
        only_in_a_names=only_a,
        only_in_b_names=only_b,
    )
