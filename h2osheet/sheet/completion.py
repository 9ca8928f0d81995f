"""Completion metrics for a technical sheet."""

from __future__ import annotations

import math

from h2osheet.models import CompletionStats, DataSource, TableSection


def _percentage(completed: int, total: int) -> int:
    if total == 0:
        return 0
    # Round half up (12.5% -> 13%), not Python's banker's rounding
    return int(math.floor(completed / total * 100 + 0.5))


def section_completion(section: TableSection) -> CompletionStats:
    """Count completed fields of one section.

    A field is completed unless its value is None or the empty string;
    ``0``, ``False`` and ``[]`` count as completed.
    """
    total = len(section.fields)
    completed = sum(1 for field in section.fields if field.is_completed)
    return CompletionStats(total=total, completed=completed, percentage=_percentage(completed, total))


def overall_completion(sections: list[TableSection]) -> CompletionStats:
    """Completion across the whole document.

    Totals are summed before the percentage is taken, so large sections weigh
    more than small ones.
    """
    total = 0
    completed = 0
    for section in sections:
        stats = section_completion(section)
        total += stats.total
        completed += stats.completed
    return CompletionStats(total=total, completed=completed, percentage=_percentage(completed, total))


def source_breakdown(sections: list[TableSection]) -> dict[str, int]:
    """Count completed fields per data source.

    Returns:
        Mapping of every DataSource value to a count (zeros included)
    """
    counts = {source.value: 0 for source in DataSource}
    for section in sections:
        for field in section.fields:
            if field.is_completed:
                source = field.source or DataSource.MANUAL
                counts[DataSource(source).value] += 1
    return counts
