"""Merge attributable sub-ranges of one evaluation into a single span."""

from __future__ import annotations

from typing import Optional, Sequence

from gitai_tracker.core.models import AttributionRange


def merge_ranges(ranges: Sequence[AttributionRange]) -> Optional[AttributionRange]:
    """Extend the first range by each following one that starts at or before its end.

    Returns None for an empty input or when any range starts after the running
    end: disjoint edits in one batch are not attributed at all. The merge
    assumes forward-moving edits, so a later range that ends earlier than the
    running end still replaces the end.
    """
    if not ranges:
        return None

    merged = ranges[0]
    for candidate in ranges[1:]:
        if candidate.start_offset > merged.end_offset:
            return None
        merged = AttributionRange(
            start_offset=merged.start_offset,
            end_offset=candidate.end_offset,
            start=merged.start,
            end=candidate.end,
        )
    return merged
