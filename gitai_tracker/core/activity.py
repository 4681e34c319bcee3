"""Rolling count of successful checkpoints."""

from __future__ import annotations

import time
from typing import Callable, Optional

from gitai_tracker.constants import RECENT_ACTIVITY_WINDOW_MS
from gitai_tracker.core.models import AttributionRange, RecentChangeRecord


def _now_ms() -> int:
    return int(time.time() * 1000)


class RecentActivityTracker:
    """Append-only log of checkpoints; entries outside the window are filtered on read."""

    def __init__(
        self,
        window_ms: int = RECENT_ACTIVITY_WINDOW_MS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._window_ms = window_ms
        self._clock = clock
        self._records: list[RecentChangeRecord] = []

    def record(self, file_path: str, attribution_range: Optional[AttributionRange] = None) -> RecentChangeRecord:
        entry = RecentChangeRecord(file_path=file_path, range=attribution_range, timestamp_ms=self._clock())
        self._records.append(entry)
        return entry

    def add(self, entry: RecentChangeRecord) -> None:
        self._records.append(entry)

    def recent_count(self, now_ms: Optional[int] = None) -> int:
        now = self._clock() if now_ms is None else now_ms
        return sum(1 for r in self._records if now - r.timestamp_ms < self._window_ms)

    def status_text(self) -> str:
        return f"AI: {self.recent_count()}"

    def clear(self) -> None:
        self._records.clear()
