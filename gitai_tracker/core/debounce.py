"""Collapse bursts of host change events into one evaluation per quiet period."""

from __future__ import annotations

import asyncio
from typing import Callable, Generic, Optional, TypeVar

from instrukt_ai_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class DebounceCoalescer(Generic[T]):
    """Single pending timer; each submission cancels and replaces it.

    Only the most recent submitted item reaches `on_fire`. Earlier items of
    the same burst are dropped, not merged.

    Must be driven from the event loop thread; use `submit_threadsafe` from
    other threads.
    """

    def __init__(self, delay_s: float, on_fire: Callable[[T], object]) -> None:
        self._delay_s = delay_s
        self._on_fire = on_fire
        self._handle: Optional[asyncio.TimerHandle] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def delay_s(self) -> float:
        return self._delay_s

    @delay_s.setter
    def delay_s(self, value: float) -> None:
        self._delay_s = max(0.0, value)

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def submit(self, item: T) -> None:
        loop = self._loop or asyncio.get_running_loop()
        self.cancel()
        self._handle = loop.call_later(self._delay_s, self._fire, item)

    def submit_threadsafe(self, item: T) -> None:
        if self._loop is None:
            raise RuntimeError("DebounceCoalescer is not bound to an event loop")
        self._loop.call_soon_threadsafe(self.submit, item)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, item: T) -> None:
        self._handle = None
        try:
            self._on_fire(item)
        except Exception:
            logger.exception("Debounced evaluation failed")
