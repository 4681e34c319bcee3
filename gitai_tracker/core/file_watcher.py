"""Filesystem watcher feeding on-disk changes into the attribution engine.

Watchdog delivers events on its own thread; they are handed to the event loop
with `call_soon_threadsafe` and evaluated there.
"""

from __future__ import annotations

import asyncio
from typing import Iterable

from instrukt_ai_logging import get_logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from gitai_tracker.core.engine import AttributionEngine

logger = get_logger(__name__)

_WATCHED_EVENT_TYPES = {"created", "modified"}


class _ChangeHandler(FileSystemEventHandler):
    """Watchdog handler that forwards file creations and modifications."""

    def __init__(self, engine: AttributionEngine, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self._engine = engine
        self._loop = loop

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _WATCHED_EVENT_TYPES:
            return
        src = event.src_path
        if isinstance(src, bytes):
            src = src.decode(errors="replace")
        try:
            self._loop.call_soon_threadsafe(self._engine.on_file_change, src)
        except RuntimeError:
            pass  # Loop closed


class FileWatcher:
    """Watches workspace roots recursively until cancelled."""

    def __init__(self, engine: AttributionEngine, roots: Iterable[str]) -> None:
        self._engine = engine
        self._roots = list(roots)

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        observer = Observer()
        observer.daemon = True
        handler = _ChangeHandler(self._engine, loop)
        for root in self._roots:
            observer.schedule(handler, root, recursive=True)
            logger.debug("FileWatcher: watching %s", root)

        observer.start()
        logger.info("FileWatcher: started, watching %d root(s)", len(self._roots))
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            pass
        finally:
            observer.stop()
            observer.join(timeout=2)
            logger.info("FileWatcher: stopped")
