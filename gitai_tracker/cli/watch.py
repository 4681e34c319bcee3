"""Headless watch loop: attribute on-disk edits under the given roots."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Sequence

from instrukt_ai_logging import get_logger

from gitai_tracker.config import ConfigStore
from gitai_tracker.core.engine import AttributionEngine
from gitai_tracker.core.file_watcher import FileWatcher
from gitai_tracker.core.headless import AlwaysActive, HeadlessWorkspace, LogNotifier, NullClipboard

logger = get_logger(__name__)


def build_headless_engine(workspace: HeadlessWorkspace, config_store: ConfigStore) -> AttributionEngine:
    return AttributionEngine(
        workspace=workspace,
        clipboard=NullClipboard(),
        notifier=LogNotifier(),
        probe=AlwaysActive(),
        config_store=config_store,
    )


async def _watch(roots: Sequence[Path], config_store: ConfigStore) -> None:
    workspace = HeadlessWorkspace(str(r) for r in roots)
    engine = build_headless_engine(workspace, config_store)
    engine.start()
    watcher = FileWatcher(engine, workspace.roots)
    try:
        await watcher.run()
    finally:
        await engine.stop()


def run_watch(roots: Sequence[Path], config_store: ConfigStore) -> None:
    """Run the watcher loop until interrupted."""
    logger.info("Watching %s for agent edits", ", ".join(str(r) for r in roots))
    try:
        asyncio.run(_watch(roots, config_store))
    except KeyboardInterrupt:
        logger.info("Watch interrupted")
