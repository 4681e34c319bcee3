"""Attribution engine: host change events in, git-ai checkpoints out.

Pipeline for the text-change path:

    TextChangeEvent -> DebounceCoalescer -> classify (per change)
        -> merge_ranges -> RepositoryPolicy -> CheckpointDispatcher
        -> RecentActivityTracker

Everything up to the dispatcher runs on the event loop thread. The dispatcher
runs as a tracked background task, so new host events keep flowing while a
checkpoint is in flight.
"""

from __future__ import annotations

import asyncio
import os
from typing import Optional

from instrukt_ai_logging import get_logger

from gitai_tracker.config import ConfigStore
from gitai_tracker.constants import MANUAL_AGENT_SUFFIX, SHUTDOWN_TIMEOUT_S
from gitai_tracker.core.activity import RecentActivityTracker
from gitai_tracker.core.classifier import classify_changes
from gitai_tracker.core.debounce import DebounceCoalescer
from gitai_tracker.core.dispatcher import CheckpointDispatcher
from gitai_tracker.core.host import Clipboard, Document, IntegrationProbe, Notifier, TextChangeEvent, Workspace
from gitai_tracker.core.models import AttributionRange, DispatchResult
from gitai_tracker.core.path_filter import PathFilter
from gitai_tracker.core.policy import RepositoryPolicy
from gitai_tracker.core.range_merge import merge_ranges
from gitai_tracker.core.task_registry import TaskRegistry
from gitai_tracker.runtime.binaries import resolve_git_ai_binary

logger = get_logger(__name__)


class AttributionEngine:
    """Owns the coalescer, dispatcher and activity state for one host session."""

    def __init__(
        self,
        *,
        workspace: Workspace,
        clipboard: Clipboard,
        notifier: Notifier,
        probe: IntegrationProbe,
        config_store: ConfigStore,
        tracker: Optional[RecentActivityTracker] = None,
    ) -> None:
        self._workspace = workspace
        self._clipboard = clipboard
        self._probe = probe
        self._config_store = config_store
        self.tracker = tracker or RecentActivityTracker()
        self.dispatcher = CheckpointDispatcher(
            workspace=workspace,
            notifier=notifier,
            tracker=self.tracker,
            binary=lambda: resolve_git_ai_binary(self._config_store.get().binary),
            model=lambda: self._config_store.get().model,
        )
        self._tasks = TaskRegistry()
        self._coalescer: DebounceCoalescer[TextChangeEvent] = DebounceCoalescer(
            config_store.get().debounce_seconds, self._on_quiet
        )
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def coalescer(self) -> DebounceCoalescer[TextChangeEvent]:
        return self._coalescer

    def start(self) -> None:
        """Bind to the running event loop and begin accepting host events."""
        self._coalescer.bind(asyncio.get_running_loop())
        self._running = True
        logger.info("Attribution engine started")

    async def stop(self, timeout: float = SHUTDOWN_TIMEOUT_S) -> None:
        """Drop any pending evaluation and wait for in-flight checkpoints."""
        self._running = False
        self._coalescer.cancel()
        await self._tasks.shutdown(timeout=timeout)
        logger.info("Attribution engine stopped")

    def recent_count(self) -> int:
        return self.tracker.recent_count()

    def status_text(self) -> str:
        return self.tracker.status_text()

    def in_flight(self) -> int:
        return self._tasks.task_count()

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def allowed_root(self, path: str) -> Optional[str]:
        """Workspace root for `path` when the repository policy admits it."""
        repo_root = self._workspace.workspace_root_for(path)
        if not repo_root:
            logger.debug("No workspace root for %s", path)
            return None
        policy = RepositoryPolicy.from_config(self._config_store.get())
        if not policy.is_allowed(repo_root):
            return None
        return repo_root

    def _is_open(self, path: str) -> bool:
        target = os.path.normcase(os.path.abspath(path))
        return any(
            os.path.normcase(os.path.abspath(doc.path)) == target for doc in self._workspace.open_documents()
        )

    # ------------------------------------------------------------------
    # Text-change path
    # ------------------------------------------------------------------

    def on_text_change(self, event: TextChangeEvent) -> None:
        """Entry point for host change notifications. Never raises."""
        if not self._running:
            return
        if not event.document.is_file:
            return
        self._coalescer.delay_s = self._config_store.get().debounce_seconds
        self._coalescer.submit(event)

    def _on_quiet(self, event: TextChangeEvent) -> None:
        self._tasks.spawn(self.evaluate(event), name="evaluate-changes")

    async def evaluate(self, event: TextChangeEvent) -> Optional["asyncio.Task[DispatchResult]"]:
        """Run one evaluation window and return the dispatch task, if any."""
        document = event.document
        active = self._workspace.active_document()
        if active is None or active != document:
            logger.debug("Skipping evaluation: %s is not the active document", document.path)
            return None
        if not self._probe.is_active():
            logger.debug("Skipping evaluation: agent integration inactive")
            return None
        if self.allowed_root(document.path) is None:
            return None

        config = self._config_store.get()
        clipboard = await self._read_clipboard()
        if not self._running:
            logger.debug("Skipping evaluation: engine stopped while reading the clipboard")
            return None
        verdicts = classify_changes(event.changes, config.min_change_size, clipboard)
        candidates = [
            self._range_for(document, v.change.start_offset, v.change.end_offset)
            for v in verdicts
            if v.is_attributable
        ]
        if not candidates:
            logger.debug("No agent-like changes in %s", document.path)
            return None

        merged = merge_ranges(candidates)
        if merged is None:
            logger.debug("Disjoint agent-like changes in %s; not attributing", document.path)
            return None

        logger.debug("Agent-like edit in %s at [%d, %d)", document.path, merged.start_offset, merged.end_offset)
        return self._tasks.spawn(
            self.dispatcher.dispatch_agent(document.path, config.agent_name, merged),
            name="checkpoint-agent",
        )

    async def _read_clipboard(self) -> Optional[str]:
        try:
            return await self._clipboard.read_text()
        except Exception as exc:  # noqa: BLE001 - paste detection is best-effort
            logger.debug("Clipboard unavailable: %s", exc)
            return None

    @staticmethod
    def _range_for(document: Document, start: int, end: int) -> AttributionRange:
        return AttributionRange(
            start_offset=start,
            end_offset=end,
            start=document.position_at(start),
            end=document.position_at(end),
        )

    # ------------------------------------------------------------------
    # File-system path (files changed on disk while not open in the host)
    # ------------------------------------------------------------------

    def on_file_change(self, path: str) -> Optional["asyncio.Task[DispatchResult]"]:
        if not self._running:
            return None
        if not self._probe.is_active():
            return None

        repo_root = self._workspace.workspace_root_for(path)
        if not repo_root:
            return None
        config = self._config_store.get()
        if PathFilter(config.ignored_path_segments).is_ignored(os.path.relpath(path, repo_root)):
            logger.trace("Ignoring file change: %s", path)
            return None
        if not RepositoryPolicy.from_config(config).is_allowed(repo_root):
            return None
        if self._is_open(path):
            # Open documents are attributed through the text-change path.
            return None

        logger.debug("File changed outside the editor: %s", path)
        return self._tasks.spawn(
            self.dispatcher.dispatch_agent(path, config.agent_name),
            name="checkpoint-file",
        )

    # ------------------------------------------------------------------
    # Manual triggers
    # ------------------------------------------------------------------

    def manual_human_checkpoint(
        self, selection: Optional[AttributionRange] = None
    ) -> Optional["asyncio.Task[DispatchResult]"]:
        document = self._manual_target()
        if document is None:
            return None
        return self._tasks.spawn(
            self.dispatcher.dispatch_human(document.path, selection),
            name="checkpoint-manual-human",
        )

    def manual_agent_checkpoint(
        self, selection: Optional[AttributionRange] = None
    ) -> Optional["asyncio.Task[DispatchResult]"]:
        document = self._manual_target()
        if document is None:
            return None
        agent_name = f"{self._config_store.get().agent_name}{MANUAL_AGENT_SUFFIX}"
        return self._tasks.spawn(
            self.dispatcher.dispatch_agent(document.path, agent_name, selection),
            name="checkpoint-manual-agent",
        )

    def _manual_target(self) -> Optional[Document]:
        document = self._workspace.active_document()
        if document is None:
            logger.debug("Manual checkpoint ignored: no active document")
            return None
        if self.allowed_root(document.path) is None:
            return None
        return document
