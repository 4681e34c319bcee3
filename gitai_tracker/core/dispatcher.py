"""Build checkpoint payloads and hand them to the external git-ai process."""

from __future__ import annotations

import asyncio
import itertools
import json
import os
import time
from typing import Callable, Optional, Sequence

from instrukt_ai_logging import get_logger

from gitai_tracker.constants import (
    CHECKPOINT_AGENT_SUBCOMMAND,
    CHECKPOINT_COMMAND,
    CHECKPOINT_HUMAN_SUBCOMMAND,
    CONVERSATION_ID_PREFIX,
    HOOK_INPUT_FLAG,
)
from gitai_tracker.core.activity import RecentActivityTracker
from gitai_tracker.core.host import Document, Notifier, Workspace
from gitai_tracker.core.models import (
    AgentCheckpoint,
    AttributionRange,
    CheckpointPayload,
    DispatchResult,
    HumanCheckpoint,
)

logger = get_logger(__name__)

_conversation_seq = itertools.count(1)


def new_conversation_id() -> str:
    """Timestamp-derived id, unique for the lifetime of this process."""
    return f"{CONVERSATION_ID_PREFIX}{int(time.time() * 1000)}-{next(_conversation_seq)}"


def build_command(binary: str, payload: CheckpointPayload) -> list[str]:
    """Return argv for one checkpoint; the JSON payload is a single argument."""
    subcommand = CHECKPOINT_HUMAN_SUBCOMMAND if isinstance(payload, HumanCheckpoint) else CHECKPOINT_AGENT_SUBCOMMAND
    hook_input = json.dumps(payload.to_payload())
    return [binary, CHECKPOINT_COMMAND, subcommand, HOOK_INPUT_FLAG, hook_input]


def snapshot_dirty_files(documents: Sequence[Document]) -> dict[str, str]:
    """Full text of every unsaved file-backed document, keyed by absolute path."""
    dirty: dict[str, str] = {}
    for doc in documents:
        if doc.is_dirty and doc.is_file:
            dirty[doc.path] = doc.get_text()
    return dirty


class CheckpointDispatcher:
    """Send human or agent checkpoints for a document to git-ai.

    Each call resolves the owning workspace root, snapshots dirty buffers at
    dispatch time, runs the external tool and records success in the
    recent-activity tracker. Failures become warnings; nothing is raised.
    """

    def __init__(
        self,
        workspace: Workspace,
        notifier: Notifier,
        tracker: RecentActivityTracker,
        binary: Callable[[], str],
        model: Callable[[], str],
    ) -> None:
        self._workspace = workspace
        self._notifier = notifier
        self._tracker = tracker
        self._binary = binary
        self._model = model

    def _resolve(self, document_path: str) -> Optional[tuple[str, str]]:
        repo_root = self._workspace.workspace_root_for(document_path)
        if not repo_root:
            return None
        return repo_root, os.path.relpath(document_path, repo_root)

    def build_human(self, document_path: str) -> Optional[HumanCheckpoint]:
        resolved = self._resolve(document_path)
        if resolved is None:
            return None
        repo_root, rel_path = resolved
        return HumanCheckpoint(
            repo_root=repo_root,
            will_edit_files=[rel_path],
            dirty_files=snapshot_dirty_files(self._workspace.open_documents()),
        )

    def build_agent(self, document_path: str, agent_name: str) -> Optional[AgentCheckpoint]:
        resolved = self._resolve(document_path)
        if resolved is None:
            return None
        repo_root, rel_path = resolved
        return AgentCheckpoint(
            repo_root=repo_root,
            edited_files=[rel_path],
            agent_name=agent_name,
            model=self._model(),
            conversation_id=new_conversation_id(),
            dirty_files=snapshot_dirty_files(self._workspace.open_documents()),
        )

    async def dispatch_human(
        self, document_path: str, attribution_range: Optional[AttributionRange] = None
    ) -> DispatchResult:
        payload = self.build_human(document_path)
        if payload is None:
            logger.debug("Human checkpoint skipped: %s is outside every workspace root", document_path)
            return DispatchResult.skip("no repository root")
        return await self._send(payload, document_path, attribution_range)

    async def dispatch_agent(
        self,
        document_path: str,
        agent_name: str,
        attribution_range: Optional[AttributionRange] = None,
    ) -> DispatchResult:
        payload = self.build_agent(document_path, agent_name)
        if payload is None:
            logger.debug("Agent checkpoint skipped: %s is outside every workspace root", document_path)
            return DispatchResult.skip("no repository root")
        return await self._send(payload, document_path, attribution_range)

    async def _send(
        self,
        payload: CheckpointPayload,
        document_path: str,
        attribution_range: Optional[AttributionRange],
    ) -> DispatchResult:
        result = await run_checkpoint(self._binary(), payload)
        if result.ok:
            self._tracker.record(document_path, attribution_range)
            actor = payload.agent_name if isinstance(payload, AgentCheckpoint) else "human"
            if attribution_range is not None and attribution_range.line_count:
                self._notifier.info(f"git-ai checkpointed {actor} → {attribution_range.line_count} lines")
            else:
                self._notifier.info(f"git-ai checkpointed {actor} → {os.path.basename(document_path)}")
            return result

        if result.error:
            self._notifier.warning(f"git-ai checkpoint failed: {result.error}")
        else:
            self._notifier.warning(f"git-ai checkpoint failed (exit code {result.exit_code})")
        return result


async def run_checkpoint(binary: str, payload: CheckpointPayload) -> DispatchResult:
    """Spawn git-ai for one payload and wait for it to exit.

    Output is captured for diagnostics only; the exit code alone decides success.
    """
    cmd = build_command(binary, payload)
    logger.debug("Calling git-ai %s %s (repo=%s)", cmd[1], cmd[2], payload.repo_root)

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=payload.repo_root,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout_b, stderr_b = await proc.communicate()
    except OSError as exc:
        logger.warning("git-ai could not be started", binary=binary, repo=payload.repo_root, error=str(exc))
        return DispatchResult(ok=False, error=f"{binary}: {exc.strerror or exc}")

    stdout = stdout_b.decode(errors="replace").strip()
    stderr = stderr_b.decode(errors="replace").strip()
    if stdout:
        logger.debug("git-ai stdout: %s", stdout)
    if stderr:
        logger.debug("git-ai stderr: %s", stderr)

    if proc.returncode != 0:
        logger.warning(
            "git-ai checkpoint rejected",
            subcommand=cmd[2],
            repo=payload.repo_root,
            exit_code=proc.returncode,
        )
        return DispatchResult(ok=False, exit_code=proc.returncode, stdout=stdout, stderr=stderr)

    logger.info("git-ai checkpoint accepted", subcommand=cmd[2], repo=payload.repo_root)
    return DispatchResult(ok=True, exit_code=0, stdout=stdout, stderr=stderr)
