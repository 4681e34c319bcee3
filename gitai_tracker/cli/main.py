"""gitai-tracker command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence

from instrukt_ai_logging import get_logger

from gitai_tracker.config import ConfigStore
from gitai_tracker.core.headless import FileDocument, HeadlessWorkspace
from gitai_tracker.core.policy import RepositoryPolicy
from gitai_tracker.logging_config import setup_logging

logger = get_logger(__name__)


def _git_toplevel(path: Path) -> Optional[Path]:
    """Return the enclosing git work tree, or None if git fails or none exists."""
    cwd = path if path.is_dir() else path.parent
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            timeout=10,
            cwd=cwd,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if result.returncode != 0:
        return None
    top = result.stdout.strip()
    return Path(top) if top else None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gitai-tracker", description="Attribute edits to humans or agents via git-ai.")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yml")
    parser.add_argument("--log-level", default=None, help="Override GITAI_TRACKER_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    ckpt = sub.add_parser("checkpoint", help="Send one manual checkpoint for a file")
    ckpt.add_argument("kind", choices=["human", "agent"])
    ckpt.add_argument("file", type=Path)
    ckpt.add_argument("--root", type=Path, default=None, help="Repository root (default: enclosing git work tree)")

    watch = sub.add_parser("watch", help="Attribute on-disk changes under the given roots")
    watch.add_argument("roots", type=Path, nargs="+")

    policy = sub.add_parser("policy", help="Check whether a repository path is allowed")
    policy.add_argument("path", type=Path)
    return parser


def _config_store(path: Optional[Path]) -> ConfigStore:
    if path is not None:
        return ConfigStore(path.expanduser())
    return ConfigStore.from_env()


async def _manual_checkpoint(kind: str, file_path: Path, root: Path, config_store: ConfigStore) -> int:
    from gitai_tracker.cli.watch import build_headless_engine

    document = FileDocument(str(file_path))
    workspace = HeadlessWorkspace([str(root)], active=document)
    engine = build_headless_engine(workspace, config_store)
    engine.start()
    try:
        if kind == "human":
            task = engine.manual_human_checkpoint()
        else:
            task = engine.manual_agent_checkpoint()
        if task is None:
            print(f"Skipped: {file_path} is outside {root} or the repository policy rejects it", file=sys.stderr)
            return 1
        result = await task
    finally:
        await engine.stop()

    if result.ok:
        print(engine.status_text())
        return 0
    print(f"Checkpoint failed: {result.error or f'exit code {result.exit_code}'}", file=sys.stderr)
    if result.stderr:
        print(result.stderr, file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config_store = _config_store(args.config)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    if args.command == "policy":
        allowed = RepositoryPolicy.from_config(config_store.get()).is_allowed(str(args.path.expanduser().resolve()))
        print("allowed" if allowed else "rejected")
        return 0 if allowed else 1

    if args.command == "watch":
        from gitai_tracker.cli.watch import run_watch

        run_watch([r.expanduser().resolve() for r in args.roots], config_store)
        return 0

    file_path = args.file.expanduser().resolve()
    root = args.root.expanduser().resolve() if args.root else _git_toplevel(file_path)
    if root is None:
        print(f"Skipped: {file_path} is not inside a git repository", file=sys.stderr)
        return 1
    return asyncio.run(_manual_checkpoint(args.kind, file_path, root, config_store))


if __name__ == "__main__":
    sys.exit(main())
