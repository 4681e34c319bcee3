"""Pytest configuration and host fakes for gitai-tracker tests."""

import bisect
import json
import logging
import os
import stat
import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

from gitai_tracker.config import ConfigStore, TrackerConfig
from gitai_tracker.core.models import Position

try:
    import instrukt_ai_logging

    def _noop_configure_logging(*_args, **_kwargs):  # type: ignore[no-untyped-def]
        return None

    instrukt_ai_logging.configure_logging = _noop_configure_logging  # type: ignore[assignment]
    logging.getLogger("gitai_tracker").handlers.clear()
    logging.getLogger().handlers.clear()
except Exception:
    pass


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))


class FakeDocument:
    def __init__(self, path: str, text: str = "", *, dirty: bool = False, is_file: bool = True) -> None:
        self._path = path
        self.text = text
        self.dirty = dirty
        self._is_file = is_file

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_file(self) -> bool:
        return self._is_file

    @property
    def is_dirty(self) -> bool:
        return self.dirty

    def get_text(self) -> str:
        return self.text

    def position_at(self, offset: int) -> Position:
        offset = max(0, min(offset, len(self.text)))
        line_starts = [0] + [i + 1 for i, ch in enumerate(self.text) if ch == "\n"]
        line = bisect.bisect_right(line_starts, offset) - 1
        return Position(line=line, character=offset - line_starts[line])


class FakeWorkspace:
    def __init__(self, roots: list[str], documents: Optional[list[FakeDocument]] = None) -> None:
        self.roots = roots
        self.documents = documents or []
        self.active: Optional[FakeDocument] = None

    def workspace_root_for(self, path: str) -> Optional[str]:
        for root in self.roots:
            if path == root or path.startswith(root.rstrip("/") + "/"):
                return root
        return None

    def open_documents(self) -> list[FakeDocument]:
        return list(self.documents)

    def active_document(self) -> Optional[FakeDocument]:
        return self.active

    def open(self, document: FakeDocument, *, activate: bool = True) -> FakeDocument:
        self.documents.append(document)
        if activate:
            self.active = document
        return document


class FakeClipboard:
    def __init__(self, text: str = "") -> None:
        self.text = text
        self.reads = 0

    async def read_text(self) -> str:
        self.reads += 1
        return self.text


class RecordingNotifier:
    def __init__(self) -> None:
        self.infos: list[str] = []
        self.warnings: list[str] = []

    def info(self, message: str) -> None:
        self.infos.append(message)

    def warning(self, message: str) -> None:
        self.warnings.append(message)


class FakeProbe:
    def __init__(self, active: bool = True) -> None:
        self.active = active

    def is_active(self) -> bool:
        return self.active


@pytest.fixture
def repo_root(tmp_path: Path) -> str:
    root = tmp_path / "repo"
    (root / "src").mkdir(parents=True)
    return str(root)


@pytest.fixture
def workspace(repo_root: str) -> FakeWorkspace:
    return FakeWorkspace([repo_root])


@pytest.fixture
def clipboard() -> FakeClipboard:
    return FakeClipboard()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def make_document() -> Callable[..., FakeDocument]:
    return FakeDocument


@pytest.fixture
def make_config_store() -> Callable[..., ConfigStore]:
    def _make(**overrides: object) -> ConfigStore:
        overrides.setdefault("debounce_ms", 10)
        return ConfigStore.static(TrackerConfig(**overrides))

    return _make


@pytest.fixture
def fake_git_ai(tmp_path: Path) -> Callable[[int], tuple[str, Path]]:
    """Write an executable stand-in for git-ai that logs its argv as JSON lines."""

    def _make(exit_code: int = 0) -> tuple[str, Path]:
        calls = tmp_path / f"git-ai-calls-{exit_code}.jsonl"
        script = tmp_path / f"git-ai-{exit_code}"
        script.write_text(
            f"#!{sys.executable}\n"
            "import json, sys\n"
            f"with open({str(calls)!r}, 'a', encoding='utf-8') as fh:\n"
            "    fh.write(json.dumps(sys.argv[1:]) + '\\n')\n"
            "print('checkpoint processed')\n"
            f"sys.exit({exit_code})\n",
            encoding="utf-8",
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script), calls

    return _make


def read_calls(calls: Path) -> list[list[str]]:
    if not calls.exists():
        return []
    return [json.loads(line) for line in calls.read_text(encoding="utf-8").splitlines() if line.strip()]


@pytest.fixture
def git_ai_calls() -> Callable[[Path], list[list[str]]]:
    return read_calls


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep binary and config resolution away from the developer's home directory."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("GITAI_TRACKER_CONFIG_PATH", raising=False)
    os.makedirs(tmp_path / "home", exist_ok=True)
