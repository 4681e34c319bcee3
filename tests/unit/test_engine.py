"""Unit tests for gitai_tracker.core.engine gating and pipeline wiring."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from gitai_tracker.core.engine import AttributionEngine
from gitai_tracker.core.host import TextChangeEvent
from gitai_tracker.core.models import AttributionRange, DispatchResult, RawChange

AGENT_SNIPPET = "function foo() {\n  return 1;\n}"


@pytest.fixture
def make_engine(workspace, clipboard, notifier, probe, make_config_store):
    def _make(**config) -> AttributionEngine:
        return AttributionEngine(
            workspace=workspace,
            clipboard=clipboard,
            notifier=notifier,
            probe=probe,
            config_store=make_config_store(**config),
        )

    return _make


@pytest.fixture
def active_doc(workspace, make_document, repo_root):
    return workspace.open(make_document(f"{repo_root}/src/app.js", AGENT_SNIPPET))


def _insert(text: str, offset: int = 0, replaced: int = 0) -> RawChange:
    return RawChange(inserted_text=text, replaced_length=replaced, start_offset=offset)


def _ok() -> DispatchResult:
    return DispatchResult(ok=True, exit_code=0)


@pytest.mark.asyncio
async def test_agent_insertion_dispatches_merged_range(make_engine, active_doc):
    engine = make_engine()
    engine.start()
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock, return_value=_ok()) as mock:
        task = await engine.evaluate(TextChangeEvent(active_doc, [_insert(AGENT_SNIPPET)]))
        assert task is not None
        await task

    mock.assert_awaited_once()
    path, agent_name, rng = mock.await_args.args
    assert path == active_doc.path
    assert agent_name == "amazon-q"
    assert (rng.start_offset, rng.end_offset) == (0, len(AGENT_SNIPPET))
    assert rng.line_count == 3
    await engine.stop()


@pytest.mark.asyncio
async def test_paste_from_clipboard_is_not_attributed(make_engine, active_doc, clipboard):
    clipboard.text = AGENT_SNIPPET
    engine = make_engine()
    engine.start()
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock) as mock:
        assert await engine.evaluate(TextChangeEvent(active_doc, [_insert(AGENT_SNIPPET)])) is None
    mock.assert_not_called()


@pytest.mark.asyncio
async def test_clipboard_read_once_per_evaluation(make_engine, active_doc, clipboard):
    engine = make_engine()
    engine.start()
    changes = [_insert("alpha beta", 0), _insert("gamma delta", 10), _insert("x", 21)]
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock, return_value=_ok()):
        task = await engine.evaluate(TextChangeEvent(active_doc, changes))
        await task
    assert clipboard.reads == 1


@pytest.mark.asyncio
async def test_disjoint_changes_are_not_attributed(make_engine, active_doc):
    engine = make_engine()
    engine.start()
    changes = [_insert("alpha beta", 0), _insert("gamma delta", 40)]
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock) as mock:
        assert await engine.evaluate(TextChangeEvent(active_doc, changes)) is None
    mock.assert_not_called()


@pytest.mark.asyncio
async def test_human_typing_is_not_attributed(make_engine, active_doc):
    engine = make_engine()
    engine.start()
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock) as mock:
        assert await engine.evaluate(TextChangeEvent(active_doc, [_insert("a", 3)])) is None
    mock.assert_not_called()


@pytest.mark.asyncio
async def test_inactive_integration_skips(make_engine, active_doc, probe):
    probe.active = False
    engine = make_engine()
    engine.start()
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock) as mock:
        assert await engine.evaluate(TextChangeEvent(active_doc, [_insert(AGENT_SNIPPET)])) is None
    mock.assert_not_called()


@pytest.mark.asyncio
async def test_non_active_document_skips(make_engine, workspace, make_document, repo_root, active_doc):
    background = workspace.open(make_document(f"{repo_root}/src/other.js"), activate=False)
    engine = make_engine()
    engine.start()
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock) as mock:
        assert await engine.evaluate(TextChangeEvent(background, [_insert(AGENT_SNIPPET)])) is None
    mock.assert_not_called()


@pytest.mark.asyncio
async def test_policy_rejection_skips(make_engine, active_doc, repo_root):
    engine = make_engine(exclude_repositories=[repo_root])
    engine.start()
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock) as mock:
        assert await engine.evaluate(TextChangeEvent(active_doc, [_insert(AGENT_SNIPPET)])) is None
    mock.assert_not_called()


@pytest.mark.asyncio
async def test_document_outside_workspace_skips(make_engine, workspace, make_document):
    scratch = workspace.open(make_document("/scratch/notes.js"))
    engine = make_engine()
    engine.start()
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock) as mock:
        assert await engine.evaluate(TextChangeEvent(scratch, [_insert(AGENT_SNIPPET)])) is None
    mock.assert_not_called()


@pytest.mark.asyncio
async def test_burst_of_events_evaluates_last_only(make_engine, active_doc):
    engine = make_engine(debounce_ms=20)
    engine.start()
    events = [
        TextChangeEvent(active_doc, [_insert("first burst")]),
        TextChangeEvent(active_doc, [_insert("second burst")]),
        TextChangeEvent(active_doc, [_insert(AGENT_SNIPPET)]),
    ]
    with patch.object(engine, "evaluate", new_callable=AsyncMock, return_value=None) as mock:
        for event in events:
            engine.on_text_change(event)
        await asyncio.sleep(0.08)

    mock.assert_awaited_once_with(events[-1])
    await engine.stop()


@pytest.mark.asyncio
async def test_events_ignored_before_start_and_for_virtual_documents(make_engine, workspace, make_document):
    engine = make_engine(debounce_ms=0)
    virtual = workspace.open(make_document("untitled:1", is_file=False))
    engine.on_text_change(TextChangeEvent(virtual, [_insert(AGENT_SNIPPET)]))
    assert engine.coalescer.pending is False

    engine.start()
    engine.on_text_change(TextChangeEvent(virtual, [_insert(AGENT_SNIPPET)]))
    assert engine.coalescer.pending is False


@pytest.mark.asyncio
async def test_stop_cancels_pending_evaluation(make_engine, active_doc):
    engine = make_engine(debounce_ms=50)
    engine.start()
    with patch.object(engine, "evaluate", new_callable=AsyncMock) as mock:
        engine.on_text_change(TextChangeEvent(active_doc, [_insert(AGENT_SNIPPET)]))
        await engine.stop()
        await asyncio.sleep(0.08)
    mock.assert_not_called()
    assert engine.running is False


@pytest.mark.asyncio
async def test_stop_during_clipboard_read_dispatches_nothing(make_engine, active_doc, clipboard):
    async def slow_read() -> str:
        await asyncio.sleep(0.05)
        return ""

    engine = make_engine(debounce_ms=5)
    engine.start()
    with (
        patch.object(clipboard, "read_text", side_effect=slow_read),
        patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock, return_value=_ok()) as mock,
    ):
        engine.on_text_change(TextChangeEvent(active_doc, [_insert(AGENT_SNIPPET)]))
        await asyncio.sleep(0.02)
        await engine.stop()
        assert engine.in_flight() == 0
        await asyncio.sleep(0.05)

    mock.assert_not_called()


class _DocumentView:
    """Host-style wrapper: a fresh object per lookup, equal when the path matches."""

    def __init__(self, inner) -> None:
        self._inner = inner

    def __getattr__(self, name: str):
        return getattr(self._inner, name)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _DocumentView) and other.path == self.path

    def __hash__(self) -> int:
        return hash(self.path)


@pytest.mark.asyncio
async def test_equal_document_wrapper_counts_as_active(make_engine, workspace, make_document, repo_root):
    inner = make_document(f"{repo_root}/src/app.js", AGENT_SNIPPET)
    workspace.open(_DocumentView(inner))
    engine = make_engine()
    engine.start()
    event = TextChangeEvent(_DocumentView(inner), [_insert(AGENT_SNIPPET)])
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock, return_value=_ok()) as mock:
        task = await engine.evaluate(event)
        assert task is not None
        await task

    mock.assert_awaited_once()
    await engine.stop()


@pytest.mark.asyncio
async def test_file_change_dispatches_for_unopened_file(make_engine, repo_root):
    engine = make_engine()
    engine.start()
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock, return_value=_ok()) as mock:
        task = engine.on_file_change(f"{repo_root}/src/generated.py")
        assert task is not None
        await task
    mock.assert_awaited_once_with(f"{repo_root}/src/generated.py", "amazon-q")


@pytest.mark.asyncio
async def test_file_change_skips_open_ignored_and_inactive(make_engine, active_doc, repo_root, probe):
    engine = make_engine()
    engine.start()
    with patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock) as mock:
        assert engine.on_file_change(active_doc.path) is None
        assert engine.on_file_change(f"{repo_root}/node_modules/pkg/index.js") is None
        assert engine.on_file_change(f"{repo_root}/.git/index") is None
        assert engine.on_file_change("/outside/file.py") is None
        probe.active = False
        assert engine.on_file_change(f"{repo_root}/src/generated.py") is None
    mock.assert_not_called()


@pytest.mark.asyncio
async def test_manual_checkpoints_target_active_document(make_engine, active_doc):
    engine = make_engine(agent_name="amazon-q")
    engine.start()
    selection = AttributionRange(0, 5)
    with (
        patch.object(engine.dispatcher, "dispatch_human", new_callable=AsyncMock, return_value=_ok()) as human,
        patch.object(engine.dispatcher, "dispatch_agent", new_callable=AsyncMock, return_value=_ok()) as agent,
    ):
        await engine.manual_human_checkpoint(selection)
        await engine.manual_agent_checkpoint()

    human.assert_awaited_once_with(active_doc.path, selection)
    agent.assert_awaited_once_with(active_doc.path, "amazon-q-manual", None)


@pytest.mark.asyncio
async def test_manual_checkpoint_without_active_document(make_engine, workspace):
    workspace.active = None
    engine = make_engine()
    engine.start()
    assert engine.manual_human_checkpoint() is None
    assert engine.manual_agent_checkpoint() is None
