import pytest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from devctx.core.command_handler import CommandHandler
from devctx.core.services.context_service import ContextService
from devctx.domain.interfaces.user_interface import UserInterface

CWD = Path("/repo")

# --- Fixtures ---

@pytest.fixture
def mock_context_service():
    mock = MagicMock(spec=ContextService)
    for name in (
        "init", "save", "resume", "log", "diff", "handoff", "share",
        "summarize", "suggest", "config_set", "config_list",
    ):
        setattr(mock, name, AsyncMock())
    return mock

@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)

@pytest.fixture
def handler(mock_context_service, mock_ui):
    return CommandHandler(context_service=mock_context_service, ui=mock_ui)

RESUME_RESULT = {
    "found": True,
    "branch": "feat/retry",
    "task": "Add retry logic",
    "savedAt": "2026-10-19T12:00",
    "tier": "standard",
    "budget": 250,
    "tokensUsed": 27,
    "promptTokens": 60,
    "prompt": "You are pair-programming on: Add retry logic",
}

# --- Tests ---

@pytest.mark.asyncio
async def test_handle_init(handler, mock_context_service, mock_ui):
    mock_context_service.init.return_value = {"ok": True, "msg": "Initialized .devctx/"}
    assert await handler.handle_init(CWD) is True
    mock_ui.display_info.assert_called_once_with("Initialized .devctx/")

@pytest.mark.asyncio
async def test_handle_save(handler, mock_context_service, mock_ui):
    mock_context_service.save.return_value = {"id": "1_abcd", "branch": "dev", "tokens": 12, "task": "Ship"}
    assert await handler.handle_save(CWD, {"task": "Ship"}) is True
    mock_context_service.save.assert_awaited_once_with(CWD, {"task": "Ship"})
    mock_ui.display_info.assert_called_once_with("Saved 1_abcd on 'dev' (12 tokens): Ship")

@pytest.mark.asyncio
async def test_handle_save_error(handler, mock_context_service, mock_ui):
    mock_context_service.save.side_effect = ValueError("A task is required to save context.")
    assert await handler.handle_save(CWD, {}) is False
    mock_ui.display_error.assert_called_once_with("Save failed: A task is required to save context.")

@pytest.mark.asyncio
async def test_handle_resume_raw(handler, mock_context_service, mock_ui):
    mock_context_service.resume.return_value = RESUME_RESULT
    assert await handler.handle_resume(CWD, tier="standard", raw=True) is True
    mock_context_service.resume.assert_awaited_once_with(CWD, None, None, "standard", None, None)
    args, kwargs = mock_ui.display_prompt.call_args
    assert args[0] == RESUME_RESULT["prompt"]
    assert kwargs["raw"] is True
    assert kwargs["subtitle"] == "standard · 27/250 field tokens · ~60 prompt tokens"

@pytest.mark.asyncio
async def test_handle_resume_not_found(handler, mock_context_service, mock_ui):
    mock_context_service.resume.return_value = {"found": False, "msg": "No context for branch 'dev'."}
    assert await handler.handle_resume(CWD) is False
    mock_ui.display_warning.assert_called_once_with("No context for branch 'dev'.")
    mock_ui.display_prompt.assert_not_called()

@pytest.mark.asyncio
async def test_handle_resume_unexpected_error(handler, mock_context_service, mock_ui):
    mock_context_service.resume.side_effect = RuntimeError("boom")
    assert await handler.handle_resume(CWD) is False
    mock_ui.display_error.assert_called_once_with("Resume failed: boom")

@pytest.mark.asyncio
async def test_handle_log(handler, mock_context_service, mock_ui):
    entries = [{"id": "1_abcd", "task": "Ship"}]
    mock_context_service.log.return_value = {"count": 1, "entries": entries}
    assert await handler.handle_log(CWD, "dev", 5) is True
    mock_context_service.log.assert_awaited_once_with(CWD, "dev", 5)
    mock_ui.display_entries.assert_called_once_with(entries, title="Context history (1)")

@pytest.mark.asyncio
async def test_handle_diff(handler, mock_context_service, mock_ui):
    mock_context_service.diff.return_value = {"branch": "dev", "since": "abc123de", "diff": "No changes."}
    assert await handler.handle_diff(CWD) is True
    mock_ui.display_prompt.assert_called_once_with("No changes.", title="Changes on dev since abc123de")

@pytest.mark.asyncio
async def test_handle_handoff(handler, mock_context_service, mock_ui):
    mock_context_service.handoff.return_value = {
        "id": "1_abcd", "to": "@ben", "promptTokens": 40, "prompt": "HANDOFF: Ana → @ben",
    }
    assert await handler.handle_handoff(CWD, "@ben", {"task": "Ship"}, raw=True) is True
    args, kwargs = mock_ui.display_prompt.call_args
    assert args[0] == "HANDOFF: Ana → @ben"
    assert kwargs["raw"] is True

@pytest.mark.asyncio
async def test_handle_share_failure(handler, mock_context_service, mock_ui):
    mock_context_service.share.return_value = {"ok": False, "msg": "Not a git repo."}
    assert await handler.handle_share(CWD) is False
    mock_ui.display_error.assert_called_once_with("Not a git repo.")

@pytest.mark.asyncio
async def test_handle_summarize(handler, mock_context_service, mock_ui):
    summary = {"task": "Add retry logic"}
    mock_context_service.summarize.return_value = {"ok": True, "id": "1_abcd", "tokens": 4, "summary": summary}
    assert await handler.handle_summarize(CWD, 8, "sk-test", None) is True
    mock_context_service.summarize.assert_awaited_once_with(CWD, 8, "sk-test", None)
    mock_ui.display_mapping.assert_called_once_with(summary, title="Saved 1_abcd (4 tokens)")

@pytest.mark.asyncio
async def test_handle_summarize_ai_failure(handler, mock_context_service, mock_ui):
    mock_context_service.summarize.return_value = {"ok": False, "msg": "No AI key."}
    assert await handler.handle_summarize(CWD, 8, None, None) is False
    mock_ui.display_error.assert_called_once_with("No AI key.")

@pytest.mark.asyncio
async def test_handle_suggest_formats_rows(handler, mock_context_service, mock_ui):
    mock_context_service.suggest.return_value = {
        "ok": True,
        "task": "Add retry logic",
        "suggestions": [{"step": "Add jitter", "priority": "high", "why": "thundering herd"}, "Write docs"],
    }
    assert await handler.handle_suggest(CWD, None, None) is True
    mock_ui.display_mapping.assert_called_once_with(
        {"1": "Add jitter (priority: high; thundering herd)", "2": "Write docs"},
        title="Next steps for: Add retry logic",
    )

@pytest.mark.asyncio
async def test_handle_config_set(handler, mock_context_service, mock_ui):
    mock_context_service.config_set.return_value = {"ok": True, "key": "maxEntriesPerBranch", "value": 30}
    assert await handler.handle_config_set(CWD, "maxEntriesPerBranch", "30") is True
    mock_ui.display_info.assert_called_once_with("maxEntriesPerBranch = 30")

@pytest.mark.asyncio
async def test_handle_config_list_not_initialized(handler, mock_context_service, mock_ui):
    mock_context_service.config_list.return_value = {"error": "Not initialized."}
    assert await handler.handle_config_list(CWD) is False
    mock_ui.display_error.assert_called_once_with("Not initialized.")
