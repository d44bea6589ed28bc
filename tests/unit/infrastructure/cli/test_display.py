import io

import pytest
from rich.console import Console

from devctx.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def output():
    return io.StringIO()

@pytest.fixture
def display(output):
    return ConsoleDisplay(console=Console(file=output, width=100, color_system=None))


def test_raw_prompt_printed_verbatim(display, output):
    prompt = "You are pair-programming on: [bold]x[/bold]\nNext: Write tests"
    display.display_prompt(prompt, raw=True)
    assert output.getvalue() == prompt + "\n"

def test_prompt_panel_has_title_and_subtitle(display, output):
    display.display_prompt("Next: Write tests", title="Add retry [beta]", subtitle="standard · 20/250")
    text = output.getvalue()
    assert "Add retry [beta]" in text
    assert "standard · 20/250" in text
    assert "Next: Write tests" in text

def test_error_panel(display, output):
    display.display_error("Resume failed: boom")
    assert "Error" in output.getvalue()
    assert "Resume failed: boom" in output.getvalue()

def test_warning_panel_is_logged(display, output, caplog):
    display.display_warning("No context for branch 'main'.")
    assert "No context for branch 'main'." in output.getvalue()
    assert "No context for branch 'main'." in caplog.text

def test_entries_table(display, output):
    display.display_entries([{
        "id": "1760875200000_ab12",
        "timestamp": "2026-10-19T12:00:00.000Z",
        "branch": "feat_retry",
        "task": "Add retry [logic]",
        "tokenCount": 48,
    }])
    text = output.getvalue()
    assert "1760875200000_ab12" in text
    assert "2026-10-19T12:00" in text
    assert "Add retry [logic]" in text
    assert "48" in text

def test_no_entries_shows_hint(display, output):
    display.display_entries([])
    assert "No saved context yet" in output.getvalue()

def test_mapping_renders_nested_values_as_json(display, output):
    display.display_mapping({"maxEntriesPerBranch": 20, "nextSteps": ["a", "b"]}, title="Config")
    text = output.getvalue()
    assert "maxEntriesPerBranch" in text
    assert '["a", "b"]' in text
