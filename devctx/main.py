"""Main entry point for the devctx application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

from devctx import __version__
# --- Core Layer ---
from devctx.core.command_handler import CommandHandler
from devctx.core.services.context_service import ContextService
# --- Infrastructure Layer ---
from devctx.infrastructure.ai.openai.gpt_client import GptClient
from devctx.infrastructure.cli.display import ConsoleDisplay
from devctx.infrastructure.config.settings import (
    get_ai_api_key, get_ai_base_url, get_ai_model, get_config, get_log_level, load_configuration,
)
from devctx.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, setup_logging
from devctx.infrastructure.optimization.budget_allocator import BudgetAllocator
from devctx.infrastructure.optimization.prompt_composer import PromptComposer
from devctx.infrastructure.optimization.token_estimator import TokenEstimator
from devctx.infrastructure.storage.json_store import JsonContextStore
from devctx.infrastructure.vcs.git_client import GitClient

logger = logging.getLogger(__name__)

FAILED_APPROACH_SEPARATOR = "::"

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. Ambient values (credentials, model
    name) are resolved here and handed down explicitly.
    """
    load_configuration()
    dependencies: Dict[str, Any] = {}

    dependencies['ui'] = ConsoleDisplay()
    dependencies['token_estimator'] = TokenEstimator()
    dependencies['budget_allocator'] = BudgetAllocator(token_estimator=dependencies['token_estimator'])
    dependencies['prompt_composer'] = PromptComposer(
        token_estimator=dependencies['token_estimator'],
        budget_allocator=dependencies['budget_allocator'],
    )

    token_estimator = dependencies['token_estimator']
    ai_model = get_ai_model()

    # Factories: store and git are bound per working directory, the AI client
    # per call so that missing credentials only matter for the AI commands.
    dependencies['context_service'] = ContextService(
        prompt_composer=dependencies['prompt_composer'],
        store_factory=lambda cwd: JsonContextStore(cwd, token_estimator),
        vcs_factory=lambda cwd: GitClient(cwd),
        ai_model_factory=lambda api_key, base_url: GptClient(
            api_key=api_key or get_ai_api_key(),
            base_url=base_url or get_ai_base_url(),
            model=ai_model,
        ),
    )
    dependencies['command_handler'] = CommandHandler(
        context_service=dependencies['context_service'],
        ui=dependencies['ui'],
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies

_dependencies: Dict[str, Any] = {}

def get_dependencies() -> Dict[str, Any]:
    """Returns the wired-up services, creating them on first use."""
    if not _dependencies:
        _dependencies.update(create_dependencies())
    return _dependencies

def get_handler() -> CommandHandler:
    return get_dependencies()['command_handler']

# --- Typer App Definition ---
app = typer.Typer(
    name="devctx",
    help="devctx: save AI coding context per branch and resume it as a token-budgeted prompt.",
    add_completion=False,
)

def run_async(coro: Coroutine[Any, Any, bool]) -> None:
    """Runs a handler coroutine and exits non-zero if it reports failure."""
    if not asyncio.run(coro):
        raise typer.Exit(code=1)

def parse_failed_approach(raw: str) -> Dict[str, Any]:
    """'Used Redis::too heavy' -> failed approach with a reason."""
    description, _, reason = raw.partition(FAILED_APPROACH_SEPARATOR)
    approach: Dict[str, Any] = {"description": description.strip(), "failed": True}
    if reason.strip():
        approach["reason"] = reason.strip()
    return approach

def record_fields(
    task: str,
    goal: Optional[str],
    state: Optional[str],
    decisions: Optional[List[str]],
    next_steps: Optional[List[str]],
    constraints: Optional[List[str]],
    approaches: Optional[List[str]],
    failed: Optional[List[str]],
    files: Optional[List[str]],
) -> Dict[str, Any]:
    return {
        "task": task,
        "goal": goal,
        "state": state,
        "decisions": decisions or [],
        "next_steps": next_steps or [],
        "constraints": constraints or [],
        "approaches": list(approaches or []) + [parse_failed_approach(f) for f in failed or []],
        "files_changed": files or [],
    }

# --- Shared Options ---

CwdOption = Annotated[
    Optional[Path],
    typer.Option("--cwd", file_okay=False, dir_okay=True, resolve_path=True,
                 help="Repository root. Defaults to the current directory.")
]
TaskOption = Annotated[str, typer.Option("--task", "-t", help="What are you working on? One clear sentence.")]
GoalOption = Annotated[Optional[str], typer.Option("--goal", "-g", help="Why? What problem does it solve?")]
StateOption = Annotated[Optional[str], typer.Option("--state", "-s", help="What's done, in progress, broken.")]
DecisionOption = Annotated[Optional[List[str]], typer.Option("--decision", "-d", help="Settled decision (repeatable).")]
NextOption = Annotated[Optional[List[str]], typer.Option("--next", "-n", help="Next step, most important first (repeatable).")]
ConstraintOption = Annotated[Optional[List[str]], typer.Option("--constraint", "-c", help="Hard limit to respect (repeatable).")]
ApproachOption = Annotated[Optional[List[str]], typer.Option("--approach", "-a", help="Approach tried, outcome unspecified (repeatable).")]
FailedOption = Annotated[Optional[List[str]], typer.Option("--failed", "-x", help="Failed approach as 'description::reason' (repeatable).")]
FileOption = Annotated[Optional[List[str]], typer.Option("--file", "-f", help="Key file in scope (repeatable). Detected from git if omitted.")]
RawOption = Annotated[bool, typer.Option("--raw", help="Print only the prompt text, for piping.")]
ApiKeyOption = Annotated[Optional[str], typer.Option("--api-key", help="AI key. Defaults to DEVCTX_AI_KEY.")]
BaseUrlOption = Annotated[Optional[str], typer.Option("--base-url", help="OpenAI-compatible endpoint.")]

def _cwd(cwd: Optional[Path]) -> Path:
    return cwd or Path.cwd()

# --- CLI Commands ---

@app.command()
def init(cwd: CwdOption = None):
    """Create the .devctx/ folder in the repository."""
    run_async(get_handler().handle_init(_cwd(cwd)))

@app.command()
def save(
    task: TaskOption,
    goal: GoalOption = None,
    state: StateOption = None,
    decision: DecisionOption = None,
    next_step: NextOption = None,
    constraint: ConstraintOption = None,
    approach: ApproachOption = None,
    failed: FailedOption = None,
    file: FileOption = None,
    cwd: CwdOption = None,
):
    """Save context for the current branch."""
    fields = record_fields(task, goal, state, decision, next_step, constraint, approach, failed, file)
    run_async(get_handler().handle_save(_cwd(cwd), fields))

@app.command()
def resume(
    tier: Annotated[str, typer.Option("--tier", help="minimal (~80 tokens), standard (~250) or full (~600).")] = "standard",
    budget: Annotated[Optional[int], typer.Option("--budget", help="Explicit token budget; overrides --tier.")] = None,
    branch: Annotated[Optional[str], typer.Option("--branch", "-b", help="Branch to restore. Defaults to current.")] = None,
    entry_id: Annotated[Optional[str], typer.Option("--id", help="Restore a specific entry.")] = None,
    focus: Annotated[Optional[str], typer.Option("--focus", help="Replace the closing instruction with a question.")] = None,
    raw: RawOption = False,
    cwd: CwdOption = None,
):
    """Print a prompt that restores the saved context."""
    run_async(get_handler().handle_resume(_cwd(cwd), branch, entry_id, tier, budget, focus, raw))

@app.command()
def log(
    branch: Annotated[Optional[str], typer.Option("--branch", "-b", help="Only this branch.")] = None,
    limit: Annotated[int, typer.Option("--limit", "-l", min=1, help="Maximum rows.")] = 10,
    cwd: CwdOption = None,
):
    """Show saved context history."""
    run_async(get_handler().handle_log(_cwd(cwd), branch, limit))

@app.command()
def diff(cwd: CwdOption = None):
    """Show git changes since the last save."""
    run_async(get_handler().handle_diff(_cwd(cwd)))

@app.command()
def handoff(
    to: Annotated[str, typer.Option("--to", help="Teammate name or @username.")],
    task: TaskOption,
    goal: GoalOption = None,
    state: StateOption = None,
    decision: DecisionOption = None,
    next_step: NextOption = None,
    constraint: ConstraintOption = None,
    approach: ApproachOption = None,
    failed: FailedOption = None,
    raw: RawOption = False,
    cwd: CwdOption = None,
):
    """Save a handoff and print the prompt for the receiving teammate."""
    fields = record_fields(task, goal, state, decision, next_step, constraint, approach, failed, None)
    run_async(get_handler().handle_handoff(_cwd(cwd), to, fields, raw))

@app.command()
def share(cwd: CwdOption = None):
    """Stage .devctx/ in git so teammates can pull it."""
    run_async(get_handler().handle_share(_cwd(cwd)))

@app.command()
def summarize(
    n: Annotated[int, typer.Option("--commits", "-n", min=1, help="Commits to analyze.")] = 8,
    api_key: ApiKeyOption = None,
    base_url: BaseUrlOption = None,
    cwd: CwdOption = None,
):
    """AI: derive and save context from recent git history."""
    run_async(get_handler().handle_summarize(_cwd(cwd), n, api_key, base_url))

@app.command()
def suggest(api_key: ApiKeyOption = None, base_url: BaseUrlOption = None, cwd: CwdOption = None):
    """AI: suggest next steps from the saved context."""
    run_async(get_handler().handle_suggest(_cwd(cwd), api_key, base_url))

@app.command(name="config-set")
def config_set(
    key: Annotated[str, typer.Argument(help="Setting name, e.g. maxEntriesPerBranch.")],
    value: Annotated[str, typer.Argument(help="New value; JSON literals are parsed.")],
    cwd: CwdOption = None,
):
    """Set a repository setting in .devctx/config.json."""
    run_async(get_handler().handle_config_set(_cwd(cwd), key, value))

@app.command(name="config-list")
def config_list(cwd: CwdOption = None):
    """Show the repository settings."""
    run_async(get_handler().handle_config_list(_cwd(cwd)))

def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"devctx {__version__}")
        raise typer.Exit()

@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output to stderr.")] = False,
    version: Annotated[
        bool, typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit.")
    ] = False,
):
    """Configure logging before any command runs."""
    load_configuration()
    setup_logging(
        log_level="DEBUG" if verbose else get_log_level(),
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
