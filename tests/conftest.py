import logging
import pytest
from typer.testing import CliRunner
from pathlib import Path
from typing import List, Optional

from devctx import main as devctx_main
from devctx.domain.interfaces.version_control import VersionControl
from devctx.domain.models.common import GitUser
from devctx.domain.models.context import ContextRecord
from devctx.infrastructure.config.settings import clear_test_config
from devctx.infrastructure.optimization.budget_allocator import BudgetAllocator
from devctx.infrastructure.optimization.prompt_composer import PromptComposer
from devctx.infrastructure.optimization.token_estimator import TokenEstimator
from devctx.infrastructure.storage.json_store import JsonContextStore


class FakeVersionControl(VersionControl):
    """In-memory stand-in for GitClient so tests never shell out to git."""

    def __init__(
        self,
        branch: str = "feat/retry",
        commit: Optional[str] = "abc123def4567890",
        user_name: Optional[str] = "Ana",
        commits: Optional[List[str]] = None,
        files: Optional[List[str]] = None,
        repo: bool = True,
    ):
        self.branch = branch
        self.commit = commit
        self.user_name = user_name
        self.commits = commits if commits is not None else ["a1b2c3d Add retry wrapper"]
        self.files = files if files is not None else ["src/client.py", "tests/test_client.py"]
        self.repo = repo
        self.staged = False
        self.diff_since: List[Optional[str]] = []

    def current_branch(self) -> str:
        return self.branch

    def latest_commit(self) -> Optional[str]:
        return self.commit

    def is_repo(self) -> bool:
        return self.repo

    def user(self) -> Optional[GitUser]:
        if not self.user_name:
            return None
        return GitUser(name=self.user_name, email=None)

    def recent_commits(self, n: int = 8) -> List[str]:
        return self.commits[:n]

    def changed_files(self, n: int = 10) -> List[str]:
        return list(self.files)

    def diff_stat(self, since: Optional[str] = None) -> str:
        self.diff_since.append(since)
        return " src/client.py | 12 +++++++-----"

    def stage_devctx(self) -> bool:
        self.staged = True
        return True


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()

@pytest.fixture(autouse=True)
def reset_app_state():
    """Each test starts with fresh wiring and no leftover test configuration.

    CLI invocations reconfigure the root logger onto the runner's stderr, so
    the original handlers are put back afterwards.
    """
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    devctx_main._dependencies.clear()
    clear_test_config()
    yield
    devctx_main._dependencies.clear()
    clear_test_config()
    root.handlers[:] = handlers
    root.setLevel(level)

@pytest.fixture
def estimator():
    return TokenEstimator()

@pytest.fixture
def allocator(estimator):
    return BudgetAllocator(token_estimator=estimator)

@pytest.fixture
def composer(estimator, allocator):
    return PromptComposer(token_estimator=estimator, budget_allocator=allocator)

@pytest.fixture
def fake_vcs():
    return FakeVersionControl()

@pytest.fixture
def store(tmp_path: Path, estimator):
    return JsonContextStore(tmp_path, estimator)

@pytest.fixture
def patch_git(mocker, fake_vcs):
    """Makes the CLI wiring hand out the fake git client for any working directory."""
    mocker.patch('devctx.main.GitClient', return_value=fake_vcs)
    return fake_vcs

@pytest.fixture
def retry_record():
    """A realistic saved entry: two failed approaches, one bare note, one success."""
    return ContextRecord.from_dict({
        "id": "1760875200000_ab12",
        "timestamp": "2026-10-19T12:00:00.000Z",
        "branch": "feat/retry",
        "task": "Add retry logic",
        "goal": "Flaky upstream API",
        "state": "Client wraps requests",
        "decisions": ["Use exponential backoff", "Max 5 attempts"],
        "nextSteps": ["Write tests", "Update docs", "Refactor client"],
        "constraints": ["No new deps"],
        "approaches": [
            {"description": "Used Redis", "failed": True, "reason": "too heavy"},
            "Tried caching",
            {"description": "Custom decorator", "failed": True},
            {"description": "Plain loop", "failed": False},
        ],
        "filesChanged": ["src/client.py"],
    })
