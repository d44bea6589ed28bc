"""Concrete implementation of the VersionControl interface using the git CLI.

All lookups run ``git`` as a subprocess in the given working directory and
return ``None`` (or a documented default) when git is missing, the folder is
not a repository, or the command fails.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from devctx.domain.interfaces.version_control import VersionControl
from devctx.domain.models.common import GitUser
from devctx.domain.models.context import DEFAULT_BRANCH

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 10
NO_CHANGES = "No changes."


class GitClient(VersionControl):
    """Reads branch, author and change metadata from a local git checkout."""

    def __init__(self, cwd: Path):
        self.cwd = Path(cwd)

    def _git(self, *args: str) -> Optional[str]:
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT_SECONDS,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"git {' '.join(args)} failed in {self.cwd}: {e}")
            return None
        return result.stdout.strip()

    def current_branch(self) -> str:
        return self._git("rev-parse", "--abbrev-ref", "HEAD") or DEFAULT_BRANCH

    def latest_commit(self) -> Optional[str]:
        return self._git("rev-parse", "HEAD") or None

    def is_repo(self) -> bool:
        return self._git("rev-parse", "--git-dir") is not None

    def user(self) -> Optional[GitUser]:
        name = self._git("config", "user.name")
        if not name:
            return None
        return GitUser(name=name, email=self._git("config", "user.email") or None)

    def recent_commits(self, n: int = 8) -> List[str]:
        output = self._git("log", "--oneline", "-n", str(n)) or ""
        return [line for line in output.splitlines() if line]

    def changed_files(self, n: int = 10) -> List[str]:
        output = self._git("log", "--name-only", "--pretty=format:", "-n", str(n)) or ""
        # dict keeps first-seen order while dropping duplicates
        return list(dict.fromkeys(line.strip() for line in output.splitlines() if line.strip()))

    def diff_stat(self, since: Optional[str] = None) -> str:
        if since:
            output = self._git("diff", "--stat", f"{since}..HEAD")
        else:
            output = self._git("diff", "--stat", "HEAD")
        return output or NO_CHANGES

    def stage_devctx(self) -> bool:
        return self._git("add", ".devctx/") is not None
