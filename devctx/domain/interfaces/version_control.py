"""Interface for reading repository metadata.

Every method is read-only except ``stage_devctx`` and reports failure as
``None``/``False`` rather than raising, since git is optional context.
"""

import abc
from typing import List, Optional

from ..models.common import GitUser


class VersionControl(abc.ABC):
    """Abstract Base Class for version-control lookups."""

    @abc.abstractmethod
    def current_branch(self) -> str:
        pass

    @abc.abstractmethod
    def latest_commit(self) -> Optional[str]:
        pass

    @abc.abstractmethod
    def is_repo(self) -> bool:
        pass

    @abc.abstractmethod
    def user(self) -> Optional[GitUser]:
        pass

    @abc.abstractmethod
    def recent_commits(self, n: int = 8) -> List[str]:
        pass

    @abc.abstractmethod
    def changed_files(self, n: int = 10) -> List[str]:
        pass

    @abc.abstractmethod
    def diff_stat(self, since: Optional[str] = None) -> str:
        pass

    @abc.abstractmethod
    def stage_devctx(self) -> bool:
        pass
