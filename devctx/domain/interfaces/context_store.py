"""Interface for context persistence.

The store owns saved ContextRecords; everything above it receives records
already loaded and hands back plain drafts to save.
"""

import abc
from typing import Any, Dict, List, Mapping, Optional

from ..models.context import ContextRecord


class ContextStore(abc.ABC):
    """Abstract Base Class for saving and loading context records."""

    @abc.abstractmethod
    async def is_initialized(self) -> bool:
        pass

    @abc.abstractmethod
    async def init_repo(self) -> bool:
        """Creates the store if missing.

        Returns:
            True if the store was created, False if it already existed.
        """
        pass

    @abc.abstractmethod
    async def load_config(self) -> Optional[Dict[str, Any]]:
        pass

    @abc.abstractmethod
    async def save_config(self, config: Mapping[str, Any]) -> None:
        pass

    @abc.abstractmethod
    async def save(self, draft: Mapping[str, Any]) -> ContextRecord:
        """Persists a new entry and returns it with id, timestamp and token count.

        Args:
            draft: Record fields; approaches may be bare strings or mappings.

        Raises:
            ContextStoreError: If the store cannot be written.
        """
        pass

    @abc.abstractmethod
    async def load_latest(self, branch: str) -> Optional[ContextRecord]:
        pass

    @abc.abstractmethod
    async def load_by_id(self, entry_id: str, branch: str) -> Optional[ContextRecord]:
        pass

    @abc.abstractmethod
    async def list_entries(self, branch: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        """Lists index rows, newest first, each annotated with its branch."""
        pass
