"""Concrete implementation of the ContextStore interface on the local disk.

Layout under the repository root::

    .devctx/
        config.json                     repo settings (maxEntriesPerBranch, ...)
        .gitkeep
        branches/<branch>/index.json    newest-first summary rows
        branches/<branch>/<id>.json     one full record per save

The folder is meant to be committed so teammates share context. Uses
`aiofiles` for async I/O.
"""

import json
import logging
import re
import secrets
import string
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import aiofiles

from devctx import __version__
from devctx.domain.interfaces.context_store import ContextStore
from devctx.domain.models.common import EntryId, IndexEntry
from devctx.domain.models.context import DEFAULT_BRANCH, ContextRecord
from devctx.infrastructure.optimization.token_estimator import TokenEstimator

logger = logging.getLogger(__name__)

DEVCTX_DIR = ".devctx"
CONFIG_FILE = "config.json"
INDEX_FILE = "index.json"
DEFAULT_MAX_ENTRIES_PER_BRANCH = 20

_UNSAFE_BRANCH_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_ID_ALPHABET = string.digits + string.ascii_lowercase


class ContextStoreError(Exception):
    """Raised when a store file exists but cannot be read or parsed."""


def sanitize_branch(branch: str) -> str:
    """Maps a branch name to a safe directory name ('feat/x' -> 'feat_x')."""
    return _UNSAFE_BRANCH_CHARS.sub("_", branch)


def new_entry_id() -> EntryId:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(4))
    return EntryId(f"{int(time.time() * 1000)}_{suffix}")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonContextStore(ContextStore):
    """Stores context records as JSON files in ``<root>/.devctx``."""

    def __init__(self, root: Path, token_estimator: TokenEstimator):
        """Initializes the store.

        Args:
            root: Repository root the ``.devctx`` folder lives in.
            token_estimator: Prices each record once, at save time.
        """
        self.root = Path(root)
        self.token_estimator = token_estimator

    @property
    def base_dir(self) -> Path:
        return self.root / DEVCTX_DIR

    def _branch_dir(self, branch: str) -> Path:
        return self.base_dir / "branches" / sanitize_branch(branch)

    async def _read_json(self, path: Path) -> Any:
        try:
            async with aiofiles.open(path, mode='r', encoding='utf-8') as f:
                return json.loads(await f.read())
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt JSON in {path}: {e}")
            raise ContextStoreError(f"Corrupt JSON in {path}: {e}") from e

    async def _write_json(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, mode='w', encoding='utf-8') as f:
            await f.write(json.dumps(data, indent=2, ensure_ascii=False))
        logger.debug(f"Wrote {path}")

    async def is_initialized(self) -> bool:
        return (self.base_dir / CONFIG_FILE).is_file()

    async def init_repo(self) -> bool:
        if await self.is_initialized():
            return False
        self.base_dir.mkdir(parents=True, exist_ok=True)
        await self._write_json(self.base_dir / CONFIG_FILE, {
            "version": __version__,
            "createdAt": utc_timestamp(),
            "maxEntriesPerBranch": DEFAULT_MAX_ENTRIES_PER_BRANCH,
        })
        (self.base_dir / ".gitkeep").touch()
        logger.info(f"Initialized {self.base_dir}")
        return True

    async def load_config(self) -> Optional[Dict[str, Any]]:
        path = self.base_dir / CONFIG_FILE
        if not path.is_file():
            return None
        return await self._read_json(path)

    async def save_config(self, config: Mapping[str, Any]) -> None:
        await self._write_json(self.base_dir / CONFIG_FILE, dict(config))

    async def _max_entries(self) -> int:
        config = await self.load_config() or {}
        try:
            value = int(config.get("maxEntriesPerBranch") or DEFAULT_MAX_ENTRIES_PER_BRANCH)
        except (TypeError, ValueError):
            logger.warning(f"Invalid maxEntriesPerBranch {config.get('maxEntriesPerBranch')!r}, using default.")
            return DEFAULT_MAX_ENTRIES_PER_BRANCH
        return value if value > 0 else DEFAULT_MAX_ENTRIES_PER_BRANCH

    async def save(self, draft: Mapping[str, Any]) -> ContextRecord:
        if not await self.is_initialized():
            await self.init_repo()

        fields = dict(draft)
        fields["id"] = new_entry_id()
        fields["timestamp"] = utc_timestamp()
        fields["branch"] = fields.get("branch") or DEFAULT_BRANCH
        fields.pop("tokenCount", None)
        fields.pop("token_count", None)
        unpriced = ContextRecord.from_dict(fields)
        record = ContextRecord.from_dict({
            **unpriced.to_dict(),
            "tokenCount": self.token_estimator.estimate_tokens_for_record(unpriced),
        })

        branch_dir = self._branch_dir(record.branch)
        await self._write_json(branch_dir / f"{record.id}.json", record.to_dict())

        index_path = branch_dir / INDEX_FILE
        index = await self._read_json(index_path) if index_path.is_file() else {"entries": []}
        row = IndexEntry(
            id=EntryId(record.id or ""),
            timestamp=record.timestamp or "",
            task=record.task,
            tokenCount=record.token_count,
        )
        entries = [row] + list(index.get("entries", []))
        index["entries"] = entries[:await self._max_entries()]
        await self._write_json(index_path, index)

        logger.info(f"Saved context {record.id} on branch '{record.branch}' ({record.token_count} tokens)")
        return record

    async def load_by_id(self, entry_id: str, branch: str) -> Optional[ContextRecord]:
        path = self._branch_dir(branch) / f"{entry_id}.json"
        if not path.is_file():
            logger.debug(f"No entry {entry_id} on branch '{branch}'")
            return None
        return ContextRecord.from_dict(await self._read_json(path))

    async def load_latest(self, branch: str) -> Optional[ContextRecord]:
        index_path = self._branch_dir(branch) / INDEX_FILE
        if not index_path.is_file():
            return None
        entries = (await self._read_json(index_path)).get("entries", [])
        if not entries:
            return None
        return await self.load_by_id(entries[0]["id"], branch)

    async def list_entries(self, branch: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        branches_dir = self.base_dir / "branches"
        if not branches_dir.is_dir():
            return []

        if branch:
            branch_dirs = [branches_dir / sanitize_branch(branch)]
        else:
            branch_dirs = sorted(d for d in branches_dir.iterdir() if (d / INDEX_FILE).is_file())

        rows: List[Dict[str, Any]] = []
        for branch_dir in branch_dirs:
            index_path = branch_dir / INDEX_FILE
            if not index_path.is_file():
                continue
            index = await self._read_json(index_path)
            rows.extend({**entry, "branch": branch_dir.name} for entry in index.get("entries", []))

        rows.sort(key=lambda row: row.get("timestamp") or "", reverse=True)
        return rows[:limit]
