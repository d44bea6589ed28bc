"""Application Service for saving and resuming coding context.

Each operation works on one repository root passed in explicitly as ``cwd``
and returns a small JSON-ready payload. Expected conditions (nothing saved
yet, not a git repository, AI call failed) come back as ``ok: False`` or
``found: False`` payloads with a message; anything else propagates.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from openai import OpenAIError

from devctx.domain.interfaces.ai_model import AIModel
from devctx.domain.interfaces.context_store import ContextStore
from devctx.domain.interfaces.version_control import VersionControl
from devctx.infrastructure.ai.openai.gpt_client import AIClientError
from devctx.infrastructure.optimization.prompt_composer import PromptComposer

logger = logging.getLogger(__name__)

StoreFactory = Callable[[Path], ContextStore]
VersionControlFactory = Callable[[Path], VersionControl]
AIModelFactory = Callable[[Optional[str], Optional[str]], AIModel]

DEFAULT_LOG_LIMIT = 10
DEFAULT_SUMMARIZE_COMMITS = 8
SAVE_CHANGED_FILES_COMMITS = 5

RECORD_FIELDS = (
    "task", "goal", "state", "approaches", "decisions",
    "next_steps", "constraints", "files_changed",
)


def _parse_config_value(value: Any) -> Any:
    """'30' -> 30, 'true' -> True, anything not JSON stays a string."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


class ContextService:
    """Orchestrates the store, git metadata, the prompt engine and the AI endpoint."""

    def __init__(
        self,
        prompt_composer: PromptComposer,
        store_factory: StoreFactory,
        vcs_factory: VersionControlFactory,
        ai_model_factory: AIModelFactory,
    ):
        self.prompt_composer = prompt_composer
        self.store_factory = store_factory
        self.vcs_factory = vcs_factory
        self.ai_model_factory = ai_model_factory

    def _draft(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        draft = {key: fields.get(key) for key in RECORD_FIELDS}
        if not draft["task"]:
            raise ValueError("A task is required to save context.")
        return draft

    async def init(self, cwd: Path) -> Dict[str, Any]:
        created = await self.store_factory(cwd).init_repo()
        return {"ok": True, "msg": "Initialized .devctx/" if created else "Already initialized"}

    async def save(self, cwd: Path, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Saves a context entry for the current branch.

        Branch, author and latest commit come from git. Changed files default
        to those touched by the last few commits.
        """
        store = self.store_factory(cwd)
        vcs = self.vcs_factory(cwd)
        draft = self._draft(fields)
        branch = vcs.current_branch()
        user = vcs.user()
        draft.update(
            branch=branch,
            files_changed=draft["files_changed"] or vcs.changed_files(SAVE_CHANGED_FILES_COMMITS),
            author=user["name"] if user else None,
            meta={"commitHash": vcs.latest_commit()},
        )
        record = await store.save(draft)
        return {"id": record.id, "branch": branch, "tokens": record.token_count, "task": record.task}

    async def resume(
        self,
        cwd: Path,
        branch: Optional[str] = None,
        entry_id: Optional[str] = None,
        tier: Optional[str] = None,
        budget: Optional[int] = None,
        focus: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Loads the latest (or a specific) entry and composes a resume prompt."""
        store = self.store_factory(cwd)
        branch = branch or self.vcs_factory(cwd).current_branch()
        record = await store.load_by_id(entry_id, branch) if entry_id else await store.load_latest(branch)
        if record is None:
            logger.info(f"No context found for branch '{branch}'")
            return {"found": False, "msg": f"No context for branch '{branch}'. Run devctx save first."}

        composed = self.prompt_composer.resume(record, tier=tier, budget=budget, focus=focus)
        return {
            "found": True,
            "branch": record.branch,
            "task": record.task,
            "savedAt": (record.timestamp or "")[:16],
            "tier": composed.tier.value,
            "budget": composed.budget,
            "tokensUsed": composed.tokens_used,
            "promptTokens": composed.prompt_tokens,
            "prompt": composed.text,
        }

    async def log(self, cwd: Path, branch: Optional[str] = None, limit: int = DEFAULT_LOG_LIMIT) -> Dict[str, Any]:
        entries = await self.store_factory(cwd).list_entries(branch, limit)
        return {"count": len(entries), "entries": entries}

    async def diff(self, cwd: Path) -> Dict[str, Any]:
        """Shows git changes since the commit recorded with the latest save."""
        vcs = self.vcs_factory(cwd)
        branch = vcs.current_branch()
        record = await self.store_factory(cwd).load_latest(branch)
        since = record.meta.get("commitHash") if record else None
        return {"branch": branch, "since": since[:8] if since else "HEAD", "diff": vcs.diff_stat(since)}

    async def handoff(self, cwd: Path, to: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Saves a handoff entry and composes the prompt for the receiving teammate."""
        store = self.store_factory(cwd)
        vcs = self.vcs_factory(cwd)
        user = vcs.user()
        from_user = user["name"] if user else "unknown"
        draft = self._draft(fields)
        draft.update(branch=vcs.current_branch(), author=from_user, meta={"type": "handoff", "to": to})
        record = await store.save(draft)

        composed = self.prompt_composer.compose_handoff(record, from_user, to)
        return {"id": record.id, "to": to, "promptTokens": composed.prompt_tokens, "prompt": composed.text}

    async def share(self, cwd: Path) -> Dict[str, Any]:
        vcs = self.vcs_factory(cwd)
        if not vcs.is_repo():
            return {"ok": False, "msg": "Not a git repo."}
        staged = vcs.stage_devctx()
        return {
            "ok": staged,
            "msg": '.devctx/ staged. Commit with: git commit -m "chore: sync devctx"' if staged else "Staging failed.",
        }

    async def _ask_json(self, prompt: str, api_key: Optional[str], base_url: Optional[str]) -> Any:
        ai_model = self.ai_model_factory(api_key, base_url)
        return json.loads(await ai_model.complete(prompt))

    async def summarize(
        self,
        cwd: Path,
        n: int = DEFAULT_SUMMARIZE_COMMITS,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Asks the AI to derive a context entry from recent git history and saves it."""
        vcs = self.vcs_factory(cwd)
        prompt = self.prompt_composer.build_summarize_prompt(
            vcs.recent_commits(n), vcs.changed_files(n), vcs.diff_stat()
        )
        try:
            parsed = await self._ask_json(prompt, api_key, base_url)
        except (AIClientError, OpenAIError, json.JSONDecodeError) as e:
            logger.warning(f"Summarize failed: {e}")
            return {"ok": False, "msg": str(e)}
        if not isinstance(parsed, dict) or not parsed.get("task"):
            return {"ok": False, "msg": "AI reply did not contain a task."}

        record = await self.store_factory(cwd).save({**parsed, "branch": vcs.current_branch()})
        return {"ok": True, "id": record.id, "tokens": record.token_count, "summary": parsed}

    async def suggest(
        self, cwd: Path, api_key: Optional[str] = None, base_url: Optional[str] = None
    ) -> Dict[str, Any]:
        """Asks the AI for next steps based on the latest saved entry."""
        branch = self.vcs_factory(cwd).current_branch()
        record = await self.store_factory(cwd).load_latest(branch)
        if record is None:
            return {"ok": False, "msg": "No context found. Run devctx save first."}

        prompt = self.prompt_composer.build_suggest_prompt(record)
        try:
            parsed = await self._ask_json(prompt, api_key, base_url)
        except (AIClientError, OpenAIError, json.JSONDecodeError) as e:
            logger.warning(f"Suggest failed: {e}")
            return {"ok": False, "msg": str(e)}
        suggestions = parsed.get("nextSteps", parsed) if isinstance(parsed, dict) else parsed
        return {"ok": True, "task": record.task, "suggestions": suggestions}

    async def config_set(self, cwd: Path, key: str, value: Any) -> Dict[str, Any]:
        store = self.store_factory(cwd)
        if not await store.is_initialized():
            return {"ok": False, "msg": "Not initialized."}
        config = await store.load_config() or {}
        config[key] = _parse_config_value(value)
        await store.save_config(config)
        return {"ok": True, "key": key, "value": config[key]}

    async def config_list(self, cwd: Path) -> Dict[str, Any]:
        config = await self.store_factory(cwd).load_config()
        return config if config is not None else {"error": "Not initialized."}
