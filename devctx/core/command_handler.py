"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work
to the ContextService and renders the resulting payloads through the
UserInterface. Every ``handle_*`` method returns True on success so the CLI
can pick its exit code; unexpected errors are logged and displayed rather
than escaping to Typer.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from devctx.core.services.context_service import ContextService
from devctx.domain.interfaces.user_interface import UserInterface
from devctx.domain.models.common import PromptText

logger = logging.getLogger(__name__)

class CommandHandler:
    """Handles incoming commands and delegates to the context service."""

    def __init__(self, context_service: ContextService, ui: UserInterface):
        """Initializes the CommandHandler with required services."""
        self.context_service = context_service
        self.ui = ui

    def _report(self, result: Dict[str, Any]) -> bool:
        """Shows an ok/msg payload; returns whether it reported success."""
        if result.get("ok", True):
            self.ui.display_info(result.get("msg", "Done."))
            return True
        self.ui.display_error(result.get("msg", "Command failed."))
        return False

    async def handle_init(self, cwd: Path) -> bool:
        logger.info(f"Handling 'init' in {cwd}")
        try:
            return self._report(await self.context_service.init(cwd))
        except Exception as e:
            logger.error(f"Init command failed: {e}", exc_info=True)
            self.ui.display_error(f"Init failed: {e}")
            return False

    async def handle_save(self, cwd: Path, fields: Mapping[str, Any]) -> bool:
        logger.info(f"Handling 'save' in {cwd}")
        try:
            result = await self.context_service.save(cwd, fields)
        except Exception as e:
            logger.error(f"Save command failed: {e}", exc_info=True)
            self.ui.display_error(f"Save failed: {e}")
            return False
        self.ui.display_info(
            f"Saved {result['id']} on '{result['branch']}' ({result['tokens']} tokens): {result['task']}"
        )
        return True

    async def handle_resume(
        self,
        cwd: Path,
        branch: Optional[str] = None,
        entry_id: Optional[str] = None,
        tier: Optional[str] = None,
        budget: Optional[int] = None,
        focus: Optional[str] = None,
        raw: bool = False,
    ) -> bool:
        logger.info(f"Handling 'resume' in {cwd} (tier={tier}, budget={budget})")
        try:
            result = await self.context_service.resume(cwd, branch, entry_id, tier, budget, focus)
        except Exception as e:
            logger.error(f"Resume command failed: {e}", exc_info=True)
            self.ui.display_error(f"Resume failed: {e}")
            return False

        if not result["found"]:
            self.ui.display_warning(result["msg"])
            return False
        self.ui.display_prompt(
            PromptText(result["prompt"]),
            raw=raw,
            title=f"{result['task']} ({result['branch']}, saved {result['savedAt']})",
            subtitle=(
                f"{result['tier']} · {result['tokensUsed']}/{result['budget']} field tokens"
                f" · ~{result['promptTokens']} prompt tokens"
            ),
        )
        return True

    async def handle_log(self, cwd: Path, branch: Optional[str] = None, limit: int = 10) -> bool:
        logger.info(f"Handling 'log' in {cwd} (branch={branch or 'all'})")
        try:
            result = await self.context_service.log(cwd, branch, limit)
        except Exception as e:
            logger.error(f"Log command failed: {e}", exc_info=True)
            self.ui.display_error(f"Log failed: {e}")
            return False
        self.ui.display_entries(result["entries"], title=f"Context history ({result['count']})")
        return True

    async def handle_diff(self, cwd: Path) -> bool:
        logger.info(f"Handling 'diff' in {cwd}")
        try:
            result = await self.context_service.diff(cwd)
        except Exception as e:
            logger.error(f"Diff command failed: {e}", exc_info=True)
            self.ui.display_error(f"Diff failed: {e}")
            return False
        self.ui.display_prompt(
            PromptText(result["diff"]), title=f"Changes on {result['branch']} since {result['since']}"
        )
        return True

    async def handle_handoff(self, cwd: Path, to: str, fields: Mapping[str, Any], raw: bool = False) -> bool:
        logger.info(f"Handling 'handoff' to {to} in {cwd}")
        try:
            result = await self.context_service.handoff(cwd, to, fields)
        except Exception as e:
            logger.error(f"Handoff command failed: {e}", exc_info=True)
            self.ui.display_error(f"Handoff failed: {e}")
            return False
        self.ui.display_prompt(
            PromptText(result["prompt"]),
            raw=raw,
            title=f"Handoff to {result['to']} ({result['id']})",
            subtitle=f"~{result['promptTokens']} prompt tokens",
        )
        return True

    async def handle_share(self, cwd: Path) -> bool:
        logger.info(f"Handling 'share' in {cwd}")
        try:
            return self._report(await self.context_service.share(cwd))
        except Exception as e:
            logger.error(f"Share command failed: {e}", exc_info=True)
            self.ui.display_error(f"Share failed: {e}")
            return False

    async def handle_summarize(
        self, cwd: Path, n: int, api_key: Optional[str], base_url: Optional[str]
    ) -> bool:
        logger.info(f"Handling 'summarize' over {n} commits in {cwd}")
        try:
            result = await self.context_service.summarize(cwd, n, api_key, base_url)
        except Exception as e:
            logger.error(f"Summarize command failed: {e}", exc_info=True)
            self.ui.display_error(f"Summarize failed: {e}")
            return False
        if not result["ok"]:
            return self._report(result)
        self.ui.display_mapping(result["summary"], title=f"Saved {result['id']} ({result['tokens']} tokens)")
        return True

    async def handle_suggest(self, cwd: Path, api_key: Optional[str], base_url: Optional[str]) -> bool:
        logger.info(f"Handling 'suggest' in {cwd}")
        try:
            result = await self.context_service.suggest(cwd, api_key, base_url)
        except Exception as e:
            logger.error(f"Suggest command failed: {e}", exc_info=True)
            self.ui.display_error(f"Suggest failed: {e}")
            return False
        if not result["ok"]:
            return self._report(result)

        suggestions = result["suggestions"]
        if isinstance(suggestions, list):
            rows = {
                str(i): (
                    f"{s.get('step', '')} (priority: {s.get('priority', '?')}; {s.get('why', '')})"
                    if isinstance(s, dict) else str(s)
                )
                for i, s in enumerate(suggestions, 1)
            }
        else:
            rows = {"suggestions": suggestions}
        self.ui.display_mapping(rows, title=f"Next steps for: {result['task']}")
        return True

    async def handle_config_set(self, cwd: Path, key: str, value: str) -> bool:
        logger.info(f"Handling 'config-set' {key} in {cwd}")
        try:
            result = await self.context_service.config_set(cwd, key, value)
        except Exception as e:
            logger.error(f"Config-set command failed: {e}", exc_info=True)
            self.ui.display_error(f"Config update failed: {e}")
            return False
        if not result["ok"]:
            return self._report(result)
        self.ui.display_info(f"{result['key']} = {result['value']!r}")
        return True

    async def handle_config_list(self, cwd: Path) -> bool:
        logger.info(f"Handling 'config-list' in {cwd}")
        try:
            config = await self.context_service.config_list(cwd)
        except Exception as e:
            logger.error(f"Config-list command failed: {e}", exc_info=True)
            self.ui.display_error(f"Config listing failed: {e}")
            return False
        if "error" in config:
            self.ui.display_error(config["error"])
            return False
        self.ui.display_mapping(config, title="devctx configuration")
        return True
