"""Service for turning saved context into prompts for an AI assistant.

Resume prompts come in three tiers; use the smallest that answers the
question, since editors often inject the prompt into every message:

    minimal  (~80 tokens)   task + state + next step
    standard (~250 tokens)  + decisions + failed approaches
    full     (~600 tokens)  everything

Sections are one line each and only appear when there is data for them.
Bounded Context: Prompt Optimization
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from devctx.domain.models.common import Budget, PromptText, TokenCount
from devctx.domain.models.context import ContextRecord, Tier, TrimmedRecord
from devctx.infrastructure.optimization.budget_allocator import BudgetAllocator
from devctx.infrastructure.optimization.tiers import TIER_BUDGETS, resolve_budget
from devctx.infrastructure.optimization.token_estimator import TokenEstimator

logger = logging.getLogger(__name__)

LIST_SEPARATOR = " | "
HANDOFF_BUDGET = TIER_BUDGETS[Tier.FULL]
SUMMARIZE_MAX_COMMITS = 8
SUMMARIZE_MAX_FILES = 10


@dataclass(frozen=True)
class ComposedPrompt:
    """A rendered prompt plus the numbers callers report back."""
    text: PromptText
    prompt_tokens: TokenCount   # estimated cost of ``text`` itself
    tokens_used: TokenCount     # allocator's running total for the record fields
    tier: Tier
    budget: Budget


def _joined(items: Sequence[str]) -> str:
    return LIST_SEPARATOR.join(items)


class PromptComposer:
    """Builds resume, handoff and AI-helper prompts."""

    def __init__(self, token_estimator: TokenEstimator, budget_allocator: BudgetAllocator):
        self.token_estimator = token_estimator
        self.budget_allocator = budget_allocator

    def compose(
        self, trimmed: TrimmedRecord, source: ContextRecord, focus: Optional[str] = None
    ) -> PromptText:
        """Renders the resume prompt for an already trimmed record.

        Args:
            trimmed: Output of the budget allocator.
            source: The untrimmed record; supplies the branch/date footer.
            focus: Replaces the closing directive verbatim when given.

        Returns:
            The newline-joined prompt.
        """
        parts: List[str] = [f"You are pair-programming on: {trimmed.task}"]

        if trimmed.goal:
            parts.append(f"Why: {trimmed.goal}")
        if trimmed.state:
            parts.append(f"State: {trimmed.state}")
        if trimmed.constraints:
            parts.append(f"Constraints: {_joined(trimmed.constraints)}")
        if trimmed.decisions:
            parts.append(f"Settled decisions (don't relitigate): {_joined(trimmed.decisions)}")

        failed = [text for text in (a.render() for a in trimmed.approaches if a.failed) if text]
        if failed:
            parts.append(f"Already failed — do NOT suggest: {_joined(failed)}")

        if trimmed.next_steps:
            parts.append(f"Next: {trimmed.next_steps[0]}")
            if len(trimmed.next_steps) > 1 and trimmed.tier is not Tier.MINIMAL:
                parts.append(f"Backlog: {_joined(trimmed.next_steps[1:])}")

        parts.append(f"Branch: {source.branch} | Saved: {self._saved_date(source)}")

        if focus:
            parts.append(f"\nFocus: {focus}")
        elif trimmed.next_steps:
            parts.append("\nContinue from next step. Ask clarifying questions if needed.")
        else:
            parts.append("\nConfirm you understand the context, then ask what to work on.")

        return PromptText("\n".join(parts))

    def resume(
        self,
        record: ContextRecord,
        tier: Union[str, Tier, None] = None,
        budget: Optional[int] = None,
        focus: Optional[str] = None,
    ) -> ComposedPrompt:
        """Trims ``record`` to a tier or explicit budget and composes the resume prompt.

        An explicit ``budget`` wins over ``tier``. Unknown tier names fall
        back to the standard tier.
        """
        effective_budget = resolve_budget(tier, budget)
        trimmed = self.budget_allocator.trim(record, effective_budget)
        text = self.compose(trimmed, record, focus)
        return self._package(text, trimmed, effective_budget)

    def compose_handoff(self, record: ContextRecord, from_user: str, to_user: str) -> ComposedPrompt:
        """Composes a teammate handoff prompt.

        Always trims at the full budget, whatever tier the caller works with.
        """
        trimmed = self.budget_allocator.trim(record, HANDOFF_BUDGET)
        parts: List[str] = [
            f"HANDOFF: {from_user} → {to_user}",
            f"Task: {trimmed.task}",
        ]
        if trimmed.goal:
            parts.append(f"Why: {trimmed.goal}")
        if trimmed.state:
            parts.append(f"Where we left off: {trimmed.state}")
        if trimmed.decisions:
            parts.append(f"Settled (don't re-debate): {_joined(trimmed.decisions)}")

        failed = [a.description for a in trimmed.approaches if a.failed and a.description]
        if failed:
            parts.append(f"These failed: {_joined(failed)}")

        if trimmed.next_steps:
            parts.append(f"Your first move: {trimmed.next_steps[0]}")
            if len(trimmed.next_steps) > 1:
                parts.append(f"Then: {_joined(trimmed.next_steps[1:])}")
        parts.append(f"Branch: {record.branch}")

        return self._package(PromptText("\n".join(parts)), trimmed, HANDOFF_BUDGET)

    def build_summarize_prompt(
        self, commits: Sequence[str], files: Sequence[str], diff_stat: Optional[str]
    ) -> PromptText:
        """Prompt asking an AI to extract a context record from git data, as JSON."""
        commit_text = _joined(commits[:SUMMARIZE_MAX_COMMITS]) or "none"
        file_text = ", ".join(files[:SUMMARIZE_MAX_FILES]) or "none"
        return PromptText(
            "Extract coding context from this git data as JSON only (no markdown):\n"
            f"Commits: {commit_text}\n"
            f"Files: {file_text}\n"
            f"Diff stats: {diff_stat or 'none'}\n"
            "\n"
            "Return ONLY this JSON shape:\n"
            '{"task":"one-line description","goal":"why","state":"current state",'
            '"decisions":[],"nextSteps":[],"filesChanged":[]}'
        )

    def build_suggest_prompt(self, record: ContextRecord) -> PromptText:
        """Prompt asking an AI for three prioritized next steps, as JSON."""
        return PromptText(
            "Given this coding context, suggest 3 next steps as JSON only:\n"
            f"Task: {record.task}\n"
            f"State: {record.state or 'unknown'}\n"
            f"Decisions: {_joined(record.decisions) or 'none'}\n"
            "\n"
            'Return ONLY: {"nextSteps":[{"step":"...","priority":"high|medium|low","why":"..."}]}'
        )

    def _package(self, text: PromptText, trimmed: TrimmedRecord, budget: Budget) -> ComposedPrompt:
        prompt_tokens = self.token_estimator.estimate_tokens(text)
        logger.debug(
            f"Composed {trimmed.tier.value} prompt: {prompt_tokens} prompt tokens, "
            f"{trimmed.tokens_used}/{budget} field tokens"
        )
        return ComposedPrompt(
            text=text,
            prompt_tokens=prompt_tokens,
            tokens_used=trimmed.tokens_used,
            tier=trimmed.tier,
            budget=budget,
        )

    @staticmethod
    def _saved_date(record: ContextRecord) -> str:
        return record.timestamp[:10] if record.timestamp else "unknown"
