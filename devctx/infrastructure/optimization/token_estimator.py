"""Service for estimating token counts for text or whole context records.

Uses a fixed characters-per-token approximation instead of a real tokenizer.
The counts only drive relative budgeting, so a deterministic estimate that
needs no model-specific vocabulary is enough.
Bounded Context: Token Management
"""

import logging
import math
from typing import Optional

from devctx.domain.models.common import TokenCount
from devctx.domain.models.context import Approach, ContextRecord

logger = logging.getLogger(__name__)

APPROX_CHARS_PER_TOKEN = 4 # One token per four characters, rounded up


class TokenEstimator:
    """Estimates token counts with the characters-per-token approximation."""

    def __init__(self, chars_per_token: int = APPROX_CHARS_PER_TOKEN):
        if chars_per_token <= 0:
            raise ValueError(f"chars_per_token must be positive, got {chars_per_token}")
        self.chars_per_token = chars_per_token

    def estimate_tokens(self, text: Optional[str]) -> TokenCount:
        """Estimates the token count for a single string of text.

        Args:
            text: The text to estimate tokens for. ``None`` and empty strings cost 0.

        Returns:
            The estimated token count.
        """
        if not text:
            return TokenCount(0)
        return TokenCount(math.ceil(len(text) / self.chars_per_token))

    def estimate_tokens_for_approach(self, approach: Approach) -> TokenCount:
        return TokenCount(
            self.estimate_tokens(approach.description) + self.estimate_tokens(approach.reason)
        )

    def estimate_tokens_for_record(self, record: ContextRecord) -> TokenCount:
        """Estimates the token count of an untrimmed record.

        Sums task, goal, state, every decision, next step, constraint and
        changed file, plus description and reason of every approach.
        """
        total = (
            self.estimate_tokens(record.task)
            + self.estimate_tokens(record.goal)
            + self.estimate_tokens(record.state)
        )
        for items in (record.decisions, record.next_steps, record.constraints, record.files_changed):
            total += sum(self.estimate_tokens(item) for item in items)
        total += sum(self.estimate_tokens_for_approach(a) for a in record.approaches)
        logger.debug(f"Estimated {total} tokens for record '{record.task[:40]}'")
        return TokenCount(total)
