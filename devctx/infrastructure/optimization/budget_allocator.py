"""Service for fitting a context record into a token budget.

Allocation is greedy and strictly ordered by field priority:

    task + state (always kept) > goal > next steps > decisions
    > failed approaches > constraints

The goal is all-or-nothing. Each list is scanned in its original order and
stops at the first item that does not fit, even if later items are smaller.
A category is finished before the next one starts and never hands budget
back to an earlier one. This is a deliberate simplification over optimal
subset packing: the output is predictable and every kept list is a prefix
of its source.
Bounded Context: Prompt Optimization
"""

import logging
from typing import Callable, Sequence, Tuple, TypeVar

from devctx.domain.models.common import TokenCount
from devctx.domain.models.context import ContextRecord, TrimmedRecord
from devctx.infrastructure.optimization.tiers import classify
from devctx.infrastructure.optimization.token_estimator import TokenEstimator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BudgetAllocator:
    """Trims records to fit within token budgets."""

    def __init__(self, token_estimator: TokenEstimator):
        """Initializes the BudgetAllocator.

        Args:
            token_estimator: The estimator used to price every field.
        """
        self.token_estimator = token_estimator

    def trim(self, record: ContextRecord, budget: int) -> TrimmedRecord:
        """Returns a copy of ``record`` that fits ``budget``.

        The source record is never modified. If task and state alone exceed
        the budget they are still kept, and everything optional is dropped.

        Args:
            record: The untrimmed record.
            budget: Maximum approximate tokens. Zero or negative keeps only task and state.

        Returns:
            A TrimmedRecord carrying ``tokens_used`` and the budget's tier.
        """
        estimate = self.token_estimator.estimate_tokens
        used = estimate(record.task) + estimate(record.state)

        goal = record.goal
        goal_cost = estimate(goal)
        if goal and used + goal_cost <= budget:
            used += goal_cost
        else:
            goal = None

        next_steps, used = self._take_prefix(record.next_steps, estimate, used, budget)
        decisions, used = self._take_prefix(record.decisions, estimate, used, budget)
        approaches, used = self._take_prefix(
            record.failed_approaches,
            self.token_estimator.estimate_tokens_for_approach,
            used,
            budget,
        )
        constraints, used = self._take_prefix(record.constraints, estimate, used, budget)

        tier = classify(budget)
        logger.debug(
            f"Trimmed record to {used}/{budget} tokens ({tier.value}): "
            f"{len(next_steps)}/{len(record.next_steps)} next steps, "
            f"{len(decisions)}/{len(record.decisions)} decisions, "
            f"{len(approaches)} failed approaches, "
            f"{len(constraints)}/{len(record.constraints)} constraints"
        )
        return TrimmedRecord.from_record(
            record,
            goal=goal,
            next_steps=next_steps,
            decisions=decisions,
            approaches=approaches,
            constraints=constraints,
            tokens_used=TokenCount(used),
            tier=tier,
        )

    @staticmethod
    def _take_prefix(
        items: Sequence[T], cost: Callable[[T], int], used: int, budget: int
    ) -> Tuple[Tuple[T, ...], int]:
        """Keeps items in order until the first one that would overflow."""
        kept = []
        for item in items:
            item_cost = cost(item)
            if used + item_cost > budget:
                break
            kept.append(item)
            used += item_cost
        return tuple(kept), used
