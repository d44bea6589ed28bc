"""Prompt Optimization Implementations.

Contains services for estimating token counts, fitting saved context into
a token budget and composing prompts from the result. Everything here is
pure and synchronous.
Bounded Context: Prompt Optimization / Token Management
"""

from devctx.infrastructure.optimization.token_estimator import TokenEstimator
from devctx.infrastructure.optimization.tiers import TIER_BUDGETS, classify, resolve_budget
from devctx.infrastructure.optimization.budget_allocator import BudgetAllocator
from devctx.infrastructure.optimization.prompt_composer import ComposedPrompt, PromptComposer

__all__ = [
    'TokenEstimator', 'TIER_BUDGETS', 'classify', 'resolve_budget',
    'BudgetAllocator', 'ComposedPrompt', 'PromptComposer',
]
