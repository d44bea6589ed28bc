"""Canonical budget tiers and the budget-to-tier classifier."""

import logging
from typing import Dict, Optional, Union

from devctx.domain.models.common import Budget
from devctx.domain.models.context import Tier

logger = logging.getLogger(__name__)

TIER_BUDGETS: Dict[Tier, Budget] = {
    Tier.MINIMAL: Budget(80),    # task + state + one next step
    Tier.STANDARD: Budget(250),  # + decisions + failed approaches
    Tier.FULL: Budget(600),      # everything
}

DEFAULT_TIER = Tier.STANDARD


def classify(budget: int) -> Tier:
    """Maps a numeric budget to its tier label."""
    if budget <= TIER_BUDGETS[Tier.MINIMAL]:
        return Tier.MINIMAL
    if budget <= TIER_BUDGETS[Tier.STANDARD]:
        return Tier.STANDARD
    return Tier.FULL


def parse_tier(name: Union[str, Tier, None]) -> Tier:
    """Resolves a tier name, falling back to the default tier for unknown names."""
    if isinstance(name, Tier):
        return name
    if not name:
        return DEFAULT_TIER
    try:
        return Tier(str(name).strip().lower())
    except ValueError:
        logger.warning(f"Unknown tier '{name}', using '{DEFAULT_TIER.value}'.")
        return DEFAULT_TIER


def resolve_budget(tier: Union[str, Tier, None] = None, budget: Optional[int] = None) -> Budget:
    """Returns the explicit budget if given, else the preset budget of ``tier``."""
    if budget is not None:
        return Budget(int(budget))
    return TIER_BUDGETS[parse_tier(tier)]
