"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like prompt text, token counts and
budgets, keeping signatures self-describing across layers.
"""

from typing import NewType, TypedDict, Optional

# === Core Value Objects ===

PromptText = NewType("PromptText", str)        # Composed prompt handed to an assistant

# === Context Storage ===
EntryId = NewType("EntryId", str)              # "<epoch-ms>_<4 base36 chars>"

# === Token Management ===
TokenCount = NewType("TokenCount", int)        # Approximate number of tokens
Budget = NewType("Budget", int)                # Maximum approximate tokens a prompt may consume

# --- Structured Data ---
class TokenUsage(TypedDict):
    """Represents token usage information from an AI call."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

class IndexEntry(TypedDict):
    """One row of a branch's index.json."""
    id: EntryId
    timestamp: str
    task: str
    tokenCount: TokenCount

class GitUser(TypedDict):
    name: str
    email: Optional[str]
