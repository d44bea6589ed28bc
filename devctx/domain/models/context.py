"""Domain models for saved work-in-progress context.

A ``ContextRecord`` is what the store persists: the task at hand plus the
decisions, next steps, constraints and approaches that let an assistant
pick the work back up. A ``TrimmedRecord`` is a budget-fitted copy of one,
produced by the budget allocator and consumed by the prompt composer.

Approaches arrive either as bare strings ("tried this", outcome unknown) or
as mappings with ``description``/``failed``/``reason``. Both shapes are
normalized into a single tagged ``Approach`` value here, at the boundary,
so nothing downstream has to branch on the runtime shape.
"""

import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from devctx.domain.models.common import TokenCount

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


class Tier(str, Enum):
    """Named preset budgets. Descriptive only; the allocator reads the number."""
    MINIMAL = "minimal"
    STANDARD = "standard"
    FULL = "full"


class ApproachKind(str, Enum):
    NOTE = "note"          # bare string: tried, outcome unspecified
    OUTCOME = "outcome"    # structured entry with an explicit failed flag


@dataclass(frozen=True)
class Approach:
    """A previously attempted solution."""
    description: str = ""
    failed: bool = False
    reason: Optional[str] = None
    kind: ApproachKind = ApproachKind.OUTCOME

    @classmethod
    def note(cls, text: str) -> "Approach":
        return cls(description=text, failed=False, reason=None, kind=ApproachKind.NOTE)

    @classmethod
    def from_raw(cls, raw: Union[str, Mapping[str, Any], "Approach"]) -> "Approach":
        """Normalizes a bare string or a mapping into an Approach.

        Only ``failed is True`` marks an approach as failed; truthy strings or
        numbers do not. A mapping without a description is kept with empty
        text so it costs nothing.
        """
        if isinstance(raw, Approach):
            return raw
        if isinstance(raw, str):
            return cls.note(raw)
        if isinstance(raw, Mapping):
            description = raw.get("description")
            reason = raw.get("reason")
            return cls(
                description=str(description) if description is not None else "",
                failed=raw.get("failed") is True,
                reason=str(reason) if reason else None,
                kind=ApproachKind.OUTCOME,
            )
        raise TypeError(f"Unsupported approach entry of type {type(raw).__name__}: {raw!r}")

    def to_raw(self) -> Union[str, Dict[str, Any]]:
        """Inverse of from_raw, used when persisting."""
        if self.kind is ApproachKind.NOTE:
            return self.description
        raw: Dict[str, Any] = {"description": self.description, "failed": self.failed}
        if self.reason:
            raw["reason"] = self.reason
        return raw

    def render(self) -> str:
        return f"{self.description} ({self.reason})" if self.reason else self.description


def _text_items(items: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    if not items:
        return ()
    if isinstance(items, str):
        return (items,)
    return tuple(str(item) for item in items if item is not None)


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _is_approach_entry(raw: Any) -> bool:
    """Strings, mappings and Approach values are kept; anything else is logged and dropped."""
    if isinstance(raw, (str, Mapping, Approach)):
        return True
    if raw is not None:
        logger.warning(f"Skipping unsupported approach entry of type {type(raw).__name__}: {raw!r}")
    return False


@dataclass(frozen=True)
class ContextRecord:
    """A saved context entry. Immutable once persisted."""
    task: str
    goal: Optional[str] = None
    state: Optional[str] = None
    decisions: Tuple[str, ...] = ()
    next_steps: Tuple[str, ...] = ()
    constraints: Tuple[str, ...] = ()
    approaches: Tuple[Approach, ...] = ()
    files_changed: Tuple[str, ...] = ()
    author: Optional[str] = None
    branch: str = DEFAULT_BRANCH
    timestamp: Optional[str] = None
    id: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict, compare=False)
    token_count: TokenCount = TokenCount(0)

    @property
    def failed_approaches(self) -> Tuple[Approach, ...]:
        return tuple(a for a in self.approaches if a.failed)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContextRecord":
        """Builds a record from persisted JSON (camelCase) or snake_case input."""
        if not isinstance(data, Mapping):
            raise TypeError(f"Context record must be a mapping, got {type(data).__name__}")
        approaches = tuple(
            Approach.from_raw(raw)
            for raw in (data.get("approaches") or ())
            if _is_approach_entry(raw)
        )
        return cls(
            task=str(data.get("task") or ""),
            goal=data.get("goal") or None,
            state=data.get("state") or None,
            decisions=_text_items(data.get("decisions")),
            next_steps=_text_items(_pick(data, "nextSteps", "next_steps")),
            constraints=_text_items(data.get("constraints")),
            approaches=approaches,
            files_changed=_text_items(_pick(data, "filesChanged", "files_changed")),
            author=data.get("author") or None,
            branch=str(data.get("branch") or DEFAULT_BRANCH),
            timestamp=data.get("timestamp") or None,
            id=data.get("id") or None,
            meta=dict(data.get("meta") or {}),
            token_count=TokenCount(int(_pick(data, "tokenCount", "token_count") or 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serializes to the on-disk JSON shape."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "branch": self.branch,
            "task": self.task,
            "goal": self.goal,
            "state": self.state,
            "approaches": [a.to_raw() for a in self.approaches],
            "decisions": list(self.decisions),
            "nextSteps": list(self.next_steps),
            "constraints": list(self.constraints),
            "filesChanged": list(self.files_changed),
            "author": self.author,
            "meta": dict(self.meta),
            "tokenCount": self.token_count,
        }


@dataclass(frozen=True)
class TrimmedRecord(ContextRecord):
    """A ContextRecord cut down to a token budget.

    ``approaches`` holds failed approaches only. ``tokens_used`` is the
    allocator's running total, ``tier`` the label of the budget it ran with.
    """
    tokens_used: TokenCount = TokenCount(0)
    tier: Tier = Tier.MINIMAL

    @classmethod
    def from_record(cls, record: ContextRecord, **changes: Any) -> "TrimmedRecord":
        values = {f.name: getattr(record, f.name) for f in fields(ContextRecord)}
        values["meta"] = dict(record.meta)
        values.update(changes)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["tokensUsed"] = self.tokens_used
        data["tier"] = self.tier.value
        return data
