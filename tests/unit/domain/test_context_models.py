import dataclasses

import pytest

from devctx.domain.models.context import (
    Approach, ApproachKind, ContextRecord, Tier, TrimmedRecord,
)


def test_bare_string_approach_is_a_note():
    approach = Approach.from_raw("Tried caching")
    assert approach.kind is ApproachKind.NOTE
    assert approach.description == "Tried caching"
    assert approach.failed is False
    assert approach.reason is None

def test_structured_approach():
    approach = Approach.from_raw({"description": "Used Redis", "failed": True, "reason": "too heavy"})
    assert approach.kind is ApproachKind.OUTCOME
    assert approach.failed is True
    assert approach.render() == "Used Redis (too heavy)"

@pytest.mark.parametrize("flag", ["true", 1, "yes", None])
def test_only_boolean_true_marks_failure(flag):
    assert Approach.from_raw({"description": "x", "failed": flag}).failed is False

def test_missing_description_becomes_empty():
    approach = Approach.from_raw({"failed": True})
    assert approach.description == ""
    assert approach.render() == ""

def test_unsupported_approach_entries_are_skipped(caplog):
    record = ContextRecord.from_dict({
        "task": "Add retry logic",
        "approaches": [42, {"description": "Used Redis", "failed": True}, ["nested"]],
    })
    assert [a.description for a in record.approaches] == ["Used Redis"]
    assert "Skipping unsupported approach entry of type int" in caplog.text

def test_approach_to_raw_keeps_original_shape():
    assert Approach.note("Tried caching").to_raw() == "Tried caching"
    assert Approach(description="Loop", failed=False).to_raw() == {"description": "Loop", "failed": False}
    assert Approach(description="Redis", failed=True, reason="heavy").to_raw() == {
        "description": "Redis", "failed": True, "reason": "heavy",
    }

def test_from_dict_accepts_camel_and_snake_case():
    camel = ContextRecord.from_dict({"task": "T", "nextSteps": ["a"], "filesChanged": ["f"], "tokenCount": 3})
    snake = ContextRecord.from_dict({"task": "T", "next_steps": ["a"], "files_changed": ["f"], "token_count": 3})
    assert camel == snake
    assert camel.next_steps == ("a",)
    assert camel.token_count == 3

def test_from_dict_defaults():
    record = ContextRecord.from_dict({"task": "T", "goal": "", "decisions": None})
    assert record.goal is None
    assert record.decisions == ()
    assert record.branch == "main"
    assert record.meta == {}

def test_from_dict_drops_null_items():
    record = ContextRecord.from_dict({"task": "T", "decisions": ["a", None, "b"], "approaches": [None, "x"]})
    assert record.decisions == ("a", "b")
    assert len(record.approaches) == 1

def test_from_dict_rejects_non_mapping():
    with pytest.raises(TypeError, match="must be a mapping"):
        ContextRecord.from_dict(["task"])

def test_to_dict_uses_on_disk_keys(retry_record):
    data = retry_record.to_dict()
    assert data["nextSteps"] == ["Write tests", "Update docs", "Refactor client"]
    assert data["filesChanged"] == ["src/client.py"]
    assert data["approaches"][1] == "Tried caching"
    assert ContextRecord.from_dict(data) == retry_record

def test_failed_approaches_filters_by_flag(retry_record):
    assert [a.description for a in retry_record.failed_approaches] == ["Used Redis", "Custom decorator"]

def test_records_are_immutable(retry_record):
    with pytest.raises(dataclasses.FrozenInstanceError):
        retry_record.task = "changed"

def test_meta_ignored_for_equality():
    assert ContextRecord(task="T", meta={"a": 1}) == ContextRecord(task="T")

def test_trimmed_record_from_record(retry_record):
    trimmed = TrimmedRecord.from_record(retry_record, goal=None, tokens_used=12, tier=Tier.STANDARD)
    assert trimmed.task == retry_record.task
    assert trimmed.goal is None
    assert trimmed.meta is not retry_record.meta
    data = trimmed.to_dict()
    assert data["tokensUsed"] == 12
    assert data["tier"] == "standard"
