import pytest

from devctx.domain.models.context import Approach, ContextRecord
from devctx.infrastructure.optimization.token_estimator import TokenEstimator


@pytest.mark.parametrize("text, expected", [
    (None, 0),
    ("", 0),
    ("a", 1),
    ("abcd", 1),
    ("abcde", 2),
    ("x" * 400, 100),
])
def test_estimate_tokens_rounds_up(estimator, text, expected):
    assert estimator.estimate_tokens(text) == expected

def test_estimate_tokens_counts_characters_not_bytes(estimator):
    """Non-ASCII text is priced by code points."""
    assert estimator.estimate_tokens("héllo wörld") == 3

def test_custom_chars_per_token():
    assert TokenEstimator(chars_per_token=2).estimate_tokens("abcde") == 3

def test_non_positive_chars_per_token_rejected():
    with pytest.raises(ValueError, match="must be positive"):
        TokenEstimator(chars_per_token=0)

def test_approach_cost_includes_reason(estimator):
    approach = Approach(description="Used Redis", failed=True, reason="too heavy")
    # ceil(10/4) + ceil(9/4)
    assert estimator.estimate_tokens_for_approach(approach) == 6

def test_approach_without_description_is_free(estimator):
    assert estimator.estimate_tokens_for_approach(Approach.from_raw({"failed": True})) == 0

def test_record_cost_sums_every_field(estimator):
    record = ContextRecord.from_dict({
        "task": "abcd",                       # 1
        "goal": "abcdefgh",                   # 2
        "state": "abc",                       # 1
        "decisions": ["abcd", "abcde"],       # 1 + 2
        "nextSteps": ["abcd"],                # 1
        "constraints": ["ab"],                # 1
        "filesChanged": ["src/a.py"],         # 2
        "approaches": [
            "abcd",                                               # 1
            {"description": "abcd", "failed": True, "reason": "ab"},  # 1 + 1
        ],
    })
    assert estimator.estimate_tokens_for_record(record) == 14

def test_record_cost_of_bare_task(estimator):
    assert estimator.estimate_tokens_for_record(ContextRecord(task="Add retry logic")) == 4
