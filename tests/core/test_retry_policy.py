"""Retry Policy — verifies the backoff schedule and attempt budget.

Invariants:
    - delay_ms(1) == base, each further attempt multiplies by backoff_multiplier
    - Explicit max_attempts overrides the pool-derived budget
    - Invalid configuration rejected at construction
"""

import pytest

from keyrelay.core.retry_policy import RetryPolicy


def test_default_schedule_is_2s_then_3s_then_4_5s():
    policy = RetryPolicy()
    assert policy.delay_ms(1) == 2000
    assert policy.delay_ms(2) == 3000
    assert policy.delay_ms(3) == 4500


def test_custom_schedule():
    policy = RetryPolicy(base_delay_ms=100, backoff_multiplier=2)
    assert [policy.delay_ms(n) for n in (1, 2, 3)] == [100, 200, 400]


def test_budget_defaults_to_pool():
    assert RetryPolicy().attempt_budget(4) == 4


def test_explicit_budget_wins():
    assert RetryPolicy(max_attempts=7).attempt_budget(4) == 7


@pytest.mark.parametrize("kwargs", [
    {"base_delay_ms": -1},
    {"backoff_multiplier": 0.5},
    {"override_retry_delay_ms": -5},
    {"max_attempts": 0},
])
def test_invalid_policy_rejected(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
