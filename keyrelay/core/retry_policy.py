"""Retry Policy — backoff schedule and attempt budget for the retry executor.

Invariants:
    - delay_ms(n) = base_delay_ms * backoff_multiplier ** (n - 1), n counted from 1
    - attempt_budget() defers to the pool's max_attempts() unless
      max_attempts pins an explicit budget
    - Override path waits a fixed override_retry_delay_ms, exactly once

Design Decisions:
    - Frozen dataclass validated in __post_init__: invalid budgets fail at startup,
      not mid-request
    - Pure arithmetic, no sleeping here — the executor owns suspension
"""

from dataclasses import dataclass

DEFAULT_BASE_DELAY_MS = 2000
DEFAULT_BACKOFF_MULTIPLIER = 1.5
DEFAULT_OVERRIDE_RETRY_DELAY_MS = 2000


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff and attempt-budget configuration."""
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    override_retry_delay_ms: int = DEFAULT_OVERRIDE_RETRY_DELAY_MS
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")
        if self.override_retry_delay_ms < 0:
            raise ValueError("override_retry_delay_ms must be >= 0")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def delay_ms(self, attempt: int) -> float:
        """Backoff before the next try, after `attempt` failures (1-based)."""
        return self.base_delay_ms * self.backoff_multiplier ** (attempt - 1)

    def attempt_budget(self, pool_default: int) -> int:
        """Explicit max_attempts wins over the pool-derived budget."""
        if self.max_attempts is not None:
            return self.max_attempts
        return pool_default
