"""Retry Executor — runs one operation against the credential pool with rotation or backoff.

Invariants:
    - Fatal errors propagate unchanged on first occurrence: no retry, no rotate, no sleep
    - Transient errors consume the attempt budget (pool.max_attempts() unless the
      policy pins one): rotate when the pool holds > 1 credential, else back off
      base_delay_ms * multiplier ** (attempt - 1)
    - Budget spent on transient errors only → TerminalQuotaError, last error chained
    - Override path never touches the pool: one try, one fixed-delay retry on a
      transient error, then the error propagates as-is

Design Decisions:
    - sleep injected (defaults to asyncio.sleep): tests record waits instead of waiting
    - Catches Exception, not BaseException: CancelledError passes straight through
    - Logging lives here, not in the pool: the pool stays pure state
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from keyrelay.core.credential_pool import CredentialPool, mask_credential
from keyrelay.core.domain_types import Credential, ErrorClass, Operation
from keyrelay.core.error_classifier import classify
from keyrelay.core.errors import TerminalQuotaError
from keyrelay.core.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RetryExecutor:
    """Executes operations with credential rotation or exponential backoff."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def run(
        self,
        operation: Operation,
        pool: CredentialPool,
        *,
        tier: str | None = None,
    ) -> Any:
        """Run operation until success, a fatal error, or the attempt budget runs out."""
        attempts = 0
        max_attempts = self.policy.attempt_budget(pool.max_attempts())
        last_error: Exception | None = None

        while True:
            credential = pool.current()
            try:
                result = await operation(credential)
            except Exception as e:
                if classify(e) is ErrorClass.FATAL:
                    raise
                last_error = e
                attempts += 1
                if attempts >= max_attempts:
                    break
                await self._recover(pool, credential, attempts, max_attempts, tier)
            else:
                if attempts:
                    logger.info(
                        f"Recovered after {attempts} transient failure(s)",
                        extra={
                            "tier": tier, "attempt": attempts + 1,
                            "credential": mask_credential(credential),
                        },
                    )
                return result

        logger.error(
            f"Attempt budget exhausted ({attempts}/{max_attempts}): {last_error}",
            extra={"tier": tier, "attempt": attempts, "max_attempts": max_attempts},
        )
        raise TerminalQuotaError(attempts, tier=tier) from last_error

    async def run_with_override(
        self,
        operation: Operation,
        credential: Credential,
        *,
        tier: str | None = None,
    ) -> Any:
        """Run with a user-supplied credential: single retry after a fixed delay."""
        try:
            return await operation(credential)
        except Exception as e:
            if classify(e) is ErrorClass.FATAL:
                raise
            first_error = e

        delay_ms = self.policy.override_retry_delay_ms
        logger.warning(
            f"Override credential hit a capacity limit, retry after {delay_ms}ms: {first_error}",
            extra={
                "tier": tier, "attempt": 1, "delay_ms": delay_ms,
                "credential": mask_credential(credential),
            },
        )
        await self._sleep(delay_ms / 1000)
        return await operation(credential)

    async def _recover(
        self,
        pool: CredentialPool,
        credential: Credential,
        attempts: int,
        max_attempts: int,
        tier: str | None,
    ) -> None:
        """Rotate a multi-credential pool, or back off on a single credential."""
        extra = {
            "tier": tier, "attempt": attempts, "max_attempts": max_attempts,
            "credential": mask_credential(credential),
        }
        if pool.size > 1:
            depleted_slot = pool.cursor
            was_reset = pool.rotate()
            logger.warning(
                f"Key #{depleted_slot + 1} depleted, rotating to key #{pool.cursor + 1}",
                extra=extra,
            )
            if was_reset:
                logger.warning(
                    "All keys exhausted. Resetting pool for retry.", extra=extra,
                )
            return

        delay_ms = self.policy.delay_ms(attempts)
        logger.warning(
            f"Capacity limit on single credential, retry after {delay_ms:.0f}ms",
            extra={**extra, "delay_ms": delay_ms},
        )
        await self._sleep(delay_ms / 1000)
