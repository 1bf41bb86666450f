"""Tier Fallback Cascade — replays a failed request against progressively cheaper tiers.

Invariants:
    - Tiers run strictly in order; the first success short-circuits (later tier
      operations are never invoked)
    - Only TerminalQuotaError moves the cascade to the next tier; fatal errors
      and EmptyPoolError propagate from the tier that raised them
    - Every tier exhausted → exactly one AllTiersExhaustedError, last quota error chained
    - The pool's exhausted set carries over between tiers (same pool, same history)

Design Decisions:
    - Composition over inheritance: the cascade owns a RetryExecutor and adds
      nothing but tier ordering, so each layer is testable alone
"""

import logging
from typing import Any, Sequence

from keyrelay.core.credential_pool import CredentialPool
from keyrelay.core.domain_types import TierDescriptor
from keyrelay.core.errors import AllTiersExhaustedError, TerminalQuotaError
from keyrelay.services.retry_executor import RetryExecutor

logger = logging.getLogger(__name__)


class TierFallbackCascade:
    """Runs the retry executor tier by tier until one succeeds."""

    def __init__(self, executor: RetryExecutor):
        self.executor = executor

    async def run(
        self, tiers: Sequence[TierDescriptor], pool: CredentialPool,
    ) -> Any:
        if not tiers:
            raise ValueError("TierFallbackCascade.run requires at least one tier")

        tried: list[str] = []
        last_error: TerminalQuotaError | None = None
        for index, tier in enumerate(tiers):
            try:
                return await self.executor.run(
                    tier.operation_factory, pool, tier=tier.name,
                )
            except TerminalQuotaError as e:
                tried.append(tier.name)
                last_error = e
                if index + 1 < len(tiers):
                    logger.warning(
                        f"Tier '{tier.name}' exhausted after {e.attempts} attempts, "
                        f"falling back to '{tiers[index + 1].name}'",
                        extra={"tier": tier.name, "attempt": e.attempts},
                    )

        logger.error(
            f"All tiers exhausted: {', '.join(tried)}",
            extra={"error_code": "ALL_TIERS_EXHAUSTED"},
        )
        raise AllTiersExhaustedError(tried) from last_error
