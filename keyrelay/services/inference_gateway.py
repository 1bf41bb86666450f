"""Inference Gateway — single entry point feature modules call with their tier list.

Invariants:
    - The override credential is read from the preference store on EVERY call
      (never cached); when present it bypasses the pool and the cascade entirely
      and only the first tier runs
    - Without an override the tier cascade runs against the shared pool
    - An optional deadline bounds the whole call; expiry raises RequestDeadlineError
      and leaves pool state exactly as the interrupted attempt left it
    - gateway singleton initialized once on startup (init_gateway)

Design Decisions:
    - Module-level singleton mirrors db_manager: FastAPI lifespan owns creation,
      routes read it through get_gateway()
    - asyncio.timeout over wait_for: expired() tells a deadline apart from a
      TimeoutError raised by the operation itself
"""

import asyncio
import logging
from typing import Any, Sequence

from keyrelay.config import Settings
from keyrelay.core.credential_pool import CredentialPool, mask_credential
from keyrelay.core.domain_types import Credential, PoolStatus, TierDescriptor
from keyrelay.core.errors import RequestDeadlineError
from keyrelay.core.repository_protocols import PreferenceReader
from keyrelay.core.retry_policy import RetryPolicy
from keyrelay.services.retry_executor import RetryExecutor
from keyrelay.services.tier_cascade import TierFallbackCascade

logger = logging.getLogger(__name__)

DEFAULT_OVERRIDE_KEY = "custom_api_key"


class InferenceGateway:
    """Chooses between the override path and the pooled tier cascade."""

    def __init__(
        self,
        pool: CredentialPool,
        preferences: PreferenceReader,
        cascade: TierFallbackCascade,
        override_key: str = DEFAULT_OVERRIDE_KEY,
        deadline_seconds: float | None = None,
    ):
        self.pool = pool
        self.preferences = preferences
        self.cascade = cascade
        self.override_key = override_key
        self.deadline_seconds = deadline_seconds

    @property
    def executor(self) -> RetryExecutor:
        return self.cascade.executor

    async def read_override(self) -> Credential | None:
        value = await self.preferences.get(self.override_key)
        if value and value.strip():
            return Credential(value.strip())
        return None

    async def execute(
        self,
        tiers: Sequence[TierDescriptor],
        *,
        deadline_seconds: float | None = None,
    ) -> Any:
        """Run tiers through the override path or the cascade, within an optional deadline."""
        if not tiers:
            raise ValueError("InferenceGateway.execute requires at least one tier")
        deadline = (
            deadline_seconds if deadline_seconds is not None
            else self.deadline_seconds
        )
        if deadline is None:
            return await self._dispatch(tiers)

        try:
            async with asyncio.timeout(deadline) as scope:
                return await self._dispatch(tiers)
        except TimeoutError:
            if not scope.expired():
                raise
            logger.error(
                f"Request deadline of {deadline:g}s exceeded",
                extra={"tier": tiers[0].name, "error_code": "REQUEST_DEADLINE_EXCEEDED"},
            )
            raise RequestDeadlineError(deadline) from None

    async def key_status(self) -> PoolStatus:
        override = await self.read_override()
        return self.pool.status(override_active=override is not None)

    async def _dispatch(self, tiers: Sequence[TierDescriptor]) -> Any:
        override = await self.read_override()
        if override is not None:
            tier = tiers[0]
            logger.info(
                "Using override credential, pool rotation bypassed",
                extra={"tier": tier.name, "credential": mask_credential(override)},
            )
            return await self.executor.run_with_override(
                tier.operation_factory, override, tier=tier.name,
            )
        return await self.cascade.run(tiers, self.pool)


def build_gateway(
    settings: Settings, preferences: PreferenceReader,
) -> InferenceGateway:
    """Assemble pool, policy, executor and cascade from settings."""
    policy = RetryPolicy(
        base_delay_ms=settings.backoff_base_delay_ms,
        backoff_multiplier=settings.backoff_multiplier,
        override_retry_delay_ms=settings.override_retry_delay_ms,
        max_attempts=settings.max_attempts,
    )
    pool = CredentialPool.from_csv(settings.api_key)
    if not pool.size:
        logger.warning("No API keys configured; only override credentials will work")
    return InferenceGateway(
        pool=pool,
        preferences=preferences,
        cascade=TierFallbackCascade(RetryExecutor(policy)),
        override_key=settings.override_preference_key,
        deadline_seconds=settings.request_deadline_seconds,
    )


# Singleton (initialized on startup)
gateway: InferenceGateway | None = None


def init_gateway(
    settings: Settings, preferences: PreferenceReader,
) -> InferenceGateway:
    global gateway
    gateway = build_gateway(settings, preferences)
    logger.info(f"Credential pool ready with {gateway.pool.size} key(s)")
    return gateway


def get_gateway() -> InferenceGateway:
    """FastAPI dependency for the process-wide gateway."""
    if not gateway:
        raise RuntimeError("Inference gateway not initialized")
    return gateway
