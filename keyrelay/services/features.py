"""Inference Features — thin producers of tier lists for the gateway.

Invariants:
    - Features never retry, rotate or pick credentials themselves
    - Chat cascades enhanced → standard; quick tips and connection checks use standard only
    - Provider SDK errors leaving the core are re-raised as FatalRequestError with
      the provider's own message (KeyRelayError subclasses pass through untouched)
    - check_connection never raises for quota, configuration or provider errors

Design Decisions:
    - Plain async functions over a service class: no state beyond the injected
      gateway/operations/settings
    - History roles accept "model" as an alias of "assistant" (chat UIs label the
      assistant side that way)
"""

import logging

import anthropic

from keyrelay.config import Settings
from keyrelay.core.domain_types import TierDescriptor, TierName
from keyrelay.core.errors import FatalRequestError, KeyRelayError
from keyrelay.infrastructure.anthropic_client import AnthropicOperations, extract_text
from keyrelay.services.inference_gateway import InferenceGateway

logger = logging.getLogger(__name__)

QUICK_TIP_MAX_TOKENS = 200
PING_MAX_TOKENS = 8


def build_tiers(
    operations: AnthropicOperations,
    settings: Settings,
    *,
    messages: list[dict],
    system: str | None = None,
    max_tokens: int | None = None,
    enhanced: bool = True,
) -> list[TierDescriptor]:
    """Build [enhanced, standard] (or [standard]) tiers for one request."""
    tiers = []
    if enhanced:
        tiers.append(TierDescriptor(
            name=TierName.ENHANCED.value,
            operation_factory=operations.create_message(
                model=settings.enhanced_model, messages=messages,
                system=system, max_tokens=max_tokens,
            ),
            uses_enhanced_capability=True,
        ))
    tiers.append(TierDescriptor(
        name=TierName.STANDARD.value,
        operation_factory=operations.create_message(
            model=settings.standard_model, messages=messages,
            system=system, max_tokens=max_tokens,
        ),
    ))
    return tiers


async def ask_quick_tip(
    gateway: InferenceGateway,
    operations: AnthropicOperations,
    settings: Settings,
    question: str,
) -> str:
    """One unconventional, high-impact tip for the question (max 2 sentences)."""
    prompt = (
        "Provide a single, unconventional, high-impact tip for: "
        f'"{question}". Max 2 sentences.'
    )
    tiers = build_tiers(
        operations, settings,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=QUICK_TIP_MAX_TOKENS, enhanced=False,
    )
    return await _execute_text(gateway, tiers)


async def send_chat(
    gateway: InferenceGateway,
    operations: AnthropicOperations,
    settings: Settings,
    history: list[dict],
    system_instruction: str | None = None,
) -> str:
    """Answer the last user turn of history; empty history yields empty text."""
    messages = to_provider_messages(history)
    if not messages:
        return ""
    tiers = build_tiers(
        operations, settings, messages=messages, system=system_instruction,
    )
    return await _execute_text(gateway, tiers)


async def check_connection(
    gateway: InferenceGateway,
    operations: AnthropicOperations,
    settings: Settings,
) -> dict:
    """Ping the standard tier; report success instead of raising."""
    tiers = build_tiers(
        operations, settings,
        messages=[{"role": "user", "content": "ping"}],
        max_tokens=PING_MAX_TOKENS, enhanced=False,
    )
    try:
        await _execute_text(gateway, tiers)
    except KeyRelayError as e:
        logger.warning(f"Connection check failed: {e.message}", extra={"error_code": e.code})
        return {"success": False, "message": e.to_response()["error"]["message"]}
    return {"success": True, "message": "Inference uplink active"}


def to_provider_messages(history: list[dict]) -> list[dict]:
    """Map chat history to Anthropic messages ("model" → "assistant")."""
    return [
        {
            "role": "assistant" if turn.get("role") in ("model", "assistant") else "user",
            "content": turn.get("content", ""),
        }
        for turn in history
        if turn.get("content")
    ]


async def _execute_text(
    gateway: InferenceGateway, tiers: list[TierDescriptor],
) -> str:
    try:
        message = await gateway.execute(tiers)
    except anthropic.APIStatusError as e:
        raise FatalRequestError(e.message, f"http_{e.status_code}") from e
    except anthropic.APIConnectionError as e:
        raise FatalRequestError(e.message, "connection_error") from e
    except anthropic.APIError as e:
        raise FatalRequestError(e.message) from e
    return extract_text(message)
