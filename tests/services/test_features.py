"""Inference Features — verifies tier lists, history mapping and error wrapping.

Invariants:
    - Quick tip and connection check run on the standard tier only
    - Chat cascades enhanced → standard
    - Anthropic SDK errors reach callers as FatalRequestError with the provider message
    - check_connection reports failures instead of raising
"""

import anthropic
import pytest

from keyrelay.config import Settings
from keyrelay.core.errors import FatalRequestError, SATURATED_MESSAGE
from keyrelay.core.retry_policy import RetryPolicy
from keyrelay.services.features import (
    ask_quick_tip, build_tiers, check_connection, send_chat, to_provider_messages,
)
from keyrelay.services.inference_gateway import InferenceGateway
from keyrelay.services.retry_executor import RetryExecutor
from keyrelay.services.tier_cascade import TierFallbackCascade
from tests.services.fakes import (
    CapacityError, FakeOperations, InMemoryPreferences, RecordingSleep,
    ScriptedOperation, SpyPool, anthropic_error, text_message,
)

KEYS = ["key-alpha-0001", "key-bravo-0002"]


@pytest.fixture
def settings():
    return Settings(api_key=",".join(KEYS), enhanced_model="enh", standard_model="std")


@pytest.fixture
def ops():
    return FakeOperations({
        "enh": ScriptedOperation(default=text_message("deep answer")),
        "std": ScriptedOperation(default=text_message("quick answer")),
    })


def _gateway(pool=None):
    return InferenceGateway(
        pool=pool if pool is not None else SpyPool(KEYS),
        preferences=InMemoryPreferences(),
        cascade=TierFallbackCascade(RetryExecutor(RetryPolicy(), sleep=RecordingSleep())),
    )


# ─── Tier lists ──────────────────────────────────────────────────

def test_build_tiers_enhanced_then_standard(ops, settings):
    tiers = build_tiers(ops, settings, messages=[{"role": "user", "content": "hi"}])
    assert [t.name for t in tiers] == ["enhanced", "standard"]
    assert tiers[0].uses_enhanced_capability is True
    assert tiers[1].uses_enhanced_capability is False


def test_build_tiers_standard_only(ops, settings):
    tiers = build_tiers(ops, settings, messages=[], enhanced=False)
    assert [t.name for t in tiers] == ["standard"]
    assert [r["model"] for r in ops.requests] == ["std"]


# ─── Quick tip ───────────────────────────────────────────────────

async def test_quick_tip_uses_standard_tier(ops, settings):
    text = await ask_quick_tip(_gateway(), ops, settings, "How do I focus?")

    assert text == "quick answer"
    assert ops.by_model["enh"].calls == []
    assert ops.requests[0]["max_tokens"] == 200
    assert "How do I focus?" in ops.requests[0]["messages"][0]["content"]


# ─── Chat ────────────────────────────────────────────────────────

async def test_chat_prefers_enhanced_tier(ops, settings):
    history = [{"role": "user", "content": "Plan my week"}]

    assert await send_chat(_gateway(), ops, settings, history) == "deep answer"
    assert ops.by_model["std"].calls == []


async def test_chat_falls_back_to_standard(ops, settings):
    ops.by_model["enh"] = ScriptedOperation(default=CapacityError())
    history = [{"role": "user", "content": "Plan my week"}]

    assert await send_chat(_gateway(), ops, settings, history) == "quick answer"
    assert len(ops.by_model["enh"].calls) == len(KEYS) + 1


async def test_chat_passes_system_instruction(ops, settings):
    history = [{"role": "user", "content": "hi"}]
    await send_chat(_gateway(), ops, settings, history, "Be brief.")
    assert all(r["system"] == "Be brief." for r in ops.requests)


async def test_chat_with_empty_history_returns_empty_text(ops, settings):
    assert await send_chat(_gateway(), ops, settings, [{"role": "user", "content": ""}]) == ""
    assert ops.requests == []


def test_history_maps_model_role_to_assistant():
    history = [
        {"role": "user", "content": "hello"},
        {"role": "model", "content": "hi there"},
        {"role": "assistant", "content": "anything else?"},
        {"role": "user", "content": ""},
    ]
    assert to_provider_messages(history) == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "hi there"},
        {"role": "assistant", "content": "anything else?"},
    ]


# ─── Error wrapping ──────────────────────────────────────────────

async def test_provider_bad_request_becomes_fatal_request_error(ops, settings):
    sdk_error = anthropic_error(anthropic.BadRequestError, 400, "messages: empty content")
    ops.by_model["std"] = ScriptedOperation(default=sdk_error)

    with pytest.raises(FatalRequestError) as exc:
        await ask_quick_tip(_gateway(), ops, settings, "anything")

    assert exc.value.message == "messages: empty content"
    assert exc.value.api_error_type == "http_400"
    assert exc.value.__cause__ is sdk_error
    assert len(ops.by_model["std"].calls) == 1


async def test_provider_rate_limit_is_retried_not_wrapped(ops, settings):
    limited = anthropic_error(
        anthropic.RateLimitError, 429, "rate limited", "rate_limit_error",
    )
    ops.by_model["std"] = ScriptedOperation(outcomes=[limited, text_message("after rotate")])

    assert await ask_quick_tip(_gateway(), ops, settings, "anything") == "after rotate"
    assert ops.by_model["std"].calls == KEYS


# ─── Connection check ────────────────────────────────────────────

async def test_check_connection_success(ops, settings):
    result = await check_connection(_gateway(), ops, settings)
    assert result == {"success": True, "message": "Inference uplink active"}
    assert ops.requests[0]["max_tokens"] == 8


async def test_check_connection_reports_saturation(ops, settings):
    ops.by_model["std"] = ScriptedOperation(default=CapacityError())

    result = await check_connection(_gateway(), ops, settings)

    assert result == {"success": False, "message": SATURATED_MESSAGE}


async def test_check_connection_reports_missing_configuration(ops, settings):
    result = await check_connection(_gateway(SpyPool()), ops, settings)

    assert result["success"] is False
    assert "No API configuration found" in result["message"]


async def test_check_connection_reports_provider_error(ops, settings):
    ops.by_model["std"] = ScriptedOperation(
        default=anthropic_error(
            anthropic.AuthenticationError, 401, "invalid x-api-key", "authentication_error",
        ),
    )

    result = await check_connection(_gateway(), ops, settings)

    assert result == {"success": False, "message": "invalid x-api-key"}
