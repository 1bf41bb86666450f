"""Inference & Preference Routes — verifies HTTP mapping of the retry core outcomes.

Invariants:
    - Success → 200 with text
    - All tiers exhausted → 503 with the saturation message
    - Provider rejection → 502 with the provider message
    - Empty pool → 500 configuration error
    - Personal key saved/cleared through the API is honoured on the next call
      and never echoed back
    - Validation and unexpected errors share the KeyRelayError envelope
"""

import json

import anthropic
from fastapi import Request

from keyrelay.api.error_handlers import unexpected_error_handler
from keyrelay.core.credential_pool import CredentialPool
from keyrelay.core.errors import SATURATED_MESSAGE, TerminalQuotaError
from tests.services.fakes import (
    CapacityError, ScriptedOperation, anthropic_error, text_message,
)

CHAT = {"history": [{"role": "user", "content": "Plan my week"}]}


# ─── Health ──────────────────────────────────────────────────────

async def test_liveness(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_readiness_with_database(client):
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200


# ─── Inference ───────────────────────────────────────────────────

async def test_quick_tip(client, fake_ops):
    res = await client.post("/api/v1/inference/tip", json={"question": "How to focus?"})
    assert res.status_code == 200
    assert res.json() == {"text": "standard answer"}


async def test_chat_uses_enhanced_tier(client):
    res = await client.post("/api/v1/inference/chat", json=CHAT)
    assert res.status_code == 200
    assert res.json()["text"] == "enhanced answer"


async def test_chat_all_tiers_exhausted_is_503(client, fake_ops):
    fake_ops.by_model["enhanced-model"] = ScriptedOperation(default=CapacityError())
    fake_ops.by_model["standard-model"] = ScriptedOperation(default=CapacityError())

    res = await client.post("/api/v1/inference/chat", json=CHAT)

    assert res.status_code == 503
    body = res.json()["error"]
    assert body["code"] == "ALL_TIERS_EXHAUSTED"
    assert body["message"] == SATURATED_MESSAGE


async def test_provider_rejection_is_502(client, fake_ops):
    fake_ops.by_model["standard-model"] = ScriptedOperation(
        default=anthropic_error(anthropic.BadRequestError, 400, "prompt is too long"),
    )

    res = await client.post("/api/v1/inference/tip", json={"question": "How to focus?"})

    assert res.status_code == 502
    assert res.json()["error"]["message"] == "prompt is too long"


async def test_empty_pool_is_500(client, test_gateway):
    test_gateway.pool = CredentialPool()

    res = await client.post("/api/v1/inference/tip", json={"question": "How to focus?"})

    assert res.status_code == 500
    assert res.json()["error"]["code"] == "EMPTY_CREDENTIAL_POOL"


async def test_invalid_chat_body_is_400(client):
    res = await client.post("/api/v1/inference/chat", json={"history": []})
    assert res.status_code == 400
    body = res.json()["error"]
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"][0]["field"] == "body.history"


async def test_validation_error_uses_the_common_envelope(client):
    res = await client.post("/api/v1/inference/tip", json={"question": "x"})
    body = res.json()["error"]
    assert set(body) == set(TerminalQuotaError(1).to_response()["error"]) | {"details"}
    assert body["category"] == "validation"


async def test_unexpected_error_uses_the_common_envelope():
    request = Request({
        "type": "http", "method": "GET", "path": "/boom",
        "headers": [], "query_string": b"",
    })

    res = await unexpected_error_handler(request, RuntimeError("secret detail"))

    body = json.loads(res.body)["error"]
    assert res.status_code == 500
    assert body["code"] == "INTERNAL_ERROR"
    assert set(body) == set(TerminalQuotaError(1).to_response()["error"])
    assert "secret detail" not in res.body.decode()


async def test_connection_check(client):
    res = await client.post("/api/v1/inference/test-connection")
    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Inference uplink active"}


async def test_status_reports_pool(client):
    res = await client.get("/api/v1/inference/status")
    assert res.status_code == 200
    assert res.json() == {
        "total": 3, "active": 3, "current_index": 0,
        "is_using_pool": True, "is_custom": False,
    }


async def test_status_after_rotation(client, fake_ops):
    fake_ops.by_model["standard-model"] = ScriptedOperation(
        by_credential={"key-alpha-0001": CapacityError()},
        default=text_message("second key answer"),
    )

    await client.post("/api/v1/inference/tip", json={"question": "How to focus?"})
    res = await client.get("/api/v1/inference/status")

    assert res.json()["current_index"] == 1
    assert res.json()["active"] == 2


# ─── Personal key ────────────────────────────────────────────────

async def test_personal_key_overrides_pool(client, fake_ops):
    res = await client.put(
        "/api/v1/preferences/api-key", json={"api_key": "user-own-key-7777"},
    )
    assert res.status_code == 200
    assert res.json() == {"status": "saved", "is_custom": True}
    assert "user-own-key-7777" not in res.text

    status = (await client.get("/api/v1/inference/status")).json()
    assert status["is_custom"] is True
    assert status["is_using_pool"] is False

    await client.post("/api/v1/inference/tip", json={"question": "How to focus?"})
    assert fake_ops.by_model["standard-model"].calls == ["user-own-key-7777"]


async def test_clearing_personal_key_restores_pool(client, fake_ops):
    await client.put("/api/v1/preferences/api-key", json={"api_key": "user-own-key-7777"})

    res = await client.delete("/api/v1/preferences/api-key")
    assert res.json() == {"status": "cleared", "is_custom": False}

    await client.post("/api/v1/inference/tip", json={"question": "How to focus?"})
    assert fake_ops.by_model["standard-model"].calls == ["key-alpha-0001"]


async def test_clearing_missing_key(client):
    res = await client.delete("/api/v1/preferences/api-key")
    assert res.json() == {"status": "not_set", "is_custom": False}


async def test_blank_personal_key_rejected(client):
    res = await client.put("/api/v1/preferences/api-key", json={"api_key": "   "})
    assert res.status_code == 400
