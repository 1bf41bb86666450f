"""Inference Routes — feature endpoints and credential pool status.

Invariants:
    - Routes delegate to services/features.py; no retry or credential logic here
    - KeyRelayError raised by features reaches the global handler (503/502/500/504)
    - Status endpoint exposes counts and cursor only, never credential material

Design Decisions:
    - Gateway, operations and settings injected via Depends: tests override them
      without touching module singletons
"""

import logging

from fastapi import APIRouter, Depends

from keyrelay.config import Settings, get_settings
from keyrelay.infrastructure.anthropic_client import AnthropicOperations, get_operations
from keyrelay.schemas.inference import (
    ChatRequest, ConnectionCheckResponse, KeyStatusResponse,
    QuickTipRequest, TextResponse,
)
from keyrelay.services.features import ask_quick_tip, check_connection, send_chat
from keyrelay.services.inference_gateway import InferenceGateway, get_gateway

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/inference", tags=["inference"])


@router.get("/status", response_model=KeyStatusResponse)
async def key_status(gateway: InferenceGateway = Depends(get_gateway)):
    """Pool size, active keys, cursor and whether an override is in use."""
    status = await gateway.key_status()
    return KeyStatusResponse(**status.to_dict())


@router.post("/test-connection", response_model=ConnectionCheckResponse)
async def test_connection_route(
    gateway: InferenceGateway = Depends(get_gateway),
    operations: AnthropicOperations = Depends(get_operations),
    settings: Settings = Depends(get_settings),
):
    """Ping the standard tier with the current credential selection."""
    return ConnectionCheckResponse(
        **await check_connection(gateway, operations, settings),
    )


@router.post("/tip", response_model=TextResponse)
async def quick_tip(
    body: QuickTipRequest,
    gateway: InferenceGateway = Depends(get_gateway),
    operations: AnthropicOperations = Depends(get_operations),
    settings: Settings = Depends(get_settings),
):
    text = await ask_quick_tip(gateway, operations, settings, body.question)
    return TextResponse(text=text)


@router.post("/chat", response_model=TextResponse)
async def chat(
    body: ChatRequest,
    gateway: InferenceGateway = Depends(get_gateway),
    operations: AnthropicOperations = Depends(get_operations),
    settings: Settings = Depends(get_settings),
):
    text = await send_chat(
        gateway, operations, settings,
        [turn.model_dump() for turn in body.history],
        body.system_instruction,
    )
    return TextResponse(text=text)
