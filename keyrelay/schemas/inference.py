"""Inference Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - QuickTipRequest.question: 3-2000 chars, stripped, non-empty
    - ChatRequest.history: 1-200 turns, roles limited to user/model/assistant
    - ApiKeyUpdate.api_key: stripped, non-empty; never echoed back in responses

Design Decisions:
    - Literal type for ChatTurn.role over str enum: Pydantic handles validation natively
    - field_validator for side-effect-free transforms (strip) — keeps models pure
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class QuickTipRequest(BaseModel):
    """Quick tip — one short question."""
    question: str = Field(min_length=3, max_length=2000)

    @field_validator("question")
    @classmethod
    def strip_question(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("question cannot be empty or whitespace")
        return v


class ChatTurn(BaseModel):
    role: Literal["user", "model", "assistant"]
    content: str = Field(max_length=50_000)


class ChatRequest(BaseModel):
    """Chat — full history, the last user turn gets answered."""
    history: list[ChatTurn] = Field(min_length=1, max_length=200)
    system_instruction: str | None = Field(None, max_length=20_000)


class TextResponse(BaseModel):
    text: str


class ConnectionCheckResponse(BaseModel):
    success: bool
    message: str


class KeyStatusResponse(BaseModel):
    """Credential pool snapshot — counts and cursor only, never secrets."""
    total: int
    active: int
    current_index: int
    is_using_pool: bool
    is_custom: bool


class ApiKeyUpdate(BaseModel):
    """User override credential."""
    api_key: str = Field(min_length=1, max_length=500)

    @field_validator("api_key")
    @classmethod
    def strip_api_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("api_key cannot be empty or whitespace")
        return v
