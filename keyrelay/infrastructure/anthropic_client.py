"""Anthropic Operations — builds credential-parameterized calls for the retry core.

Invariants:
    - Every operation is `async (credential) -> Message`; the caller picks the credential
    - SDK-level retries are disabled (max_retries=0): rotation/backoff belongs to
      RetryExecutor, a hidden SDK retry would burn quota on an exhausted key
    - SDK exceptions are NOT mapped here — they reach error_classifier intact
      (status_code, response, body and message are all inspected there)
    - Clients are cached only for pool credentials (fixed at startup); any other
      credential (the user override) gets a client scoped to one call and closed
    - aclose() closes every cached client and empties the cache

Design Decisions:
    - Factory object over a wrapper client: the core never constructs provider
      requests, it only supplies the credential to a closure built here
    - Override keys arrive through the API, so caching them would grow without bound
    - Token usage logged on success the same way for every tier
"""

import logging
from typing import Any

import anthropic

from keyrelay.config import Settings
from keyrelay.core.credential_pool import CredentialPool, mask_credential
from keyrelay.core.domain_types import Credential, Operation

logger = logging.getLogger(__name__)


class AnthropicOperations:
    """Produces Operation closures bound to a model and request parameters."""

    def __init__(
        self,
        timeout_seconds: int = 300,
        max_tokens: int = 1024,
        pooled_credentials: tuple[str, ...] | list[str] = (),
    ):
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self._pooled = frozenset(pooled_credentials)
        self._clients: dict[str, anthropic.AsyncAnthropic] = {}

    def new_client(self, credential: Credential) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(
            api_key=credential,
            timeout=self.timeout_seconds,
            max_retries=0,
        )

    def client_for(self, credential: Credential) -> anthropic.AsyncAnthropic | None:
        """Cached client for a pool credential; None for any other credential."""
        if credential not in self._pooled:
            return None
        client = self._clients.get(credential)
        if client is None:
            client = self.new_client(credential)
            self._clients[credential] = client
        return client

    async def aclose(self) -> None:
        """Close every cached client (called on shutdown)."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.close()
        logger.info(f"Closed {len(clients)} Anthropic client(s)")

    def create_message(
        self,
        *,
        model: str,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> Operation:
        """Bind a messages.create call; the returned operation takes the credential."""
        params: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens or self.max_tokens,
            "messages": messages,
        }
        if system:
            params["system"] = system

        async def operation(credential: Credential):
            client = self.client_for(credential)
            if client is not None:
                response = await client.messages.create(**params)
            else:
                async with self.new_client(credential) as scoped:
                    response = await scoped.messages.create(**params)
            _log_success(response, model, credential)
            return response

        return operation


def extract_text(message: Any) -> str:
    """Join the text blocks of a Message (tool/thinking blocks ignored)."""
    return "".join(
        getattr(block, "text", "")
        for block in getattr(message, "content", None) or []
        if getattr(block, "type", None) == "text"
    )


def _log_success(response: Any, model: str, credential: Credential) -> None:
    """Log successful API call with token usage."""
    usage = getattr(response, "usage", None)
    logger.info(
        "Anthropic API success",
        extra={
            "model": model,
            "credential": mask_credential(credential),
            "input_tokens": getattr(usage, "input_tokens", None),
            "output_tokens": getattr(usage, "output_tokens", None),
        },
    )


# Singleton (initialized on startup)
operations: AnthropicOperations | None = None


def init_operations(settings: Settings) -> AnthropicOperations:
    global operations
    operations = AnthropicOperations(
        timeout_seconds=settings.anthropic_timeout_seconds,
        max_tokens=settings.anthropic_max_tokens,
        pooled_credentials=CredentialPool.from_csv(settings.api_key).credentials,
    )
    return operations


def get_operations() -> AnthropicOperations:
    """FastAPI dependency for the operation factory."""
    if not operations:
        raise RuntimeError("Anthropic operations not initialized")
    return operations
