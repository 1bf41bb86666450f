"""Preference Routes — set or clear the user's own API key.

Invariants:
    - The stored key is never returned; responses only say whether one is set
    - Writes go through the preference store; the inference core stays read-only
    - Next inference call picks the change up (the gateway does not cache it)
"""

import logging

from fastapi import APIRouter, Depends, status

from keyrelay.config import Settings, get_settings
from keyrelay.core.repository_protocols import PreferenceStore
from keyrelay.infrastructure.preference_store import get_preference_store
from keyrelay.schemas.inference import ApiKeyUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/preferences", tags=["preferences"])


@router.put("/api-key", status_code=status.HTTP_200_OK)
async def set_api_key(
    body: ApiKeyUpdate,
    store: PreferenceStore = Depends(get_preference_store),
    settings: Settings = Depends(get_settings),
):
    """Store a personal key; it overrides the shared pool from now on."""
    await store.set(settings.override_preference_key, body.api_key)
    return {"status": "saved", "is_custom": True}


@router.delete("/api-key", status_code=status.HTTP_200_OK)
async def clear_api_key(
    store: PreferenceStore = Depends(get_preference_store),
    settings: Settings = Depends(get_settings),
):
    """Remove the personal key; requests fall back to the shared pool."""
    removed = await store.delete(settings.override_preference_key)
    return {"status": "cleared" if removed else "not_set", "is_custom": False}
