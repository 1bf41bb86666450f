"""Service test fixtures — file-backed SQLite preferences + FastAPI test client.

Invariants:
    - Every test gets a fresh SQLite database under tmp_path
    - Module singletons (db_manager) restored after each test
    - Routes see fake operations and a gateway whose sleep never waits

Design Decisions:
    - File database over :memory: — each session opens its own connection and
      must see the rows the previous one committed
    - Dependencies overridden on the app (get_gateway, get_operations,
      get_preference_store, get_settings): lifespan is not run by ASGITransport
"""

import pytest
from httpx import ASGITransport, AsyncClient

import keyrelay.infrastructure.database as db_module
from keyrelay.config import Settings, get_settings
from keyrelay.core.credential_pool import CredentialPool
from keyrelay.core.retry_policy import RetryPolicy
from keyrelay.infrastructure.anthropic_client import get_operations
from keyrelay.infrastructure.database import DatabaseSessionManager
from keyrelay.infrastructure.preference_store import (
    SqlPreferenceStore, get_preference_store,
)
from keyrelay.main import app
from keyrelay.services.inference_gateway import InferenceGateway, get_gateway
from keyrelay.services.retry_executor import RetryExecutor
from keyrelay.services.tier_cascade import TierFallbackCascade
from tests.services.fakes import (
    FakeOperations, RecordingSleep, ScriptedOperation, text_message,
)

POOL_KEYS = "key-alpha-0001,key-bravo-0002,key-charlie-0003"


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        api_key=POOL_KEYS,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'prefs.db'}",
        enhanced_model="enhanced-model",
        standard_model="standard-model",
    )


@pytest.fixture
def recorded_sleep():
    return RecordingSleep()


@pytest.fixture
async def db_manager(test_settings):
    manager = DatabaseSessionManager(test_settings.database_url)
    await manager.create_tables()
    yield manager
    await manager.dispose()


@pytest.fixture
async def pref_store(db_manager):
    return SqlPreferenceStore(db_manager)


@pytest.fixture
def fake_ops():
    """Both tiers answer on first try; tests swap entries in by_model."""
    return FakeOperations({
        "enhanced-model": ScriptedOperation(default=text_message("enhanced answer")),
        "standard-model": ScriptedOperation(default=text_message("standard answer")),
    })


@pytest.fixture
def test_gateway(test_settings, pref_store, recorded_sleep):
    return InferenceGateway(
        pool=CredentialPool.from_csv(test_settings.api_key),
        preferences=pref_store,
        cascade=TierFallbackCascade(RetryExecutor(RetryPolicy(), sleep=recorded_sleep)),
        override_key=test_settings.override_preference_key,
    )


@pytest.fixture
async def client(test_settings, db_manager, pref_store, fake_ops, test_gateway):
    """FastAPI test client with every singleton dependency overridden."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_gateway] = lambda: test_gateway
    app.dependency_overrides[get_operations] = lambda: fake_ops
    app.dependency_overrides[get_preference_store] = lambda: pref_store

    original_manager = db_module.db_manager
    db_module.db_manager = db_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
