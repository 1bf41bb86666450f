"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use real API keys or a file database
os.environ.setdefault("API_KEY", "sk-test-fake-key-0001")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")
