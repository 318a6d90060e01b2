"""Pytest configuration and common fixtures."""

import os
import sys
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Try to load test-specific environment file if it exists
test_env_file = Path(__file__).parent / ".env.test"
if test_env_file.exists():
    load_dotenv(test_env_file)

# Set before any selorg_client import so settings never see a developer .env
os.environ.setdefault("SELORG_ENV", "testing")

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet

from selorg_client.core.config.settings import ClientSettings
from selorg_client.services.api.events import SessionEvents
from selorg_client.services.api.token_manager import TokenManager
from selorg_client.services.api.types import ApiResponse
from selorg_client.services.auth.resend_timer import ResendCooldownTimer
from selorg_client.utils.security.credential_store import MemoryCredentialStore


def pytest_configure(config):
    """Configure pytest environment before tests run."""
    warnings.filterwarnings("ignore", message="coroutine.*was never awaited")


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch, tmp_path):
    """Automatically set up test environment for all tests."""
    monkeypatch.setenv("SELORG_ENV", "testing")
    monkeypatch.setenv("SELORG_CREDENTIAL_STORE_PATH", str(tmp_path / "credentials.json"))
    monkeypatch.delenv("SELORG_API_BASE_URL", raising=False)
    monkeypatch.delenv("SELORG_ENCRYPTION_KEY", raising=False)

    # Reset settings singleton so each test gets fresh settings
    from selorg_client.core.config.settings import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def encryption_key() -> str:
    """Fresh Fernet key."""
    return Fernet.generate_key().decode()


@pytest.fixture
def settings(tmp_path) -> ClientSettings:
    """Settings pointing at a throwaway credential file."""
    return ClientSettings(
        env="testing",
        api_base_url="http://api.test/api/v1/customer",
        credential_store_path=str(tmp_path / "credentials.json"),
    )


@pytest.fixture
def memory_store() -> MemoryCredentialStore:
    """Empty in-memory credential store."""
    return MemoryCredentialStore()


@pytest.fixture
def session_events() -> SessionEvents:
    return SessionEvents()


@pytest_asyncio.fixture
async def token_manager(memory_store, session_events):
    """Initialized token manager over an empty store."""
    manager = TokenManager(memory_store, session_events)
    await manager.initialize()
    yield manager
    await manager.dispose()


@pytest.fixture
def manual_timer() -> ResendCooldownTimer:
    """Cooldown timer that only moves when ticked."""
    return ResendCooldownTimer(duration=50, tick_interval=None)


def make_response(body: Dict[str, Any]) -> ApiResponse:
    """Build an envelope the way the transport does."""
    return ApiResponse.from_body(body)


@pytest.fixture
def mock_auth_service():
    """Auth service with every wire call mocked."""
    service = MagicMock()
    service.send_otp = AsyncMock(
        return_value=make_response({"success": True, "data": {"sessionId": "sess-1"}})
    )
    service.verify_otp = AsyncMock(
        return_value=make_response(
            {"success": True, "data": {"accessToken": "tok-1", "refreshToken": "ref-1"}}
        )
    )
    service.resend_otp = AsyncMock(
        return_value=make_response({"success": True, "data": {"resendCooldownSeconds": 30}})
    )
    service.logout = AsyncMock(return_value=True)
    return service


class FailingStore(MemoryCredentialStore):
    """Memory store whose operations can be made to fail."""

    def __init__(self, fail_on: Optional[set] = None, exc: Optional[Exception] = None):
        super().__init__()
        self.fail_on = fail_on or set()
        self.exc = exc or OSError("disk unavailable")
        self.calls: Dict[str, int] = {"get": 0, "set": 0, "remove": 0}

    async def get(self, key):
        self.calls["get"] += 1
        if "get" in self.fail_on:
            raise self.exc
        return await super().get(key)

    async def set(self, key, value):
        self.calls["set"] += 1
        if "set" in self.fail_on:
            raise self.exc
        await super().set(key, value)

    async def remove(self, key):
        self.calls["remove"] += 1
        if "remove" in self.fail_on:
            raise self.exc
        await super().remove(key)


@pytest.fixture
def failing_store_cls():
    """The FailingStore class, for tests that configure their own failures."""
    return FailingStore
