"""Pytest fixtures for testing."""
import asyncio
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest
import respx

from core.config import get_settings
from core.me_cache import MeCache
from core.profile_cache import MemoryStore, ProfileCache
from core.session_manager import SessionManager
from schemas.session import Session, SignUpResult
from services.account_api import AccountApi
from services.exceptions import AccountError
from services.mutation_coordinator import MutationCoordinator

API_URL = "http://localhost:8000"
ANON_KEY = "anon-test-key"


def make_session(
    access_token: str = "access-1",
    refresh_token: str = "refresh-1",
    expires_in: int = 3600,
) -> Session:
    """Build a session expiring ``expires_in`` seconds from now."""
    return Session(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
        user_id="user-1",
        email="maria@example.com",
    )


class FakeAuthProvider:
    """
    In-memory AuthProvider.

    ``refresh_gate`` lets a test hold refreshes open to observe concurrency;
    ``refresh_error`` makes every refresh fail.
    """

    def __init__(self, stored: Session | None = None) -> None:
        self.stored = stored
        self.refresh_calls = 0
        self.sign_out_calls = 0
        self.sign_in_error: AccountError | None = None
        self.sign_up_error: AccountError | None = None
        self.refresh_error: AccountError | None = None
        self.refresh_gate: asyncio.Event | None = None
        self.sign_up_args: tuple | None = None

    async def sign_in(self, email: str, password: str) -> Session:
        if self.sign_in_error is not None:
            raise self.sign_in_error
        self.stored = make_session()
        return self.stored

    async def sign_up(self, email: str, password: str, metadata: dict[str, str]) -> SignUpResult:
        if self.sign_up_error is not None:
            raise self.sign_up_error
        self.sign_up_args = (email, password, metadata)
        return SignUpResult(user_id="user-2", email=email, name=metadata.get("name", ""))

    async def refresh_session(self, refresh_token: str) -> Session:
        self.refresh_calls += 1
        if self.refresh_gate is not None:
            await self.refresh_gate.wait()
        if self.refresh_error is not None:
            raise self.refresh_error
        n = self.refresh_calls + 1
        self.stored = make_session(f"access-{n}", f"refresh-{n}")
        return self.stored

    def get_session(self) -> Session | None:
        return self.stored

    async def sign_out(self, access_token: str) -> None:
        self.sign_out_calls += 1
        self.stored = None


@pytest.fixture(autouse=True)
def settings_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Point settings at the mocked store API and reset the settings cache."""
    monkeypatch.setenv("STORE_API_URL", API_URL)
    monkeypatch.setenv("STORE_ANON_KEY", ANON_KEY)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def provider() -> FakeAuthProvider:
    """Auth provider holding a valid stored session."""
    return FakeAuthProvider(stored=make_session())


@pytest.fixture
def local_store() -> MemoryStore:
    """Ephemeral key-value store."""
    return MemoryStore()


@pytest.fixture
def profile_cache(local_store: MemoryStore) -> ProfileCache:
    """ProfileCache over the ephemeral store."""
    return ProfileCache(local_store)


@pytest.fixture
def session_manager(provider: FakeAuthProvider, profile_cache: ProfileCache) -> SessionManager:
    """Signed-in session manager."""
    manager = SessionManager(provider, profile_cache=profile_cache, refresh_margin=60)
    manager.restore()
    return manager


@pytest.fixture
def mock_api() -> Generator[respx.MockRouter]:
    """Context manager for mocking store API responses."""
    with respx.mock(base_url=API_URL, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
async def api(mock_api: respx.MockRouter) -> AsyncGenerator[AccountApi]:
    """Store API client bound to the mocked API."""
    account_api = AccountApi(client=httpx.AsyncClient(base_url=API_URL), me_cache=MeCache())
    yield account_api
    await account_api.aclose()


@pytest.fixture
def coordinator(
    session_manager: SessionManager, profile_cache: ProfileCache, api: AccountApi,
) -> MutationCoordinator:
    """Mutation coordinator sharing the API client's /me cache."""
    return MutationCoordinator(session_manager, profile_cache, api)


@pytest.fixture
def sample_profile() -> dict[str, Any]:
    """Sample GET /auth/user/me response."""
    return {
        "id": "user-1",
        "email": "maria@example.com",
        "name": "Maria Silva",
        "phone": "44997330202",
        "cpf": "52998224725",
        "role": "user",
        "addresses": [],
        "avatarId": "robot3",
        "customAvatarUrl": None,
        "address": "Rua Antiga, 1",
        "city": "Maringá",
        "state": "PR",
        "cep": "87020025",
    }


def address_json(
    address_id: str = "addr-1", is_default: bool = False, **overrides: Any,
) -> dict[str, Any]:
    """Wire representation of a saved address."""
    data = {
        "id": address_id,
        "label": "Casa",
        "cep": "87020025",
        "street": "Avenida Brasil",
        "number": "100",
        "complement": "",
        "neighborhood": "Centro",
        "city": "Maringá",
        "state": "PR",
        "isDefault": is_default,
    }
    data.update(overrides)
    return data
