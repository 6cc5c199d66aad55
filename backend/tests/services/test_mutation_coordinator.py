"""Tests for MutationCoordinator."""
import asyncio

import httpx

from core.me_cache import MeCache
from core.profile_cache import ProfileCache
from core.session_manager import SessionManager
from schemas.profile import Profile
from services.account_api import AccountApi
from services.exceptions import ServerRejectedError, UnauthorizedError
from services.mutation_coordinator import MutationCoordinator, OperationResult
from tests.conftest import API_URL, FakeAuthProvider


def _coordinator(session_manager: SessionManager, profile_cache: ProfileCache) -> MutationCoordinator:
    api = AccountApi(client=httpx.AsyncClient(base_url=API_URL), me_cache=MeCache())
    return MutationCoordinator(session_manager, profile_cache, api)


class TestRun:
    """Tests for MutationCoordinator.run."""

    async def test__success_applies_result_and_writes_snapshot(
        self, session_manager: SessionManager, profile_cache: ProfileCache,
    ) -> None:
        coordinator = _coordinator(session_manager, profile_cache)
        applied: list[str] = []

        async def remote(token: str) -> str:
            return "robot7"

        result = await coordinator.run(
            "avatar",
            remote,
            apply=applied.append,
            snapshot=lambda a: {"avatar_id": a},
            success_message="Avatar atualizado!",
        )

        assert result == OperationResult(ok=True, message="Avatar atualizado!", value="robot7")
        assert applied == ["robot7"]
        assert profile_cache.read().avatar_id == "robot7"

    async def test__success_invalidates_me_cache(
        self, session_manager: SessionManager, profile_cache: ProfileCache,
    ) -> None:
        coordinator = _coordinator(session_manager, profile_cache)
        coordinator.me_cache.set("access-1", Profile(id="user-1", email="maria@example.com"))

        async def remote(token: str) -> None:
            return None

        await coordinator.run("profile", remote)

        assert coordinator.me_cache.get("access-1") is None

    async def test__invalidates_the_api_read_cache(
        self, session_manager: SessionManager, profile_cache: ProfileCache, api: AccountApi,
    ) -> None:
        coordinator = MutationCoordinator(session_manager, profile_cache, api)
        api.me_cache.set("access-1", Profile(id="user-1", email="maria@example.com"))

        async def remote(token: str) -> None:
            return None

        await coordinator.run("profile", remote)

        assert api.me_cache.get("access-1") is None

    async def test__failure_rolls_back_and_surfaces_message(
        self, session_manager: SessionManager, profile_cache: ProfileCache,
    ) -> None:
        coordinator = _coordinator(session_manager, profile_cache)
        state = {"value": "old"}

        def optimistic():
            state["value"] = "new"
            return lambda: state.update(value="old")

        async def remote(token: str) -> None:
            raise ServerRejectedError("Endereço não encontrado")

        result = await coordinator.run("addresses", remote, optimistic=optimistic)

        assert not result.ok
        assert result.message == "Endereço não encontrado"
        assert state["value"] == "old"
        assert not coordinator.in_flight("addresses")

    async def test__auth_expiry_redirects_without_message(
        self,
        session_manager: SessionManager,
        profile_cache: ProfileCache,
        provider: FakeAuthProvider,
    ) -> None:
        coordinator = _coordinator(session_manager, profile_cache)

        async def remote(token: str) -> None:
            raise UnauthorizedError()

        result = await coordinator.run("profile", remote)

        assert result.redirect
        assert result.message is None
        assert provider.refresh_calls == 1
        assert not session_manager.is_signed_in

    async def test__second_mutation_on_same_key_is_refused(
        self, session_manager: SessionManager, profile_cache: ProfileCache,
    ) -> None:
        coordinator = _coordinator(session_manager, profile_cache)
        release = asyncio.Event()
        calls: list[str] = []

        async def slow(token: str) -> str:
            calls.append("slow")
            await release.wait()
            return "first"

        async def fast(token: str) -> str:
            calls.append("fast")
            return "second"

        first = asyncio.create_task(coordinator.run("addresses", slow))
        await asyncio.sleep(0)
        assert coordinator.in_flight("addresses")

        second = await coordinator.run("addresses", fast)
        release.set()

        assert not second.ok
        assert second.message == "Aguarde a operação em andamento terminar."
        assert (await first).value == "first"
        assert calls == ["slow"]

    async def test__different_keys_run_concurrently(
        self, session_manager: SessionManager, profile_cache: ProfileCache,
    ) -> None:
        coordinator = _coordinator(session_manager, profile_cache)
        release = asyncio.Event()

        async def slow(token: str) -> str:
            await release.wait()
            return "slow"

        async def fast(token: str) -> str:
            return "fast"

        first = asyncio.create_task(coordinator.run("addresses", slow))
        await asyncio.sleep(0)
        second = await coordinator.run("favorites", fast)
        release.set()

        assert second.ok
        assert (await first).ok
