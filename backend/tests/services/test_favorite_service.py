"""Tests for favorites membership."""
import asyncio
from collections.abc import Generator

import pytest
import respx
from httpx import Response

from core.session_manager import SessionManager
from schemas.favorite import FavoriteEntry
from services.account_api import AccountApi
from services.favorite_service import Favorites
from services.mutation_coordinator import MutationCoordinator


@pytest.fixture
def favorites(
    session_manager: SessionManager, api: AccountApi, coordinator: MutationCoordinator,
) -> Generator[Favorites]:
    service = Favorites(session_manager, api, coordinator)
    yield service
    service.close()


def _favorite(sku: str) -> dict:
    return {"sku": sku, "titulo": f"Peça {sku}", "addedAt": "2026-01-01T00:00:00Z"}


class TestToggle:
    """Tests for toggling favorites."""

    async def test__double_toggle_restores_membership(
        self, mock_api: respx.MockRouter, favorites: Favorites,
    ) -> None:
        mock_api.post("/auth/user/favorites").mock(return_value=Response(200, json={
            "favorites": [_favorite("SKU-1")],
        }))
        mock_api.delete("/auth/user/favorites/SKU-1").mock(return_value=Response(200, json={
            "favorites": [],
        }))

        await favorites.toggle("SKU-1", "Peça SKU-1")
        assert favorites.is_favorite("SKU-1")

        await favorites.toggle("SKU-1")
        assert not favorites.is_favorite("SKU-1")
        assert favorites.count == 0

    async def test__adoption_drops_duplicate_skus(
        self, mock_api: respx.MockRouter, favorites: Favorites,
    ) -> None:
        mock_api.post("/auth/user/favorites").mock(return_value=Response(200, json={
            "favorites": [_favorite("SKU-1"), _favorite("SKU-2"), _favorite("SKU-1")],
        }))

        await favorites.add("SKU-2")

        assert [e.sku for e in favorites.entries] == ["SKU-1", "SKU-2"]
        assert favorites.skus == frozenset({"SKU-1", "SKU-2"})

    async def test__toggle_while_in_flight_is_ignored(
        self, monkeypatch: pytest.MonkeyPatch, api: AccountApi, favorites: Favorites,
    ) -> None:
        release = asyncio.Event()
        calls: list[str] = []

        async def slow_add(token: str, sku: str, titulo: str) -> list[FavoriteEntry]:
            calls.append(sku)
            await release.wait()
            return [FavoriteEntry(sku=sku)]

        monkeypatch.setattr(api, "add_favorite", slow_add)

        first = asyncio.create_task(favorites.toggle("SKU-1"))
        for _ in range(5):
            await asyncio.sleep(0)
        assert favorites.busy

        second = await favorites.toggle("SKU-1")
        release.set()
        await first

        assert second is None
        assert calls == ["SKU-1"]
        assert favorites.is_favorite("SKU-1")

    async def test__failure_keeps_membership_and_sets_error(
        self, mock_api: respx.MockRouter, favorites: Favorites,
    ) -> None:
        favorites.entries = [FavoriteEntry(sku="SKU-1")]
        mock_api.delete("/auth/user/favorites/SKU-1").mock(return_value=Response(500))

        result = await favorites.toggle("SKU-1")

        assert not result.ok
        assert favorites.is_favorite("SKU-1")
        assert favorites.error == "Erro de conexão. Tente novamente."


class TestSessionEvents:
    """Tests for session-driven reload and reset."""

    async def test__sign_out_clears_favorites(
        self, favorites: Favorites, session_manager: SessionManager,
    ) -> None:
        favorites.entries = [FavoriteEntry(sku="SKU-1")]
        await session_manager.sign_out()
        assert favorites.count == 0

    async def test__sign_in_reloads(
        self, mock_api: respx.MockRouter, favorites: Favorites, session_manager: SessionManager,
    ) -> None:
        route = mock_api.get("/auth/user/favorites").mock(return_value=Response(200, json={
            "favorites": [_favorite("SKU-9")],
        }))

        await session_manager.sign_in("maria@example.com", "secret1")
        await favorites._reload_task

        assert route.called
        assert favorites.is_favorite("SKU-9")

    async def test__load_when_signed_out_is_empty(
        self, mock_api: respx.MockRouter, favorites: Favorites, session_manager: SessionManager,
    ) -> None:
        route = mock_api.get("/auth/user/favorites")
        await session_manager.sign_out()

        result = await favorites.load()

        assert result.ok
        assert not route.called


class TestMembership:
    """Tests for the derived sku set."""

    async def test__sku_set_follows_adopted_list(
        self, mock_api: respx.MockRouter, favorites: Favorites,
    ) -> None:
        mock_api.get("/auth/user/favorites").mock(return_value=Response(200, json={
            "favorites": [_favorite("SKU-1"), _favorite("SKU-2")],
        }))

        await favorites.load()

        assert favorites.skus is favorites.skus
        assert favorites.skus == frozenset({"SKU-1", "SKU-2"})
        assert favorites.is_favorite("SKU-2")
        assert not favorites.is_favorite("SKU-3")

    async def test__sign_out_empties_sku_set(
        self, favorites: Favorites, session_manager: SessionManager,
    ) -> None:
        favorites.entries = [FavoriteEntry(sku="SKU-1")]
        assert favorites.is_favorite("SKU-1")

        await session_manager.sign_out()

        assert favorites.skus == frozenset()
        assert not favorites.is_favorite("SKU-1")

    async def test__closed_surface_ignores_late_load(
        self, mock_api: respx.MockRouter, favorites: Favorites,
    ) -> None:
        mock_api.get("/auth/user/favorites").mock(return_value=Response(500))
        favorites.entries = [FavoriteEntry(sku="SKU-1")]
        favorites.close()

        result = await favorites.load()

        assert not result.ok
        assert favorites.error is None
        assert favorites.is_favorite("SKU-1")
