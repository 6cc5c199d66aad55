"""Favorites (wishlist) membership for the signed-in user."""
import asyncio
import logging

from core.auth_retry import with_auth_retry
from core.session_manager import SessionEvent, SessionManager
from schemas.favorite import FavoriteEntry
from schemas.session import Session
from services.account_api import AccountApi
from services.exceptions import AccountError, AuthExpiredError
from services.mutation_coordinator import MutationCoordinator, OperationResult

logger = logging.getLogger(__name__)

FAVORITES_KEY = "favorites"


def _dedupe(entries: list[FavoriteEntry]) -> list[FavoriteEntry]:
    """Keep the first entry per sku, preserving server order."""
    seen: set[str] = set()
    unique = []
    for entry in entries:
        if entry.sku not in seen:
            seen.add(entry.sku)
            unique.append(entry)
    return unique


class Favorites:
    """
    Favorited products.

    Membership is replaced wholesale by the list each mutation returns. A
    toggle issued while another favorites mutation is outstanding is ignored
    without a request, which absorbs double clicks.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        api: AccountApi,
        coordinator: MutationCoordinator,
    ) -> None:
        self._session_manager = session_manager
        self._api = api
        self._coordinator = coordinator
        self._entries: list[FavoriteEntry] = []
        self._skus: frozenset[str] = frozenset()
        self.error: str | None = None
        self._closed = False
        self._reload_task: asyncio.Task | None = None
        self._unsubscribe = session_manager.on_session_change(self._on_session_change)

    def close(self) -> None:
        """Detach from session events and drop late results."""
        self._closed = True
        self._unsubscribe()
        if self._reload_task is not None and not self._reload_task.done():
            self._reload_task.cancel()

    def _on_session_change(self, event: SessionEvent, session: Session | None) -> None:
        if event == SessionEvent.SIGNED_OUT:
            self.entries = []
        elif event == SessionEvent.SIGNED_IN:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # Restored outside the event loop; the first load() picks it up
                return
            self._reload_task = loop.create_task(self.load())

    def _adopt(self, entries: list[FavoriteEntry]) -> None:
        if not self._closed:
            self.entries = _dedupe(entries)

    @property
    def entries(self) -> list[FavoriteEntry]:
        """Favorites in server order."""
        return self._entries

    @entries.setter
    def entries(self, entries: list[FavoriteEntry]) -> None:
        # Membership checks read the derived sku set
        self._entries = list(entries)
        self._skus = frozenset(e.sku for e in self._entries)

    @property
    def skus(self) -> frozenset[str]:
        """Favorited skus."""
        return self._skus

    @property
    def count(self) -> int:
        """Number of favorited products."""
        return len(self.entries)

    @property
    def busy(self) -> bool:
        """True while a favorites mutation is outstanding."""
        return self._coordinator.in_flight(FAVORITES_KEY)

    def is_favorite(self, sku: str) -> bool:
        """Return True if ``sku`` is favorited."""
        return sku in self._skus

    async def load(self) -> OperationResult[list[FavoriteEntry]]:
        """Fetch favorites. Silently empty when signed out."""
        if not self._session_manager.is_signed_in:
            if not self._closed:
                self.entries = []
            return OperationResult.success([])
        try:
            entries = await with_auth_retry(
                self._session_manager, self._api.list_favorites, name="list_favorites",
            )
        except AuthExpiredError:
            return OperationResult(ok=False, redirect=True)
        except AccountError as e:
            logger.warning("favorites_load_failed error=%s", e.message)
            if not self._closed:
                self.error = e.message
            return OperationResult(ok=False, message=e.message)
        self._adopt(entries)
        return OperationResult.success(self.entries)

    async def add(self, sku: str, titulo: str = "") -> OperationResult[list[FavoriteEntry]]:
        """Favorite a product."""
        async def remote(token: str) -> list[FavoriteEntry]:
            return await self._api.add_favorite(token, sku, titulo)

        return await self._mutate(remote, "add_favorite")

    async def remove(self, sku: str) -> OperationResult[list[FavoriteEntry]]:
        """Unfavorite a product."""
        async def remote(token: str) -> list[FavoriteEntry]:
            return await self._api.remove_favorite(token, sku)

        return await self._mutate(remote, "remove_favorite")

    async def toggle(self, sku: str, titulo: str = "") -> OperationResult[list[FavoriteEntry]] | None:
        """
        Add ``sku`` if absent, remove it if present.

        Returns:
            The mutation result, or None when the toggle was ignored because
            another favorites mutation is in flight.
        """
        if self.busy:
            logger.debug("favorite_toggle_ignored sku=%s", sku)
            return None
        if self.is_favorite(sku):
            return await self.remove(sku)
        return await self.add(sku, titulo)

    async def _mutate(self, remote, name: str) -> OperationResult[list[FavoriteEntry]]:
        self.error = None
        result = await self._coordinator.run(FAVORITES_KEY, remote, apply=self._adopt, name=name)
        if not result.ok and not result.redirect and not self._closed:
            self.error = result.message
        return result
