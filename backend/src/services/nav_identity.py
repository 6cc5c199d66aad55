"""
Identity badge shown in the site header.

The badge is an independent surface: it never hears from the account page
directly. It renders the ProfileCache snapshot immediately, refreshes from
``/me`` on session events, and picks up edits made elsewhere only when
``sync_from_cache`` runs. Consistency with the account page is eventual.
"""
import asyncio
import logging

from core.auth_retry import with_auth_retry
from core.profile_cache import ProfileCache
from core.session_manager import SessionEvent, SessionManager
from schemas.avatar import AvatarDisplay, resolve_avatar
from schemas.profile import ProfileSnapshot
from schemas.session import Session
from services.account_api import AccountApi
from services.exceptions import AccountError

logger = logging.getLogger(__name__)


class NavIdentity:
    """Header identity (name and avatar) kept in step with the session."""

    def __init__(
        self,
        session_manager: SessionManager,
        api: AccountApi,
        profile_cache: ProfileCache,
    ) -> None:
        self._session_manager = session_manager
        self._api = api
        self._profile_cache = profile_cache
        # Cached snapshot first so a returning user never sees a signed-out header
        self.snapshot: ProfileSnapshot | None = profile_cache.read()
        self._closed = False
        self._pending: set[asyncio.Task] = set()
        self._unsubscribe = session_manager.on_session_change(self._on_session_change)

    @property
    def signed_in(self) -> bool:
        """True when there is an identity to show."""
        return self.snapshot is not None

    @property
    def display_name(self) -> str:
        """Name shown next to the avatar."""
        if self.snapshot is not None and self.snapshot.name:
            return self.snapshot.name
        session = self._session_manager.session
        if session is not None and session.email:
            return session.email.split("@")[0]
        return "Usuário"

    @property
    def avatar(self) -> AvatarDisplay:
        """Avatar to draw."""
        if self.snapshot is None:
            return resolve_avatar(None, None)
        return resolve_avatar(self.snapshot.avatar_id, self.snapshot.custom_avatar_url)

    def _on_session_change(self, event: SessionEvent, session: Session | None) -> None:
        if event == SessionEvent.SIGNED_OUT:
            self.snapshot = None
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.refresh())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def refresh(self) -> None:
        """
        Fetch the profile and persist the snapshot.

        Failures keep the current snapshot; the badge is never blanked by a
        transient error.
        """
        try:
            profile = await with_auth_retry(
                self._session_manager, self._api.get_me, name="nav_identity",
            )
        except AccountError as e:
            logger.info("nav_identity_refresh_failed error=%s", e.message)
            return
        if self._closed:
            logger.debug("nav_identity_refresh_discarded")
            return
        self.snapshot = self._profile_cache.write(
            name=profile.name or None,
            avatar_id=profile.avatar_id,
            custom_avatar_url=profile.custom_avatar_url,
        )

    def sync_from_cache(self) -> ProfileSnapshot | None:
        """Re-read the shared snapshot, picking up edits made by other surfaces."""
        if self._closed:
            return self.snapshot
        if not self._session_manager.is_signed_in:
            self.snapshot = None
            return None
        cached = self._profile_cache.read()
        if cached is not None:
            self.snapshot = cached
        return self.snapshot

    def close(self) -> None:
        """Unsubscribe and cancel outstanding fetches."""
        self._closed = True
        self._unsubscribe()
        for task in list(self._pending):
            task.cancel()
