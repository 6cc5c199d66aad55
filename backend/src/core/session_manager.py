"""Authentication session lifecycle: acquisition, refresh and change notification."""
import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, UTC
from enum import StrEnum

from core.auth_provider import AuthProvider
from core.config import get_settings
from core.profile_cache import ProfileCache
from schemas.session import Session, SignUpResult
from services.exceptions import AccountError, AuthExpiredError, NetworkError

logger = logging.getLogger(__name__)


class SessionEvent(StrEnum):
    """Typed session change events delivered to listeners."""

    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    TOKEN_REFRESHED = "token_refreshed"


SessionListener = Callable[[SessionEvent, Session | None], None]


class SessionManager:
    """
    Sole owner of the authentication session.

    Every surface asks this object for tokens and subscribes to its events;
    none of them talk to the auth provider directly. Concurrent refresh
    requests collapse into one provider call, since refresh tokens are
    single-use and a second exchange of the same token is rejected.
    """

    def __init__(
        self,
        provider: AuthProvider,
        profile_cache: ProfileCache | None = None,
        refresh_margin: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider = provider
        self._profile_cache = profile_cache
        self._refresh_margin = (
            refresh_margin if refresh_margin is not None
            else get_settings().token_refresh_margin
        )
        self._clock = clock or (lambda: datetime.now(UTC))
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []
        self._refresh_task: asyncio.Task[Session] | None = None

    @property
    def session(self) -> Session | None:
        """The current session, or None when signed out."""
        return self._session

    @property
    def is_signed_in(self) -> bool:
        """True while a session is held."""
        return self._session is not None

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener for sign-in, sign-out and token-refresh events.

        Returns:
            A callable that unsubscribes the listener. Calling it twice is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: SessionEvent, session: Session | None) -> None:
        """Deliver an event to every listener; a failing listener is logged and skipped."""
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                logger.exception("session_listener_failed event=%s", event)

    def restore(self) -> Session | None:
        """
        Adopt the session the provider kept from a previous run, if any.

        Emits SIGNED_IN when a session is adopted.
        """
        if self._session is not None:
            return self._session
        stored = self._provider.get_session()
        if stored is not None:
            self._session = stored
            logger.info("session_restored user_id=%s", stored.user_id)
            self._notify(SessionEvent.SIGNED_IN, stored)
        return self._session

    async def sign_in(self, email: str, password: str) -> Session:
        """Authenticate with e-mail and password and announce SIGNED_IN."""
        session = await self._provider.sign_in(email, password)
        self._session = session
        self._notify(SessionEvent.SIGNED_IN, session)
        return session

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, str],
    ) -> SignUpResult:
        """Register a new account. No session results until the e-mail is confirmed."""
        return await self._provider.sign_up(email, password, metadata)

    async def get_valid_token(self) -> str:
        """
        Return an access token that is unexpired at call time.

        Refreshes first when the token expires within the refresh margin.

        Raises:
            AuthExpiredError: If there is no session or the refresh is rejected.
            NetworkError: If the refresh could not reach the auth server.
        """
        session = self._session or self.restore()
        if session is None:
            raise AuthExpiredError("Nenhuma sessão ativa.")
        if not session.expires_within(self._refresh_margin, self._clock()):
            return session.access_token
        logger.info("session_token_expiring user_id=%s", session.user_id)
        refreshed = await self.refresh()
        return refreshed.access_token

    async def refresh(self) -> Session:
        """
        Force a token refresh.

        Callers arriving while a refresh is in flight await the same one.
        Cancelling one caller does not cancel the shared refresh.
        """
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._do_refresh())
        else:
            logger.debug("session_refresh_joined")
        return await asyncio.shield(self._refresh_task)

    async def _do_refresh(self) -> Session:
        session = self._session
        if session is None:
            raise AuthExpiredError("Nenhuma sessão ativa.")
        try:
            fresh = await self._provider.refresh_session(session.refresh_token)
        except NetworkError:
            logger.warning("session_refresh_unreachable user_id=%s", session.user_id)
            raise
        except AccountError as e:
            logger.warning("session_refresh_rejected user_id=%s error=%s", session.user_id, e)
            raise AuthExpiredError() from e
        if self._session is None:
            # Signed out while the refresh was outstanding
            raise AuthExpiredError()
        self._session = fresh
        logger.info("session_refreshed user_id=%s", fresh.user_id)
        self._notify(SessionEvent.TOKEN_REFRESHED, fresh)
        return fresh

    async def sign_out(self) -> None:
        """
        End the session, clear the snapshot cache and announce SIGNED_OUT.

        Idempotent: without a session this only re-clears the snapshot.
        A failure to revoke the session server-side is logged only.
        """
        session = self._session
        if self._profile_cache is not None:
            self._profile_cache.clear()
        if session is None:
            return
        self._session = None
        logger.info("session_signed_out user_id=%s", session.user_id)
        self._notify(SessionEvent.SIGNED_OUT, None)
        try:
            await self._provider.sign_out(session.access_token)
        except AccountError as e:
            logger.warning("session_remote_sign_out_failed user_id=%s error=%s", session.user_id, e)
