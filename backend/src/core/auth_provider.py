"""
Client for the hosted authentication server.

The server speaks the GoTrue token API (``/token``, ``/signup``, ``/logout``).
Session change events are not produced here; SessionManager is the single
event source for the rest of the system.
"""
import logging
from typing import Any, Protocol

import httpx

from core.config import get_settings
from schemas.session import Session, SignUpResult
from services.exceptions import NetworkError
from shared.api_client import decode_json_body
from shared.api_errors import to_account_error

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    """Operations the account layer consumes from the auth server."""

    async def sign_in(self, email: str, password: str) -> Session: ...

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, str],
    ) -> SignUpResult: ...

    async def refresh_session(self, refresh_token: str) -> Session: ...

    def get_session(self) -> Session | None: ...

    async def sign_out(self, access_token: str) -> None: ...


class HttpAuthProvider:
    """
    AuthProvider over HTTP.

    Keeps the current session in memory only; it is the "provider's own
    storage" from the account layer's point of view.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, api_key: str | None = None) -> None:
        settings = get_settings()
        self._client = client or httpx.AsyncClient(
            base_url=settings.auth_url,
            timeout=settings.api_timeout,
        )
        self._api_key = api_key if api_key is not None else settings.api_anon_key
        self._session: Session | None = None

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self._api_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _post(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.post(
                path, json=json, params=params, headers=self._headers(access_token),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise to_account_error(e, path) from e
        except httpx.TransportError as e:
            raise NetworkError() from e
        return decode_json_body(response, path)

    def _session_from(self, data: dict[str, Any]) -> Session:
        try:
            return Session.from_token_response(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("auth_malformed_token_response error=%s", e)
            raise NetworkError() from e

    async def sign_in(self, email: str, password: str) -> Session:
        """Exchange e-mail and password for a session."""
        data = await self._post(
            "/token",
            json={"email": email, "password": password},
            params={"grant_type": "password"},
        )
        self._session = self._session_from(data)
        logger.info("auth_sign_in user_id=%s", self._session.user_id)
        return self._session

    async def sign_up(self, email: str, password: str, metadata: dict[str, str]) -> SignUpResult:
        """Create an account. The server e-mails a confirmation link; no session is issued."""
        data = await self._post(
            "/signup",
            json={"email": email, "password": password, "data": metadata},
        )
        user = data.get("user")
        if not isinstance(user, dict):
            user = data
        logger.info("auth_sign_up user_id=%s", user.get("id"))
        return SignUpResult(
            user_id=str(user.get("id", "")),
            email=user.get("email", email),
            name=metadata.get("name", ""),
            confirmation_required=not data.get("access_token"),
        )

    async def refresh_session(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a new session. Refresh tokens are single-use."""
        data = await self._post(
            "/token",
            json={"refresh_token": refresh_token},
            params={"grant_type": "refresh_token"},
        )
        self._session = self._session_from(data)
        logger.info("auth_refresh user_id=%s", self._session.user_id)
        return self._session

    def get_session(self) -> Session | None:
        """Return the session the provider currently holds, if any."""
        return self._session

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session server-side and forget it locally."""
        self._session = None
        await self._post("/logout", access_token=access_token)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
