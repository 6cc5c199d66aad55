"""Shared "try, refresh once, retry, else sign out" wrapper for authenticated calls."""
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from core.session_manager import SessionManager
from services.exceptions import AuthExpiredError, UnauthorizedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_auth_retry(
    session_manager: SessionManager,
    operation: Callable[[str], Awaitable[T]],
    name: str = "",
) -> T:
    """
    Run an authenticated operation with the one-refresh retry policy.

    A 401 may be a premature expiry caused by clock skew, so the session is
    refreshed exactly once and the operation retried with the new token. If
    the refresh is rejected or the retry is unauthorized too, the session is
    dead: sign out and raise AuthExpiredError so the caller redirects to login.

    Args:
        session_manager: Source of tokens.
        operation: Coroutine function receiving an access token.
        name: Operation name for logs.

    Returns:
        Whatever ``operation`` returns.

    Raises:
        AuthExpiredError: The session could not be recovered (already signed out).
        AccountError: Any non-auth failure from ``operation`` passes through.
    """
    try:
        token = await session_manager.get_valid_token()
    except AuthExpiredError:
        await session_manager.sign_out()
        raise

    try:
        return await operation(token)
    except UnauthorizedError:
        logger.info("auth_retry_refreshing operation=%s", name)

    try:
        session = await session_manager.refresh()
    except AuthExpiredError:
        logger.warning("auth_retry_refresh_failed operation=%s", name)
        await session_manager.sign_out()
        raise

    try:
        return await operation(session.access_token)
    except UnauthorizedError as e:
        logger.warning("auth_retry_still_unauthorized operation=%s", name)
        await session_manager.sign_out()
        raise AuthExpiredError() from e
