"""
Serialized, retry-aware execution of profile and collection mutations.

Every surface funnels its writes through MutationCoordinator.run so that
the in-flight gate, the one-refresh auth policy, /me cache invalidation,
snapshot writes and rollback happen the same way everywhere.
"""
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from core.auth_retry import with_auth_retry
from core.profile_cache import ProfileCache
from core.session_manager import SessionManager
from services.account_api import AccountApi
from services.exceptions import (
    AccountError,
    AuthExpiredError,
    OperationInProgressError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """
    Outcome of a user-triggered operation, ready for a surface to render.

    ``redirect`` means the session is gone and the user must log in again;
    no error message is shown in that case.
    """

    ok: bool
    message: str | None = None
    field: str | None = None
    redirect: bool = False
    value: T | None = None

    @classmethod
    def success(cls, value: T | None = None, message: str | None = None) -> "OperationResult[T]":
        return cls(ok=True, value=value, message=message)

    @classmethod
    def from_error(cls, error: AccountError) -> "OperationResult[T]":
        """Map an AccountError to the result a surface shows."""
        if isinstance(error, AuthExpiredError):
            return cls(ok=False, redirect=True)
        if isinstance(error, ValidationError):
            return cls(ok=False, message=error.message, field=error.field)
        return cls(ok=False, message=error.message)


class MutationCoordinator:
    """
    Runs mutations with a per-resource in-flight gate.

    A second mutation for a key that is already running is refused with
    OperationInProgressError; the first one is never cancelled.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        profile_cache: ProfileCache,
        api: AccountApi,
    ) -> None:
        self.session_manager = session_manager
        self.profile_cache = profile_cache
        # Invalidate the same /me cache the API reads through
        self.me_cache = api.me_cache
        self._in_flight: set[str] = set()

    def in_flight(self, key: str) -> bool:
        """True while a mutation for ``key`` is outstanding."""
        return key in self._in_flight

    async def run(
        self,
        key: str,
        remote: Callable[[str], Awaitable[T]],
        *,
        apply: Callable[[T], None] | None = None,
        optimistic: Callable[[], Callable[[], None]] | None = None,
        snapshot: Callable[[T], dict[str, Any]] | None = None,
        success_message: str | None = None,
        name: str = "",
    ) -> OperationResult[T]:
        """
        Execute one mutation.

        Args:
            key: Resource key for the in-flight gate (e.g. "addresses").
            remote: Coroutine function receiving an access token.
            apply: Applies the server result to local state.
            optimistic: Applies local state before the call and returns a
                rollback callable, invoked if the mutation fails.
            snapshot: Returns ProfileCache fields to write from the result.
                Written in the same step as ``apply``.
            success_message: Message to attach on success.
            name: Operation name for logs.

        Returns:
            OperationResult; never raises AccountError.
        """
        if key in self._in_flight:
            logger.info("mutation_rejected_in_flight key=%s operation=%s", key, name)
            return OperationResult.from_error(OperationInProgressError(key))

        self._in_flight.add(key)
        rollback = optimistic() if optimistic is not None else None
        try:
            result = await with_auth_retry(self.session_manager, remote, name=name)
        except AccountError as e:
            if rollback is not None:
                rollback()
            logger.info("mutation_failed key=%s operation=%s error=%s", key, name, e.message)
            return OperationResult.from_error(e)
        finally:
            self._in_flight.discard(key)

        self.me_cache.invalidate()
        if apply is not None:
            apply(result)
        if snapshot is not None:
            self.profile_cache.write(**snapshot(result))
        logger.info("mutation_succeeded key=%s operation=%s", key, name)
        return OperationResult.success(result, success_message)
