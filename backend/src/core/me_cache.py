"""Short-lived read cache for ``GET /auth/user/me``."""
import hashlib
import logging
import time
from collections.abc import Callable

from schemas.profile import Profile

logger = logging.getLogger(__name__)


class MeCache:
    """
    Caches the profile read per access token.

    Several surfaces fetch ``/me`` around the same moment (nav badge, account
    page). A short TTL collapses those reads; every profile mutation calls
    ``invalidate`` so no surface reads a pre-mutation profile afterwards.
    """

    def __init__(self, ttl: float = 30.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Profile]] = {}

    def _cache_key(self, token: str) -> str:
        """Key by token hash so raw tokens are not kept as dict keys."""
        return hashlib.sha256(token.encode()).hexdigest()

    def get(self, token: str) -> Profile | None:
        """Return the cached profile for ``token`` if still fresh."""
        key = self._cache_key(token)
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("me_cache_miss")
            return None
        stored_at, profile = entry
        if self._clock() - stored_at > self._ttl:
            del self._entries[key]
            logger.debug("me_cache_expired")
            return None
        logger.debug("me_cache_hit user_id=%s", profile.id)
        return profile

    def set(self, token: str, profile: Profile) -> None:
        """Cache ``profile`` as read with ``token``."""
        self._entries[self._cache_key(token)] = (self._clock(), profile)

    def invalidate(self) -> None:
        """Drop every cached read."""
        self._entries.clear()
        logger.debug("me_cache_invalidate")
