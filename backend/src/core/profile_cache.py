"""Durable, process-wide mirror of the identity snapshot shown by every surface."""
import json
import logging
import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Protocol

from core.config import get_settings
from schemas.profile import ProfileSnapshot

logger = logging.getLogger(__name__)

# Fixed key under which the snapshot is persisted in the local store
PROFILE_CACHE_KEY = "user_session_cache"

# Cache schema version - stored alongside the snapshot.
#
# Bump this version when ProfileSnapshot fields are added, removed, or renamed.
# Entries written with another version are treated as a miss and overwritten
# on the next write.
CACHE_SCHEMA_VERSION = 1

# Wire names match what the web storefront keeps in localStorage
_WIRE_NAMES = {
    "name": "name",
    "avatar_id": "avatarId",
    "custom_avatar_url": "customAvatarUrl",
}
_SNAPSHOT_FIELDS = frozenset(f.name for f in fields(ProfileSnapshot))


class KeyValueStore(Protocol):
    """Synchronous string key-value store that survives restarts."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store. Nothing survives the process; used in tests and previews."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """
    Store backed by a single JSON object on disk.

    Read and write failures are logged and degrade to a cache miss; the
    snapshot is only an optimization and must never break a surface.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning("local_store_read_failed path=%s error=%s", self._path, e)
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("local_store_corrupt path=%s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.warning("local_store_write_failed path=%s error=%s", self._path, e)

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


def default_local_store() -> JsonFileStore:
    """File store at the configured LOCAL_CACHE_PATH."""
    return JsonFileStore(get_settings().local_cache_path)


class ProfileCache:
    """
    Snapshot of the signed-in identity, shared by independent surfaces.

    Lifecycle:
    - ``write`` whenever the full profile is fetched and synchronously with
      every successful avatar mutation (select, upload, remove);
    - ``read`` on cold start, before the network answers;
    - ``clear`` on sign-out.
    """

    def __init__(self, store: KeyValueStore | None = None, key: str = PROFILE_CACHE_KEY) -> None:
        self._store = store if store is not None else default_local_store()
        self._key = key

    def read(self) -> ProfileSnapshot | None:
        """Return the last known snapshot, or None on a miss."""
        raw = self._store.get(self._key)
        if not raw:
            logger.debug("profile_cache_miss key=%s", self._key)
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("profile_cache_corrupt key=%s", self._key)
            return None
        if not isinstance(data, dict) or data.get("v") != CACHE_SCHEMA_VERSION:
            logger.debug("profile_cache_stale_schema key=%s", self._key)
            return None
        logger.debug("profile_cache_hit key=%s", self._key)
        return ProfileSnapshot(**{
            attr: data.get(wire) for attr, wire in _WIRE_NAMES.items()
        })

    def write(self, **changes: Any) -> ProfileSnapshot:
        """
        Merge ``changes`` into the persisted snapshot.

        Fields not supplied keep their cached value. Passing ``None``
        explicitly clears a field.

        Returns:
            The snapshot as persisted.

        Raises:
            TypeError: If a change names a field ProfileSnapshot does not have.
        """
        unknown = set(changes) - _SNAPSHOT_FIELDS
        if unknown:
            raise TypeError(f"Unknown snapshot field(s): {', '.join(sorted(unknown))}")
        current = asdict(self.read() or ProfileSnapshot())
        current.update(changes)
        snapshot = ProfileSnapshot(**current)
        payload = {wire: current[attr] for attr, wire in _WIRE_NAMES.items()}
        payload["v"] = CACHE_SCHEMA_VERSION
        self._store.set(self._key, json.dumps(payload))
        logger.debug("profile_cache_write key=%s fields=%s", self._key, sorted(changes))
        return snapshot

    def clear(self) -> None:
        """Forget the snapshot (sign-out)."""
        self._store.delete(self._key)
        logger.debug("profile_cache_clear key=%s", self._key)
