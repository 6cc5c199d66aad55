"""Typed endpoints of the store API used by the account area."""
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from core.config import get_settings
from core.me_cache import MeCache
from schemas.address import Address, AddressPayload
from schemas.favorite import FavoriteEntry
from schemas.order import Order
from schemas.profile import AvatarUpload, Profile, ProfileUpdate
from schemas.review import Review
from services.exceptions import NetworkError
from shared.api_client import (
    api_delete,
    api_get,
    api_post,
    api_put,
    api_upload,
    create_http_client,
    parse_model,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _parse_list(model: type[M], data: dict[str, Any], key: str) -> list[M]:
    """Validate the list under ``key``; a missing or null list is empty."""
    items = data.get(key) or []
    if not isinstance(items, list):
        logger.warning("api_unexpected_list key=%s type=%s", key, type(items).__name__)
        raise NetworkError()
    return [parse_model(model, item, key) for item in items]


class AccountApi:
    """
    Store API client for profile, avatar, address, favorite, order and review calls.

    Collection mutations return the server's full, authoritative list.
    ``get_me`` reads go through a short-lived MeCache that mutations must
    invalidate (see MutationCoordinator).
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        me_cache: MeCache | None = None,
    ) -> None:
        self._client = client or create_http_client()
        self.me_cache = me_cache or MeCache(ttl=get_settings().me_cache_ttl)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # --- Profile ---

    async def get_me(self, token: str) -> Profile:
        """Fetch the signed-in user's profile."""
        cached = self.me_cache.get(token)
        if cached is not None:
            return cached
        data = await api_get(self._client, "/auth/user/me", token)
        profile = parse_model(Profile, data, "/auth/user/me")
        self.me_cache.set(token, profile)
        return profile

    async def update_profile(self, token: str, update: ProfileUpdate) -> dict[str, Any]:
        """Replace the mutable profile fields."""
        return await api_put(
            self._client, "/auth/user/profile", token, update.model_dump(by_alias=True),
        )

    async def set_avatar(self, token: str, avatar_id: str) -> None:
        """Select a stock avatar. The server clears any custom photo."""
        await api_put(self._client, "/auth/user/avatar", token, {"avatarId": avatar_id})

    async def upload_avatar(self, token: str, upload: AvatarUpload) -> str:
        """Upload a custom avatar photo and return its public URL."""
        data = await api_upload(
            self._client,
            "/auth/user/avatar/upload",
            token,
            files={"file": (upload.filename, upload.content, upload.content_type)},
        )
        url = data.get("customAvatarUrl")
        if not isinstance(url, str) or not url:
            logger.warning("avatar_upload_missing_url")
            raise NetworkError()
        return url

    async def delete_custom_avatar(self, token: str) -> str | None:
        """Remove the custom photo; return the stock avatar id the server falls back to."""
        data = await api_delete(self._client, "/auth/user/avatar/custom", token)
        avatar_id = data.get("avatarId")
        return avatar_id if isinstance(avatar_id, str) else None

    async def forgot_password(self, email: str) -> str | None:
        """Send a password recovery e-mail; return the recovery id when issued."""
        data = await api_post(
            self._client, "/auth/user/forgot-password", None, {"email": email},
        )
        recovery_id = data.get("recoveryId")
        return recovery_id if isinstance(recovery_id, str) else None

    # --- Addresses ---

    @staticmethod
    def _addresses(data: dict[str, Any]) -> list[Address]:
        return _parse_list(Address, data, "addresses")

    async def list_addresses(self, token: str) -> list[Address]:
        """List saved addresses."""
        return self._addresses(await api_get(self._client, "/auth/user/addresses", token))

    async def create_address(self, token: str, payload: AddressPayload) -> list[Address]:
        """Create an address; returns the full list."""
        data = await api_post(self._client, "/auth/user/addresses", token, payload.to_wire())
        return self._addresses(data)

    async def update_address(
        self, token: str, address_id: str, patch: dict[str, Any],
    ) -> list[Address]:
        """Update an address (full payload or a single field); returns the full list."""
        data = await api_put(self._client, f"/auth/user/addresses/{address_id}", token, patch)
        return self._addresses(data)

    async def delete_address(self, token: str, address_id: str) -> list[Address]:
        """Delete an address; returns the full list."""
        data = await api_delete(self._client, f"/auth/user/addresses/{address_id}", token)
        return self._addresses(data)

    # --- Favorites ---

    @staticmethod
    def _favorites(data: dict[str, Any]) -> list[FavoriteEntry]:
        return _parse_list(FavoriteEntry, data, "favorites")

    async def list_favorites(self, token: str) -> list[FavoriteEntry]:
        """List favorited products."""
        return self._favorites(await api_get(self._client, "/auth/user/favorites", token))

    async def add_favorite(self, token: str, sku: str, titulo: str) -> list[FavoriteEntry]:
        """Favorite a product; returns the full list."""
        data = await api_post(
            self._client, "/auth/user/favorites", token, {"sku": sku, "titulo": titulo},
        )
        return self._favorites(data)

    async def remove_favorite(self, token: str, sku: str) -> list[FavoriteEntry]:
        """Unfavorite a product; returns the full list."""
        data = await api_delete(self._client, f"/auth/user/favorites/{sku}", token)
        return self._favorites(data)

    # --- Orders & reviews ---

    async def my_orders(self, token: str) -> list[Order]:
        """List the user's orders."""
        data = await api_get(self._client, "/auth/user/my-orders", token)
        return _parse_list(Order, data, "orders")

    async def user_reviews(self, token: str) -> list[Review]:
        """List the reviews the user has written."""
        data = await api_get(self._client, "/reviews/user", token)
        return _parse_list(Review, data, "reviews")
