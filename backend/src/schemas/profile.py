"""Pydantic schemas for the user profile and its cached snapshot."""
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.address import Address

ALLOWED_AVATAR_TYPES = frozenset({"image/png", "image/jpeg", "image/webp", "image/gif"})


class Profile(BaseModel):
    """
    Authoritative profile record as returned by ``GET /auth/user/me``.

    ``email`` is never user-editable. The flat ``address``/``city``/``state``/
    ``cep`` fields are legacy values the server still stores; profile updates
    must echo them back unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    email: str
    name: str = ""
    phone: str = ""
    tax_id: str = Field(default="", alias="cpf")
    role: str = "user"
    addresses: list[Address] = []
    avatar_id: str | None = Field(default=None, alias="avatarId")
    custom_avatar_url: str | None = Field(default=None, alias="customAvatarUrl")
    created_at: datetime | None = None

    # Legacy single-address fields
    address: str = ""
    city: str = ""
    state: str = ""
    cep: str = ""

    @field_validator("name", "phone", "tax_id", "address", "city", "state", "cep", mode="before")
    @classmethod
    def null_to_empty(cls, v: str | None) -> str:
        """Older accounts store missing text fields as null."""
        return "" if v is None else v

    @field_validator("addresses", mode="before")
    @classmethod
    def null_to_no_addresses(cls, v: list | None) -> list:
        """Treat a null address list as empty."""
        return [] if v is None else v

    @property
    def is_incomplete(self) -> bool:
        """A profile missing CPF, phone or name must be completed by the user."""
        return not self.tax_id or not self.phone or not self.name

    @property
    def first_name(self) -> str:
        """First word of the name, used in greetings."""
        parts = self.name.split()
        return parts[0] if parts else "Usuário"


class ProfileUpdate(BaseModel):
    """
    Full mutable field set sent to ``PUT /auth/user/profile``.

    Phone and CPF must already be normalized to digits.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    phone: str
    tax_id: str = Field(alias="cpf")
    address: str = ""
    city: str = ""
    state: str = ""
    cep: str = ""


@dataclass
class ProfileSnapshot:
    """
    Minimal identity subset shared by every surface that shows the user.

    Persisted by ProfileCache so a freshly started surface can render the
    avatar before the network answers. When both avatar fields are set,
    ``custom_avatar_url`` wins for display.

    IMPORTANT: When adding, removing, or renaming fields here, bump
    CACHE_SCHEMA_VERSION in core/profile_cache.py so old entries are ignored.
    """

    name: str | None = None
    avatar_id: str | None = None
    custom_avatar_url: str | None = None


@dataclass(frozen=True)
class AvatarUpload:
    """A user-selected image file to become the custom avatar."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        """Size of the file in bytes."""
        return len(self.content)
