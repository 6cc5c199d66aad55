"""Pydantic schemas for favorites (wishlist)."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FavoriteEntry(BaseModel):
    """A favorited product, unique by ``sku``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sku: str
    titulo: str = ""
    added_at: datetime | None = Field(default=None, alias="addedAt")

    @field_validator("titulo", mode="before")
    @classmethod
    def null_titulo_to_empty(cls, v: str | None) -> str:
        return "" if v is None else v
