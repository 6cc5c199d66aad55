"""Pydantic schemas for the user's product reviews."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Moderation status is owned by the server; the client never sets it
ReviewStatus = Literal["pending", "approved", "rejected"]

REVIEW_STATUSES: tuple[ReviewStatus, ...] = ("pending", "approved", "rejected")


class ReviewImage(BaseModel):
    """A photo attached to a review, moderated independently."""

    model_config = ConfigDict(frozen=True)

    url: str
    status: ReviewStatus = "pending"


class Review(BaseModel):
    """A review written by the signed-in user."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    sku: str
    rating: int = Field(ge=1, le=5)
    comment: str | None = None
    images: list[ReviewImage] = []
    status: ReviewStatus = "pending"
    moderation_note: str | None = Field(default=None, alias="moderationNote")
    helpful: int = 0
    created_at: datetime = Field(alias="createdAt")
