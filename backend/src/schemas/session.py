"""Pydantic schemas for authentication sessions."""
from datetime import datetime, timedelta, UTC
from typing import Any

from pydantic import BaseModel, ConfigDict


class Session(BaseModel):
    """
    Authenticated credential pair plus its expiry.

    Owned by SessionManager. Never persisted by this library; the auth
    provider's own storage is the only place it lives between runs.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    expires_at: datetime
    user_id: str
    email: str | None = None

    def expires_within(self, seconds: float, now: datetime | None = None) -> bool:
        """Return True if the access token expires in less than ``seconds``."""
        now = now or datetime.now(UTC)
        return (self.expires_at - now).total_seconds() <= seconds

    @classmethod
    def from_token_response(cls, data: dict[str, Any], now: datetime | None = None) -> "Session":
        """
        Build a Session from an auth-server token response.

        Prefers the absolute ``expires_at`` (epoch seconds) and falls back to
        ``expires_in`` relative to ``now``.
        """
        now = now or datetime.now(UTC)
        if data.get("expires_at"):
            expires_at = datetime.fromtimestamp(int(data["expires_at"]), UTC)
        else:
            expires_at = now + timedelta(seconds=int(data.get("expires_in", 3600)))
        user = data.get("user") or {}
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=expires_at,
            user_id=str(user.get("id", "")),
            email=user.get("email"),
        )


class SignUpResult(BaseModel):
    """Outcome of a registration: the account exists but awaits e-mail confirmation."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str
    email: str
    name: str = ""
    confirmation_required: bool = True
