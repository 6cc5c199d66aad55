"""
Shared API error parsing for the store and auth clients.

Translates httpx failures into the account error taxonomy. The store API
reports failures as ``{"error": "..."}``; the auth server uses ``error_description``,
``msg`` or ``message``. FastAPI-style ``detail`` bodies are accepted too.
"""

from dataclasses import dataclass
from typing import Any, Literal

import httpx

from services.exceptions import (
    AccountError,
    NetworkError,
    NotFoundError,
    ServerRejectedError,
    UnauthorizedError,
)

ErrorCategory = Literal[
    "auth",       # 401 - Invalid or expired token
    "not_found",  # 404 - Resource not found
    "rejected",   # other 4xx - Server refused with a reason
    "internal",   # 5xx - Server failure, retryable
]

_MESSAGE_KEYS = ("error_description", "error", "msg", "message")


@dataclass
class ParsedApiError:
    """Parsed API error with semantic category and message."""

    category: ErrorCategory
    message: str
    status_code: int


def parse_http_error(e: httpx.HTTPStatusError, path: str = "") -> ParsedApiError:
    """
    Parse HTTP error into semantic categories.

    Args:
        e: The HTTP status error from httpx
        path: Request path, used in the fallback message when the body carries none

    Returns:
        ParsedApiError with category, message and status code
    """
    status = e.response.status_code
    server_message = _extract_message(e)
    fallback = f"HTTP {status} on {path}" if path else f"HTTP {status}"

    if status == 401:
        return ParsedApiError("auth", server_message or "Token inválido ou expirado.", status)
    if status == 404:
        return ParsedApiError("not_found", server_message or "Não encontrado.", status)
    if 400 <= status < 500:
        return ParsedApiError("rejected", server_message or fallback, status)
    return ParsedApiError("internal", server_message or fallback, status)


def to_account_error(e: httpx.HTTPStatusError, path: str = "") -> AccountError:
    """Convert an httpx status error into the matching AccountError subclass."""
    parsed = parse_http_error(e, path)
    if parsed.category == "auth":
        return UnauthorizedError(parsed.message)
    if parsed.category == "not_found":
        return NotFoundError(parsed.message)
    if parsed.category == "rejected":
        return ServerRejectedError(parsed.message, status_code=parsed.status_code)
    # Server failures are shown as the generic retryable message
    return NetworkError()


def _safe_get_body(e: httpx.HTTPStatusError) -> dict[str, Any]:
    """Safely extract the JSON body from an error response."""
    try:
        body = e.response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _extract_message(e: httpx.HTTPStatusError) -> str | None:
    """Extract the human-readable message from an error body, if any."""
    body = _safe_get_body(e)
    for key in _MESSAGE_KEYS:
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    detail = body.get("detail")
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, dict):
        message = detail.get("message")
        if isinstance(message, str) and message:
            return message
    if isinstance(detail, list):
        # FastAPI validation errors return a list of error objects
        messages = []
        for err in detail:
            if isinstance(err, dict):
                loc = err.get("loc", ["unknown"])
                field = loc[-1] if loc else "unknown"
                messages.append(f"{field}: {err.get('msg', 'invalid')}")
        return "; ".join(messages) or None
    return None
