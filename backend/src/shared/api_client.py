"""HTTP client helpers for calling the store API."""
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.config import get_settings
from services.exceptions import NetworkError
from shared.api_errors import to_account_error

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def get_api_base_url() -> str:
    """Get the store API base URL from settings."""
    return get_settings().api_url


def get_default_timeout() -> float:
    """Get the default request timeout."""
    return get_settings().api_timeout


def create_http_client(base_url: str | None = None) -> httpx.AsyncClient:
    """Create an AsyncClient pointed at the store API."""
    return httpx.AsyncClient(
        base_url=base_url or get_api_base_url(),
        timeout=get_default_timeout(),
    )


def _get_headers(token: str | None) -> dict[str, str]:
    """
    Get common headers for API requests.

    The anon key authorizes the edge function itself; the user's access
    token travels separately in X-User-Token.
    """
    headers = {"Authorization": f"Bearer {get_settings().api_anon_key}"}
    if token:
        headers["X-User-Token"] = token
    return headers


async def _send(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    token: str | None,
    **kwargs: Any,
) -> dict[str, Any]:
    """Send a request and translate failures into AccountError subclasses."""
    try:
        response = await client.request(method, path, headers=_get_headers(token), **kwargs)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise to_account_error(e, path) from e
    except httpx.TransportError as e:
        raise NetworkError() from e
    return decode_json_body(response, path)


def decode_json_body(
    response: httpx.Response, path: str = "", message: str | None = None,
) -> dict[str, Any]:
    """
    Decode a successful response body as a JSON object.

    An empty body decodes to ``{}``. Anything that is not a JSON object is a
    server malfunction and surfaces like a 5xx.

    Raises:
        NetworkError: If the body is not valid JSON or not an object.
    """
    if not response.content:
        return {}
    error = NetworkError(message) if message else NetworkError()
    try:
        data = response.json()
    except ValueError as e:
        logger.warning("api_malformed_body path=%s error=%s", path, e)
        raise error from e
    if not isinstance(data, dict):
        logger.warning("api_unexpected_body path=%s type=%s", path, type(data).__name__)
        raise error
    return data


def parse_model(model: type[M], data: Any, path: str = "") -> M:
    """
    Validate a wire payload into ``model``.

    Raises:
        NetworkError: If the payload does not match the model.
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        logger.warning(
            "api_invalid_payload path=%s model=%s errors=%s",
            path, model.__name__, e.error_count(),
        )
        raise NetworkError() from e


async def api_get(
    client: httpx.AsyncClient,
    path: str,
    token: str | None,
    params: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Make an authenticated GET request to the API."""
    return await _send(client, "GET", path, token, params=params)


async def api_post(
    client: httpx.AsyncClient,
    path: str,
    token: str | None,
    json: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Make an authenticated POST request to the API."""
    return await _send(client, "POST", path, token, json=json)


async def api_put(
    client: httpx.AsyncClient,
    path: str,
    token: str | None,
    json: dict[str, Any],
) -> dict[str, Any]:
    """Make an authenticated PUT request to the API."""
    return await _send(client, "PUT", path, token, json=json)


async def api_delete(
    client: httpx.AsyncClient,
    path: str,
    token: str | None,
) -> dict[str, Any]:
    """Make an authenticated DELETE request to the API."""
    return await _send(client, "DELETE", path, token)


async def api_upload(
    client: httpx.AsyncClient,
    path: str,
    token: str,
    files: dict[str, tuple[str, bytes, str]],
) -> dict[str, Any]:
    """Make an authenticated multipart POST request to the API."""
    return await _send(client, "POST", path, token, files=files)
