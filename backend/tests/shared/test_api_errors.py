"""Tests for API error parsing."""
from unittest.mock import MagicMock

import httpx
import pytest

from services.exceptions import (
    NetworkError,
    NotFoundError,
    ServerRejectedError,
    UnauthorizedError,
)
from shared.api_errors import parse_http_error, to_account_error


def _make_http_error(status_code: int, json_body: object = None) -> httpx.HTTPStatusError:
    """Create an HTTPStatusError with the given status and JSON body."""
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    if json_body is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_body
    return httpx.HTTPStatusError("error", request=MagicMock(), response=response)


class TestParseHttpError:
    """Tests for parse_http_error categories and messages."""

    def test__401__auth(self) -> None:
        parsed = parse_http_error(_make_http_error(401))
        assert parsed.category == "auth"
        assert parsed.message == "Token inválido ou expirado."

    def test__404__not_found(self) -> None:
        assert parse_http_error(_make_http_error(404)).category == "not_found"

    def test__400__uses_store_error_key(self) -> None:
        parsed = parse_http_error(_make_http_error(400, {"error": "Limite de endereços"}))
        assert parsed.category == "rejected"
        assert parsed.message == "Limite de endereços"

    def test__400__prefers_auth_error_description(self) -> None:
        body = {"error": "invalid_grant", "error_description": "Invalid login credentials"}
        assert parse_http_error(_make_http_error(400, body)).message == "Invalid login credentials"

    def test__422__fastapi_detail_list(self) -> None:
        body = {"detail": [{"loc": ["body", "cep"], "msg": "field required"}]}
        assert parse_http_error(_make_http_error(422, body)).message == "cep: field required"

    def test__400__fallback_message_includes_path(self) -> None:
        parsed = parse_http_error(_make_http_error(400), "/auth/user/addresses")
        assert parsed.message == "HTTP 400 on /auth/user/addresses"

    def test__500__internal(self) -> None:
        assert parse_http_error(_make_http_error(503)).category == "internal"

    def test__non_dict_body_is_ignored(self) -> None:
        assert parse_http_error(_make_http_error(400, ["x"])).message == "HTTP 400"


class TestToAccountError:
    """Tests for mapping to the account error taxonomy."""

    @pytest.mark.parametrize(("status", "error_type"), [
        (401, UnauthorizedError),
        (404, NotFoundError),
        (409, ServerRejectedError),
        (500, NetworkError),
    ])
    def test__maps_status_to_error_type(self, status: int, error_type: type) -> None:
        assert isinstance(to_account_error(_make_http_error(status)), error_type)

    def test__rejected_keeps_status_and_message(self) -> None:
        error = to_account_error(_make_http_error(409, {"error": "Duplicado"}))
        assert error.status_code == 409
        assert error.message == "Duplicado"

    def test__server_failure_uses_generic_message(self) -> None:
        error = to_account_error(_make_http_error(500, {"error": "stack trace"}))
        assert error.message == "Erro de conexão. Tente novamente."
