"""Brazilian postal-code (CEP) lookup against ViaCEP."""
import logging

import httpx

from core.config import get_settings
from schemas.address import PostalAddress
from schemas.validators import digits_only
from services.exceptions import NetworkError, NotFoundError, ValidationError
from shared.api_client import decode_json_body, parse_model

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

LOOKUP_FAILED_MESSAGE = "Erro ao buscar CEP"


class PostalLookup:
    """
    Resolve a CEP to street, neighborhood, city and state.

    The service answers 200 with ``{"erro": true}`` for well-formed CEPs that
    do not exist, and 400 for malformed ones.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, base_url: str | None = None) -> None:
        self._base_url = (base_url or get_settings().postal_lookup_url).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def lookup(self, cep: str) -> PostalAddress:
        """
        Look up a CEP.

        Args:
            cep: CEP with or without mask.

        Returns:
            The address fields known for the CEP. Any may be empty.

        Raises:
            ValidationError: If the CEP does not have 8 digits.
            NotFoundError: If the CEP does not exist.
            NetworkError: If the service could not be reached.
        """
        digits = digits_only(cep)
        if len(digits) != 8:
            raise ValidationError("cep", "Informe um CEP válido")

        try:
            response = await self._client.get(f"{self._base_url}/{digits}/json/")
        except httpx.TransportError as e:
            logger.warning("postal_lookup_unreachable cep=%s error=%s", digits, e)
            raise NetworkError(LOOKUP_FAILED_MESSAGE) from e

        if response.status_code == 400:
            raise NotFoundError("CEP não encontrado")
        if response.status_code >= 400:
            logger.warning("postal_lookup_failed cep=%s status=%s", digits, response.status_code)
            raise NetworkError(LOOKUP_FAILED_MESSAGE)

        data = decode_json_body(response, digits, LOOKUP_FAILED_MESSAGE)
        if data.get("erro"):
            logger.info("postal_lookup_not_found cep=%s", digits)
            raise NotFoundError("CEP não encontrado")

        fields = {
            "street": data.get("logradouro") or "",
            "neighborhood": data.get("bairro") or "",
            "city": data.get("localidade") or "",
            "state": data.get("uf") or "",
            "complement": data.get("complemento") or "",
        }
        try:
            return parse_model(PostalAddress, fields, digits)
        except NetworkError as e:
            raise NetworkError(LOOKUP_FAILED_MESSAGE) from e
