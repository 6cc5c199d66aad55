"""Shared exceptions for account operations."""


class AccountError(Exception):
    """
    Base exception for every failure raised by the account layer.

    The message is always safe to show to the user.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(AccountError):
    """
    Raised when client-side validation fails before any network call.

    Scoped to a single form field so the surface can highlight it.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class AuthExpiredError(AccountError):
    """Raised when the session is dead after one refresh attempt."""

    def __init__(self, message: str = "Sua sessão expirou. Faça login novamente.") -> None:
        super().__init__(message)


class UnauthorizedError(AccountError):
    """
    Raised when the API answers 401 for an authenticated call.

    Consumed by the auth-retry helper, which refreshes the session once
    before turning it into AuthExpiredError.
    """

    def __init__(self, message: str = "Token inválido ou expirado.") -> None:
        super().__init__(message)


class NetworkError(AccountError):
    """Raised on transport failures and 5xx answers. Safe to retry."""

    def __init__(self, message: str = "Erro de conexão. Tente novamente.") -> None:
        super().__init__(message)


class ServerRejectedError(AccountError):
    """Raised when the server refuses a request with a structured 4xx reason."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(AccountError):
    """Raised when a looked-up resource does not exist (e.g. unknown CEP)."""

    def __init__(self, message: str = "Não encontrado.") -> None:
        super().__init__(message)


class OperationInProgressError(AccountError):
    """Raised when a mutation is submitted while another one for the same resource is in flight."""

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__("Aguarde a operação em andamento terminar.")
