"""Login, registration and password recovery flows."""
import logging
from dataclasses import dataclass

from core.profile_cache import KeyValueStore, default_local_store
from core.session_manager import SessionManager
from schemas.session import Session, SignUpResult
from schemas.validators import digits_only, validate_cpf, validate_email, validate_phone
from services.account_api import AccountApi
from services.exceptions import AccountError, ValidationError
from services.mutation_coordinator import OperationResult
from services.profile_store import RECOVERY_EMAIL_KEY, RECOVERY_ID_KEY

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

INVALID_CREDENTIALS_MESSAGE = "Email ou senha incorretos."
NOT_CONFIRMED_MESSAGE = (
    "Seu email ainda não foi confirmado. Verifique sua caixa de entrada e clique "
    "no link de confirmação que enviamos."
)


@dataclass
class RegistrationForm:
    """Sign-up form input as typed by the user."""

    name: str = ""
    email: str = ""
    email_confirm: str = ""
    phone: str = ""
    tax_id: str = ""
    password: str = ""
    password_confirm: str = ""


def login_error_message(error: AccountError) -> str:
    """Translate an auth server rejection into the message shown on the login form."""
    message = error.message
    if "Invalid login" in message:
        return INVALID_CREDENTIALS_MESSAGE
    if "not confirmed" in message.lower():
        return NOT_CONFIRMED_MESSAGE
    return message


def validate_registration(form: RegistrationForm) -> ValidationError | None:
    """Return the first problem with ``form``, or None when it can be submitted."""
    if not form.name.strip():
        return ValidationError("name", "Informe seu nome completo.")
    if not form.email.strip():
        return ValidationError("email", "Informe seu email.")
    if not validate_email(form.email).valid:
        return ValidationError("email", "Informe um email válido.")
    if form.email.strip().lower() != form.email_confirm.strip().lower():
        return ValidationError("email_confirm", "Os emails não coincidem.")
    # Phone is optional, but must be valid when given
    if digits_only(form.phone):
        phone = validate_phone(form.phone)
        if not phone.valid:
            return ValidationError("phone", phone.message or "Telefone inválido.")
    if not digits_only(form.tax_id):
        return ValidationError("tax_id", "Informe seu CPF.")
    cpf = validate_cpf(form.tax_id)
    if not cpf.valid:
        return ValidationError("tax_id", cpf.message or "CPF inválido.")
    if len(form.password) < MIN_PASSWORD_LENGTH:
        return ValidationError(
            "password", f"A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres.",
        )
    if form.password != form.password_confirm:
        return ValidationError("password_confirm", "As senhas não coincidem.")
    return None


class AccountAuth:
    """Entry points of the login page."""

    def __init__(
        self,
        session_manager: SessionManager,
        api: AccountApi,
        local_store: KeyValueStore | None = None,
    ) -> None:
        self._session_manager = session_manager
        self._api = api
        self._local_store = local_store if local_store is not None else default_local_store()

    async def login(self, email: str, password: str) -> OperationResult[Session]:
        """Sign in with e-mail and password."""
        if not email or not password:
            return OperationResult(ok=False, message="Preencha email e senha.")
        try:
            session = await self._session_manager.sign_in(email.strip(), password)
        except AccountError as e:
            logger.info("login_failed error=%s", e.message)
            return OperationResult(ok=False, message=login_error_message(e))
        return OperationResult.success(session)

    async def register(self, form: RegistrationForm) -> OperationResult[SignUpResult]:
        """
        Create an account.

        Success means the confirmation e-mail was sent; the user is not signed
        in until they confirm and log in.
        """
        problem = validate_registration(form)
        if problem is not None:
            return OperationResult.from_error(problem)
        try:
            result = await self._session_manager.sign_up(
                form.email.strip(),
                form.password,
                {
                    "name": form.name.strip(),
                    "phone": digits_only(form.phone),
                    "cpf": digits_only(form.tax_id),
                },
            )
        except AccountError as e:
            logger.info("register_failed error=%s", e.message)
            return OperationResult.from_error(e)
        return OperationResult.success(result, "Conta criada! Confirme seu email e faça login.")

    async def forgot_password(self, email: str) -> OperationResult[str]:
        """Send a password recovery e-mail and remember the recovery id."""
        email = email.strip()
        if not email:
            return OperationResult.from_error(ValidationError("email", "Informe seu email."))
        try:
            recovery_id = await self._api.forgot_password(email)
        except AccountError as e:
            logger.info("forgot_password_failed error=%s", e.message)
            return OperationResult.from_error(e)
        if recovery_id:
            self._local_store.set(RECOVERY_ID_KEY, recovery_id)
            self._local_store.set(RECOVERY_EMAIL_KEY, email)
        return OperationResult.success(recovery_id)
