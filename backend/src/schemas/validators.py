"""
Pure validation and display helpers for account form fields.

Everything here is free of I/O and session state so it can run on every
keystroke. Validators return a tri-state FieldValidation: empty input is
neutral (no message), otherwise invalid or valid.
"""
import re
from dataclasses import dataclass
from typing import Literal

ValidationState = Literal["neutral", "invalid", "valid"]

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# Brazilian area codes (DDD) in service
VALID_AREA_CODES = frozenset({
    11, 12, 13, 14, 15, 16, 17, 18, 19,  # SP
    21, 22, 24,  # RJ
    27, 28,  # ES
    31, 32, 33, 34, 35, 37, 38,  # MG
    41, 42, 43, 44, 45, 46,  # PR
    47, 48, 49,  # SC
    51, 53, 54, 55,  # RS
    61,  # DF
    62, 64,  # GO
    63,  # TO
    65, 66,  # MT
    67,  # MS
    68,  # AC
    69,  # RO
    71, 73, 74, 75, 77,  # BA
    79,  # SE
    81, 87,  # PE
    82,  # AL
    83,  # PB
    84,  # RN
    85, 88,  # CE
    86, 89,  # PI
    91, 93, 94,  # PA
    92, 97,  # AM
    95,  # RR
    96,  # AP
    98, 99,  # MA
})

BR_STATES = (
    "AC", "AL", "AM", "AP", "BA", "CE", "DF", "ES", "GO", "MA", "MG", "MS", "MT",
    "PA", "PB", "PE", "PI", "PR", "RJ", "RN", "RO", "RR", "RS", "SC", "SE", "SP", "TO",
)


@dataclass(frozen=True)
class FieldValidation:
    """Outcome of validating one field value."""

    state: ValidationState
    message: str = ""

    @property
    def valid(self) -> bool:
        """True only for the valid state; neutral is not valid."""
        return self.state == "valid"


_NEUTRAL = FieldValidation("neutral")


def _invalid(message: str) -> FieldValidation:
    return FieldValidation("invalid", message)


def digits_only(value: str | None) -> str:
    """Strip every non-digit character."""
    return re.sub(r"\D", "", value or "")


def validate_email(email: str) -> FieldValidation:
    """
    Validate an e-mail address.

    Beyond the syntactic pattern, rejects ``..`` anywhere and a domain that
    starts or ends with a dot.
    """
    trimmed = email.strip()
    if not trimmed:
        return _NEUTRAL
    if not EMAIL_PATTERN.match(trimmed):
        return _invalid("Email inválido")
    if ".." in trimmed:
        return _invalid("Email inválido")
    domain = trimmed.split("@")[1]
    if not domain or domain.startswith(".") or domain.endswith("."):
        return _invalid("Email inválido")
    return FieldValidation("valid", "Email válido")


def _cpf_check_digit(digits: str, count: int) -> int:
    """Compute one CPF check digit over the first ``count`` digits."""
    total = sum(int(d) * weight for d, weight in zip(digits[:count], range(count + 1, 1, -1)))
    remainder = (total * 10) % 11
    return 0 if remainder == 10 else remainder


def validate_cpf(cpf: str) -> FieldValidation:
    """
    Validate a CPF (11-digit national tax ID).

    Check digit 1 weights digits 1-9 by 10..2, check digit 2 weights digits
    1-10 by 11..2; each is ``sum * 10 % 11`` with 10 mapped to 0.
    Sequences of one repeated digit are rejected even though they checksum.
    """
    digits = digits_only(cpf)
    if not digits:
        return _NEUTRAL
    if len(digits) < 11:
        return _invalid("CPF incompleto")
    if len(digits) > 11:
        return _invalid("CPF inválido")
    if len(set(digits)) == 1:
        return _invalid("CPF inválido")
    if _cpf_check_digit(digits, 9) != int(digits[9]):
        return _invalid("CPF inválido")
    if _cpf_check_digit(digits, 10) != int(digits[10]):
        return _invalid("CPF inválido")
    return FieldValidation("valid", "CPF válido")


def validate_phone(phone: str) -> FieldValidation:
    """
    Validate a Brazilian phone number (10-digit landline or 11-digit mobile).

    Mobile numbers must start with 9 after the area code; landlines with 2-5.
    """
    digits = digits_only(phone)
    if not digits:
        return _NEUTRAL
    if len(digits) < 10:
        return _invalid("Telefone incompleto")
    if len(digits) > 11:
        return _invalid("Telefone inválido")
    if int(digits[:2]) not in VALID_AREA_CODES:
        return _invalid("DDD inválido")
    if len(digits) == 11 and digits[2] != "9":
        return _invalid("Celular deve começar com 9")
    if len(digits) == 10 and digits[2] not in "2345":
        return _invalid("Número fixo inválido")
    return FieldValidation("valid", "Telefone válido")


def format_phone(value: str) -> str:
    """Mask a phone number progressively: ``(44) 99733-0202``."""
    digits = digits_only(value)[:11]
    if len(digits) <= 2:
        return digits
    if len(digits) <= 7:
        return f"({digits[:2]}) {digits[2:]}"
    return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"


def format_cpf(value: str) -> str:
    """Mask a CPF progressively: ``123.456.789-09``."""
    digits = digits_only(value)[:11]
    if len(digits) <= 3:
        return digits
    if len(digits) <= 6:
        return f"{digits[:3]}.{digits[3:]}"
    if len(digits) <= 9:
        return f"{digits[:3]}.{digits[3:6]}.{digits[6:]}"
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_cep(value: str) -> str:
    """Mask a CEP progressively: ``87020-025``."""
    digits = digits_only(value)[:8]
    if len(digits) <= 5:
        return digits
    return f"{digits[:5]}-{digits[5:]}"


@dataclass(frozen=True)
class PasswordStrength:
    """Password strength level (0-5) and its label."""

    level: int
    label: str


_STRENGTH_LABELS = {1: "Fraca", 2: "Razoável", 3: "Boa", 4: "Forte", 5: "Excelente"}


def password_strength(password: str) -> PasswordStrength:
    """Score a password on length, upper case, digits and symbols."""
    if not password:
        return PasswordStrength(0, "")
    score = sum([
        len(password) >= 6,
        len(password) >= 8,
        bool(re.search(r"[A-Z]", password)),
        bool(re.search(r"[0-9]", password)),
        bool(re.search(r"[^A-Za-z0-9]", password)),
    ])
    level = min(max(score, 1), 5)
    return PasswordStrength(level, _STRENGTH_LABELS[level])
