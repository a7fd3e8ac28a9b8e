import re
from decimal import Decimal, InvalidOperation

from marshmallow import ValidationError

PASSWORD_MIN_LENGTH = 8
PASSWORD_SPECIAL_CHARS = '!@#$%^&*(),.?":{}|<>'

_PASSWORD_CHARSET = re.compile("[A-Za-z0-9" + re.escape(PASSWORD_SPECIAL_CHARS) + "]*")

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"\d"), "Password must contain at least one number"),
    (
        re.compile("[" + re.escape(PASSWORD_SPECIAL_CHARS) + "]"),
        "Password must contain at least one special character",
    ),
)


def password_strength_errors(password: str) -> list[str]:
    """Return one message per strength rule the password breaks."""
    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    for pattern, message in _PASSWORD_RULES:
        if not pattern.search(password):
            errors.append(message)
    if not _PASSWORD_CHARSET.fullmatch(password):
        errors.append(
            f"Password may only contain letters, numbers and the special characters {PASSWORD_SPECIAL_CHARS}"
        )
    return errors


def validate_password_strength(password: str) -> None:
    errors = password_strength_errors(password)
    if errors:
        raise ValidationError(errors)


def normalize_email(value):
    return value.strip().lower() if isinstance(value, str) else value


def to_decimal_2(value) -> Decimal:
    if value is None:
        return None
    try:
        d = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValidationError("Invalid decimal.")
    if d < 0:
        raise ValidationError("Must be greater than or equal to 0.")
    return d
