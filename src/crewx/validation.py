"""Field validation and formatting helpers shared by services and the API."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from crewx.exceptions import InvalidAmountError, ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_DIGITS = 10
MIN_PASSWORD_LENGTH = 6
CENTS = Decimal("0.01")
# Integer digits that fit the NUMERIC(12, 2) money columns.
MAX_AMOUNT_DIGITS = 10


def normalize_email(email: str) -> str:
    """Lowercase and trim an email; emails are the case-insensitive login key."""
    return (email or "").strip().lower()


def validate_email(email: str) -> str:
    """Return the normalized email or raise ValidationError."""
    normalized = normalize_email(email)
    if not EMAIL_RE.match(normalized):
        raise ValidationError("email", "must be a valid email address")
    return normalized


def validate_phone(phone: str) -> str:
    """Phone numbers are exactly ten digits."""
    value = (phone or "").strip()
    if len(value) != PHONE_DIGITS or not value.isdigit():
        raise ValidationError("phone", f"must be exactly {PHONE_DIGITS} digits")
    return value


def validate_password(password: str) -> str:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "password", f"must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return password


def validate_name(name: str, field: str = "name") -> str:
    value = (name or "").strip()
    if not value:
        raise ValidationError(field, "must not be empty")
    return value


def validate_amount(amount: Decimal | int | str) -> Decimal:
    """Parse a positive monetary amount with at most two decimal places."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError("amount must be numeric")
    if not value.is_finite() or value <= 0:
        raise InvalidAmountError()
    if value.adjusted() >= MAX_AMOUNT_DIGITS:
        raise InvalidAmountError(f"amount must be below 10^{MAX_AMOUNT_DIGITS}")
    if value != value.quantize(CENTS):
        raise InvalidAmountError("amount must have at most two decimal places")
    return value.quantize(CENTS)


def format_money(amount: Decimal | int | float | None, currency: str = "Rs") -> str:
    """Render a balance the way the app displays it, e.g. ``500 Rs``."""
    value = Decimal(str(amount or 0))
    if value == value.to_integral_value():
        return f"{int(value)} {currency}"
    return f"{value.quantize(CENTS)} {currency}"
