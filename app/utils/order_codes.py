"""Generators for order numbers, public tokens and verification codes."""

from __future__ import annotations

import re
import secrets
import string
from datetime import datetime, timedelta

_NON_DIGITS = re.compile(r"\D")
_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
ORDER_SUFFIX_LENGTH = 4
VERIFICATION_CODE_LENGTH = 4


def generate_order_number(now: datetime) -> str:
    """Build an order number in ``YYYYMMDD-XXXX`` form.

    Args:
        now: Timestamp providing the date prefix.

    Returns:
        Date prefix plus a random base-36 suffix, e.g. ``20240517-K3Z9``.
    """
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(ORDER_SUFFIX_LENGTH))
    return f"{now:%Y%m%d}-{suffix}"


def generate_public_token() -> str:
    """Random URL-safe secret used in the recipient's link."""
    return secrets.token_urlsafe(24)


def phone_digits(phone: str) -> str:
    return _NON_DIGITS.sub("", phone or "")


def derive_verification_code(phone: str) -> str:
    """Return the last four digits of a phone number.

    >>> derive_verification_code("010-1234-5678")
    '5678'

    Raises:
        ValueError: If the number has fewer than four digits.
    """
    digits = phone_digits(phone)
    if len(digits) < VERIFICATION_CODE_LENGTH:
        raise ValueError("phone number must contain at least 4 digits")
    return digits[-VERIFICATION_CODE_LENGTH:]


def token_expiry(now: datetime, days: int) -> datetime:
    return now + timedelta(days=days)


def format_phone_number(phone: str) -> str:
    """Hyphenate 10/11-digit Korean numbers; anything else is returned as-is.

    >>> format_phone_number("01012345678")
    '010-1234-5678'
    >>> format_phone_number("0212345678")
    '021-234-5678'
    """
    digits = phone_digits(phone)
    if len(digits) == 11:
        return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"
    return phone
