import re
from datetime import datetime

import pytest

from app.utils.order_codes import (
    derive_verification_code,
    format_phone_number,
    generate_order_number,
    generate_public_token,
    token_expiry,
)


def test_order_number_format() -> None:
    number = generate_order_number(datetime(2024, 5, 17, 9, 30))
    assert re.fullmatch(r"20240517-[A-Z0-9]{4}", number)


def test_public_tokens_are_url_safe_and_distinct() -> None:
    tokens = {generate_public_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all(re.fullmatch(r"[A-Za-z0-9_-]+", token) for token in tokens)


@pytest.mark.parametrize(
    ("phone", "code"),
    [
        ("010-1234-5678", "5678"),
        ("01012345678", "5678"),
        ("+82 10 1234 0001", "0001"),
        ("02-123-4567", "4567"),
        ("1234", "1234"),
    ],
)
def test_verification_code_is_last_four_digits(phone: str, code: str) -> None:
    assert derive_verification_code(phone) == code


@pytest.mark.parametrize("phone", ["", "12-3", "abc"])
def test_verification_code_needs_four_digits(phone: str) -> None:
    with pytest.raises(ValueError):
        derive_verification_code(phone)


def test_token_expiry_adds_days() -> None:
    assert token_expiry(datetime(2024, 1, 1), 30) == datetime(2024, 1, 31)


@pytest.mark.parametrize(
    ("raw", "formatted"),
    [
        ("01012345678", "010-1234-5678"),
        ("010-1234-5678", "010-1234-5678"),
        ("0311234567", "031-123-4567"),
        ("1588-1234", "1588-1234"),
    ],
)
def test_format_phone_number(raw: str, formatted: str) -> None:
    assert format_phone_number(raw) == formatted
