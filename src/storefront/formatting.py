"""Keystroke normalizers for checkout fields.

Each normalizer is a pure text -> text function. They only adjust
punctuation and grouping; digits already entered are kept.
"""

import re
from typing import Callable

from .models import PHONE_PREFIX

_NON_DIGITS = re.compile(r"\D")


def digits_only(value: str) -> str:
    return _NON_DIGITS.sub("", value)


def format_phone(value: str, prefix: str = PHONE_PREFIX) -> str:
    """Force the country-code prefix and keep only digits after it."""
    number_part = value.replace(prefix, "", 1)
    return prefix + digits_only(number_part)


def format_card_number(value: str) -> str:
    """Group card digits in blocks of four: '4111111111111111' -> '4111 1111 1111 1111'."""
    digits = digits_only(value)
    return " ".join(digits[i:i + 4] for i in range(0, len(digits), 4))


def format_expiry(value: str) -> str:
    """MM/YY; the slash appears once the third digit is typed."""
    digits = digits_only(value)[:4]
    if len(digits) < 3:
        return digits
    return f"{digits[:2]}/{digits[2:]}"


def format_cvv(value: str) -> str:
    return digits_only(value)[:4]


def format_zip_code(value: str) -> str:
    return digits_only(value)[:5]


NORMALIZERS: dict[str, Callable[[str], str]] = {
    "phone": format_phone,
    "card_number": format_card_number,
    "expiry_date": format_expiry,
    "cvv": format_cvv,
    "zip_code": format_zip_code,
}


def normalize_field(name: str, value: str) -> str:
    """Apply the field's normalizer; fields without one pass through unchanged."""
    normalizer = NORMALIZERS.get(name)
    if normalizer is None:
        return value
    return normalizer(value)
