"""Payment detail formatting and validation for the checkout form."""

from __future__ import annotations

import re

from cropmarket.exceptions import ValidationError

_UPI_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+@[a-zA-Z0-9]+$")


def validate_upi_id(upi_id: str) -> bool:
    return bool(upi_id) and bool(_UPI_PATTERN.match(upi_id))


def format_card_number(value: str) -> str:
    """Group card digits in fours, e.g. ``"4111111111111111"`` -> ``"4111 1111 1111 1111"``."""
    digits = re.sub(r"\D", "", value or "")[:16]
    return " ".join(digits[i : i + 4] for i in range(0, len(digits), 4))[:19]


def format_expiry(value: str) -> str:
    """Format typed expiry digits as ``MM/YY``."""
    digits = re.sub(r"\D", "", value or "")[:4]
    if len(digits) > 2:
        return f"{digits[:2]}/{digits[2:]}"
    return digits


def validate_card_details(number: str, expiry: str, cvv: str, name: str) -> str:
    """
    Validate card fields and return the last four digits of the card.

    Raises:
        ValidationError: Naming the first invalid field.
    """
    digits = re.sub(r"\s", "", number or "")
    if len(digits) != 16 or not digits.isdigit():
        raise ValidationError("Please enter a valid 16-digit card number", field="card_number")
    if not expiry or "/" not in expiry:
        raise ValidationError("Please enter a valid expiry date (MM/YY)", field="card_expiry")
    if not cvv or len(cvv) != 3 or not cvv.isdigit():
        raise ValidationError("Please enter a valid 3-digit CVV", field="card_cvv")
    if not name or not name.strip():
        raise ValidationError("Please enter the name on card", field="card_name")
    return digits[-4:]
