"""
Input validation and output sanitization.

Identifier, email and phone checks for request data, plus clean-up of
chat-provider output before it goes into a JSON response.
"""

from __future__ import annotations

import re
from typing import Any

from cropmarket.exceptions import ValidationError

# UUID4 strings as issued by the store; seed data may use short slugs.
_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 \-]{6,18}[0-9]$")
_PINCODE_PATTERN = re.compile(r"^[0-9]{6}$")


def validate_id(value: Any, *, field: str = "id") -> str:
    """
    Validate a resource identifier taken from a URL or body.

    Raises:
        ValidationError: If the identifier is empty or has unexpected characters.
    """
    if not value or not isinstance(value, str):
        raise ValidationError("must be a non-empty string", field=field)

    value = value.strip()
    if not _ID_PATTERN.match(value):
        raise ValidationError(
            "only alphanumeric characters, underscores, and hyphens are allowed",
            field=field,
        )
    return value


def validate_email(email: Any) -> str:
    """Normalise and validate an email address (lower-cased, trimmed)."""
    if not email or not isinstance(email, str):
        raise ValidationError("is required", field="email")

    email = email.strip().lower()
    if len(email) > 254 or not _EMAIL_PATTERN.match(email):
        raise ValidationError("is not a valid email address", field="email")
    return email


def validate_phone(phone: Any) -> str:
    if not phone or not isinstance(phone, str):
        raise ValidationError("is required", field="phone")
    phone = phone.strip()
    if not _PHONE_PATTERN.match(phone):
        raise ValidationError("is not a valid phone number", field="phone")
    return phone


def validate_pincode(pincode: Any) -> str:
    if not pincode or not isinstance(pincode, str):
        raise ValidationError("is required", field="pincode")
    pincode = pincode.strip()
    if not _PINCODE_PATTERN.match(pincode):
        raise ValidationError("must be a 6-digit postal code", field="pincode")
    return pincode


def sanitize_assistant_reply(text: str, *, max_length: int = 4000) -> str:
    """
    Sanitize chat-provider output before returning it to clients.

    Control characters other than newlines and tabs are dropped, runs of
    spaces are collapsed per line and the result is truncated to
    ``max_length``. Markup is left as text; escaping belongs to whatever
    renders the reply. Returns an empty string for empty input.
    """
    if not text or not isinstance(text, str):
        return ""

    text = "".join(char for char in text if (ord(char) >= 32 and char != "\x7f") or char in "\n\t")

    lines = [" ".join(line.split()) for line in text.splitlines()]
    text = "\n".join(lines).strip()
    # Collapse blank-line runs to a single paragraph break.
    text = re.sub(r"\n{3,}", "\n\n", text)

    if len(text) > max_length:
        text = text[: max_length - 3].rstrip() + "..."
    return text
