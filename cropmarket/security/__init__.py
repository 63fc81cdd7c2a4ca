"""
Security helpers for CropMarket.

Provides input validation, SQL LIKE escaping, password hashing and
output sanitization.
"""

from cropmarket.security.passwords import hash_password, verify_password
from cropmarket.security.sql import (
    build_like_clause,
    escape_like_pattern,
    validate_search_input,
)
from cropmarket.security.validators import (
    sanitize_assistant_reply,
    validate_email,
    validate_id,
    validate_phone,
    validate_pincode,
)

__all__ = [
    "build_like_clause",
    "escape_like_pattern",
    "hash_password",
    "sanitize_assistant_reply",
    "validate_email",
    "validate_id",
    "validate_phone",
    "validate_pincode",
    "validate_search_input",
    "verify_password",
]
