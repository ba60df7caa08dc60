"""Security helpers used across the Healing Hub codebase."""

from .auth import api_key_matches, verify_api_key
from .passwords import hash_password, verify_password
from .signatures import hash_ip, subscriber_hash, typeform_signature, verify_typeform_signature
from .tokens import (
    TokenError,
    create_access_token,
    create_refresh_token,
    verify_access_token,
    verify_refresh_token,
)

__all__ = [
    "TokenError",
    "api_key_matches",
    "create_access_token",
    "create_refresh_token",
    "hash_ip",
    "hash_password",
    "subscriber_hash",
    "typeform_signature",
    "verify_access_token",
    "verify_api_key",
    "verify_password",
    "verify_refresh_token",
    "verify_typeform_signature",
]
