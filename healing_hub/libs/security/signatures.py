"""Hashing helpers: webhook signatures, client IP digests and subscriber hashes."""

from __future__ import annotations

import hashlib
import hmac


def typeform_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_typeform_signature(secret: str, body: bytes, signature: str | None) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(typeform_signature(secret, body), signature)


def hash_ip(ip: str | None) -> str:
    """Feedback rows keep a sha256 of the client address, never the address itself."""

    return hashlib.sha256((ip or "unknown").encode("utf-8")).hexdigest()


def subscriber_hash(email: str) -> str:
    """Mailchimp member id: md5 of the lower-cased address."""

    return hashlib.md5(email.strip().lower().encode("utf-8"), usedforsecurity=False).hexdigest()


__all__ = ["hash_ip", "subscriber_hash", "typeform_signature", "verify_typeform_signature"]
