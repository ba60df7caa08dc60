import hashlib

import jwt
import pytest
from fastapi import HTTPException

from healing_hub.libs.security import (
    TokenError,
    create_access_token,
    create_refresh_token,
    hash_ip,
    hash_password,
    subscriber_hash,
    typeform_signature,
    verify_access_token,
    verify_api_key,
    verify_password,
    verify_refresh_token,
    verify_typeform_signature,
)


def test_password_hash_verifies_only_the_original():
    hashed = hash_password("sacred-path-1")
    assert hashed.startswith("$2")
    assert verify_password("sacred-path-1", hashed)
    assert not verify_password("wrong-path", hashed)
    assert not verify_password("sacred-path-1", None)
    assert not verify_password("sacred-path-1", "not-a-bcrypt-hash")


def test_access_and_refresh_tokens_are_not_interchangeable():
    access = create_access_token("rec123")
    refresh = create_refresh_token("rec123")

    assert verify_access_token(access)["userId"] == "rec123"
    assert verify_refresh_token(refresh)["userId"] == "rec123"
    with pytest.raises(TokenError):
        verify_access_token(refresh)
    with pytest.raises(TokenError):
        verify_refresh_token(access)


def test_expired_and_tampered_tokens_fail():
    expired = jwt.encode(
        {"userId": "rec1", "type": "access", "exp": 1}, "test-access-secret", algorithm="HS256"
    )
    with pytest.raises(TokenError, match="expired"):
        verify_access_token(expired)
    with pytest.raises(TokenError):
        verify_access_token(create_access_token("rec1") + "x")
    with pytest.raises(TokenError):
        verify_access_token("")


def test_typeform_signature_is_hex_hmac_of_raw_body():
    body = b'{"form_response": {}}'
    signature = typeform_signature("s3cret", body)
    assert signature.startswith("sha256=")
    assert verify_typeform_signature("s3cret", body, signature)
    assert not verify_typeform_signature("s3cret", body + b" ", signature)
    assert not verify_typeform_signature("s3cret", body, None)


def test_hashes():
    assert hash_ip("203.0.113.9") == hashlib.sha256(b"203.0.113.9").hexdigest()
    assert subscriber_hash(" Luna@Example.com ") == hashlib.md5(b"luna@example.com").hexdigest()


def test_internal_api_key():
    verify_api_key("test-internal-key")
    with pytest.raises(HTTPException) as excinfo:
        verify_api_key("nope")
    assert excinfo.value.status_code == 401
    with pytest.raises(HTTPException):
        verify_api_key(None)
