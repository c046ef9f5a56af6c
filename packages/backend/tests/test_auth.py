"""JWT helper tests."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from fanclub.auth.dependencies import bearer_token
from fanclub.auth.jwt import (
    TokenError,
    create_access_token,
    user_id_from_token,
    verify_token,
)
from fanclub.config import settings


def _encode(payload: dict) -> str:
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def test_round_trip_access_token():
    payload = verify_token(create_access_token("u1"))
    assert payload["sub"] == "u1"
    assert payload["type"] == "access"


def test_expired_token_rejected():
    expired = _encode({"sub": "u1", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)})
    with pytest.raises(TokenError, match="expired"):
        verify_token(expired)


def test_wrong_secret_rejected():
    forged = jwt.encode({"sub": "u1"}, "some-other-secret-that-is-long-enough", algorithm="HS256")
    with pytest.raises(TokenError):
        verify_token(forged)


@pytest.mark.parametrize("claims, expected", [
    ({"sub": "a"}, "a"),
    ({"userId": "b"}, "b"),
    ({"id": 7, "email": "x@example.com"}, "7"),
])
def test_user_id_claim_fallbacks(claims, expected):
    assert user_id_from_token(_encode(claims)) == expected


def test_token_without_identity_rejected():
    with pytest.raises(TokenError, match="no user identity"):
        user_id_from_token(_encode({"email": "x@example.com"}))


@pytest.mark.parametrize("header, expected", [
    ("Bearer abc", "abc"),
    ("Bearer ", None),
    ("Basic abc", None),
    (None, None),
])
def test_bearer_token(header, expected):
    assert bearer_token(header) == expected
