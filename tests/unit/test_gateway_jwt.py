"""JWT verification for auth-provider tokens."""

import time

import pytest
from jose import jwt

from config.settings import settings
from src.mp_common.errors import InvalidCredentialsError
from src.mp_gateway.auth.jwt_handler import decode_token


def _token(**claims) -> str:
    payload = {
        "sub": "user-1",
        "email": "user@example.com",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    payload.update(claims)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def test_valid_token() -> None:
    claims = decode_token(_token())
    assert claims["sub"] == "user-1"
    assert claims["email"] == "user@example.com"


def test_expired_token() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_token(_token(exp=int(time.time()) - 10))


def test_wrong_audience() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_token(_token(aud="anon"))


def test_wrong_secret() -> None:
    token = jwt.encode({"sub": "user-1", "aud": "authenticated"}, "other", algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_missing_subject() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_token(_token(sub=""))


def test_garbage() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_token("not.a.jwt")
