from datetime import datetime, timedelta, timezone

import jwt
import pytest

from utils.security import (
    TokenCodec,
    TokenExpired,
    TokenInvalid,
    TokenKind,
    TokenSettings,
    hash_password,
    verify_password,
)


@pytest.fixture
def settings():
    return TokenSettings(secret="unit-secret", access_ttl=timedelta(days=1), refresh_ttl=timedelta(days=10))


@pytest.fixture
def token_codec(settings):
    return TokenCodec(settings)


def ago(**delta):
    return datetime.now(timezone.utc) - timedelta(**delta)


def test_valid_access_token_yields_its_account(token_codec):
    token = token_codec.issue("acct-1", TokenKind.ACCESS)
    claims = token_codec.verify(token)
    assert claims.account_id == "acct-1"
    assert claims.kind is TokenKind.ACCESS
    assert claims.expires_at > datetime.now(timezone.utc)


def test_lifetime_depends_on_kind(token_codec):
    now = datetime.now(timezone.utc).replace(microsecond=0)
    access = token_codec.verify(token_codec.issue("a", TokenKind.ACCESS, now=now))
    refresh = token_codec.verify(token_codec.issue("a", TokenKind.REFRESH, now=now))
    assert access.expires_at == now + timedelta(days=1)
    assert refresh.expires_at == now + timedelta(days=10)


def test_tokens_issued_together_are_distinct(token_codec):
    assert token_codec.issue("a", TokenKind.REFRESH) != token_codec.issue("a", TokenKind.REFRESH)


def test_expired_token_fails_with_expired(token_codec):
    token = token_codec.issue("a", TokenKind.ACCESS, now=ago(days=2))
    with pytest.raises(TokenExpired):
        token_codec.verify(token)


def test_tampered_token_fails_with_invalid_not_expired(token_codec):
    token = token_codec.issue("a", TokenKind.ACCESS)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])
    with pytest.raises(TokenInvalid):
        token_codec.verify(tampered)


def test_expired_and_tampered_is_invalid(token_codec):
    token = token_codec.issue("a", TokenKind.ACCESS, now=ago(days=2))
    forged = jwt.encode(jwt.decode(token, options={"verify_signature": False}), "other-key", algorithm="HS256")
    with pytest.raises(TokenInvalid):
        token_codec.verify(forged)


def test_garbage_is_invalid(token_codec):
    with pytest.raises(TokenInvalid):
        token_codec.verify("not-a-token")


def test_other_signing_key_is_invalid(settings):
    other = TokenCodec(TokenSettings(secret="another-secret"))
    with pytest.raises(TokenInvalid):
        TokenCodec(settings).verify(other.issue("a", TokenKind.ACCESS))


def test_kind_mismatch_is_invalid(token_codec):
    refresh = token_codec.issue("a", TokenKind.REFRESH)
    with pytest.raises(TokenInvalid):
        token_codec.verify(refresh, TokenKind.ACCESS)
    assert token_codec.verify(refresh, TokenKind.REFRESH).kind is TokenKind.REFRESH


def test_settings_are_immutable(settings):
    with pytest.raises(AttributeError):
        settings.secret = "changed"


def test_settings_from_config():
    config = {
        "TOKEN_SECRET": "s",
        "JWT_ALGORITHM": "HS512",
        "JWT_ISSUER": "iss",
        "ACCESS_TOKEN_EXPIRES": timedelta(minutes=5),
        "REFRESH_TOKEN_EXPIRES": timedelta(days=2),
    }
    settings = TokenSettings.from_config(config)
    assert settings.algorithm == "HS512"
    assert settings.ttl(TokenKind.ACCESS) == timedelta(minutes=5)
    assert settings.ttl(TokenKind.REFRESH) == timedelta(days=2)


def test_password_hash_round_trip():
    digest = hash_password("Secret#123")
    assert digest != "Secret#123"
    assert verify_password("Secret#123", digest)
    assert not verify_password("Secret#124", digest)
    assert not verify_password("Secret#123", "not-a-hash")
    assert not verify_password("Secret#123", None)
