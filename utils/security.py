"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT
- JTI generation for token identifiers
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext password using argon2
    """
    if not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenKind(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpired(TokenError):
    """The token was well-formed and correctly signed but its exp has passed."""


class TokenInvalid(TokenError):
    """Malformed token, bad signature, wrong issuer or wrong kind."""


@dataclass(frozen=True)
class TokenSettings:
    secret: str
    algorithm: str = "HS256"
    issuer: str = "video-platform-accounts"
    access_ttl: timedelta = timedelta(days=1)
    refresh_ttl: timedelta = timedelta(days=10)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TokenSettings":
        return cls(
            secret=config["TOKEN_SECRET"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "video-platform-accounts"),
            access_ttl=config["ACCESS_TOKEN_EXPIRES"],
            refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
        )

    def ttl(self, kind: TokenKind) -> timedelta:
        return self.access_ttl if kind is TokenKind.ACCESS else self.refresh_ttl


@dataclass(frozen=True)
class TokenClaims:
    account_id: str
    kind: TokenKind
    expires_at: datetime
    jti: str | None = None


class TokenCodec:
    """Signs and verifies access / refresh JWTs with one immutable TokenSettings."""

    def __init__(self, settings: TokenSettings):
        self.settings = settings

    def issue(self, account_id: str, kind: TokenKind, now: datetime | None = None) -> str:
        issued = now or _now()
        exp = issued + self.settings.ttl(kind)
        payload = {
            "iss": self.settings.issuer,
            "sub": str(account_id),
            "iat": int(issued.timestamp()),
            "exp": int(exp.timestamp()),
            "type": kind.value,
            "jti": generate_jti(),
        }
        return jwt.encode(payload, self.settings.secret, algorithm=self.settings.algorithm)

    def verify(self, token: str, kind: TokenKind | None = None) -> TokenClaims:
        """
        Decode and validate a JWT.
        Raises TokenExpired once exp has passed and TokenInvalid for anything
        else that stops the token from being trusted.
        """
        try:
            decoded = jwt.decode(
                token,
                self.settings.secret,
                algorithms=[self.settings.algorithm],
                issuer=self.settings.issuer,
                options={"require": ["exp", "sub", "type"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(f"Invalid token: {exc}") from exc

        try:
            token_kind = TokenKind(decoded["type"])
        except ValueError as exc:
            raise TokenInvalid("Unknown token type") from exc
        if kind is not None and token_kind is not kind:
            raise TokenInvalid("Wrong token type")
        if not decoded["sub"]:
            raise TokenInvalid("Missing subject")

        return TokenClaims(
            account_id=str(decoded["sub"]),
            kind=token_kind,
            expires_at=datetime.fromtimestamp(decoded["exp"], tz=timezone.utc),
            jti=decoded.get("jti"),
        )
