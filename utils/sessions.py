"""
Access / refresh session lifecycle.

SessionManager decides, for one incoming request, whether the presented
tokens identify an account:

- a valid access token resolves straight to its account;
- an expired access token is silently renewed from the refresh token when
  that token verifies and still equals the value stored on the account;
- everything else fails with an ApiError whose kind and message tell the
  client whether to retry with other credentials or log in again.

Only login rotates the stored refresh token. Renewal mints an access token
and leaves the refresh token alone. Logout clears the stored value, which
is the only revocation there is: access tokens stay valid until they expire.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from api.cookies import REFRESH_COOKIE, TOKEN_COOKIES
from api.errors import ApiError
from models.account_store import AccountStore
from models.user import AccountView, User
from utils.security import TokenCodec, TokenExpired, TokenInvalid, TokenKind

logger = logging.getLogger(__name__)


@dataclass
class SessionResult:
    """An authenticated request. Failures raise ApiError instead."""
    account: AccountView
    # Set only when a new access token was minted for this request
    access_token: str | None = None

    @property
    def renewed(self) -> bool:
        return self.access_token is not None


class SessionManager:
    def __init__(self, codec: TokenCodec, accounts: AccountStore, silent_renewal: bool = True):
        self.codec = codec
        self.accounts = accounts
        self.silent_renewal = silent_renewal

    def start(self, account: User | AccountView) -> tuple[str, str]:
        """Issue an access/refresh pair and make the refresh token the only valid one."""
        access_token = self.codec.issue(account.id, TokenKind.ACCESS)
        refresh_token = self.codec.issue(account.id, TokenKind.REFRESH)
        self.accounts.update_fields(account.id, refresh_token=refresh_token)
        logger.info("Session started for account %s", account.id)
        return access_token, refresh_token

    def end(self, account: User | AccountView) -> None:
        self.accounts.update_fields(account.id, refresh_token=None)
        logger.info("Session ended for account %s", account.id)

    def authenticate(self, access_token: str | None, refresh_token: str | None) -> SessionResult:
        if not access_token:
            raise ApiError.unauthorized("No Access Token")

        try:
            claims = self.codec.verify(access_token, TokenKind.ACCESS)
        except TokenExpired:
            if not self.silent_renewal:
                raise ApiError.unauthorized("Access Token Expired")
            return self.renew(refresh_token)
        except TokenInvalid as exc:
            logger.warning("Rejected access token: %s", exc)
            raise ApiError.unauthorized("Invalid Token")

        account = self.accounts.find_by_id(claims.account_id)
        if account is None:
            raise ApiError.unauthorized("User Not Found")
        return SessionResult(account=AccountView.from_user(account))

    def renew(self, refresh_token: str | None) -> SessionResult:
        """Mint a fresh access token from a refresh token that is still on record."""
        if not refresh_token:
            raise ApiError.unauthorized("No Refresh Token")

        try:
            claims = self.codec.verify(refresh_token, TokenKind.REFRESH)
        except TokenExpired:
            raise ApiError.forbidden("Session expired; log in again", clear_cookies=TOKEN_COOKIES)
        except TokenInvalid as exc:
            logger.warning("Rejected refresh token: %s", exc)
            raise ApiError.unauthorized("Invalid Refresh Token")

        account = self.accounts.find_by_id(claims.account_id)
        if account is None or not _same_token(account.refresh_token, refresh_token):
            # Superseded by a later login, or cleared by logout
            logger.warning("Refresh token mismatch for account %s", claims.account_id)
            raise ApiError.unauthorized("Invalid Refresh Token", clear_cookies=(REFRESH_COOKIE,))

        access_token = self.codec.issue(account.id, TokenKind.ACCESS)
        logger.info("Access token renewed for account %s", account.id)
        return SessionResult(account=AccountView.from_user(account), access_token=access_token)


def _same_token(stored: str | None, presented: str) -> bool:
    if not stored:
        return False
    return hmac.compare_digest(stored.encode(), presented.encode())
