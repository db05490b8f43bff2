"""
Token transport: the accessToken / refreshToken cookies and the bearer
header fallback.

Set and clear use the same attribute set, otherwise browsers keep the
original cookie around.
"""
from __future__ import annotations

from typing import Iterable

from flask import current_app, Request, Response

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
TOKEN_COOKIES = (ACCESS_COOKIE, REFRESH_COOKIE)


def cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": bool(current_app.config.get("COOKIE_SECURE", False)),
        "samesite": current_app.config.get("COOKIE_SAMESITE", "Lax"),
        "path": "/",
    }


def extract_access_token(request: Request) -> str | None:
    """Cookie first, then `Authorization: Bearer <token>`."""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return None


def extract_refresh_token(request: Request) -> str | None:
    return request.cookies.get(REFRESH_COOKIE) or None


def set_access_cookie(response: Response, token: str) -> Response:
    response.set_cookie(ACCESS_COOKIE, token, **cookie_options())
    return response


def set_token_cookies(response: Response, access_token: str, refresh_token: str) -> Response:
    opts = cookie_options()
    response.set_cookie(ACCESS_COOKIE, access_token, **opts)
    response.set_cookie(REFRESH_COOKIE, refresh_token, **opts)
    return response


def clear_token_cookies(response: Response, names: Iterable[str] = TOKEN_COOKIES) -> Response:
    opts = cookie_options()
    for name in names:
        response.delete_cookie(name, path=opts["path"], secure=opts["secure"],
                               httponly=opts["httponly"], samesite=opts["samesite"])
    return response
