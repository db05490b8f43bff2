from __future__ import annotations
from functools import wraps
from flask import request, g, current_app, after_this_request

from api.cookies import ACCESS_COOKIE, extract_access_token, extract_refresh_token, set_access_cookie


def jwt_required():
    """
    Resolve the caller from the token cookies (or bearer header) and put the
    account view on g.current_user; it carries no password hash or refresh
    token. A silently renewed access token is written back as the accessToken
    cookie on the way out.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            sessions = current_app.extensions["session_manager"]
            result = sessions.authenticate(
                extract_access_token(request),
                extract_refresh_token(request),
            )

            if result.renewed:
                new_token = result.access_token

                @after_this_request
                def _set_renewed_cookie(response):
                    # The view wins if it set or cleared the cookie itself (logout)
                    prefix = f"{ACCESS_COOKIE}="
                    if any(c.startswith(prefix) for c in response.headers.getlist("Set-Cookie")):
                        return response
                    return set_access_cookie(response, new_token)

            g.current_user = result.account
            return fn(*args, **kwargs)

        return wrapper

    return decorator
