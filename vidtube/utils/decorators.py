from __future__ import annotations
from functools import wraps
from flask import request, g

from vidtube.exceptions import AuthenticationError, InvalidTokenError
from vidtube.models import storage
from vidtube.models.user import User
from vidtube.utils.tokens import get_token_issuer


def _access_token_from_request() -> str | None:
    token = request.cookies.get("accessToken")
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return None


def jwt_required():
    """Require a valid access token (cookie or Bearer header); sets g.current_user."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = _access_token_from_request()
            if not token:
                raise AuthenticationError("Unauthorized request")

            decoded = get_token_issuer().verify_access_token(token)
            user = storage.get(User, decoded.get("sub"))
            if not user:
                raise InvalidTokenError("Invalid access token")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator
