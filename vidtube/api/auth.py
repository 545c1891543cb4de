"""
Session blueprint, mounted at /api/v1/users:
- POST  /users/register
- POST  /users/login
- POST  /users/logout
- POST  /users/refresh-token
- PATCH /users/password

The implementation:
- Uses argon2 for password hashing (via the User.password setter)
- Issues short-lived access tokens and longer-lived refresh tokens (JWTs signed with HS256)
- Stores the current refresh token on the user row so it can be revoked / rotated
- Sends both tokens as httpOnly cookies as well as in the response body
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, g, current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from vidtube.exceptions import (
    AuthenticationError,
    ConflictError,
    InternalError,
    InvalidTokenError,
    UploadError,
    ValidationError,
)
from vidtube.api.responses import api_response, request_payload
from vidtube.models import storage
from vidtube.models.user import User
from vidtube.models.schemas.user import (
    ChangePasswordSchema,
    LoginSchema,
    RegisterSchema,
    UserOutSchema,
)
from vidtube.utils.decorators import jwt_required
from vidtube.utils.media import get_media_store
from vidtube.utils.tokens import get_token_issuer

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
change_password_schema = ChangePasswordSchema()
user_out_schema = UserOutSchema()

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config.get("COOKIE_SECURE", True),
        "samesite": current_app.config.get("COOKIE_SAMESITE", "Lax"),
    }


def set_session_cookies(response, pair):
    options = _cookie_options()
    response.set_cookie(ACCESS_COOKIE, pair.access_token, **options)
    response.set_cookie(REFRESH_COOKIE, pair.refresh_token, **options)
    return response


def clear_session_cookies(response):
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
    return response


def sanitized_user(user_id: str, failure: str) -> dict:
    """Re-read the user and dump it without password or refresh token."""
    user = storage.get(User, user_id)
    if user is None:
        raise InternalError(failure)
    return user_out_schema.dump(user)


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: username, type: string, required: true }
      - { in: formData, name: email, type: string, required: true }
      - { in: formData, name: password, type: string, required: true }
      - { in: formData, name: fullname, type: string, required: true }
      - { in: formData, name: avatar, type: file, required: true }
      - { in: formData, name: coverImage, type: file, required: false }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: User already exists
    """
    data = register_schema.load(request_payload())

    session = storage.get_session()
    existing = session.query(User).filter(
        or_(User.username == data["username"], User.email == data["email"])
    ).first()
    if existing:
        raise ConflictError("User with email or username already exists")

    avatar_file = request.files.get("avatar")
    if avatar_file is None or not avatar_file.filename:
        raise ValidationError("Avatar file is required")

    media = get_media_store()
    avatar = media.upload(avatar_file, folder="avatars")
    if avatar is None:
        raise UploadError("Failed to upload avatar")
    cover_image = media.upload(request.files.get("coverImage"), folder="covers")

    user = User(
        username=data["username"],
        email=data["email"],
        fullname=data["fullname"],
        avatar=avatar.url,
        cover_image=cover_image.url if cover_image else "",
    )
    user.password = data["password"]
    try:
        storage.new(user)
        storage.save()
    except SQLAlchemyError:
        # no user row, so nothing may point at these uploads
        media.destroy(avatar.public_id)
        if cover_image:
            media.destroy(cover_image.public_id)
        raise
    logger.info("Registered user %s", user.username)

    return api_response(
        sanitized_user(user.id, "Something went wrong while registering the user"),
        "User registered successfully",
        201,
    )


@bp.post("/login")
def login():
    """
    Login with username or email; returns the user and both tokens and sets session cookies.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             username: { type: string }
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      400:
        description: Missing identifier or password
      401:
        description: Invalid username or password
    """
    data = login_schema.load(request_payload())

    filters = []
    if data.get("username"):
        filters.append(User.username == data["username"])
    if data.get("email"):
        filters.append(User.email == data["email"])
    session = storage.get_session()
    user: User | None = session.query(User).filter(or_(*filters)).first()

    # Same answer for unknown user and wrong password
    if user is None or not user.is_password_correct(data["password"]):
        raise AuthenticationError("invalid username or password")

    pair = get_token_issuer().issue_tokens(user.id)
    logger.info("User %s logged in", user.username)

    response, status = api_response(
        {
            "user": sanitized_user(user.id, "Something went wrong while logging in"),
            "accessToken": pair.access_token,
            "refreshToken": pair.refresh_token,
        },
        "User logged in successfully",
    )
    return set_session_cookies(response, pair), status


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: clears the stored refresh token and both session cookies.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    user = g.current_user
    get_token_issuer().revoke(user)
    logger.info("User %s logged out", user.username)

    response, status = api_response({}, "User logged out successfully")
    return clear_session_cookies(response), status


@bp.post("/refresh-token")
def refresh_access_token():
    """
    Use the refresh token (cookie or body) to obtain a new token pair (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: New access and refresh tokens
      400:
        description: Refresh token missing
      401:
        description: Invalid, expired or already used refresh token
    """
    incoming = request.cookies.get(REFRESH_COOKIE) or request_payload().get("refreshToken")
    if not incoming:
        raise ValidationError("Refresh token is required")

    issuer = get_token_issuer()
    decoded = issuer.verify_refresh_token(incoming)
    user = storage.get(User, decoded.get("sub"))
    if user is None:
        raise InvalidTokenError("Invalid refresh token")

    pair = issuer.rotate_tokens(user, incoming)
    logger.info("Rotated tokens for user %s", user.username)

    response, status = api_response(
        {"accessToken": pair.access_token, "refreshToken": pair.refresh_token},
        "Access token refreshed",
    )
    return set_session_cookies(response, pair), status


@bp.patch("/password")
@jwt_required()
def change_password():
    """
    Change the current user's password.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             password: { type: string }
             newPassword: { type: string }
             confirmPassword: { type: string }
    responses:
      200: { description: Password changed }
      400: { description: New password missing or not confirmed }
      401: { description: Current password is wrong }
    """
    data = change_password_schema.load(request_payload())

    user: User = g.current_user
    if not user.is_password_correct(data["password"]):
        raise AuthenticationError("Invalid current password")

    user.password = data["new_password"]
    user.save()
    logger.info("User %s changed password", user.username)
    return api_response({}, "Password changed successfully")
