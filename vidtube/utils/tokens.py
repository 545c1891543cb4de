"""
Token issuer: signs, verifies and rotates the access/refresh token pair.

Access tokens are stateless. The refresh token is also stored on the user row,
so there is at most one live refresh token per user; a presented refresh token
that does not match the stored one is rejected.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping

import jwt
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from vidtube.exceptions import (
    ExpiredOrReusedTokenError,
    InternalError,
    InvalidTokenError,
    NotFoundError,
)
from vidtube.models import storage
from vidtube.models.user import User
from vidtube.utils.security import generate_jti

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenIssuer:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_expires: timedelta,
        refresh_expires: timedelta,
        algorithm: str = "HS256",
        issuer: str = "vidtube-api",
        store=storage,
    ):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_expires = access_expires
        self.refresh_expires = refresh_expires
        self.algorithm = algorithm
        self.issuer = issuer
        self.store = store

    @classmethod
    def from_config(cls, config: Mapping[str, Any], store=storage) -> "TokenIssuer":
        return cls(
            access_secret=config["ACCESS_TOKEN_SECRET"],
            refresh_secret=config["REFRESH_TOKEN_SECRET"],
            access_expires=config["ACCESS_TOKEN_EXPIRES"],
            refresh_expires=config["REFRESH_TOKEN_EXPIRES"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "vidtube-api"),
            store=store,
        )

    def _encode(self, claims: Dict[str, Any], secret: str, expires: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iss": self.issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + expires).timestamp()),
            "jti": generate_jti(),
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def create_access_token(self, user: User) -> str:
        return self._encode(
            {
                "sub": str(user.id),
                "username": user.username,
                "email": user.email,
                "fullname": user.fullname,
                "type": ACCESS,
            },
            self.access_secret,
            self.access_expires,
        )

    def create_refresh_token(self, user: User) -> str:
        return self._encode({"sub": str(user.id), "type": REFRESH}, self.refresh_secret, self.refresh_expires)

    def _mint(self, user: User) -> TokenPair:
        try:
            return TokenPair(self.create_access_token(user), self.create_refresh_token(user))
        except jwt.PyJWTError as exc:
            logger.exception("Token signing failed for user %s", user.id)
            raise InternalError("something went wrong while generating tokens") from exc

    def issue_tokens(self, user_id: str) -> TokenPair:
        """Mint a new pair for the user and store the refresh token on the user row."""
        try:
            user = self.store.get(User, user_id)
        except SQLAlchemyError as exc:
            raise InternalError("something went wrong while generating tokens") from exc
        if user is None:
            raise NotFoundError("User not found")

        pair = self._mint(user)
        user.refresh_token = pair.refresh_token
        try:
            self.store.new(user)
            self.store.save()
        except SQLAlchemyError as exc:
            logger.exception("Could not persist refresh token for user %s", user.id)
            raise InternalError("something went wrong while generating tokens") from exc
        return pair

    def rotate_tokens(self, user: User, presented: str) -> TokenPair:
        """
        Replace the stored refresh token with a new one, but only if it still equals
        the presented one. A concurrent rotation that got there first makes the
        conditional update match no rows.
        """
        if presented != user.refresh_token:
            raise ExpiredOrReusedTokenError()

        pair = self._mint(user)
        session = self.store.get_session()
        try:
            updated = (
                session.query(User)
                .filter(User.id == user.id, User.refresh_token == presented)
                .update({User.refresh_token: pair.refresh_token}, synchronize_session=False)
            )
            self.store.save()
        except SQLAlchemyError as exc:
            logger.exception("Could not rotate refresh token for user %s", user.id)
            raise InternalError("something went wrong while generating tokens") from exc
        if updated != 1:
            raise ExpiredOrReusedTokenError()
        session.refresh(user)
        return pair

    def revoke(self, user: User) -> None:
        """Drop the stored refresh token; any outstanding refresh token stops working."""
        user.refresh_token = None
        self.store.new(user)
        self.store.save()

    def _decode(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        try:
            decoded = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenError("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(f"Invalid {expected_type} token") from exc

        if decoded.get("type") != expected_type:
            raise InvalidTokenError("Wrong token type")
        return decoded

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.access_secret, ACCESS)

    def verify_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.refresh_secret, REFRESH)


def get_token_issuer() -> TokenIssuer:
    return current_app.extensions["token_issuer"]
