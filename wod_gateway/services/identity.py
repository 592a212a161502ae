"""Bearer session verification against the hosted auth service's JWT secret."""

from __future__ import annotations

import logging
from typing import NamedTuple

import jwt

from wod_gateway.config import Settings
from wod_gateway.services.errors import Unauthenticated

logger = logging.getLogger(__name__)


class SessionIdentity(NamedTuple):
    user_id: str
    email: str | None = None


def parse_bearer(authorization: str | None) -> str:
    """Return the token from an ``Authorization: Bearer`` header value."""
    if not authorization:
        raise Unauthenticated("Missing authorization header")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Invalid authorization header")
    return token.strip()


class JwtIdentityProvider:
    """Resolve session tokens to user identities.

    Tokens are HS256 JWTs signed with the project's JWT secret; ``sub`` is the
    user id. Expired, tampered or wrongly scoped tokens are rejected.
    """

    def __init__(self, secret: str, audience: str | None = "authenticated"):
        self._secret = secret
        self._audience = audience

    @classmethod
    def from_settings(cls, cfg: Settings) -> "JwtIdentityProvider":
        return cls(cfg.jwt_secret, cfg.jwt_audience or None)

    def verify(self, token: str) -> SessionIdentity:
        options = {"verify_exp": True, "require": ["exp", "sub"]}
        if self._audience is None:
            options["verify_aud"] = False
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=["HS256"],
                audience=self._audience,
                options=options,
            )
        except jwt.ExpiredSignatureError as exc:
            raise Unauthenticated("Invalid or expired token") from exc
        except jwt.PyJWTError as exc:
            logger.info("Rejected session token: %s", exc)
            raise Unauthenticated("Invalid or expired token") from exc

        user_id = str(claims.get("sub") or "").strip()
        if not user_id:
            raise Unauthenticated("Invalid or expired token")
        return SessionIdentity(user_id=user_id, email=claims.get("email"))


__all__ = ["SessionIdentity", "JwtIdentityProvider", "parse_bearer"]
