from __future__ import annotations

import hmac
import logging

from fastapi import Depends, Header

from wod_gateway.config import Settings
from wod_gateway.services.errors import Unauthenticated
from wod_gateway.services.identity import JwtIdentityProvider, SessionIdentity, parse_bearer
from wod_gateway.services.model import ModelBackend, get_model_backend

settings = Settings()

logger = logging.getLogger(__name__)


def get_settings() -> Settings:
    return settings


def get_identity_provider() -> JwtIdentityProvider:
    return JwtIdentityProvider.from_settings(settings)


def get_backend() -> ModelBackend:
    return get_model_backend()


async def require_session(
    authorization: str | None = Header(None, alias="Authorization"),
    apikey: str | None = Header(None, alias="apikey"),
    provider: JwtIdentityProvider = Depends(get_identity_provider),
) -> SessionIdentity:
    """Resolve the caller before any quota or model work happens."""
    token = parse_bearer(authorization)

    expected = settings.project_api_key
    if expected and not hmac.compare_digest((apikey or "").encode(), expected.encode()):
        raise Unauthenticated("Invalid API key")

    return provider.verify(token)
