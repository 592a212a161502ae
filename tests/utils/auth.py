from __future__ import annotations

import time
import uuid

import jwt
from sqlalchemy import text

from wod_gateway.config import Settings
from wod_gateway.db import SessionLocal


def make_token(
    user_id: str,
    *,
    secret: str | None = None,
    expires_in: int = 3600,
    audience: str | None = "authenticated",
    email: str | None = None,
    extra: dict | None = None,
) -> str:
    settings = Settings()
    now = int(time.time())
    claims: dict = {"sub": user_id, "iat": now, "exp": now + expires_in}
    if audience is not None:
        claims["aud"] = audience
    if email is not None:
        claims["email"] = email
    if extra:
        claims.update(extra)
    return jwt.encode(claims, secret or settings.jwt_secret, algorithm="HS256")


def auth_headers(user_id: str, *, project_key: str | None = None, **token_kwargs) -> dict[str, str]:
    settings = Settings()
    return {
        "Authorization": f"Bearer {make_token(user_id, **token_kwargs)}",
        "apikey": project_key if project_key is not None else settings.project_api_key,
    }


def new_user_id() -> str:
    return str(uuid.uuid4())


def create_profile(user_id: str, tier: str = "free") -> None:
    with SessionLocal() as session:
        session.execute(
            text("INSERT INTO profiles (id, subscription_tier) VALUES (:uid, :tier)"),
            {"uid": user_id, "tier": tier},
        )
        session.commit()
