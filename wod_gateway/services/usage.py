"""Daily usage ledger for AI proxy requests.

Counters are keyed by (user, UTC calendar date); the key rolls over at
midnight UTC so no reset job is needed. Functions are synchronous, callers on
the event loop go through ``asyncio.to_thread``.
"""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import text

from wod_gateway import db as db_module


def today_key(now: datetime | None = None) -> str:
    """Return the ledger date key ``YYYY-MM-DD`` in UTC."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%d")


def get_usage_sync(user_id: str, day: str | None = None) -> int:
    """Return successful calls recorded for ``user_id`` on ``day`` (0 if none)."""
    day = day or today_key()
    with db_module.SessionLocal() as db:
        count = db.execute(
            text(
                "SELECT request_count FROM api_usage "
                "WHERE user_id = :uid AND usage_date = :day"
            ),
            {"uid": user_id, "day": day},
        ).scalar()
    return int(count or 0)


def increment_usage_sync(user_id: str, day: str | None = None) -> int:
    """Atomically add one call for ``user_id`` on ``day``. Returns new count.

    A single upsert statement, so concurrent increments of the same key
    never lose an update.
    """
    day = day or today_key()
    params = {"uid": user_id, "day": day}
    with db_module.SessionLocal() as db:
        db.execute(
            text(
                "INSERT INTO api_usage "
                "(user_id, usage_date, request_count, created_at, updated_at) "
                "VALUES (:uid, :day, 1, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP) "
                "ON CONFLICT (user_id, usage_date) DO UPDATE "
                "SET request_count = api_usage.request_count + 1, "
                "updated_at = CURRENT_TIMESTAMP"
            ),
            params,
        )
        db.commit()

        new_count = db.execute(
            text(
                "SELECT request_count FROM api_usage "
                "WHERE user_id = :uid AND usage_date = :day"
            ),
            params,
        ).scalar_one()
    return int(new_count)


def get_subscription_tier_sync(user_id: str) -> str | None:
    """Return the stored tier for ``user_id`` or ``None`` if there is no profile."""
    with db_module.SessionLocal() as db:
        return db.execute(
            text("SELECT subscription_tier FROM profiles WHERE id = :uid"),
            {"uid": user_id},
        ).scalar()


__all__ = [
    "today_key",
    "get_usage_sync",
    "increment_usage_sync",
    "get_subscription_tier_sync",
]
