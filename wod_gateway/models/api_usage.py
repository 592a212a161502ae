"""Daily AI request counter per user.

One row per (user, UTC date); the gateway only ever inserts or increments.
"""
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from .base import Base


class ApiUsage(Base):
    """Successful model calls of a user on one calendar day."""

    __tablename__ = "api_usage"
    __table_args__ = (
        CheckConstraint("request_count >= 0", name="ck_api_usage_count_nonneg"),
    )

    user_id = Column(String(36), primary_key=True)
    usage_date = Column(String(10), primary_key=True)  # YYYY-MM-DD (UTC)
    request_count = Column(Integer, nullable=False, server_default="0")
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


__all__ = ["ApiUsage"]
