from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, String

from .base import Base


class Profile(Base):
    """Athlete profile row; the gateway only reads ``subscription_tier``."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint(
            "subscription_tier IN ('free', 'pro')", name="ck_profiles_tier"
        ),
    )

    id = Column(String(36), primary_key=True)
    email = Column(String(320))
    subscription_tier = Column(String(16), nullable=False, server_default="free")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


__all__ = ["Profile"]
