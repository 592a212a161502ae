"""Daily request ceilings per subscription tier."""
from __future__ import annotations

from typing import NamedTuple

FREE_TIER = "free"
PRO_TIER = "pro"

FREE_TIER_DAILY_LIMIT = 5
PRO_TIER_DAILY_LIMIT = 100

_CEILINGS = {
    FREE_TIER: FREE_TIER_DAILY_LIMIT,
    PRO_TIER: PRO_TIER_DAILY_LIMIT,
}

UPGRADE_MESSAGE = (
    "You've used all your daily WOD analyses. Upgrade to Pro for more!"
)


class Admission(NamedTuple):
    """Outcome of the pre-call quota check."""
    allowed: bool
    tier: str
    limit: int
    used: int
    remaining: int


def normalize_tier(tier: str | None) -> str:
    """Return a recognized tier; anything unknown counts as free."""
    if isinstance(tier, str) and tier in _CEILINGS:
        return tier
    return FREE_TIER


def ceiling(tier: str | None) -> int:
    return _CEILINGS[normalize_tier(tier)]


def admit(tier: str | None, used: int) -> Admission:
    """Decide whether a user with ``used`` calls today may make another."""
    effective = normalize_tier(tier)
    limit = _CEILINGS[effective]
    used = max(0, int(used))
    return Admission(
        allowed=used < limit,
        tier=effective,
        limit=limit,
        used=used,
        remaining=max(0, limit - used),
    )


def remaining_after_success(admission: Admission) -> int:
    """Allowance left once the admitted call has been charged."""
    return max(0, admission.limit - (admission.used + 1))


__all__ = [
    "FREE_TIER",
    "PRO_TIER",
    "FREE_TIER_DAILY_LIMIT",
    "PRO_TIER_DAILY_LIMIT",
    "UPGRADE_MESSAGE",
    "Admission",
    "normalize_tier",
    "ceiling",
    "admit",
    "remaining_after_success",
]
