"""Change a user's subscription tier.

Usage:
  python scripts/set_subscription_tier.py --user-id <uuid> --tier pro
  python scripts/set_subscription_tier.py --user-id <uuid> --tier free
"""

from __future__ import annotations

import argparse

from sqlalchemy import text

from wod_gateway.config import Settings
from wod_gateway.db import SessionLocal, init_db
from wod_gateway.services.quota import FREE_TIER, PRO_TIER


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--tier", choices=[FREE_TIER, PRO_TIER], required=True)
    parser.add_argument(
        "--create", action="store_true", help="insert the profile if it does not exist"
    )
    args = parser.parse_args()

    init_db(Settings())

    with SessionLocal() as session:
        row = session.execute(
            text("SELECT id FROM profiles WHERE id = :uid"),
            {"uid": args.user_id},
        ).first()
        if not row:
            if not args.create:
                raise SystemExit("Profile not found")
            session.execute(
                text("INSERT INTO profiles (id, subscription_tier) VALUES (:uid, :tier)"),
                {"uid": args.user_id, "tier": args.tier},
            )
        else:
            session.execute(
                text("UPDATE profiles SET subscription_tier = :tier WHERE id = :uid"),
                {"uid": args.user_id, "tier": args.tier},
            )
        session.commit()
    print(args.tier)


if __name__ == "__main__":
    main()
