"""Print AI proxy usage per day.

Usage:
  python scripts/usage_report.py --days 7
"""

from __future__ import annotations

import argparse
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from wod_gateway.config import Settings
from wod_gateway.db import SessionLocal, init_db
from wod_gateway.services.usage import today_key


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--days", type=int, default=7)
    args = parser.parse_args()

    init_db(Settings())
    since = today_key(datetime.now(timezone.utc) - timedelta(days=max(args.days - 1, 0)))

    with SessionLocal() as session:
        rows = session.execute(
            text(
                "SELECT usage_date, COUNT(*) AS users, SUM(request_count) AS requests "
                "FROM api_usage WHERE usage_date >= :since "
                "GROUP BY usage_date ORDER BY usage_date"
            ),
            {"since": since},
        ).all()

    print("date        users  requests")
    for usage_date, users, requests in rows:
        print(f"{usage_date}  {users:5d}  {int(requests or 0):8d}")


if __name__ == "__main__":
    main()
