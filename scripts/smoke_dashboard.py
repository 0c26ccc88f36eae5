#!/usr/bin/env python3
import argparse
import json

from backend.analytics.dashboard import get_dashboard_summary
from backend.app.db import connect


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--granularity", default="day", choices=["day", "month"])
    ap.add_argument("--limit", type=int, default=None)
    ap.add_argument("--hot", type=int, default=5, help="how many hot movies to print")
    args = ap.parse_args()

    conn = connect()
    report = get_dashboard_summary(conn, granularity=args.granularity, limit=args.limit, hot_limit=args.hot)
    conn.close()

    payload = report.to_dict()
    # keep the output short: only non-empty buckets
    payload["timeline"] = [b for b in payload["timeline"] if any(b[k] for k in ("views", "likes", "ratingStars", "comments"))]
    print(json.dumps(payload, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
