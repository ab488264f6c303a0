#!/usr/bin/env python
from __future__ import annotations

import argparse
import logging

from jqdata.client import JqdataClient
from jqdata.frames import to_frame
from jqdata.models import GetAllSecurities, SecurityKind


def main() -> int:
    parser = argparse.ArgumentParser(description="List securities of one kind (get_all_securities)")
    parser.add_argument(
        "--kind",
        choices=[k.value for k in SecurityKind],
        default=SecurityKind.STOCK.value,
        help="Security kind",
    )
    parser.add_argument("--date", default=None, help="As of date YYYY-MM-DD (optional)")
    parser.add_argument("--limit", type=int, default=20, help="Rows to display")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    with JqdataClient.from_env() as client:
        rows = client.execute_with_refresh(
            GetAllSecurities(code=SecurityKind(args.kind), date=args.date)
        )

    df = to_frame(rows)
    if args.limit:
        print(df.head(args.limit).to_string(index=False))
    else:
        print(df.to_string(index=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
