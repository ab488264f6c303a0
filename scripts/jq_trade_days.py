#!/usr/bin/env python
from __future__ import annotations

import argparse
import asyncio

from jqdata.aio import AsyncJqdataClient
from jqdata.models import GetAllTradeDays, GetQueryCount, GetTradeDays


async def run(start: str | None, end: str | None) -> tuple[list[str], int]:
    client = await AsyncJqdataClient.from_env()
    async with client:
        command = GetTradeDays(date=start, end_date=end) if start else GetAllTradeDays()
        days, remaining = await asyncio.gather(
            client.execute(command), client.execute(GetQueryCount())
        )
    return days, remaining


def main() -> int:
    parser = argparse.ArgumentParser(description="Fetch trading days (get_trade_days)")
    parser.add_argument("--from", dest="from_", default=None, help="Start date YYYY-MM-DD")
    parser.add_argument("--to", default=None, help="End date YYYY-MM-DD (optional)")
    args = parser.parse_args()

    days, remaining = asyncio.run(run(args.from_, args.to))
    for day in days:
        print(day)
    print(f"# {len(days)} days, {remaining} queries left today")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
