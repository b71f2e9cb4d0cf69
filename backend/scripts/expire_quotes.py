"""Expire inactive quotes; meant to run from cron once a day."""

from __future__ import annotations

import argparse
import asyncio
import logging

from app.db.session import get_sessionmaker
from app.services.quote_expiration_service import run_expiration_job


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would expire without changing any quote",
    )
    parser.add_argument("--batch-size", type=int, default=100)
    parser.add_argument("--max-quotes", type=int, default=1000)
    return parser.parse_args()


async def main(args: argparse.Namespace) -> int:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        result = await run_expiration_job(
            session,
            dry_run=args.dry_run,
            batch_size=args.batch_size,
            max_quotes=args.max_quotes,
        )
    print(
        f"checked={result.quotes_checked} expired={result.quotes_expired} "
        f"warnings={result.warnings} errors={len(result.errors)} "
        f"time={result.execution_time_ms}ms dry_run={result.dry_run}"
    )
    for error in result.errors:
        print(f"  {error}")
    return 1 if result.errors else 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(asyncio.run(main(_parse_args())))
