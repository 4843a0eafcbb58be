#!/usr/bin/env python3
"""
Token cleanup job.

Purpose:
    - Runs periodically via cron (e.g. hourly).
    - Deletes revoked tokens and tokens whose expiry has passed.
    - Exits non-zero when the database cannot be reached so cron mail/alerts fire.
"""

import argparse
import sys

from oauth2_pg_store.application.exceptions import TokenStoreError
from oauth2_pg_store.infrastructure.postgres_store import PostgresTokenStore, create_pool
from oauth2_pg_store.logging_setup import get_logger

logger = get_logger("CLEANUP")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete revoked and expired OAuth2 tokens.")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Connection string; defaults to DATABASE_URL / POSTGRES_* settings.",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logger.info("Token cleanup job running...")

    store = PostgresTokenStore(create_pool(args.database_url, min_size=1, max_size=1))
    try:
        removed = store.cleanup()
    except TokenStoreError as e:
        logger.error(f"Token cleanup failed: {e}")
        return 1
    finally:
        store.close()

    logger.info(f"Token cleanup removed {removed} row(s).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
