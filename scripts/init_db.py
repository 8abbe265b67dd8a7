#!/usr/bin/env python3
"""
Create the videos table in Snowflake.

Safe to run repeatedly; the statement is CREATE TABLE IF NOT EXISTS.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --dry-run

Requires:
    - .env file (or environment) with Snowflake credentials
"""

import argparse
import logging
import sys

from tubely.config.settings import get_settings
from tubely.infrastructure.snowflake.client import (
    SnowflakeConnectionError,
    create_snowflake_connection,
)
from tubely.infrastructure.snowflake.repositories.videos import (
    CREATE_VIDEOS_TABLE,
    SnowflakeConfig,
)

logger = logging.getLogger("init_db")


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the Tubely videos table")
    parser.add_argument("--dry-run", action="store_true", help="Print the DDL, don't run it")
    args = parser.parse_args()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )

    if args.dry_run:
        print(CREATE_VIDEOS_TABLE.strip())
        return 0

    settings = get_settings()
    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    try:
        with create_snowflake_connection(config=config) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(CREATE_VIDEOS_TABLE)
                conn.commit()
            finally:
                cursor.close()
    except SnowflakeConnectionError as e:
        logger.error("Unable to connect to Snowflake", extra={"error": str(e)})
        return 1

    logger.info(
        "Videos table ready",
        extra={"database": config.database, "schema": config.schema}
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
