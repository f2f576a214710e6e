#!/usr/bin/env python3
"""Apply the idlink schema migrations with Logfire error tracking.

Usage:
    python scripts/run_migrations.py [--revision REV] [--sql]
"""

import argparse
import sys

import logfire
from alembic import command
from alembic.config import Config

from idlink.config import Settings
from idlink.util.observability import configure_logfire


def main() -> int:
    """Upgrade the database and log any errors to Logfire."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--revision", default="head", help="Target revision")
    parser.add_argument(
        "--sql", action="store_true", help="Print the SQL instead of running it"
    )
    args = parser.parse_args()

    settings = Settings()
    configure_logfire(settings)

    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)

    with logfire.span("migrations.upgrade", revision=args.revision, offline=args.sql):
        try:
            command.upgrade(alembic_cfg, args.revision, sql=args.sql)
        except Exception as e:
            logfire.error(
                "Database migration failed",
                revision=args.revision,
                error_type=type(e).__name__,
                _exc_info=sys.exc_info(),
            )
            # The app must not start against a half-migrated schema
            raise

    logfire.info("Database migrations applied", revision=args.revision)
    return 0


if __name__ == "__main__":
    sys.exit(main())
