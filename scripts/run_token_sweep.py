#!/usr/bin/env python3
"""Run one token sweep (for cron, when the in-process scheduler is disabled)."""

import asyncio
import sys

import logfire

from idlink.application.usecase.token import SweepTokensUseCase
from idlink.config import Settings
from idlink.util.di.container import create_script_container
from idlink.util.logging import setup_logging
from idlink.util.observability import configure_logfire


async def run() -> int:
    container = create_script_container()
    try:
        async with container() as request_container:
            use_case = await request_container.get(SweepTokensUseCase)
            result = await use_case.execute()
    finally:
        await container.close()

    print(
        f"refreshed={result.refreshed} "
        f"expired_without_refresh={result.expired_without_refresh} "
        f"failed={result.failed} purged_states={result.purged_states}"
    )
    return 1 if result.failed else 0


def main() -> int:
    settings = Settings()
    setup_logging(settings)
    configure_logfire(settings)

    try:
        return asyncio.run(run())
    except Exception as e:
        logfire.error(
            "Token sweep failed",
            error_type=type(e).__name__,
            _exc_info=sys.exc_info(),
        )
        raise


if __name__ == "__main__":
    sys.exit(main())
