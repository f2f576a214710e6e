#!/usr/bin/env python3
"""Move stored provider tokens onto the current encryption key.

Rewrites legacy-format envelopes and envelopes produced under a key listed
in CRYPTO__PREVIOUS_KEYS. Run after a key rotation, then drop the old key.

Usage:
    python scripts/reencrypt_tokens.py [--dry-run] [--batch-size N]
"""

import argparse
import asyncio
import sys

import logfire

from idlink.application.usecase.token import ReencryptTokensUseCase
from idlink.application.usecase.token.reencrypt_tokens import ReencryptTokensRequest
from idlink.config import Settings
from idlink.util.di.container import create_script_container
from idlink.util.logging import setup_logging
from idlink.util.observability import configure_logfire


async def run(dry_run: bool, batch_size: int) -> int:
    container = create_script_container()
    try:
        # One request scope: the session commits once at the end
        async with container() as request_container:
            use_case = await request_container.get(ReencryptTokensUseCase)
            result = await use_case.execute(
                ReencryptTokensRequest(batch_size=batch_size, dry_run=dry_run)
            )
    finally:
        await container.close()

    prefix = "[dry run] " if dry_run else ""
    print(
        f"{prefix}scanned={result.scanned} reencrypted={result.reencrypted} "
        f"unreadable={result.unreadable}"
    )
    return 1 if result.unreadable else 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="Count only")
    parser.add_argument("--batch-size", type=int, default=200)
    args = parser.parse_args()

    settings = Settings()
    setup_logging(settings)
    configure_logfire(settings)

    try:
        return asyncio.run(run(args.dry_run, args.batch_size))
    except Exception as e:
        logfire.error(
            "Token re-encryption failed",
            error_type=type(e).__name__,
            _exc_info=sys.exc_info(),
        )
        raise


if __name__ == "__main__":
    sys.exit(main())
