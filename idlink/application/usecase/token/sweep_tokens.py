"""Token sweep use case."""

import logfire
from pydantic import BaseModel

from idlink.domain.repository import StateStore
from idlink.domain.service import TokenLifecycleManager


class SweepTokensResponse(BaseModel):
    """Counts from one maintenance pass."""

    refreshed: int
    expired_without_refresh: int
    failed: int
    errors: list[str]
    purged_states: int


class SweepTokensUseCase:
    """Use case for the periodic token maintenance pass.

    Refreshes expired provider tokens and purges consumed state records
    that can no longer pass the age check.
    """

    def __init__(
        self, token_lifecycle: TokenLifecycleManager, state_store: StateStore
    ) -> None:
        """Initialize sweep tokens use case.

        Args:
            token_lifecycle: Token lifecycle domain service
            state_store: Consumed state nonces
        """
        self.token_lifecycle = token_lifecycle
        self.state_store = state_store

    async def execute(self, request: None = None) -> SweepTokensResponse:
        with logfire.span("sweep_tokens.execute"):
            report = await self.token_lifecycle.run_sweep()
            purged = await self.state_store.purge_expired(self.token_lifecycle.clock())

            logfire.info(
                "Token sweep completed",
                refreshed=report.refreshed,
                expired_without_refresh=report.expired_without_refresh,
                failed=report.failed,
                purged_states=purged,
            )
            return SweepTokensResponse(
                refreshed=report.refreshed,
                expired_without_refresh=report.expired_without_refresh,
                failed=report.failed,
                errors=report.errors,
                purged_states=purged,
            )
