"""In-process scheduler for the periodic token sweep."""

import asyncio
import contextlib

import logfire
from dishka import AsyncContainer

from idlink.application.usecase.token import SweepTokensUseCase
from idlink.config import LifecycleSettings


class TokenSweepScheduler:
    """Runs SweepTokensUseCase every ``interval_seconds`` in the background.

    Each run gets its own request scope (fresh session and repositories). A
    failed run is logged and the next one still happens on schedule.
    """

    def __init__(self, container: AsyncContainer, settings: LifecycleSettings) -> None:
        self._container = container
        self._settings = settings
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return bool(self._task and not self._task.done())

    async def start(self) -> bool:
        """Start the background task if enabled and not already running."""
        if not self._settings.enabled or self.is_running:
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="token-sweep")
        logfire.info(
            "Token sweep scheduled", interval_seconds=self._settings.interval_seconds
        )
        return True

    async def stop(self) -> None:
        """Signal the task to stop and wait for the current run to finish."""
        self._stop_event.set()
        task = self._task
        if task is None:
            return
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=30)
        except TimeoutError:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        finally:
            self._task = None

    async def run_once(self) -> None:
        async with self._container() as request_container:
            use_case = await request_container.get(SweepTokensUseCase)
            await use_case.execute()

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logfire.error("Token sweep failed", error_type=type(e).__name__)

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._settings.interval_seconds
                )
