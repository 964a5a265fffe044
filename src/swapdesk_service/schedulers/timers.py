from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

AsyncCallback = Callable[[], Awaitable[Any]]

logger = logging.getLogger("swapdesk.schedulers.timers")


class Debouncer:
    """
    Runs a callback once its trigger has been quiet for ``delay_seconds``.

    Every call to ``schedule`` cancels the pending run and starts the wait over.
    """

    def __init__(self, delay_seconds: float, *, name: str = "debounce") -> None:
        self.delay_seconds = delay_seconds
        self._name = name
        self._task: asyncio.Task[Any] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, callback: AsyncCallback) -> asyncio.Task[Any]:
        self.cancel()
        self._task = asyncio.create_task(self._run(callback), name=self._name)
        return self._task

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> Any:
        task = self._task
        if task is None:
            return None
        try:
            return await task
        except asyncio.CancelledError:
            return None

    async def _run(self, callback: AsyncCallback) -> Any:
        await asyncio.sleep(self.delay_seconds)
        return await callback()


class PeriodicTask:
    """Calls an async callback every ``interval_seconds`` until stopped."""

    def __init__(
        self,
        callback: AsyncCallback,
        interval_seconds: float,
        *,
        name: str = "periodic-task",
        run_immediately: bool = True,
    ) -> None:
        self._callback = callback
        self.interval_seconds = interval_seconds
        self._name = name
        self._run_immediately = run_immediately
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name=self._name)
        logger.debug("%s started (interval=%ss)", self._name, self.interval_seconds)

    async def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:  # pragma: no cover - expected on shutdown
                pass
        self._task = None
        logger.debug("%s stopped", self._name)

    async def _run_loop(self) -> None:
        if not self._run_immediately:
            await asyncio.sleep(self.interval_seconds)
        while self._running:
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("%s tick failed: %s", self._name, exc)
            await asyncio.sleep(self.interval_seconds)


__all__ = ["Debouncer", "PeriodicTask"]
