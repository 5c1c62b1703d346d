"""Cancellable periodic task driving the question countdown."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

__all__ = ["CountdownTimer"]


class CountdownTimer:
    """Call ``callback`` every ``interval`` seconds until cancelled.

    Only one task exists per timer: ``start`` cancels the previous one
    before scheduling a new one. ``cancel`` may be called from inside the
    callback; the task stops at its next sleep. A callback that raises is
    logged and the countdown keeps going.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        *,
        interval: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self._callback = callback
        self._interval = interval
        self._logger = logger or logging.getLogger("ged_quizzer.quizzer")
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="quiz-countdown")

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._callback()
            except Exception:
                self._logger.exception(
                    "Countdown tick failed", extra={"event": "timer"}
                )
