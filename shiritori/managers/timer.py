from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0  # seconds

TickHandler = Callable[[int], Awaitable[None]]
ExpireHandler = Callable[[], Awaitable[None]]


class TurnTimer:
    """Per-turn countdown.

    Calls ``on_tick(remaining)`` once per interval and ``on_expire()`` exactly
    once when the count reaches zero, then stops. ``start`` always cancels any
    pending countdown before beginning a fresh one.
    """

    def __init__(self, on_tick: TickHandler, on_expire: ExpireHandler, interval: float = TICK_INTERVAL):
        self._on_tick = on_tick
        self._on_expire = on_expire
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self.remaining: int = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, seconds: int):
        self.stop()
        self.remaining = seconds
        self._task = asyncio.create_task(self._run(seconds))

    def stop(self):
        task = self._task
        self._task = None
        # The expiry callback may restart the timer from inside its own task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(self, seconds: int):
        try:
            remaining = seconds
            while remaining > 0:
                await asyncio.sleep(self.interval)
                remaining -= 1
                self.remaining = remaining
                if remaining > 0:
                    try:
                        await self._on_tick(remaining)
                    except Exception:
                        # A failed tick must not stop the countdown
                        logger.exception('Turn timer tick handler failed at %ss', remaining)
            logger.debug('Turn timer expired after %ss', seconds)
            await self._on_expire()
        except asyncio.CancelledError:
            return
        except Exception:
            logger.exception('Turn timer expiry handler failed')
