"""Host-only countdown timer.

The timer never touches the state itself. Each tick is posted back to the
host's event queue, so ticks interleave with actions instead of racing
them. Every restart bumps a generation number; ticks from an older
generation are ignored by the host.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]


class Countdown:
    """Posts one tick per interval until stopped."""

    def __init__(self, interval: float, on_tick: TickCallback):
        self._interval = interval
        self._on_tick = on_tick
        self._task: Optional[asyncio.Task] = None
        self.generation = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def restart(self) -> None:
        """Start a fresh countdown, dropping any running one."""
        self.stop()
        self.generation += 1
        self._task = asyncio.create_task(self._run(self.generation))

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.generation += 1

    async def _run(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self._interval)
            logger.debug("tick (generation %d)", generation)
            self._on_tick(generation)
