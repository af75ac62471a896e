from __future__ import annotations

import asyncio
import itertools
from typing import Callable

FRAMES = ("|", "/", "-", "\\")


class ActivityIndicator:
    """
    Best-effort spinner shown while a request is waiting for its first byte.

    *render* is called with each frame label, *clear* once when the spinner
    stops.  ``stop()`` may be called any number of times from the event loop
    and never waits for the background task.
    """

    def __init__(
        self,
        render: Callable[[str], None],
        clear: Callable[[], None],
        interval: float = 0.1,
        label: str = "Thinking",
    ) -> None:
        self._render = render
        self._clear = clear
        self.interval = interval
        self.label = label
        self.active = False
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self.active:
            return
        self.active = True
        self._task = asyncio.get_running_loop().create_task(self._spin())

    def stop(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._clear()

    async def _spin(self) -> None:
        for frame in itertools.cycle(FRAMES):
            if not self.active:
                return
            self._render(f"{frame} {self.label}")
            await asyncio.sleep(self.interval)
