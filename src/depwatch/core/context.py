from __future__ import annotations

import asyncio


class CancelContext:
    """Cooperative cancellation token shared by every long-running task.

    Cancellation is one-way: once `cancel()` is called the context stays
    cancelled. Tasks observe it either by polling `cancelled` between units
    of work or by racing `wait()` against their own blocking call.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until the context is cancelled."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to `seconds`; return True if woken by cancellation."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
