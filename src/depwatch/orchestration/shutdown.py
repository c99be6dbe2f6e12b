"""Signal handling and graceful / forced shutdown.

WAITING --(1st signal)--> SHUTTING_DOWN --(cleanup done | 2nd signal)--> DONE

The first termination signal cancels the shared context and starts the
cleanup in its own task. The cleanup finishing yields exit code 0; a second
signal arriving strictly before that yields exit code 1.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import signal
from collections.abc import Awaitable, Callable, Iterable
from contextlib import suppress

from depwatch.core.context import CancelContext

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS: tuple[signal.Signals, ...] = tuple(
    s for s in (getattr(signal, n, None) for n in ("SIGINT", "SIGTERM", "SIGHUP")) if s is not None
)

EXIT_GRACEFUL = 0
EXIT_FORCED = 1


class ShutdownState(enum.Enum):
    WAITING = "waiting"
    SHUTTING_DOWN = "shutting_down"
    DONE = "done"


class ShutdownCoordinator:
    """Race a second termination signal against the graceful cleanup.

    Parameters
    ----------
    ctx : CancelContext
        Shared context cancelled on the first signal.
    cleanup : Callable[[], Awaitable[None]] | None
        Optional coroutine factory run after cancellation (e.g. wait for the
        orchestrator and stop the engine).
    signals : asyncio.Queue | None
        Signal source. Defaults to a queue fed by the event loop's signal
        handlers once `install()` is called; tests pass their own queue.
    """

    def __init__(
        self,
        ctx: CancelContext,
        cleanup: Callable[[], Awaitable[None]] | None = None,
        signals: asyncio.Queue | None = None,
    ) -> None:
        self.ctx = ctx
        self.cleanup = cleanup
        self.signals: asyncio.Queue = signals if signals is not None else asyncio.Queue()
        self.state = ShutdownState.WAITING
        self._installed: list[signal.Signals] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    def install(self, sigs: Iterable[signal.Signals] = TERMINATION_SIGNALS) -> None:
        """Route OS termination signals into the signal queue."""
        loop = asyncio.get_running_loop()
        self._loop = loop
        for sig in sigs:
            with suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self.signals.put_nowait, sig)
                self._installed.append(sig)

    def uninstall(self) -> None:
        if self._loop is None:
            return
        for sig in self._installed:
            with suppress(NotImplementedError, RuntimeError, ValueError):
                self._loop.remove_signal_handler(sig)
        self._installed.clear()

    async def _graceful(self) -> None:
        self.ctx.cancel()
        if self.cleanup is not None:
            await self.cleanup()

    async def wait(self) -> int:
        """Block until shutdown is decided; return the process exit code."""
        try:
            first = await self.signals.get()
            self.state = ShutdownState.SHUTTING_DOWN
            logger.warning("received %s, shutting down (send again to force)", _name(first))

            graceful = asyncio.create_task(self._graceful(), name="depwatch-graceful-shutdown")
            second = asyncio.create_task(self.signals.get(), name="depwatch-second-signal")
            done, pending = await asyncio.wait({graceful, second}, return_when=asyncio.FIRST_COMPLETED)
            for t in pending:
                t.cancel()

            if graceful in done:
                if graceful.exception() is not None:
                    logger.error("shutdown cleanup failed: %s", graceful.exception())
                    return EXIT_FORCED
                return EXIT_GRACEFUL

            logger.warning("received %s again, forcing exit", _name(second.result()))
            return EXIT_FORCED
        finally:
            self.state = ShutdownState.DONE
            self.uninstall()


def _name(sig: object) -> str:
    return sig.name if isinstance(sig, signal.Signals) else str(sig)
