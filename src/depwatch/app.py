"""Process-level wiring: orchestrator + shutdown coordinator → exit code.

Two layers, as in the rest of the package:

1) `run_watcher(...)`: depends only on an `IEngine`; turns the outcome of the
   orchestrator and the shutdown coordinator into one exit code.
2) `build_engine(...)` / `watch(...)`: wire the concrete RPC client, cursor
   store and tracker for CLI usage.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from depwatch.clients.rpc import RPC
from depwatch.core.config import WatcherConfig
from depwatch.core.context import CancelContext
from depwatch.core.interfaces import IEngine
from depwatch.decoding.decoder import EventDecoder, make_deposit_decoder
from depwatch.orchestration.ingestion import IngestionLoop
from depwatch.orchestration.orchestrator import SyncOrchestrator
from depwatch.orchestration.shutdown import EXIT_FORCED, EXIT_GRACEFUL, ShutdownCoordinator, ShutdownState
from depwatch.reporting import DepositReporter
from depwatch.storage.cursor import JsonCursorStore
from depwatch.tracking.tracker import Tracker

logger = logging.getLogger(__name__)


def build_engine(config: WatcherConfig) -> Tracker:
    """Concrete tracker over JSON-RPC with a file cursor store."""
    provider = RPC(config.endpoint, timeout_s=config.rpc_timeout_s)
    tracker = Tracker(provider, config.tracker_config())
    tracker.set_store(JsonCursorStore(config.store_path))
    return tracker


def _failure(task: asyncio.Task) -> BaseException | None:
    if task.done() and not task.cancelled():
        return task.exception()
    return None


async def run_watcher(
    *,
    target: str,
    engine: IEngine,
    reporter: DepositReporter | None = None,
    decoder: EventDecoder | None = None,
    signals: asyncio.Queue | None = None,
) -> int:
    """Run until shutdown or a fatal error; return the process exit code.

    When `signals` is None the OS termination signals are installed on the
    running loop; otherwise signals are read from the given queue.
    """
    reporter = reporter or DepositReporter()
    ctx = CancelContext()
    orchestrator = SyncOrchestrator(engine, IngestionLoop(decoder or make_deposit_decoder(), reporter), reporter)
    orchestration = asyncio.create_task(orchestrator.run(ctx, target), name="depwatch-orchestrator")

    async def cleanup() -> None:
        await asyncio.wait({orchestration})
        exc = _failure(orchestration)
        if exc is not None:
            reporter.error(exc)
        await engine.stop()

    coordinator = ShutdownCoordinator(ctx, cleanup, signals)
    if signals is None:
        coordinator.install()
    shutdown = asyncio.create_task(coordinator.wait(), name="depwatch-shutdown")

    done, _ = await asyncio.wait({orchestration, shutdown}, return_when=asyncio.FIRST_COMPLETED)
    if shutdown in done:
        code = shutdown.result()
        if code == EXIT_FORCED and not orchestration.done():
            orchestration.cancel()
            with suppress(asyncio.CancelledError):
                await orchestration
        return EXIT_FORCED if _failure(orchestration) is not None else code

    if coordinator.state is not ShutdownState.WAITING:
        # A signal already started the shutdown; its cleanup reports any error.
        code = await shutdown
        return EXIT_FORCED if _failure(orchestration) is not None else code

    # The orchestrator ended on its own: a fatal error or the engine closed the channel.
    shutdown.cancel()
    with suppress(asyncio.CancelledError):
        await shutdown
    ctx.cancel()
    exc = orchestration.exception()
    if exc is not None:
        logger.debug("orchestrator failed", exc_info=exc)
        reporter.error(exc)
    await engine.stop()
    return EXIT_FORCED if exc is not None else EXIT_GRACEFUL


async def watch(config: WatcherConfig, reporter: DepositReporter | None = None) -> int:
    """Run the watcher for a validated `WatcherConfig` with OS signal handling."""
    return await run_watcher(target=config.target, engine=build_engine(config), reporter=reporter)
