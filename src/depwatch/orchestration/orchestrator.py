"""Sync orchestrator: engine start → filter → cursor → live ingestion + backfill.

The ingestion task is started on the filter queue *before* the backfill so
that deltas for blocks produced while the backfill runs are not lost. The
backfill and the ingestion task then race: whichever fails first takes the
other one down and its error is raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from depwatch.core.context import CancelContext
from depwatch.core.errors import EngineStartError, FilterCreateError, SyncError
from depwatch.core.interfaces import IEngine, IFilter
from depwatch.core.models import FilterConfig
from depwatch.orchestration.ingestion import IngestionLoop
from depwatch.reporting import DepositReporter

logger = logging.getLogger(__name__)


async def _cancel_and_wait(task: asyncio.Task) -> None:
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task


class SyncOrchestrator:
    """Sequence the startup of one watcher run.

    Parameters
    ----------
    engine : IEngine
        External tracking engine.
    ingestion : IngestionLoop
        Consumer of the filter's delta queue.
    reporter : DepositReporter
        Output sink for readiness / cursor / completion lines.
    """

    def __init__(self, engine: IEngine, ingestion: IngestionLoop, reporter: DepositReporter) -> None:
        self.engine = engine
        self.ingestion = ingestion
        self.reporter = reporter
        self.filter: IFilter | None = None

    async def _start_engine(self, ctx: CancelContext) -> None:
        try:
            await self.engine.start(ctx)
        except EngineStartError:
            raise
        except Exception as e:
            raise EngineStartError(f"tracker failed to start: {e}") from e

    def _create_filter(self, target: str) -> IFilter:
        try:
            return self.engine.new_filter(FilterConfig(addresses=[target], async_=True))
        except Exception as e:
            raise FilterCreateError(f"could not create filter for {target}: {e}") from e

    async def _read_cursor(self, flt: IFilter) -> None:
        try:
            last = await flt.get_last_block()
        except Exception as e:
            logger.warning("could not read cursor, backfilling from genesis: %s", e)
            return
        if last is not None:
            self.reporter.last_block(last.number)

    async def run(self, ctx: CancelContext, target: str) -> None:
        # 1) Engine
        await self._start_engine(ctx)
        self.reporter.ready()

        # 2) Filter + cursor
        flt = self._create_filter(target)
        self.filter = flt
        await self._read_cursor(flt)

        # 3) Live ingestion first, then the blocking backfill
        ingestion_task = asyncio.create_task(self.ingestion.run(ctx, flt.events), name="depwatch-ingestion")
        sync_task = asyncio.create_task(flt.sync(ctx), name="depwatch-backfill")

        try:
            done, _ = await asyncio.wait({ingestion_task, sync_task}, return_when=asyncio.FIRST_COMPLETED)

            if ingestion_task in done and ingestion_task.exception() is not None:
                await _cancel_and_wait(sync_task)
                raise ingestion_task.exception()

            completed = await self._await_sync(sync_task, ingestion_task)
            if completed and not ctx.cancelled:
                self.reporter.sync_complete()

            # 4) Keep streaming until cancellation or channel closure
            await ingestion_task
        except asyncio.CancelledError:
            await _cancel_and_wait(sync_task)
            await _cancel_and_wait(ingestion_task)
            raise

    async def _await_sync(self, sync_task: asyncio.Task, ingestion_task: asyncio.Task) -> bool:
        try:
            return bool(await sync_task)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await _cancel_and_wait(ingestion_task)
            if isinstance(e, SyncError):
                raise
            raise SyncError(f"historical sync failed: {e}") from e
