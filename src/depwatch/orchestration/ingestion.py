"""Live ingestion: log deltas → decoder → reporter.

The loop receives `LogDelta` batches from a filter queue. Each receive races
the queue against the cancellation context:

- a batch in hand is always processed to the end, in order, then marked
  done on the queue so the producer can move its cursor;
- cancellation with no batch in hand stops the loop (DRAINING → STOPPED);
- `None` on the queue means the engine closed the channel (→ STOPPED).

A `DecodeError` on a matching log is never swallowed: it propagates out of
`run` so the caller can stop the process with a controlled exit code.
"""

from __future__ import annotations

import asyncio
import enum
import logging

from depwatch.core.context import CancelContext
from depwatch.core.models import LogDelta
from depwatch.decoding.decoder import EventDecoder
from depwatch.reporting import DepositReporter

logger = logging.getLogger(__name__)


class IngestionState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class IngestionLoop:
    def __init__(self, decoder: EventDecoder, reporter: DepositReporter) -> None:
        self.decoder = decoder
        self.reporter = reporter
        self.state = IngestionState.IDLE
        self.batches = 0
        self.reported = 0

    async def _next_delta(self, ctx: CancelContext, queue: asyncio.Queue[LogDelta | None]) -> LogDelta | None:
        if ctx.cancelled:
            return None
        get_task = asyncio.ensure_future(queue.get())
        cancel_task = asyncio.ensure_future(ctx.wait())
        try:
            done, _ = await asyncio.wait({get_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for t in (get_task, cancel_task):
                if not t.done():
                    t.cancel()
        if get_task in done:
            # Dequeued already: must be processed even if cancellation raced it.
            return get_task.result()
        return None

    def process(self, delta: LogDelta) -> None:
        """Handle one batch: report every matching `Added` log in order."""
        for log in delta.added:
            if not self.decoder.match(log):
                continue
            deposit = self.decoder.decode_deposit(log)
            self.reporter.report(deposit)
            self.reported += 1
        if delta.removed:
            logger.debug("ignoring %d removed logs", len(delta.removed))
        self.batches += 1

    async def run(self, ctx: CancelContext, queue: asyncio.Queue[LogDelta | None]) -> None:
        try:
            while True:
                delta = await self._next_delta(ctx, queue)
                if delta is None:
                    if ctx.cancelled:
                        self.state = IngestionState.DRAINING
                        logger.info("ingestion cancelled after %d batches", self.batches)
                    else:
                        logger.info("delta channel closed after %d batches", self.batches)
                    break
                self.state = IngestionState.RUNNING
                self.process(delta)
                queue.task_done()
        finally:
            self.state = IngestionState.STOPPED
