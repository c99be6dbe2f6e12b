"""Log filter: one address subscription on the tracker.

A filter owns its delivery queue and its cursor. It produces deltas from two
sources:

- `sync(ctx)`: the historical backfill, `[cursor + 1, start_head]` in
  `batch_size` chunks, one `LogDelta(added=...)` per non-empty chunk.
- `advance(fork, head)`: called by the tracker on every new head with the
  highest block still on the canonical chain. Logs delivered live above the
  fork point come back as `removed`; logs in `(fork, head]` are `added`.

Live deltas of non-async filters are held back until the backfill is done.
The cursor only moves past a delta once the consumer has marked it done
with `events.task_done()`.
"""

from __future__ import annotations

import asyncio
import logging

from depwatch.core.context import CancelContext
from depwatch.core.interfaces import IChainProvider, ICursorStore
from depwatch.core.models import BlockRef, FilterConfig, LogDelta, LogRecord
from depwatch.tracking.utils import filter_key, iter_chunks

logger = logging.getLogger(__name__)


class Filter:
    def __init__(
        self,
        provider: IChainProvider,
        config: FilterConfig,
        store: ICursorStore | None,
        *,
        start_head: int,
        batch_size: int,
        max_reorg_depth: int,
    ) -> None:
        self.config = config
        self.id = filter_key(config.addresses)
        self.events: asyncio.Queue[LogDelta | None] = asyncio.Queue()
        self._provider = provider
        self._store = store
        self._start_head = start_head
        self._live_head = start_head
        self._batch_size = batch_size
        self._max_reorg_depth = max_reorg_depth
        self._synced = False
        self._closed = False
        self._pending: list[LogDelta] = []
        # block number -> logs delivered live for that block
        self._delivered: dict[int, list[LogRecord]] = {}

    @property
    def synced(self) -> bool:
        return self._synced

    async def get_last_block(self) -> BlockRef | None:
        if self._store is None:
            return None
        return await self._store.get_last_block(self.id)

    async def _fetch(self, from_block: int, to_block: int) -> list[LogRecord]:
        out: list[LogRecord] = []
        for a, b in iter_chunks(from_block, to_block, self._batch_size):
            out.extend(
                await self._provider.get_logs(addresses=self.config.addresses, from_block=a, to_block=b)
            )
        return out

    async def _emit(self, delta: LogDelta) -> None:
        if self._closed:
            return
        await self.events.put(delta)

    async def _save_cursor(self, block: BlockRef) -> None:
        if self._store is not None:
            await self._store.set_last_block(self.id, block)

    async def _consumed(self, ctx: CancelContext) -> bool:
        """Wait until the consumer has processed every queued delta.

        Returns False if `ctx` is cancelled first.
        """
        join_task = asyncio.ensure_future(self.events.join())
        cancel_task = asyncio.ensure_future(ctx.wait())
        try:
            done, _ = await asyncio.wait({join_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for t in (join_task, cancel_task):
                if not t.done():
                    t.cancel()
        return join_task in done

    async def sync(self, ctx: CancelContext) -> bool:
        last = await self.get_last_block()
        start = last.number + 1 if last is not None else 0
        end = self._start_head
        logger.info("backfill %s: blocks %d-%d", self.id, start, end)

        for a, b in iter_chunks(start, end, self._batch_size):
            if ctx.cancelled:
                logger.info("backfill %s cancelled at block %d", self.id, a)
                return False
            logs = await self._provider.get_logs(addresses=self.config.addresses, from_block=a, to_block=b)
            if logs:
                await self._emit(LogDelta(added=logs))
                if not await self._consumed(ctx):
                    logger.info("backfill %s cancelled before blocks %d-%d were processed", self.id, a, b)
                    return False
            await self._save_cursor(BlockRef(number=b))

        self._synced = True
        for delta in self._pending:
            await self._emit(delta)
        self._pending.clear()
        if self._live_head > end and await self._consumed(ctx):
            await self._save_cursor(BlockRef(number=self._live_head))
        logger.info("backfill %s done at block %d", self.id, max(end, self._live_head))
        return True

    async def advance(self, fork_point: int, head: BlockRef) -> None:
        """Deliver the change from the last seen head to `head`."""
        removed: list[LogRecord] = []
        for n in sorted(self._delivered):
            if n > fork_point:
                removed.extend(self._delivered.pop(n))
        if removed:
            logger.warning("reorg below block %d: %d logs removed for %s", fork_point + 1, len(removed), self.id)

        added = await self._fetch(fork_point + 1, head.number) if head.number > fork_point else []
        for lg in added:
            self._delivered.setdefault(lg.block_number, []).append(lg)
        floor = head.number - self._max_reorg_depth
        for n in [n for n in self._delivered if n < floor]:
            del self._delivered[n]

        self._live_head = head.number
        delta = LogDelta(added=added, removed=removed)
        if not delta.is_empty():
            if self.config.async_ or self._synced:
                await self._emit(delta)
            else:
                self._pending.append(delta)
        if self._synced:
            await self.events.join()
            await self._save_cursor(head)

    def close(self) -> None:
        """Signal consumers that no more deltas will arrive."""
        if not self._closed:
            self._closed = True
            self.events.put_nowait(None)
