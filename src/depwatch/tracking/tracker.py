"""Chain tracker: head polling and shallow reorg detection.

The tracker remembers block hashes up to `max_reorg_depth` blocks below the
head: the whole range at start, then every head it hands to its filters. On
each poll it walks that window from the top: the first remembered block whose
hash the node still reports is the fork point, since everything below a
canonical block is canonical.
Filters then replay `(fork point, new head]`.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from depwatch.core.config import TrackerConfig
from depwatch.core.context import CancelContext
from depwatch.core.errors import ReorgResolutionError
from depwatch.core.interfaces import IChainProvider, ICursorStore
from depwatch.core.models import BlockRef, FilterConfig
from depwatch.tracking.filter import Filter

logger = logging.getLogger(__name__)


class Tracker:
    """Minimal tracking engine over an `IChainProvider`."""

    def __init__(
        self,
        provider: IChainProvider,
        config: TrackerConfig | None = None,
        store: ICursorStore | None = None,
    ) -> None:
        self._provider = provider
        self._config = config or TrackerConfig()
        self._store = store
        self._filters: list[Filter] = []
        self._window: dict[int, str | None] = {}
        self._head: BlockRef | None = None
        self._poll_task: asyncio.Task | None = None
        self._stopped = False

    @property
    def head(self) -> BlockRef | None:
        return self._head

    def set_store(self, store: ICursorStore) -> None:
        self._store = store

    async def start(self, ctx: CancelContext) -> None:
        if self._head is not None:
            raise RuntimeError("tracker already started")
        number = await self._provider.latest_block()
        for n in range(max(0, number - self._config.max_reorg_depth), number + 1):
            self._remember(await self._provider.get_block(n))
        logger.info("tracker started at block %d (%d blocks remembered)", number, len(self._window))
        self._poll_task = asyncio.create_task(self._poll_loop(ctx), name="depwatch-head-poll")

    def new_filter(self, config: FilterConfig) -> Filter:
        if self._head is None:
            raise RuntimeError("tracker not started")
        if not config.addresses:
            raise ValueError("filter needs at least one address")
        f = Filter(
            self._provider,
            config,
            self._store,
            start_head=self._head.number,
            batch_size=self._config.batch_size,
            max_reorg_depth=self._config.max_reorg_depth,
        )
        self._filters.append(f)
        return f

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._poll_task is not None:
            self._poll_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._poll_task
        for f in self._filters:
            f.close()
        await self._provider.aclose()
        logger.info("tracker stopped")

    def _remember(self, block: BlockRef) -> None:
        self._head = block
        self._window[block.number] = block.hash
        floor = block.number - self._config.max_reorg_depth
        for n in [n for n in self._window if n < floor]:
            del self._window[n]

    async def _poll_loop(self, ctx: CancelContext) -> None:
        while not ctx.cancelled:
            if await ctx.sleep(self._config.poll_interval_s):
                break
            try:
                await self.poll_once()
            except ReorgResolutionError as e:
                logger.error("%s (max depth %d); stopping head polling", e, self._config.max_reorg_depth)
                for f in self._filters:
                    f.close()
                return
            except Exception as e:
                logger.warning("head poll failed: %s", e)

    async def find_fork_point(self) -> int:
        """Highest remembered block whose hash is still canonical."""
        for n in sorted(self._window, reverse=True):
            fresh = await self._provider.get_block(n)
            if fresh.hash == self._window[n]:
                return n
            logger.debug("block %d hash changed: %s -> %s", n, self._window[n], fresh.hash)
            del self._window[n]
        raise ReorgResolutionError("no remembered block is still on the canonical chain")

    async def poll_once(self) -> None:
        """Check the head once and push the resulting delta to every filter."""
        if self._head is None:
            raise RuntimeError("tracker not started")
        number = await self._provider.latest_block()
        if number <= self._head.number and self._head.number in self._window:
            fresh = await self._provider.get_block(self._head.number)
            if fresh.hash == self._window[self._head.number]:
                return
        fork = await self.find_fork_point()
        head = await self._provider.get_block(number)
        for f in self._filters:
            await f.advance(fork, head)
        self._remember(head)
