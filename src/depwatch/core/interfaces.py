from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import List, Protocol, runtime_checkable

from depwatch.core.context import CancelContext
from depwatch.core.models import BlockRef, FilterConfig, LogDelta, LogRecord


# ---------------------------------------------------------------------------
# IChainProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class IChainProvider(Protocol):
    """
    Abstract provider for chain data.

    Domain expectations:
    - It returns LogRecord / BlockRef objects already mapped into internal models.
    - It hides the underlying RPC technology.
    """

    async def latest_block(self) -> int:
        """Return the current chain head height."""
        ...

    async def get_block(self, number: int) -> BlockRef:
        """Return number/hash/parent hash of one block."""
        ...

    async def get_logs(
        self,
        *,
        addresses: Sequence[str],
        from_block: int,
        to_block: int,
        topic0s: Sequence[str] = (),
    ) -> List[LogRecord]:
        """
        Return all logs emitted by `addresses` over the inclusive block range,
        in block / log-index order.

        Implementations:
        - RPC-based (`RPC` class)
        - In-memory provider for testing
        """
        ...

    async def aclose(self) -> None:
        ...


# ---------------------------------------------------------------------------
# ICursorStore
# ---------------------------------------------------------------------------

@runtime_checkable
class ICursorStore(Protocol):
    """
    Persistent "last processed block" marker per filter.

    Domain expectations:
    - Absence of a cursor is not an error: it means "start from genesis".
    - Only the tracking engine writes cursors; the core only reads them.
    """

    async def get_last_block(self, key: str) -> BlockRef | None:
        ...

    async def set_last_block(self, key: str, block: BlockRef) -> None:
        ...


# ---------------------------------------------------------------------------
# IFilter / IEngine
# ---------------------------------------------------------------------------

@runtime_checkable
class IFilter(Protocol):
    """
    One log subscription on the tracking engine.

    `events` is the delivery channel. The engine puts `None` on it when it
    shuts down, which consumers treat as "channel closed". Consumers call
    `events.task_done()` after processing a delta; the engine may hold its
    cursor back until they do.
    """

    events: asyncio.Queue[LogDelta | None]

    async def get_last_block(self) -> BlockRef | None:
        ...

    async def sync(self, ctx: CancelContext) -> bool:
        """
        Blocking historical backfill up to the head seen at engine start.

        Returns False if `ctx` was cancelled before the backfill finished.
        """
        ...


@runtime_checkable
class IEngine(Protocol):
    """Chain tracking engine: range scans, reorg detection, live deltas."""

    async def start(self, ctx: CancelContext) -> None:
        ...

    def new_filter(self, config: FilterConfig) -> IFilter:
        ...

    async def stop(self) -> None:
        ...
