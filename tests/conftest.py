import asyncio
import io
from collections.abc import Callable, Sequence

import pytest
from rich.console import Console

from depwatch.core.context import CancelContext
from depwatch.core.models import BlockRef, FilterConfig, LogDelta, LogRecord
from depwatch.decoding.decoder import DEPOSIT_EVENT
from depwatch.reporting import DepositReporter

TARGET = "0x00000000219ab540356cbb839cbe05303d7705fa"


# ---------------------------------------------------------------------------
# Log builders
# ---------------------------------------------------------------------------


def abi_encode_bytes(*values: bytes) -> bytes:
    """ABI-encode a tuple of dynamic `bytes` values (head offsets + tails)."""
    head = b""
    tail = b""
    for v in values:
        head += (32 * len(values) + len(tail)).to_bytes(32, "big")
        tail += len(v).to_bytes(32, "big") + v + b"\x00" * (-len(v) % 32)
    return head + tail


def make_log(
    block: int,
    *,
    index: bytes = (0).to_bytes(8, "little"),
    amount: bytes = (32_000_000_000).to_bytes(8, "little"),
    log_index: int = 0,
    topic0: str = DEPOSIT_EVENT.topic0,
    block_hash: str = "",
) -> LogRecord:
    data = abi_encode_bytes(b"\x11" * 48, b"\x22" * 32, amount, b"\x33" * 96, index)
    return LogRecord(
        address=TARGET,
        topics=(topic0,),
        data_hex="0x" + data.hex(),
        block_number=block,
        block_hash=block_hash,
        tx_hash="0x" + f"{block:x}".rjust(64, "0"),
        log_index=log_index,
    )


def make_deposit(block: int, index: int, amount: int, log_index: int = 0) -> LogRecord:
    return make_log(
        block,
        index=index.to_bytes(8, "little"),
        amount=amount.to_bytes(8, "little"),
        log_index=log_index,
    )


def other_log(block: int, log_index: int = 0) -> LogRecord:
    return LogRecord(
        address=TARGET,
        topics=("0x" + "ab" * 32,),
        data_hex="0x" + "00" * 64,
        block_number=block,
        log_index=log_index,
    )


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until `predicate()` holds."""
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


# ---------------------------------------------------------------------------
# Reporter
# ---------------------------------------------------------------------------


class CapturingReporter(DepositReporter):
    def __init__(self) -> None:
        self.buffer = io.StringIO()
        super().__init__(Console(file=self.buffer, width=400, soft_wrap=True))

    def lines(self) -> list[str]:
        return self.buffer.getvalue().splitlines()


@pytest.fixture
def reporter() -> CapturingReporter:
    return CapturingReporter()


@pytest.fixture
def ctx() -> CancelContext:
    return CancelContext()


# ---------------------------------------------------------------------------
# Fake engine (core-level tests)
# ---------------------------------------------------------------------------


class FakeFilter:
    """Filter whose backfill replays `deltas` then optionally blocks on `gate`."""

    def __init__(
        self,
        deltas: Sequence[LogDelta] = (),
        *,
        last_block: BlockRef | None = None,
        cursor_error: Exception | None = None,
        sync_error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.events: asyncio.Queue[LogDelta | None] = asyncio.Queue()
        self.deltas = list(deltas)
        self.last_block = last_block
        self.cursor_error = cursor_error
        self.sync_error = sync_error
        self.gate = gate
        self.sync_started = False
        self.sync_cancelled = False
        self.on_sync: Callable[[], object] | None = None

    async def get_last_block(self) -> BlockRef | None:
        if self.cursor_error is not None:
            raise self.cursor_error
        return self.last_block

    async def sync(self, ctx: CancelContext) -> bool:
        self.sync_started = True
        try:
            for d in self.deltas:
                await self.events.put(d)
            if self.on_sync is not None:
                await self.on_sync()
            if self.sync_error is not None:
                raise self.sync_error
            if self.gate is not None:
                await self.gate.wait()
            return not ctx.cancelled
        except asyncio.CancelledError:
            self.sync_cancelled = True
            raise


class FakeEngine:
    def __init__(
        self,
        flt: FakeFilter | None = None,
        *,
        start_error: Exception | None = None,
        filter_error: Exception | None = None,
    ) -> None:
        self.filter = flt or FakeFilter()
        self.start_error = start_error
        self.filter_error = filter_error
        self.started = False
        self.stopped = False
        self.filter_configs: list[FilterConfig] = []
        self.stop_gate: asyncio.Event | None = None

    async def start(self, ctx: CancelContext) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    def new_filter(self, config: FilterConfig) -> FakeFilter:
        self.filter_configs.append(config)
        if self.filter_error is not None:
            raise self.filter_error
        return self.filter

    async def stop(self) -> None:
        if self.stop_gate is not None:
            await self.stop_gate.wait()
        if not self.stopped:
            self.stopped = True
            self.filter.events.put_nowait(None)


# ---------------------------------------------------------------------------
# In-memory chain (tracking engine tests)
# ---------------------------------------------------------------------------


class MemoryChain:
    """Deterministic chain: blocks 0..head, per-block logs, forkable."""

    def __init__(self, head: int = 0) -> None:
        self.hashes: dict[int, str] = {}
        self.logs: dict[int, list[LogRecord]] = {}
        self.get_logs_calls: list[tuple[int, int]] = []
        self.closed = False
        for n in range(head + 1):
            self.hashes[n] = self._hash(n, "a")

    @staticmethod
    def _hash(n: int, marker: str) -> str:
        return f"0x{marker}{n:063x}"

    @property
    def head(self) -> int:
        return max(self.hashes)

    def mine(self, logs: Sequence[LogRecord] = (), marker: str = "a") -> int:
        n = self.head + 1
        self.hashes[n] = self._hash(n, marker)
        self.logs[n] = [lg for lg in logs]
        return n

    def add_logs(self, block: int, logs: Sequence[LogRecord]) -> None:
        self.logs.setdefault(block, []).extend(logs)

    def reorg(self, from_block: int, marker: str = "b") -> None:
        """Replace blocks >= from_block with a sibling fork (no logs)."""
        for n in [n for n in self.hashes if n >= from_block]:
            self.hashes[n] = self._hash(n, marker)
            self.logs.pop(n, None)

    async def latest_block(self) -> int:
        return self.head

    async def get_block(self, number: int) -> BlockRef:
        return BlockRef(number=number, hash=self.hashes[number], parent_hash=self.hashes.get(number - 1))

    async def get_logs(self, *, addresses, from_block: int, to_block: int, topic0s=()) -> list[LogRecord]:
        self.get_logs_calls.append((from_block, to_block))
        wanted = {a.lower() for a in addresses}
        out: list[LogRecord] = []
        for n in range(from_block, to_block + 1):
            out.extend(lg for lg in self.logs.get(n, []) if lg.address in wanted)
        return out

    async def aclose(self) -> None:
        self.closed = True


class MemoryCursorStore:
    def __init__(self, initial: dict[str, BlockRef] | None = None) -> None:
        self.data: dict[str, BlockRef] = dict(initial or {})
        self.writes: list[tuple[str, int]] = []

    async def get_last_block(self, key: str) -> BlockRef | None:
        return self.data.get(key)

    async def set_last_block(self, key: str, block: BlockRef) -> None:
        self.data[key] = block
        self.writes.append((key, block.number))


@pytest.fixture
def chain() -> MemoryChain:
    return MemoryChain(head=9)


@pytest.fixture
def cursor_store() -> MemoryCursorStore:
    return MemoryCursorStore()
