"""Core data models.

This module defines:
- `LogRecord`: one contract log as delivered by the tracking engine.
- `BlockRef`: a block number with its hash, used for cursors and reorg checks.
- `LogDelta`: one batch of added / removed logs.
- `DecodedDeposit`: the decoded fields of one `DepositEvent`.
- `FilterConfig`: what a log filter watches and how it delivers.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from depwatch.core.errors import DecodeError


@dataclass(slots=True, frozen=True)
class LogRecord:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int
    block_hash: str = ""
    tx_hash: str = ""
    log_index: int = 0

    @property
    def data(self) -> bytes:
        """Payload bytes; raises `DecodeError` if `data_hex` is not valid hex."""
        h = self.data_hex[2:] if self.data_hex.lower().startswith("0x") else self.data_hex
        try:
            return bytes.fromhex(h)
        except ValueError as e:
            raise DecodeError(f"log data is not valid hex: {e}") from e


@dataclass(slots=True, frozen=True)
class BlockRef:
    number: int
    hash: str | None = None
    parent_hash: str | None = None


@dataclass(slots=True)
class LogDelta:
    """Logs added by new blocks and logs invalidated by a reorg."""

    added: list[LogRecord] = field(default_factory=list)
    removed: list[LogRecord] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.added and not self.removed


@dataclass(slots=True, frozen=True)
class DecodedDeposit:
    block_number: int
    index: int
    amount: int


@dataclass(frozen=True)
class FilterConfig:
    """Log filter settings.

    `async_` filters deliver live deltas while the backfill is still running;
    the others hold them back until `sync` has finished.
    """

    addresses: list[str]
    async_: bool = False
