"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- Helper utilities to format block numbers and parse hex quantities

It returns `LogRecord` / `BlockRef` records ready for the tracking engine.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from depwatch.core.errors import RpcError
from depwatch.core.models import BlockRef, LogRecord

logger = logging.getLogger(__name__)


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


def from_hex(x: Any) -> int:
    """Parse a JSON-RPC quantity ("0x1a" or already an int)."""
    if isinstance(x, int):
        return x
    if isinstance(x, str) and x.lower().startswith("0x"):
        return int(x, 16)
    raise RpcError(f"not a hex quantity: {x!r}")


def parse_log(rl: dict[str, Any]) -> LogRecord:
    """Map one `eth_getLogs` result entry into a `LogRecord`."""
    try:
        topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
        return LogRecord(
            address=rl["address"].lower(),
            topics=topics,
            data_hex=str(rl.get("data") or "0x"),
            block_number=from_hex(rl["blockNumber"]),
            block_hash=(rl.get("blockHash") or "").lower(),
            tx_hash=(rl.get("transactionHash") or "").lower(),
            log_index=from_hex(rl["logIndex"]),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise RpcError(f"malformed log entry: {e!r}") from e


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 64,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._ids = itertools.count(1)
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
            transport=transport,
        )

    async def call(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC request and return its `result`."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        r = await self.client.post(self.url, json=payload)
        r.raise_for_status()
        try:
            data = r.json()
        except ValueError as e:
            raise RpcError(f"{method}: response is not JSON") from e
        if not isinstance(data, dict):
            raise RpcError(f"{method}: unexpected response {data!r}")
        if "error" in data:
            e = data["error"]
            if isinstance(e, dict):
                raise RpcError(f"RPC error: {e.get('code')} {e.get('message')}")
            raise RpcError(f"RPC error: {e}")
        if "result" not in data:
            raise RpcError(f"{method}: response has no result")
        return data["result"]

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        return from_hex(await self.call("eth_blockNumber", []))

    async def get_block(self, number: int) -> BlockRef:
        """Return number/hash/parentHash of one block (without transactions)."""
        res = await self.call("eth_getBlockByNumber", [to_hex_block(number), False])
        if not res:
            raise RpcError(f"block {number} not found")
        return BlockRef(
            number=from_hex(res["number"]),
            hash=str(res["hash"]).lower(),
            parent_hash=str(res.get("parentHash") or "").lower() or None,
        )

    async def get_logs(
        self,
        *,
        addresses: Sequence[str],
        from_block: int,
        to_block: int,
        topic0s: Sequence[str] = (),
    ) -> list[LogRecord]:
        """Fetch logs for addresses (and optional topic0s) within a block range."""
        flt: dict[str, Any] = {
            "address": [a.lower() for a in addresses],
            "fromBlock": to_hex_block(from_block),
            "toBlock": to_hex_block(to_block),
        }
        if topic0s:
            flt["topics"] = [[t.lower() for t in topic0s]]
        result = await self.call("eth_getLogs", [flt])
        if not isinstance(result, list):
            raise RpcError(f"eth_getLogs: unexpected result {result!r}")

        out = [parse_log(rl) for rl in result if not rl.get("removed")]
        out.sort(key=lambda lg: (lg.block_number, lg.log_index))
        logger.debug("eth_getLogs %d-%d → %d logs", from_block, to_block, len(out))
        return out

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
