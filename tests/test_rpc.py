import json

import httpx
import pytest

from depwatch.clients.rpc import RPC, from_hex, to_hex_block
from depwatch.core.errors import RpcError
from depwatch.core.models import BlockRef

ADDRESS = "0x00000000219Ab540356cBB839Cbe05303d7705Fa"


def make_rpc(results: dict, requests: list | None = None) -> RPC:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if requests is not None:
            requests.append(body)
        reply = results[body["method"]]
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **reply})

    return RPC("http://node.test", transport=httpx.MockTransport(handler))


def test_hex_helpers() -> None:
    assert to_hex_block(255) == "0xff"
    assert from_hex("0x10") == 16
    assert from_hex(5) == 5
    with pytest.raises(RpcError):
        from_hex("12")


@pytest.mark.asyncio
async def test_latest_block() -> None:
    rpc = make_rpc({"eth_blockNumber": {"result": "0x1b4"}})
    assert await rpc.latest_block() == 436
    await rpc.aclose()


@pytest.mark.asyncio
async def test_get_block() -> None:
    requests: list = []
    rpc = make_rpc(
        {"eth_getBlockByNumber": {"result": {"number": "0x2", "hash": "0xAB", "parentHash": "0xCD"}}},
        requests,
    )

    assert await rpc.get_block(2) == BlockRef(number=2, hash="0xab", parent_hash="0xcd")
    assert requests[0]["params"] == ["0x2", False]
    await rpc.aclose()


@pytest.mark.asyncio
async def test_get_block_missing() -> None:
    rpc = make_rpc({"eth_getBlockByNumber": {"result": None}})
    with pytest.raises(RpcError):
        await rpc.get_block(10**9)
    await rpc.aclose()


@pytest.mark.asyncio
async def test_get_logs_parses_and_orders() -> None:
    raw = [
        {
            "address": ADDRESS,
            "topics": ["0xAA"],
            "data": "0x01",
            "blockNumber": "0x11",
            "blockHash": "0xB2",
            "transactionHash": "0xT2",
            "logIndex": "0x0",
        },
        {
            "address": ADDRESS,
            "topics": ["0xAA"],
            "data": "0x02",
            "blockNumber": "0x10",
            "blockHash": "0xB1",
            "transactionHash": "0xT1",
            "logIndex": "0x3",
        },
        {
            "address": ADDRESS,
            "topics": ["0xAA"],
            "data": "0x03",
            "blockNumber": "0x10",
            "logIndex": "0x4",
            "removed": True,
        },
    ]
    requests: list = []
    rpc = make_rpc({"eth_getLogs": {"result": raw}}, requests)

    logs = await rpc.get_logs(addresses=[ADDRESS], from_block=16, to_block=17)

    assert [(lg.block_number, lg.log_index) for lg in logs] == [(16, 3), (17, 0)]
    assert logs[0].address == ADDRESS.lower()
    assert logs[0].topics == ("0xaa",)
    assert logs[0].data_hex == "0x02"
    assert requests[0]["params"] == [{"address": [ADDRESS.lower()], "fromBlock": "0x10", "toBlock": "0x11"}]
    await rpc.aclose()


@pytest.mark.asyncio
async def test_get_logs_with_topics() -> None:
    requests: list = []
    rpc = make_rpc({"eth_getLogs": {"result": []}}, requests)

    assert await rpc.get_logs(addresses=[ADDRESS], from_block=0, to_block=1, topic0s=["0xAB"]) == []
    assert requests[0]["params"][0]["topics"] == [["0xab"]]
    await rpc.aclose()


@pytest.mark.asyncio
async def test_rpc_error_object() -> None:
    rpc = make_rpc({"eth_getLogs": {"error": {"code": -32005, "message": "query returned more than 10000 results"}}})

    with pytest.raises(RpcError, match="-32005"):
        await rpc.get_logs(addresses=[ADDRESS], from_block=0, to_block=100_000)
    await rpc.aclose()


@pytest.mark.asyncio
async def test_malformed_log_entry() -> None:
    rpc = make_rpc({"eth_getLogs": {"result": [{"topics": []}]}})

    with pytest.raises(RpcError):
        await rpc.get_logs(addresses=[ADDRESS], from_block=0, to_block=1)
    await rpc.aclose()


@pytest.mark.asyncio
async def test_http_error_propagates() -> None:
    rpc = make_rpc({"eth_blockNumber": httpx.Response(503, text="unavailable")})

    with pytest.raises(httpx.HTTPStatusError):
        await rpc.latest_block()
    await rpc.aclose()
