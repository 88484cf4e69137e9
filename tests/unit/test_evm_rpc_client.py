"""
EvmRpcClient单元测试
"""
import json

import httpx
import pytest

from src.core.models import ChainBlock
from src.data_sources.evm_rpc import EvmRpcClient, parse_quantity
from src.middleware.error_handler import CircuitState
from src.utils.exceptions import DataSourceAuthError, DataSourceError, DataSourceTimeoutError, RpcError

RPC_URL = "https://rpc.test/rpc"


def rpc_client(handler) -> EvmRpcClient:
    """用 MockTransport 替换真实网络"""
    client = EvmRpcClient(rpc_url=RPC_URL)
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler), headers=client._get_headers())
    return client


def result_handler(results: dict, requests: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if requests is not None:
            requests.append(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": results[body["method"]]})

    return handler


@pytest.mark.unit
class TestParseQuantity:
    """十六进制数量解析测试"""

    def test_hex(self):
        assert parse_quantity("0x1b4") == 436
        assert parse_quantity("0x") == 0

    def test_decimal_and_int(self):
        assert parse_quantity("42") == 42
        assert parse_quantity(7) == 7

    def test_empty(self):
        assert parse_quantity(None) is None
        assert parse_quantity("") is None

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_quantity("zz")
        with pytest.raises(ValueError):
            parse_quantity(True)


@pytest.mark.unit
class TestEvmRpcClient:
    """EvmRpcClient测试"""

    @pytest.mark.asyncio
    async def test_block_height(self):
        requests: list = []
        client = rpc_client(result_handler({"eth_blockNumber": "0x64"}, requests))

        assert await client.get_block_height() == 100
        assert requests[0]["method"] == "eth_blockNumber"
        assert requests[0]["params"] == []
        assert requests[0]["jsonrpc"] == "2.0"
        await client.close()

    @pytest.mark.asyncio
    async def test_get_block(self, sample_rpc_block):
        requests: list = []
        client = rpc_client(result_handler({"eth_getBlockByNumber": sample_rpc_block}, requests))

        block = await client.get_block(436)

        assert isinstance(block, ChainBlock)
        assert block.number == 436
        assert block.gas_used == 21_000
        assert block.base_fee_per_gas == 1_000_000_000
        assert block.transactions == ["0xaaa", "0xbbb"]
        assert requests[0]["params"] == ["0x1b4", False]
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_block_is_none(self):
        client = rpc_client(result_handler({"eth_getBlockByNumber": None}))
        assert await client.get_block("latest") is None
        await client.close()

    @pytest.mark.asyncio
    async def test_get_transaction(self, sample_rpc_transaction):
        client = rpc_client(result_handler({"eth_getTransactionByHash": sample_rpc_transaction}))

        tx = await client.get_transaction("0xaaa")

        assert tx.from_address == "0xabcdef0000000000000000000000000000000001"
        assert tx.to_address == "0xc0ffee0000000000000000000000000000000002"
        assert tx.value == 10**18
        assert tx.input.startswith("0xa9059cbb")
        assert tx.nonce == 7
        await client.close()

    @pytest.mark.asyncio
    async def test_get_receipt(self, sample_rpc_receipt):
        client = rpc_client(result_handler({"eth_getTransactionReceipt": sample_rpc_receipt}))

        receipt = await client.get_transaction_receipt("0xaaa")

        assert receipt.status == 1
        assert receipt.gas_used == 2_000_000
        assert receipt.contract_address is None
        await client.close()

    @pytest.mark.asyncio
    async def test_fee_data(self, sample_rpc_block):
        client = rpc_client(
            result_handler(
                {
                    "eth_gasPrice": "0x77359400",
                    "eth_maxPriorityFeePerGas": "0x3b9aca00",
                    "eth_getBlockByNumber": sample_rpc_block,
                }
            )
        )

        fee = await client.get_fee_data()

        assert fee.gas_price == 2_000_000_000
        assert fee.max_priority_fee_per_gas == 1_000_000_000
        assert fee.max_fee_per_gas == 3_000_000_000
        await client.close()

    @pytest.mark.asyncio
    async def test_rpc_error_raises_and_keeps_breaker_closed(self):
        def handler(request):
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601, "message": "method not found"}},
            )

        client = rpc_client(handler)

        for _ in range(6):
            with pytest.raises(RpcError) as exc_info:
                await client.get_block_height()

        assert exc_info.value.code == -32601
        assert client.circuit_breaker.state == CircuitState.CLOSED
        await client.close()

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, text="unauthorized")

        client = rpc_client(handler)

        with pytest.raises(DataSourceAuthError):
            await client.get_block_height()
        assert len(calls) == 1
        await client.close()

    @pytest.mark.slow
    @pytest.mark.asyncio
    async def test_server_error_is_retried(self):
        """5xx 按超时处理，退避重试 3 次"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="gateway down")

        client = rpc_client(handler)

        with pytest.raises(DataSourceTimeoutError):
            await client.get_block_height()
        assert len(calls) == 3
        await client.close()

    @pytest.mark.asyncio
    async def test_null_height_is_error(self):
        client = rpc_client(result_handler({"eth_blockNumber": None}))
        with pytest.raises(DataSourceError):
            await client.get_block_height()
        await client.close()

    def test_bearer_header(self):
        client = EvmRpcClient(rpc_url=RPC_URL, api_key="secret")
        assert client._get_headers()["Authorization"] == "Bearer secret"
