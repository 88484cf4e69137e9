"""
真实 RPC 集成测试

直接访问 RPC_URL 指向的节点，用于验证客户端与扫描流程。
运行方式: TEST_MODE=live pytest -m live
"""
import pytest

from src.analytics.contract_analyzer import ContractAnalyzer
from src.core.models import DataStatus, NetworkStatsInput
from src.data_sources.evm_rpc import EvmRpcClient
from src.tools.network import NetworkStatsTool


@pytest.fixture
async def rpc_client(is_live_test):
    if not is_live_test:
        pytest.skip("set TEST_MODE=live to call a real RPC endpoint")
    client = EvmRpcClient()
    yield client
    await client.close()


@pytest.mark.live
@pytest.mark.slow
class TestEvmRpcLive:
    """EVM RPC 真实测试"""

    @pytest.mark.asyncio
    async def test_head_and_latest_block(self, rpc_client):
        height = await rpc_client.get_block_height()
        block = await rpc_client.get_block(height)

        assert height > 0
        assert block.number == height
        assert block.timestamp > 0

    @pytest.mark.asyncio
    async def test_fee_data(self, rpc_client):
        fee = await rpc_client.get_fee_data()
        assert fee.gas_price is not None

    @pytest.mark.asyncio
    async def test_network_stats(self, rpc_client):
        result = await NetworkStatsTool(rpc_client).execute(NetworkStatsInput())

        assert result.status != DataStatus.UNAVAILABLE
        assert result.stats.block_number > 0

    @pytest.mark.asyncio
    async def test_discover_active_contracts(self, rpc_client):
        contracts = await ContractAnalyzer(rpc_client).discover_active_contracts(2)

        for record in contracts:
            assert len(record.unique_callers) <= record.total_interactions
