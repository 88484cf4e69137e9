"""
合约分析工具单元测试
"""
import pytest

from src.analytics.contract_analyzer import ContractAnalyzer
from src.core.models import (
    ActiveContractsInput,
    ContractFunctionsInput,
    ContractTypesInput,
    DataStatus,
    EcosystemInput,
    NewDeploymentsInput,
)
from src.tools.contracts import (
    ActiveContractsTool,
    ContractFunctionsTool,
    ContractTypesTool,
    EcosystemTool,
    NewDeploymentsTool,
)


@pytest.fixture
def busy_chain(fake_chain):
    """最近 3 个区块：两次 transfer、一次 swap、一次 approve 与一次部署"""
    fake_chain.add_tx(100, "0x01", sender="0xa", to="0xtoken", data="0xa9059cbb00")
    fake_chain.add_tx(100, "0x02", sender="0xb", to="0xtoken", data="0xa9059cbb00")
    fake_chain.add_tx(99, "0x03", sender="0xa", to="0xdex", data="0x38ed173900", gas_used=180_000)
    fake_chain.add_tx(99, "0x04", sender="0xc", to="0xtoken", data="0x095ea7b300")
    fake_chain.add_tx(
        98, "0x05", sender="0xdev", to=None, data="0x6080", gas_used=2_000_000, contract_address="0xfresh"
    )
    return fake_chain


@pytest.fixture
def three_block_settings(fast_settings, monkeypatch):
    for name in ("active_contracts_blocks", "popular_functions_blocks", "contract_types_blocks"):
        monkeypatch.setattr(fast_settings, name, 3)
    monkeypatch.setattr(fast_settings, "deployment_block_step", 1)
    monkeypatch.setattr(fast_settings, "deployment_max_blocks", 3)
    return fast_settings


@pytest.mark.unit
class TestActiveContractsTool:
    """get_active_contracts 测试"""

    @pytest.mark.asyncio
    async def test_ranks_contracts(self, busy_chain):
        tool = ActiveContractsTool(ContractAnalyzer(busy_chain), blocks_to_analyze=3)

        result = await tool.execute(ActiveContractsInput(limit=2))

        assert result.status == DataStatus.OK
        assert result.warnings == []
        assert result.blocks_analyzed == 3
        assert [c.address for c in result.contracts] == ["0xtoken", "0xdex"]
        token = result.contracts[0]
        assert token.interactions == 3
        assert token.unique_users == 3
        assert token.contract_type == "ERC20 Token"
        assert token.creator == "unknown"
        assert token.creation_block is None
        assert result.source_meta[0].endpoint == "contracts/active"
        assert result.source_meta[0].provider == "evm_rpc"

    @pytest.mark.asyncio
    async def test_deployed_contract_keeps_creation_block(self, busy_chain):
        tool = ActiveContractsTool(ContractAnalyzer(busy_chain), blocks_to_analyze=3)

        result = await tool.execute(ActiveContractsInput())

        fresh = next(c for c in result.contracts if c.address == "0xfresh")
        assert fresh.creation_block == 98
        assert fresh.creator == "0xdev"

    @pytest.mark.asyncio
    async def test_unavailable_chain(self, fake_chain):
        fake_chain.fail_head = True
        tool = ActiveContractsTool(ContractAnalyzer(fake_chain), blocks_to_analyze=3)

        result = await tool.execute(ActiveContractsInput())

        assert result.status == DataStatus.UNAVAILABLE
        assert result.contracts == []
        assert "unavailable" in result.warnings[0]
        assert result.source_meta[0].degraded is True

    @pytest.mark.asyncio
    async def test_failed_block_is_partial(self, busy_chain):
        busy_chain.failing_blocks = {99}
        tool = ActiveContractsTool(ContractAnalyzer(busy_chain), blocks_to_analyze=3)

        result = await tool.execute(ActiveContractsInput())

        assert result.status == DataStatus.PARTIAL
        assert result.warnings == ["active contracts: 1 of 3 blocks could not be fetched"]
        assert [c.address for c in result.contracts] == ["0xtoken", "0xfresh"]


@pytest.mark.unit
class TestContractFunctionsTool:
    """get_contract_functions 测试"""

    @pytest.mark.asyncio
    async def test_popular_functions(self, busy_chain, three_block_settings):
        tool = ContractFunctionsTool(ContractAnalyzer(busy_chain))

        result = await tool.execute(ContractFunctionsInput(limit=1))

        assert result.total_functions == 3
        assert result.total_calls == 4
        assert len(result.functions) == 1
        top = result.functions[0]
        assert top.signature == "0xa9059cbb"
        assert top.name == "transfer(address,uint256)"
        assert top.call_count == 2
        assert top.avg_gas_per_call == 21_000

    @pytest.mark.asyncio
    async def test_quiet_chain_is_ok_and_empty(self, fake_chain, three_block_settings):
        fake_chain.add_blocks(range(98, 101))

        result = await ContractFunctionsTool(ContractAnalyzer(fake_chain)).execute(ContractFunctionsInput())

        assert result.status == DataStatus.OK
        assert result.functions == []
        assert result.total_calls == 0


@pytest.mark.unit
class TestContractTypesTool:
    """get_contract_types 测试"""

    @pytest.mark.asyncio
    async def test_distribution(self, busy_chain, three_block_settings):
        result = await ContractTypesTool(ContractAnalyzer(busy_chain)).execute(ContractTypesInput())

        assert result.total_contracts == 3
        assert {s.type for s in result.distribution} == {"ERC20 Token", "DEX", "Complex DeFi"}
        assert all(s.count == 1 and s.percentage == 33 for s in result.distribution)

    @pytest.mark.asyncio
    async def test_empty_distribution(self, fake_chain, three_block_settings):
        fake_chain.add_blocks(range(98, 101))

        result = await ContractTypesTool(ContractAnalyzer(fake_chain)).execute(ContractTypesInput())

        assert result.total_contracts == 0
        assert result.distribution == []


@pytest.mark.unit
class TestNewDeploymentsTool:
    """get_new_deployments 测试"""

    @pytest.mark.asyncio
    async def test_capped_window_warns(self, fake_chain):
        fake_chain.add_blocks(range(0, 101))
        fake_chain.add_tx(90, "0xd1", sender="0xdev", to=None, data="0x60", contract_address="0xseen")

        result = await NewDeploymentsTool(ContractAnalyzer(fake_chain)).execute(NewDeploymentsInput(hours=24))

        assert result.status == DataStatus.OK
        assert result.blocks_window == 100
        assert result.total_deployments == 1
        deployment = result.deployments[0]
        assert deployment.address == "0xseen"
        assert deployment.creator == "0xdev"
        assert deployment.creation_hash == "0xd1"
        assert deployment.creation_block == 90
        assert any("capped" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_uncapped_window(self, fake_chain, fast_settings, monkeypatch):
        monkeypatch.setattr(fast_settings, "block_time_ms", 3_600_000)
        fake_chain.add_blocks(range(0, 101))

        result = await NewDeploymentsTool(ContractAnalyzer(fake_chain)).execute(NewDeploymentsInput(hours=24))

        assert result.blocks_window == 24
        assert result.total_deployments == 0
        assert result.warnings == []


@pytest.mark.unit
class TestEcosystemTool:
    """analyze_contract_ecosystem 测试"""

    @pytest.mark.asyncio
    async def test_summary(self, busy_chain, three_block_settings):
        result = await EcosystemTool(ContractAnalyzer(busy_chain)).execute(EcosystemInput())

        assert result.status == DataStatus.OK
        assert result.summary.total_active_contracts == 3
        assert result.summary.total_function_calls == 4
        assert result.summary.most_popular_type == "ERC20 Token"
        assert result.summary.new_deployments_today == 1
        assert [d.address for d in result.recent_deployments] == ["0xfresh"]
        assert len(result.active_contracts) == 3
        assert result.source_meta[0].endpoint == "contracts/ecosystem"

    @pytest.mark.asyncio
    async def test_unavailable_chain(self, fake_chain, three_block_settings):
        fake_chain.fail_head = True

        result = await EcosystemTool(ContractAnalyzer(fake_chain)).execute(EcosystemInput())

        assert result.status == DataStatus.UNAVAILABLE
        assert result.summary.most_popular_type == "Unknown"
        assert len(result.warnings) == 4
