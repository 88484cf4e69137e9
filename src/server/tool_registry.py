"""
工具注册表

MCP 与 HTTP 两个入口共享同一份工具元数据与实例构建逻辑：
- TOOL_SPECS: 名称、描述、路由、输入/输出模型
- build_tools: 用一个链客户端构建全部工具实例
- execute_tool: 校验参数后经结果缓存执行
"""
from typing import Any, Dict, List, Optional

from src.analytics.contract_analyzer import ContractAnalyzer
from src.analytics.records import ChainClient
from src.core.models import (
    ActiveContractsInput,
    ActiveContractsOutput,
    AnalyzeTransactionsInput,
    AnalyzeTransactionsOutput,
    ContractFunctionsInput,
    ContractFunctionsOutput,
    ContractTypesInput,
    ContractTypesOutput,
    DeFiActivityInput,
    DeFiActivityOutput,
    DetectWhalesInput,
    DetectWhalesOutput,
    EcosystemInput,
    EcosystemOutput,
    NetworkStatsInput,
    NetworkStatsOutput,
    NewDeploymentsInput,
    NewDeploymentsOutput,
    UserBehaviorInput,
    UserBehaviorOutput,
)
from src.middleware.cache import cache_manager
from src.tools.contracts import (
    ActiveContractsTool,
    ContractFunctionsTool,
    ContractTypesTool,
    EcosystemTool,
    NewDeploymentsTool,
)
from src.tools.network import (
    AnalyzeTransactionsTool,
    DeFiActivityTool,
    DetectWhalesTool,
    NetworkStatsTool,
    UserBehaviorTool,
)
from src.utils.config import config
from src.utils.logger import get_logger

logger = get_logger(__name__)


TOOL_SPECS: List[Dict[str, Any]] = [
    {
        "name": "get_network_stats",
        "description": "Get real-time network statistics: TPS, block time, gas price, gas utilization and transaction mix",
        "endpoint": "/api/stats",
        "input_model": NetworkStatsInput,
        "output_model": NetworkStatsOutput,
    },
    {
        "name": "analyze_transactions",
        "description": "Analyze recent transactions: success rate, gas usage, values, categories and most active contracts",
        "endpoint": "/api/transactions/analyze",
        "input_model": AnalyzeTransactionsInput,
        "output_model": AnalyzeTransactionsOutput,
    },
    {
        "name": "get_active_contracts",
        "description": "Get the most active smart contracts in recent blocks",
        "endpoint": "/api/contracts",
        "input_model": ActiveContractsInput,
        "output_model": ActiveContractsOutput,
    },
    {
        "name": "detect_whales",
        "description": "Detect large-value transactions at or above a native-token threshold",
        "endpoint": "/api/whales",
        "input_model": DetectWhalesInput,
        "output_model": DetectWhalesOutput,
    },
    {
        "name": "get_user_behavior",
        "description": "Analyze behavior of a single address, or network-wide user activity and retention",
        "endpoint": "/api/users",
        "input_model": UserBehaviorInput,
        "output_model": UserBehaviorOutput,
    },
    {
        "name": "monitor_defi_activity",
        "description": "Monitor DEX, lending and staking activity classified from contract calls",
        "endpoint": "/api/defi",
        "input_model": DeFiActivityInput,
        "output_model": DeFiActivityOutput,
    },
    {
        "name": "get_contract_functions",
        "description": "Get the most popular smart contract functions by call count, with gas usage",
        "endpoint": "/api/contracts/functions",
        "input_model": ContractFunctionsInput,
        "output_model": ContractFunctionsOutput,
    },
    {
        "name": "get_contract_types",
        "description": "Get the distribution of smart contract types in recent blocks",
        "endpoint": "/api/contracts/types",
        "input_model": ContractTypesInput,
        "output_model": ContractTypesOutput,
    },
    {
        "name": "get_new_deployments",
        "description": "Get contracts deployed within the last N hours",
        "endpoint": "/api/contracts/deployments",
        "input_model": NewDeploymentsInput,
        "output_model": NewDeploymentsOutput,
    },
    {
        "name": "analyze_contract_ecosystem",
        "description": "Comprehensive contract ecosystem summary: active contracts, functions, types and deployments",
        "endpoint": "/api/contracts/ecosystem",
        "input_model": EcosystemInput,
        "output_model": EcosystemOutput,
    },
]

SPECS_BY_NAME: Dict[str, Dict[str, Any]] = {spec["name"]: spec for spec in TOOL_SPECS}


class UnknownToolError(KeyError):
    """未登记或已禁用的工具"""


def build_tools(chain_client: ChainClient, analyzer: Optional[ContractAnalyzer] = None) -> Dict[str, Any]:
    """构建全部已启用工具，共享同一个链客户端与分析器"""
    analyzer = analyzer or ContractAnalyzer(chain_client)
    factories = {
        "get_network_stats": lambda: NetworkStatsTool(chain_client),
        "analyze_transactions": lambda: AnalyzeTransactionsTool(chain_client),
        "get_active_contracts": lambda: ActiveContractsTool(analyzer),
        "detect_whales": lambda: DetectWhalesTool(analyzer),
        "get_user_behavior": lambda: UserBehaviorTool(analyzer),
        "monitor_defi_activity": lambda: DeFiActivityTool(analyzer),
        "get_contract_functions": lambda: ContractFunctionsTool(analyzer),
        "get_contract_types": lambda: ContractTypesTool(analyzer),
        "get_new_deployments": lambda: NewDeploymentsTool(analyzer),
        "analyze_contract_ecosystem": lambda: EcosystemTool(analyzer),
    }
    tools = {
        name: factory()
        for name, factory in factories.items()
        if config.is_tool_enabled(name)
    }
    logger.info("tools_built", tools=sorted(tools))
    return tools


def enabled_specs(tools: Dict[str, Any]) -> List[Dict[str, Any]]:
    """已启用且已初始化的工具元数据"""
    return [spec for spec in TOOL_SPECS if tools.get(spec["name"]) is not None]


async def execute_tool(tools: Dict[str, Any], name: str, arguments: Optional[Dict[str, Any]] = None):
    """
    校验参数并经结果缓存执行工具

    Raises:
        UnknownToolError: 工具未登记或未启用
        pydantic.ValidationError: 参数非法
    """
    spec = SPECS_BY_NAME.get(name)
    tool = tools.get(name)
    if spec is None or tool is None:
        raise UnknownToolError(name)

    params = spec["input_model"](**(arguments or {}))
    return await cache_manager.cached_execute(
        name,
        params,
        spec["output_model"],
        lambda: tool.execute(params),
    )
