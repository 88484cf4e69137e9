"""合约分析工具"""
from .active import ActiveContractsTool
from .deployments import NewDeploymentsTool
from .ecosystem import EcosystemTool
from .functions import ContractFunctionsTool
from .type_stats import ContractTypesTool

__all__ = [
    "ActiveContractsTool",
    "ContractFunctionsTool",
    "ContractTypesTool",
    "EcosystemTool",
    "NewDeploymentsTool",
]
