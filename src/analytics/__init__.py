"""链上合约分析核心：采样、分类、聚合"""
from .aggregator import ContractAggregator
from .classifier import ContractType, TransactionCategory
from .contract_analyzer import ContractAnalyzer, EcosystemReport, ScanResult
from .records import ChainClient, ContractRecord, FunctionStat, SampledTransaction, TypeShare
from .sampler import BlockSampler, SamplerStats

__all__ = [
    "BlockSampler",
    "ChainClient",
    "ContractAggregator",
    "ContractAnalyzer",
    "ContractRecord",
    "ContractType",
    "EcosystemReport",
    "FunctionStat",
    "SampledTransaction",
    "SamplerStats",
    "ScanResult",
    "TransactionCategory",
    "TypeShare",
]
