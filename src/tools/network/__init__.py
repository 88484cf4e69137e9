"""网络与交易分析工具"""
from .defi import DeFiActivityTool
from .stats import NetworkStatsTool
from .transactions import AnalyzeTransactionsTool
from .users import UserBehaviorTool
from .whales import DetectWhalesTool

__all__ = [
    "AnalyzeTransactionsTool",
    "DeFiActivityTool",
    "DetectWhalesTool",
    "NetworkStatsTool",
    "UserBehaviorTool",
]
