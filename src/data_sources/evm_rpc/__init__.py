"""
EVM JSON-RPC 数据源

提供区块、交易、回执与手续费数据（默认 MegaETH 测试网）。
"""
from .client import EvmRpcClient, parse_quantity

__all__ = ["EvmRpcClient", "parse_quantity"]
