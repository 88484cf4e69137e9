"""
扫描期间使用的记录类型与链客户端接口
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from src.analytics.classifier import ContractType
from src.core.models import ChainBlock, ChainReceipt, ChainTransaction, FeeData

UNKNOWN = "unknown"


class ChainClient(Protocol):
    """分析核心依赖的链访问能力"""

    async def get_block_height(self) -> int: ...

    async def get_block(self, height_or_tag: int | str) -> Optional[ChainBlock]: ...

    async def get_transaction(self, tx_hash: str) -> Optional[ChainTransaction]: ...

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[ChainReceipt]: ...

    async def get_fee_data(self) -> FeeData: ...


def block_time(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


@dataclass(frozen=True)
class SampledTransaction:
    """一次采样得到的交易、回执与所在区块信息"""

    transaction: ChainTransaction
    receipt: Optional[ChainReceipt]
    block_number: int
    block_timestamp: int

    @property
    def timestamp(self) -> datetime:
        return block_time(self.block_timestamp)

    @property
    def gas_used(self) -> int:
        return (self.receipt.gas_used if self.receipt else None) or 0


@dataclass
class ContractRecord:
    """
    单次扫描内某个合约的累计状态

    creator / creation_hash 为 "unknown"、creation_block 为 0 表示未观测到部署。
    """

    address: str
    contract_type: ContractType
    first_seen: datetime
    last_activity: datetime
    creator: str = UNKNOWN
    creation_hash: str = UNKNOWN
    creation_block: int = 0
    total_interactions: int = 0
    unique_callers: set[str] = field(default_factory=set)
    function_signatures: dict[str, int] = field(default_factory=dict)
    gas_used: int = 0

    @property
    def deployment_observed(self) -> bool:
        return self.creation_block != 0


@dataclass
class FunctionStat:
    """全网函数选择器调用统计"""

    signature: str
    name: str
    call_count: int = 0
    gas_usage: int = 0

    @property
    def avg_gas_per_call(self) -> float:
        if self.call_count == 0:
            return 0.0
        return self.gas_usage / self.call_count


@dataclass(frozen=True)
class TypeShare:
    contract_type: ContractType
    count: int
    percentage: int
