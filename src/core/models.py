"""
核心数据模型 - Pydantic定义
"""
from datetime import datetime
from enum import StrEnum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# ==================== 枚举类型 ====================


class DataStatus(StrEnum):
    """结果可信度状态"""

    OK = "ok"
    PARTIAL = "partial"  # 部分区块/交易获取失败或扫描超时
    UNAVAILABLE = "unavailable"  # 链完全不可用


class StatsTimeframe(StrEnum):
    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    ONE_HOUR = "1h"
    ONE_DAY = "24h"


class ActivityTimeframe(StrEnum):
    ONE_HOUR = "1h"
    ONE_DAY = "24h"
    ONE_WEEK = "7d"


class UserMetric(StrEnum):
    ACTIVITY = "activity"
    RETENTION = "retention"
    TRANSACTION_PATTERNS = "transaction_patterns"


class DeFiProtocolType(StrEnum):
    DEX = "dex"
    LENDING = "lending"
    YIELD_FARMING = "yield_farming"
    ALL = "all"


# ==================== 基础模型 ====================


class SourceMeta(BaseModel):
    """数据源元信息"""

    provider: str = Field(..., description="数据提供者，如 evm_rpc")
    endpoint: str = Field(..., description="RPC 方法或逻辑端点")
    as_of_utc: str = Field(..., description="数据时间戳 (ISO格式)")
    ttl_seconds: int = Field(..., description="缓存TTL（秒）")
    version: str = Field(default="v1", description="数据契约版本")
    degraded: bool = Field(default=False, description="是否降级模式")
    fallback_used: Optional[str] = Field(default=None, description="使用的备用源")
    response_time_ms: Optional[float] = Field(default=None, description="响应时间（毫秒）")


# ==================== 链上原始数据 ====================


class ChainTransaction(BaseModel):
    """链上交易（已从十六进制解码）"""

    hash: str
    from_address: str = Field(..., description="发送方地址（小写）")
    to_address: Optional[str] = Field(default=None, description="接收方地址，合约部署时为空")
    value: int = Field(default=0, description="转账金额（wei）")
    input: str = Field(default="0x", description="调用数据")
    gas_limit: Optional[int] = None
    gas_price: Optional[int] = None
    nonce: Optional[int] = None
    block_number: Optional[int] = None


class ChainReceipt(BaseModel):
    """交易回执"""

    transaction_hash: str
    status: Optional[int] = Field(default=None, description="1 成功 / 0 失败")
    gas_used: Optional[int] = None
    contract_address: Optional[str] = Field(default=None, description="部署产生的合约地址")
    block_number: Optional[int] = None
    effective_gas_price: Optional[int] = None


class ChainBlock(BaseModel):
    """区块头与交易哈希列表"""

    number: int
    hash: Optional[str] = None
    timestamp: int = Field(..., description="区块时间（Unix 秒）")
    gas_used: int = 0
    gas_limit: int = 0
    base_fee_per_gas: Optional[int] = None
    transactions: Optional[List[str]] = Field(default=None, description="交易哈希列表")


class FeeData(BaseModel):
    """手续费数据（wei）"""

    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None


# ==================== 工具输出基类 ====================


class AnalyticsOutput(BaseModel):
    """所有分析工具输出的公共字段"""

    status: DataStatus = DataStatus.OK
    source_meta: List[SourceMeta] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    as_of_utc: str

    @field_validator("as_of_utc", mode="before")
    @classmethod
    def format_timestamp(cls, v):
        if isinstance(v, datetime):
            return v.replace(tzinfo=None).isoformat() + "Z"
        return v


class ShareEntry(BaseModel):
    """分类计数与占比"""

    type: str
    count: int
    percentage: float


# ==================== get_network_stats ====================


class NetworkStatsInput(BaseModel):
    """get_network_stats 输入参数"""

    timeframe: StatsTimeframe = Field(
        default=StatsTimeframe.ONE_HOUR, description="统计时间范围标签：1m, 5m, 1h, 24h"
    )


class NetworkStats(BaseModel):
    chain: str
    block_number: int = 0
    current_tps: float = 0.0
    avg_block_time_ms: float = 0.0
    avg_gas_price_gwei: float = 0.0
    total_transactions: int = Field(default=0, description="最新区块交易数")
    sampled_volume: float = Field(default=0.0, description="采样交易的原生代币转账总额")
    gas_utilization: float = Field(default=0.0, description="最新区块 gasUsed/gasLimit 百分比")
    transaction_types: List[ShareEntry] = Field(default_factory=list)
    blocks_analyzed: int = 0


class NetworkStatsOutput(AnalyticsOutput):
    """get_network_stats 输出"""

    timeframe: StatsTimeframe
    stats: NetworkStats


# ==================== analyze_transactions ====================


class AnalyzeTransactionsInput(BaseModel):
    """analyze_transactions 输入参数"""

    limit: int = Field(default=100, ge=1, le=1000, description="分析的最近交易数量")
    contract_address: Optional[str] = Field(default=None, description="只统计发往该合约的交易")

    @field_validator("contract_address")
    @classmethod
    def normalize_address(cls, v):
        return v.lower() if v else v


class ContractInteractionCount(BaseModel):
    address: str
    contract_type: str
    interactions: int


class TransactionAnalysis(BaseModel):
    analyzed_count: int = 0
    block_number: Optional[int] = None
    success_rate: float = 0.0
    avg_gas_used: float = 0.0
    avg_value: float = 0.0
    categories: List[ShareEntry] = Field(default_factory=list)
    top_contracts: List[ContractInteractionCount] = Field(default_factory=list)


class AnalyzeTransactionsOutput(AnalyticsOutput):
    """analyze_transactions 输出"""

    limit: int
    contract_address: Optional[str] = None
    analysis: TransactionAnalysis


# ==================== get_active_contracts ====================


class ActiveContractsInput(BaseModel):
    """get_active_contracts 输入参数"""

    limit: int = Field(default=10, ge=1, le=100, description="返回合约数量")
    timeframe: ActivityTimeframe = Field(default=ActivityTimeframe.ONE_DAY, description="时间范围标签")


class ActiveContract(BaseModel):
    address: str
    contract_type: str
    interactions: int
    unique_users: int
    total_gas: int
    created_at: Optional[str] = Field(default=None, description="首次观测时间")
    last_activity: Optional[str] = None
    creator: str = "unknown"
    creation_block: Optional[int] = None


class ActiveContractsOutput(AnalyticsOutput):
    """get_active_contracts 输出"""

    timeframe: ActivityTimeframe
    blocks_analyzed: int = 0
    contracts: List[ActiveContract] = Field(default_factory=list)


# ==================== detect_whales ====================


class DetectWhalesInput(BaseModel):
    """detect_whales 输入参数"""

    threshold: float = Field(default=10.0, ge=0, description="巨鲸交易的最小金额（原生代币单位）")
    timeframe: ActivityTimeframe = Field(default=ActivityTimeframe.ONE_DAY, description="时间范围标签")


class WhaleTransaction(BaseModel):
    hash: str
    from_address: str
    to_address: Optional[str] = None
    value: float = Field(..., description="原生代币金额")
    block_number: int
    timestamp: str
    category: str


class DetectWhalesOutput(AnalyticsOutput):
    """detect_whales 输出"""

    threshold: float
    timeframe: ActivityTimeframe
    transactions_scanned: int = 0
    whales: List[WhaleTransaction] = Field(default_factory=list)


# ==================== get_user_behavior ====================


class UserBehaviorInput(BaseModel):
    """get_user_behavior 输入参数"""

    address: Optional[str] = Field(default=None, description="要分析的地址（可选）")
    metric: UserMetric = Field(default=UserMetric.ACTIVITY, description="行为指标类型")

    @field_validator("address")
    @classmethod
    def normalize_address(cls, v):
        return v.lower() if v else v


class AddressBehavior(BaseModel):
    address: str
    transaction_count: int = Field(default=0, description="采样窗口内发出的交易数")
    lifetime_transactions: Optional[int] = Field(default=None, description="账户 nonce")
    total_volume: float = 0.0
    active_blocks: int = 0
    top_contracts: List[str] = Field(default_factory=list)


class NetworkBehavior(BaseModel):
    active_users: int = 0
    returning_users: int = Field(default=0, description="在多个采样区块中出现的发送方")
    avg_transactions_per_user: float = 0.0
    avg_volume_per_user: float = 0.0
    retention_rate: float = 0.0
    transaction_patterns: List[ShareEntry] = Field(default_factory=list)


class UserBehaviorOutput(AnalyticsOutput):
    """get_user_behavior 输出"""

    metric: UserMetric
    blocks_analyzed: int = 0
    address_behavior: Optional[AddressBehavior] = None
    network_behavior: Optional[NetworkBehavior] = None


# ==================== monitor_defi_activity ====================


class DeFiActivityInput(BaseModel):
    """monitor_defi_activity 输入参数"""

    protocol_type: DeFiProtocolType = Field(default=DeFiProtocolType.ALL, description="DeFi 协议类别")
    timeframe: ActivityTimeframe = Field(default=ActivityTimeframe.ONE_DAY, description="时间范围标签")


class ProtocolActivity(BaseModel):
    protocol_type: DeFiProtocolType
    transactions: int = 0
    volume: float = 0.0
    unique_users: int = 0
    avg_transaction_size: float = 0.0


class ContractVolume(BaseModel):
    address: str
    contract_type: str
    transactions: int
    volume: float


class DeFiActivity(BaseModel):
    total_volume: float = 0.0
    total_transactions: int = 0
    unique_users: int = 0
    protocols: List[ProtocolActivity] = Field(default_factory=list)
    top_contracts: List[ContractVolume] = Field(default_factory=list)


class DeFiActivityOutput(AnalyticsOutput):
    """monitor_defi_activity 输出"""

    protocol_type: DeFiProtocolType
    timeframe: ActivityTimeframe
    blocks_analyzed: int = 0
    activity: DeFiActivity


# ==================== get_contract_functions ====================


class ContractFunctionsInput(BaseModel):
    """get_contract_functions 输入参数"""

    limit: int = Field(default=10, ge=1, le=100, description="返回的热门函数数量")


class FunctionUsage(BaseModel):
    signature: str
    name: str
    call_count: int
    gas_usage: int
    avg_gas_per_call: int


class ContractFunctionsOutput(AnalyticsOutput):
    """get_contract_functions 输出"""

    total_functions: int = 0
    total_calls: int = 0
    functions: List[FunctionUsage] = Field(default_factory=list)


# ==================== get_contract_types ====================


class ContractTypesInput(BaseModel):
    """get_contract_types 无参数"""

    pass


class ContractTypeShare(BaseModel):
    type: str
    count: int
    percentage: int


class ContractTypesOutput(AnalyticsOutput):
    """get_contract_types 输出"""

    total_contracts: int = 0
    distribution: List[ContractTypeShare] = Field(default_factory=list)


# ==================== get_new_deployments ====================


class NewDeploymentsInput(BaseModel):
    """get_new_deployments 输入参数"""

    hours: int = Field(default=24, ge=1, le=720, description="向前回溯的小时数")


class Deployment(BaseModel):
    address: str
    contract_type: str
    creator: str
    creation_hash: str
    creation_block: int
    gas_used: int
    timestamp: str


class NewDeploymentsOutput(AnalyticsOutput):
    """get_new_deployments 输出"""

    hours: int
    blocks_window: int = 0
    total_deployments: int = 0
    deployments: List[Deployment] = Field(default_factory=list)


# ==================== analyze_contract_ecosystem ====================


class EcosystemInput(BaseModel):
    """analyze_contract_ecosystem 无参数"""

    pass


class EcosystemSummary(BaseModel):
    total_active_contracts: int = 0
    total_function_calls: int = 0
    most_popular_type: str = "Unknown"
    new_deployments_today: int = 0


class EcosystemOutput(AnalyticsOutput):
    """analyze_contract_ecosystem 输出"""

    summary: EcosystemSummary
    active_contracts: List[ActiveContract] = Field(default_factory=list)
    popular_functions: List[FunctionUsage] = Field(default_factory=list)
    contract_types: List[ContractTypeShare] = Field(default_factory=list)
    recent_deployments: List[Deployment] = Field(default_factory=list)
