"""
工具层共享的转换与状态辅助函数
"""
from collections import Counter
from decimal import Decimal
from typing import Iterable, Optional

from src.analytics.aggregator import whole_percent
from src.analytics.classifier import TransactionCategory
from src.analytics.contract_analyzer import ScanResult
from src.analytics.records import ContractRecord, FunctionStat, TypeShare
from src.core.models import (
    ActiveContract,
    ContractTypeShare,
    DataStatus,
    Deployment,
    FunctionUsage,
    ShareEntry,
    SourceMeta,
)
from src.core.source_meta import SourceMetaBuilder

PROVIDER = "evm_rpc"
WEI_PER_NATIVE = Decimal(10) ** 18
WEI_PER_GWEI = Decimal(10) ** 9

CATEGORY_ORDER = (
    TransactionCategory.TRANSFER,
    TransactionCategory.CONTRACT_CALL,
    TransactionCategory.CONTRACT_DEPLOY,
)


def wei_to_native(value: int, places: int = 6) -> float:
    return float(round(Decimal(value) / WEI_PER_NATIVE, places))


def wei_to_gwei(value: int, places: int = 3) -> float:
    return float(round(Decimal(value) / WEI_PER_GWEI, places))


def percentage(count: int, total: int, places: int = 2) -> float:
    if total <= 0:
        return 0.0
    return round(count / total * 100, places)


def category_shares(counter: Counter) -> list[ShareEntry]:
    """交易类别计数，固定顺序输出全部三类"""
    total = sum(counter.values())
    return [
        ShareEntry(
            type=category.value,
            count=counter.get(category, 0),
            percentage=whole_percent(counter.get(category, 0), total),
        )
        for category in CATEGORY_ORDER
    ]


def status_for(scans: Iterable[ScanResult]) -> DataStatus:
    scans = list(scans)
    if scans and all(scan.unavailable for scan in scans):
        return DataStatus.UNAVAILABLE
    if any(scan.partial or scan.unavailable for scan in scans):
        return DataStatus.PARTIAL
    return DataStatus.OK


def scan_warnings(scan: ScanResult, label: str) -> list[str]:
    """把扫描诊断转成面向调用方的警告文本"""
    stats = scan.stats
    if scan.unavailable:
        return [f"{label}: chain RPC unavailable, no blocks could be scanned"]
    warnings: list[str] = []
    if scan.timed_out:
        warnings.append(
            f"{label}: scan timed out after {stats.blocks_scanned}/{stats.blocks_requested} blocks; results are partial"
        )
    if stats.blocks_failed:
        warnings.append(f"{label}: {stats.blocks_failed} of {stats.blocks_requested} blocks could not be fetched")
    if stats.transactions_failed:
        warnings.append(
            f"{label}: {stats.transactions_failed} of {stats.transactions_selected} sampled transactions could not be fetched"
        )
    return warnings


def build_meta(endpoint: str, ttl_seconds: int, started_at: float, status: DataStatus) -> SourceMeta:
    return SourceMetaBuilder.build_for_scan(
        provider=PROVIDER,
        endpoint=endpoint,
        ttl_seconds=ttl_seconds,
        started_at=started_at,
        degraded=status != DataStatus.OK,
    )


def isoformat(value) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def to_active_contract(record: ContractRecord) -> ActiveContract:
    return ActiveContract(
        address=record.address,
        contract_type=record.contract_type.value,
        interactions=record.total_interactions,
        unique_users=len(record.unique_callers),
        total_gas=record.gas_used,
        created_at=isoformat(record.first_seen),
        last_activity=isoformat(record.last_activity),
        creator=record.creator,
        creation_block=record.creation_block if record.deployment_observed else None,
    )


def to_function_usage(stat: FunctionStat) -> FunctionUsage:
    return FunctionUsage(
        signature=stat.signature,
        name=stat.name,
        call_count=stat.call_count,
        gas_usage=stat.gas_usage,
        avg_gas_per_call=round(stat.avg_gas_per_call),
    )


def to_type_share(share: TypeShare) -> ContractTypeShare:
    return ContractTypeShare(
        type=share.contract_type.value,
        count=share.count,
        percentage=share.percentage,
    )


def to_deployment(record: ContractRecord) -> Deployment:
    return Deployment(
        address=record.address,
        contract_type=record.contract_type.value,
        creator=record.creator,
        creation_hash=record.creation_hash,
        creation_block=record.creation_block,
        gas_used=record.gas_used,
        timestamp=isoformat(record.first_seen),
    )
