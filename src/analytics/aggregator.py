"""
合约聚合引擎

把采样交易折叠进 ContractRecord / FunctionStat，并提供排序视图。
每次扫描使用独立的聚合器实例，记录只在 fold 中被修改。
"""
from typing import Optional

from src.analytics.classifier import (
    ContractType,
    classify_contract_type,
    extract_selector,
    resolve_function_name,
)
from src.analytics.records import UNKNOWN, ContractRecord, FunctionStat, SampledTransaction, TypeShare
from src.utils.exceptions import ScanStateError


def whole_percent(count: int, total: int) -> int:
    """整数百分比，.5 向上取整"""
    if total <= 0:
        return 0
    return (count * 200 + total) // (2 * total)


class ContractAggregator:
    """单次扫描的聚合状态"""

    def __init__(self):
        # dict 保持插入顺序，排序视图依赖它实现稳定排序
        self._contracts: dict[str, ContractRecord] = {}
        self._functions: dict[str, FunctionStat] = {}
        self._started = False
        self.samples_folded = 0
        self.discarded = 0

    def start(self) -> None:
        """标记扫描开始，之后才能读取视图"""
        self._started = True

    @property
    def started(self) -> bool:
        return self._started

    def _require_started(self) -> None:
        if not self._started:
            raise ScanStateError("aggregator views requested before a scan was started")

    # ==================== 折叠 ====================

    def fold(self, sample: SampledTransaction) -> None:
        """折叠一条采样交易"""
        self._started = True
        tx = sample.transaction
        deployed = sample.receipt.contract_address if sample.receipt else None

        if tx.to_address:
            self._fold_interaction(sample)
        elif deployed:
            self._fold_deployment(sample, deployed)
        else:
            self.discarded += 1
            return
        self.samples_folded += 1

    def _fold_interaction(self, sample: SampledTransaction) -> None:
        tx = sample.transaction
        address = tx.to_address.lower()
        seen_at = sample.timestamp
        gas_used = sample.gas_used

        record = self._contracts.get(address)
        if record is None:
            record = ContractRecord(
                address=address,
                contract_type=classify_contract_type(tx, sample.receipt),
                first_seen=seen_at,
                last_activity=seen_at,
            )
            self._contracts[address] = record
        else:
            record.first_seen = min(record.first_seen, seen_at)
            record.last_activity = max(record.last_activity, seen_at)

        record.total_interactions += 1
        if tx.from_address:
            record.unique_callers.add(tx.from_address.lower())
        record.gas_used += gas_used

        selector = extract_selector(tx.input)
        if selector is None:
            return
        record.function_signatures[selector] = record.function_signatures.get(selector, 0) + 1

        stat = self._functions.get(selector)
        if stat is None:
            stat = FunctionStat(signature=selector, name=resolve_function_name(selector))
            self._functions[selector] = stat
        stat.call_count += 1
        stat.gas_usage += gas_used

    def _fold_deployment(self, sample: SampledTransaction, deployed: str) -> None:
        tx = sample.transaction
        address = deployed.lower()
        deployed_at = sample.timestamp
        contract_type = classify_contract_type(tx, sample.receipt)

        # 区块从新到旧遍历，交互可能先于部署被观测到
        record = self._contracts.get(address)
        if record is None:
            record = ContractRecord(
                address=address,
                contract_type=contract_type,
                first_seen=deployed_at,
                last_activity=deployed_at,
            )
            self._contracts[address] = record
        else:
            if record.contract_type == ContractType.UNKNOWN:
                record.contract_type = contract_type
            record.last_activity = max(record.last_activity, deployed_at)

        record.first_seen = deployed_at
        record.creator = tx.from_address.lower() if tx.from_address else UNKNOWN
        record.creation_hash = tx.hash or UNKNOWN
        record.creation_block = sample.block_number
        record.total_interactions += 1
        if tx.from_address:
            record.unique_callers.add(tx.from_address.lower())
        record.gas_used += sample.gas_used

    # ==================== 视图 ====================

    @property
    def contract_count(self) -> int:
        return len(self._contracts)

    def get_contract(self, address: str) -> Optional[ContractRecord]:
        return self._contracts.get(address.lower())

    def most_active_contracts(self, limit: Optional[int] = None) -> list[ContractRecord]:
        """按交互次数降序，次数相同保持首次观测顺序"""
        self._require_started()
        ranked = sorted(self._contracts.values(), key=lambda r: r.total_interactions, reverse=True)
        return ranked if limit is None else ranked[:limit]

    def popular_functions(self, limit: Optional[int] = None) -> list[FunctionStat]:
        """按调用次数降序"""
        self._require_started()
        ranked = sorted(self._functions.values(), key=lambda f: f.call_count, reverse=True)
        return ranked if limit is None else ranked[:limit]

    def type_counts(self) -> dict[str, int]:
        self._require_started()
        counts: dict[str, int] = {}
        for record in self._contracts.values():
            counts[record.contract_type.value] = counts.get(record.contract_type.value, 0) + 1
        return counts

    def type_distribution(self) -> list[TypeShare]:
        """类型分布，百分比四舍五入为整数；没有合约时为空"""
        counts = self.type_counts()
        total = sum(counts.values())
        if total == 0:
            return []
        shares = [
            TypeShare(
                contract_type=ContractType(name),
                count=count,
                percentage=whole_percent(count, total),
            )
            for name, count in counts.items()
        ]
        return sorted(shares, key=lambda s: s.count, reverse=True)

    def recent_deployments(self, limit: Optional[int] = None) -> list[ContractRecord]:
        """观测到部署的合约，按部署区块降序"""
        self._require_started()
        deployed = [r for r in self._contracts.values() if r.deployment_observed]
        ranked = sorted(deployed, key=lambda r: r.creation_block, reverse=True)
        return ranked if limit is None else ranked[:limit]

    def total_function_calls(self) -> int:
        self._require_started()
        return sum(stat.call_count for stat in self._functions.values())

    def total_interactions(self) -> int:
        self._require_started()
        return sum(record.total_interactions for record in self._contracts.values())
