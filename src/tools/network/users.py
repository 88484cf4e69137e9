"""
get_user_behavior 工具实现

两种模式：
- 指定 address：该地址在采样窗口内的发送记录，加上账户 nonce
- 未指定：采样窗口内全部发送方的活跃度、留存与交易模式
"""
import time
from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Optional

import structlog

from src.analytics.classifier import categorize_transaction
from src.analytics.contract_analyzer import ContractAnalyzer, ScanResult
from src.core.models import AddressBehavior, NetworkBehavior, UserBehaviorInput, UserBehaviorOutput
from src.tools.common import build_meta, category_shares, percentage, scan_warnings, status_for, wei_to_native
from src.utils.config import config

logger = structlog.get_logger()


class UserBehaviorTool:
    """get_user_behavior 工具"""

    def __init__(self, analyzer: ContractAnalyzer, blocks_to_analyze: Optional[int] = None):
        self.analyzer = analyzer
        self.blocks_to_analyze = blocks_to_analyze or config.settings.user_behavior_blocks
        logger.info("user_behavior_tool_initialized", blocks=self.blocks_to_analyze)

    async def _address_behavior(self, address: str, scan: ScanResult, warnings: list[str]) -> AddressBehavior:
        sent = [s for s in scan.samples if s.transaction.from_address == address]
        contracts = Counter(s.transaction.to_address for s in sent if s.transaction.to_address)

        lifetime: Optional[int] = None
        try:
            lifetime = await self.analyzer.chain_client.get_transaction_count(address)
        except Exception as e:
            logger.warning("user_behavior_nonce_failed", address=address, error=str(e))
            warnings.append(f"transaction count unavailable for {address}: {e}")

        return AddressBehavior(
            address=address,
            transaction_count=len(sent),
            lifetime_transactions=lifetime,
            total_volume=wei_to_native(sum(s.transaction.value for s in sent)),
            active_blocks=len({s.block_number for s in sent}),
            top_contracts=[addr for addr, _ in contracts.most_common(5)],
        )

    @staticmethod
    def _network_behavior(scan: ScanResult) -> NetworkBehavior:
        tx_counts: Counter = Counter()
        volumes: defaultdict[str, int] = defaultdict(int)
        blocks_seen: defaultdict[str, set] = defaultdict(set)
        patterns: Counter = Counter()

        for sample in scan.samples:
            sender = sample.transaction.from_address
            tx_counts[sender] += 1
            volumes[sender] += sample.transaction.value
            blocks_seen[sender].add(sample.block_number)
            patterns[categorize_transaction(sample.transaction)] += 1

        active = len(tx_counts)
        returning = sum(1 for blocks in blocks_seen.values() if len(blocks) > 1)
        return NetworkBehavior(
            active_users=active,
            returning_users=returning,
            avg_transactions_per_user=round(sum(tx_counts.values()) / active, 2) if active else 0.0,
            avg_volume_per_user=round(wei_to_native(sum(volumes.values())) / active, 6) if active else 0.0,
            retention_rate=percentage(returning, active),
            transaction_patterns=category_shares(patterns),
        )

    async def execute(self, params: UserBehaviorInput) -> UserBehaviorOutput:
        start_time = time.time()
        logger.info("user_behavior_execute_start", address=params.address, metric=params.metric)

        scan = await self.analyzer.scan(
            self.blocks_to_analyze,
            fetch_receipts=False,
            keep_samples=True,
        )
        status = status_for([scan])
        warnings = scan_warnings(scan, "user behavior")

        address_behavior = None
        network_behavior = None
        if params.address:
            address_behavior = await self._address_behavior(params.address, scan, warnings)
        else:
            network_behavior = self._network_behavior(scan)

        logger.info(
            "user_behavior_execute_complete",
            samples=len(scan.samples),
            status=status,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return UserBehaviorOutput(
            metric=params.metric,
            blocks_analyzed=scan.stats.blocks_scanned,
            address_behavior=address_behavior,
            network_behavior=network_behavior,
            status=status,
            source_meta=[build_meta("network/users", config.get_ttl("get_user_behavior"), start_time, status)],
            warnings=warnings,
            as_of_utc=datetime.now(timezone.utc),
        )
