"""
monitor_defi_activity 工具实现

按调用选择器把采样交易归入 DEX / Lending / Staking（对外为 yield_farming），
汇总每类协议的交易数、金额与用户数。
"""
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

import structlog

from src.analytics.classifier import ContractType, classify_contract_type
from src.analytics.contract_analyzer import ContractAnalyzer
from src.core.models import (
    ContractVolume,
    DeFiActivity,
    DeFiActivityInput,
    DeFiActivityOutput,
    DeFiProtocolType,
    ProtocolActivity,
)
from src.tools.common import build_meta, scan_warnings, status_for, wei_to_native
from src.utils.config import config

logger = structlog.get_logger()

PROTOCOL_TYPES: dict[ContractType, DeFiProtocolType] = {
    ContractType.DEX: DeFiProtocolType.DEX,
    ContractType.LENDING: DeFiProtocolType.LENDING,
    ContractType.STAKING: DeFiProtocolType.YIELD_FARMING,
}


class DeFiActivityTool:
    """monitor_defi_activity 工具"""

    def __init__(self, analyzer: ContractAnalyzer, blocks_to_analyze: Optional[int] = None):
        self.analyzer = analyzer
        self.blocks_to_analyze = blocks_to_analyze or config.settings.defi_blocks
        logger.info("defi_activity_tool_initialized", blocks=self.blocks_to_analyze)

    async def execute(self, params: DeFiActivityInput) -> DeFiActivityOutput:
        start_time = time.time()
        logger.info("defi_activity_execute_start", protocol_type=params.protocol_type, timeframe=params.timeframe)

        scan = await self.analyzer.scan(
            self.blocks_to_analyze,
            fetch_receipts=False,
            keep_samples=True,
        )
        status = status_for([scan])

        tx_counts: defaultdict[DeFiProtocolType, int] = defaultdict(int)
        volumes: defaultdict[DeFiProtocolType, int] = defaultdict(int)
        users: defaultdict[DeFiProtocolType, set] = defaultdict(set)
        contracts: dict[str, list] = {}

        for sample in scan.samples:
            tx = sample.transaction
            if not tx.to_address:
                continue
            contract_type = classify_contract_type(tx, sample.receipt)
            protocol = PROTOCOL_TYPES.get(contract_type)
            if protocol is None:
                continue
            if params.protocol_type != DeFiProtocolType.ALL and protocol != params.protocol_type:
                continue

            tx_counts[protocol] += 1
            volumes[protocol] += tx.value
            users[protocol].add(tx.from_address)
            entry = contracts.setdefault(tx.to_address, [contract_type, 0, 0])
            entry[1] += 1
            entry[2] += tx.value

        protocols = [
            ProtocolActivity(
                protocol_type=protocol,
                transactions=tx_counts[protocol],
                volume=wei_to_native(volumes[protocol]),
                unique_users=len(users[protocol]),
                avg_transaction_size=(
                    round(wei_to_native(volumes[protocol]) / tx_counts[protocol], 6) if tx_counts[protocol] else 0.0
                ),
            )
            for protocol in PROTOCOL_TYPES.values()
            if params.protocol_type in (DeFiProtocolType.ALL, protocol)
        ]
        top = sorted(contracts.items(), key=lambda item: item[1][1], reverse=True)[:5]
        activity = DeFiActivity(
            total_volume=wei_to_native(sum(volumes.values())),
            total_transactions=sum(tx_counts.values()),
            unique_users=len(set().union(*users.values())) if users else 0,
            protocols=protocols,
            top_contracts=[
                ContractVolume(
                    address=address,
                    contract_type=contract_type.value,
                    transactions=count,
                    volume=wei_to_native(volume),
                )
                for address, (contract_type, count, volume) in top
            ],
        )

        logger.info(
            "defi_activity_execute_complete",
            transactions=activity.total_transactions,
            status=status,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return DeFiActivityOutput(
            protocol_type=params.protocol_type,
            timeframe=params.timeframe,
            blocks_analyzed=scan.stats.blocks_scanned,
            activity=activity,
            status=status,
            source_meta=[build_meta("network/defi", config.get_ttl("monitor_defi_activity"), start_time, status)],
            warnings=scan_warnings(scan, "defi activity"),
            as_of_utc=datetime.now(timezone.utc),
        )
