"""
get_active_contracts 工具实现

按交互次数列出最近区块中最活跃的合约。
"""
import time
from datetime import datetime, timezone
from typing import Optional

import structlog

from src.analytics.contract_analyzer import ContractAnalyzer
from src.core.models import ActiveContractsInput, ActiveContractsOutput
from src.tools.common import build_meta, scan_warnings, status_for, to_active_contract
from src.utils.config import config

logger = structlog.get_logger()


class ActiveContractsTool:
    """get_active_contracts 工具"""

    def __init__(self, analyzer: ContractAnalyzer, blocks_to_analyze: Optional[int] = None):
        self.analyzer = analyzer
        self.blocks_to_analyze = blocks_to_analyze or config.settings.active_contracts_blocks
        logger.info("active_contracts_tool_initialized", blocks=self.blocks_to_analyze)

    async def execute(self, params: ActiveContractsInput) -> ActiveContractsOutput:
        start_time = time.time()
        logger.info("active_contracts_execute_start", limit=params.limit, timeframe=params.timeframe)

        scan = await self.analyzer.scan(self.blocks_to_analyze)
        status = status_for([scan])
        contracts = [to_active_contract(r) for r in scan.aggregator.most_active_contracts(params.limit)]

        logger.info(
            "active_contracts_execute_complete",
            contracts=len(contracts),
            status=status,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return ActiveContractsOutput(
            timeframe=params.timeframe,
            blocks_analyzed=scan.stats.blocks_scanned,
            contracts=contracts,
            status=status,
            source_meta=[
                build_meta("contracts/active", config.get_ttl("get_active_contracts"), start_time, status)
            ],
            warnings=scan_warnings(scan, "active contracts"),
            as_of_utc=datetime.now(timezone.utc),
        )
