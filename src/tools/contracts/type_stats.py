"""
get_contract_types 工具实现
"""
import time
from datetime import datetime, timezone

import structlog

from src.analytics.contract_analyzer import ContractAnalyzer
from src.core.models import ContractTypesInput, ContractTypesOutput
from src.tools.common import build_meta, scan_warnings, status_for, to_type_share
from src.utils.config import config

logger = structlog.get_logger()


class ContractTypesTool:
    """get_contract_types 工具：合约类型分布"""

    def __init__(self, analyzer: ContractAnalyzer):
        self.analyzer = analyzer
        logger.info("contract_types_tool_initialized")

    async def execute(self, params: ContractTypesInput) -> ContractTypesOutput:
        start_time = time.time()
        logger.info("contract_types_execute_start")

        scan = await self.analyzer.scan(config.settings.contract_types_blocks)
        status = status_for([scan])
        distribution = scan.aggregator.type_distribution()

        logger.info(
            "contract_types_execute_complete",
            types=len(distribution),
            status=status,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return ContractTypesOutput(
            total_contracts=scan.aggregator.contract_count,
            distribution=[to_type_share(share) for share in distribution],
            status=status,
            source_meta=[build_meta("contracts/types", config.get_ttl("get_contract_types"), start_time, status)],
            warnings=scan_warnings(scan, "contract types"),
            as_of_utc=datetime.now(timezone.utc),
        )
