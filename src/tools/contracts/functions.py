"""
get_contract_functions 工具实现
"""
import time
from datetime import datetime, timezone

import structlog

from src.analytics.contract_analyzer import ContractAnalyzer
from src.core.models import ContractFunctionsInput, ContractFunctionsOutput
from src.tools.common import build_meta, scan_warnings, status_for, to_function_usage
from src.utils.config import config

logger = structlog.get_logger()


class ContractFunctionsTool:
    """get_contract_functions 工具：最常被调用的函数选择器"""

    def __init__(self, analyzer: ContractAnalyzer):
        self.analyzer = analyzer
        logger.info("contract_functions_tool_initialized")

    async def execute(self, params: ContractFunctionsInput) -> ContractFunctionsOutput:
        start_time = time.time()
        logger.info("contract_functions_execute_start", limit=params.limit)

        scan = await self.analyzer.scan(config.settings.popular_functions_blocks)
        aggregator = scan.aggregator
        status = status_for([scan])
        ranked = aggregator.popular_functions()

        logger.info(
            "contract_functions_execute_complete",
            functions=len(ranked),
            status=status,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return ContractFunctionsOutput(
            total_functions=len(ranked),
            total_calls=aggregator.total_function_calls(),
            functions=[to_function_usage(stat) for stat in ranked[: params.limit]],
            status=status,
            source_meta=[
                build_meta("contracts/functions", config.get_ttl("get_contract_functions"), start_time, status)
            ],
            warnings=scan_warnings(scan, "contract functions"),
            as_of_utc=datetime.now(timezone.utc),
        )
