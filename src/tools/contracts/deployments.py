"""
get_new_deployments 工具实现

在最近的区块窗口内（每隔 DEPLOYMENT_BLOCK_STEP 个区块抽一个）查找合约部署交易。
"""
import time
from datetime import datetime, timezone

import structlog

from src.analytics.contract_analyzer import ContractAnalyzer
from src.core.models import NewDeploymentsInput, NewDeploymentsOutput
from src.tools.common import build_meta, scan_warnings, status_for, to_deployment
from src.utils.config import config

logger = structlog.get_logger()


class NewDeploymentsTool:
    """get_new_deployments 工具"""

    def __init__(self, analyzer: ContractAnalyzer):
        self.analyzer = analyzer
        logger.info("new_deployments_tool_initialized")

    async def execute(self, params: NewDeploymentsInput) -> NewDeploymentsOutput:
        start_time = time.time()
        window = self.analyzer.deployment_window(params.hours)
        logger.info("new_deployments_execute_start", hours=params.hours, blocks_window=window)

        scan = await self.analyzer.scan_deployments(params.hours)
        status = status_for([scan])
        deployments = [to_deployment(r) for r in scan.aggregator.recent_deployments()]

        warnings = scan_warnings(scan, "new deployments")
        if window < params.hours * config.settings.blocks_per_hour:
            warnings.append(
                f"Search window capped at the latest {window} blocks "
                f"(every {config.settings.deployment_block_step}th block sampled)"
            )

        logger.info(
            "new_deployments_execute_complete",
            deployments=len(deployments),
            status=status,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return NewDeploymentsOutput(
            hours=params.hours,
            blocks_window=window,
            total_deployments=len(deployments),
            deployments=deployments,
            status=status,
            source_meta=[
                build_meta("contracts/deployments", config.get_ttl("get_new_deployments"), start_time, status)
            ],
            warnings=warnings,
            as_of_utc=datetime.now(timezone.utc),
        )
