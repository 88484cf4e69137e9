"""
analyze_contract_ecosystem 工具实现

并发执行活跃合约、热门函数、类型分布与新部署四项扫描后汇总。
"""
import time
from datetime import datetime, timezone

import structlog

from src.analytics.contract_analyzer import ContractAnalyzer
from src.core.models import EcosystemInput, EcosystemOutput, EcosystemSummary
from src.tools.common import (
    build_meta,
    scan_warnings,
    status_for,
    to_active_contract,
    to_deployment,
    to_function_usage,
    to_type_share,
)
from src.utils.config import config

logger = structlog.get_logger()

SCAN_LABELS = ("active contracts", "popular functions", "contract types", "new deployments")


class EcosystemTool:
    """analyze_contract_ecosystem 工具"""

    def __init__(self, analyzer: ContractAnalyzer):
        self.analyzer = analyzer
        logger.info("ecosystem_tool_initialized")

    async def execute(self, params: EcosystemInput) -> EcosystemOutput:
        start_time = time.time()
        logger.info("ecosystem_execute_start")

        report = await self.analyzer.summarize_ecosystem()
        status = status_for(report.scans)

        warnings: list[str] = []
        for scan, label in zip(report.scans, SCAN_LABELS):
            warnings.extend(scan_warnings(scan, label))

        summary = EcosystemSummary(
            total_active_contracts=report.total_active_contracts,
            total_function_calls=report.total_function_calls,
            most_popular_type=report.most_popular_type,
            new_deployments_today=len(report.new_deployments),
        )

        logger.info(
            "ecosystem_execute_complete",
            status=status,
            active_contracts=summary.total_active_contracts,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return EcosystemOutput(
            summary=summary,
            active_contracts=[to_active_contract(r) for r in report.active_contracts[:5]],
            popular_functions=[to_function_usage(f) for f in report.popular_functions[:5]],
            contract_types=[to_type_share(s) for s in report.type_distribution],
            recent_deployments=[to_deployment(r) for r in report.new_deployments[:3]],
            status=status,
            source_meta=[
                build_meta("contracts/ecosystem", config.get_ttl("analyze_contract_ecosystem"), start_time, status)
            ],
            warnings=warnings,
            as_of_utc=datetime.now(timezone.utc),
        )
