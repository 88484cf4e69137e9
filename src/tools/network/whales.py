"""
detect_whales 工具实现

扫描最近区块的采样交易，筛出金额不低于阈值的大额转账，按金额降序返回。
"""
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog

from src.analytics.classifier import categorize_transaction
from src.analytics.contract_analyzer import ContractAnalyzer
from src.core.models import DetectWhalesInput, DetectWhalesOutput, WhaleTransaction
from src.tools.common import WEI_PER_NATIVE, build_meta, isoformat, scan_warnings, status_for, wei_to_native
from src.utils.config import config

logger = structlog.get_logger()


class DetectWhalesTool:
    """detect_whales 工具"""

    def __init__(self, analyzer: ContractAnalyzer, blocks_to_analyze: Optional[int] = None):
        self.analyzer = analyzer
        self.blocks_to_analyze = blocks_to_analyze or config.settings.whale_blocks
        logger.info("detect_whales_tool_initialized", blocks=self.blocks_to_analyze)

    async def execute(self, params: DetectWhalesInput) -> DetectWhalesOutput:
        start_time = time.time()
        logger.info("detect_whales_execute_start", threshold=params.threshold, timeframe=params.timeframe)

        scan = await self.analyzer.scan(
            self.blocks_to_analyze,
            sample_ceiling=config.settings.whale_sample_ceiling,
            fetch_receipts=False,
            keep_samples=True,
        )
        status = status_for([scan])

        # 以 wei 比较，避免浮点误差
        threshold_wei = Decimal(str(params.threshold)) * WEI_PER_NATIVE
        whales = [
            WhaleTransaction(
                hash=sample.transaction.hash,
                from_address=sample.transaction.from_address,
                to_address=sample.transaction.to_address,
                value=wei_to_native(sample.transaction.value),
                block_number=sample.block_number,
                timestamp=isoformat(sample.timestamp),
                category=categorize_transaction(sample.transaction).value,
            )
            for sample in scan.samples
            if sample.transaction.value >= threshold_wei
        ]
        whales.sort(key=lambda w: w.value, reverse=True)

        logger.info(
            "detect_whales_execute_complete",
            scanned=len(scan.samples),
            whales=len(whales),
            status=status,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return DetectWhalesOutput(
            threshold=params.threshold,
            timeframe=params.timeframe,
            transactions_scanned=len(scan.samples),
            whales=whales,
            status=status,
            source_meta=[build_meta("network/whales", config.get_ttl("detect_whales"), start_time, status)],
            warnings=scan_warnings(scan, "whale detection"),
            as_of_utc=datetime.now(timezone.utc),
        )
