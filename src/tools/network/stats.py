"""
get_network_stats 工具实现

基于最近 NETWORK_STATS_BLOCKS 个区块计算：
- TPS（交易数 / 区块时间跨度）与平均出块间隔
- 最新区块的 gas 利用率
- 当前 gas 价格（gwei）
- 最新区块前 TX_TYPE_SAMPLE 笔交易的类别分布与转账金额
"""
import asyncio
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

import structlog

from src.analytics.classifier import categorize_transaction
from src.analytics.records import ChainClient
from src.core.models import ChainBlock, DataStatus, NetworkStats, NetworkStatsInput, NetworkStatsOutput
from src.tools.common import build_meta, category_shares, percentage, wei_to_gwei, wei_to_native
from src.utils.config import config

logger = structlog.get_logger()


class NetworkStatsTool:
    """get_network_stats 工具"""

    def __init__(self, chain_client: ChainClient):
        self.chain_client = chain_client
        logger.info("network_stats_tool_initialized")

    async def _recent_blocks(self, head: int, count: int, warnings: list[str]) -> list[ChainBlock]:
        """按高度降序获取区块，单个失败时跳过"""
        blocks: list[ChainBlock] = []
        failed = 0
        for height in range(head, max(head - count, -1), -1):
            try:
                block = await self.chain_client.get_block(height)
            except Exception as exc:
                logger.warning("network_stats_block_failed", block=height, error=str(exc))
                block = None
            if block is None:
                failed += 1
                continue
            blocks.append(block)
        if failed:
            warnings.append(f"{failed} of {count} recent blocks could not be fetched")
        return blocks

    async def _sample_transaction_types(self, block: ChainBlock, warnings: list[str]) -> tuple[Counter, int]:
        hashes = (block.transactions or [])[: config.settings.tx_type_sample]
        results = await asyncio.gather(
            *(self.chain_client.get_transaction(h) for h in hashes),
            return_exceptions=True,
        )
        categories: Counter = Counter()
        volume_wei = 0
        failed = 0
        for tx in results:
            if tx is None or isinstance(tx, Exception):
                failed += 1
                continue
            categories[categorize_transaction(tx)] += 1
            volume_wei += tx.value
        if failed:
            warnings.append(f"{failed} of {len(hashes)} sampled transactions could not be fetched")
        return categories, volume_wei

    async def execute(self, params: NetworkStatsInput) -> NetworkStatsOutput:
        start_time = time.time()
        settings = config.settings
        logger.info("network_stats_execute_start", timeframe=params.timeframe)

        warnings: list[str] = []
        stats = NetworkStats(chain=settings.chain_name)
        status = DataStatus.OK

        head: Optional[int] = None
        try:
            head = await self.chain_client.get_block_height()
        except Exception as exc:
            logger.warning("network_stats_head_failed", error=str(exc))
            warnings.append(f"chain RPC unavailable: {exc}")

        blocks = await self._recent_blocks(head, settings.network_stats_blocks, warnings) if head is not None else []

        if not blocks:
            status = DataStatus.UNAVAILABLE
            if head is not None:
                warnings.append("no recent blocks could be fetched")
        else:
            latest, oldest = blocks[0], blocks[-1]
            stats.block_number = latest.number
            stats.total_transactions = len(latest.transactions or [])
            total_txs = sum(len(b.transactions or []) for b in blocks)
            span_seconds = latest.timestamp - oldest.timestamp
            if span_seconds > 0:
                stats.current_tps = round(total_txs / span_seconds, 2)
            if len(blocks) > 1:
                stats.avg_block_time_ms = round(span_seconds * 1000 / (len(blocks) - 1), 2)
            else:
                stats.avg_block_time_ms = float(settings.block_time_ms)
            stats.gas_utilization = percentage(latest.gas_used, latest.gas_limit)
            stats.blocks_analyzed = len(blocks)

            categories, volume_wei = await self._sample_transaction_types(latest, warnings)
            stats.transaction_types = category_shares(categories)
            stats.sampled_volume = wei_to_native(volume_wei)

            try:
                fee_data = await self.chain_client.get_fee_data()
                if fee_data.gas_price is not None:
                    stats.avg_gas_price_gwei = wei_to_gwei(fee_data.gas_price)
            except Exception as exc:
                logger.warning("network_stats_fee_data_failed", error=str(exc))
                warnings.append(f"gas price unavailable: {exc}")

            if warnings:
                status = DataStatus.PARTIAL

        logger.info(
            "network_stats_execute_complete",
            status=status,
            block=stats.block_number,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return NetworkStatsOutput(
            timeframe=params.timeframe,
            stats=stats,
            status=status,
            source_meta=[build_meta("network/stats", config.get_ttl("get_network_stats"), start_time, status)],
            warnings=warnings,
            as_of_utc=datetime.now(timezone.utc),
        )
