"""
analyze_transactions 工具实现

分析最新区块中的前 min(limit, TX_ANALYSIS_MAX) 笔交易：成功率、平均 gas、
平均金额、类别分布与最活跃合约。
"""
import time
from collections import Counter
from datetime import datetime, timezone

import structlog

from src.analytics.aggregator import ContractAggregator
from src.analytics.classifier import categorize_transaction
from src.analytics.records import ChainClient
from src.analytics.sampler import BlockSampler
from src.core.models import (
    AnalyzeTransactionsInput,
    AnalyzeTransactionsOutput,
    ContractInteractionCount,
    DataStatus,
    TransactionAnalysis,
)
from src.tools.common import build_meta, category_shares, percentage, wei_to_native
from src.utils.config import config

logger = structlog.get_logger()


class AnalyzeTransactionsTool:
    """analyze_transactions 工具"""

    def __init__(self, chain_client: ChainClient):
        self.chain_client = chain_client
        self.sampler = BlockSampler(chain_client)
        logger.info("analyze_transactions_tool_initialized")

    async def execute(self, params: AnalyzeTransactionsInput) -> AnalyzeTransactionsOutput:
        start_time = time.time()
        logger.info(
            "analyze_transactions_execute_start",
            limit=params.limit,
            contract_address=params.contract_address,
        )

        warnings: list[str] = []
        analysis = TransactionAnalysis()
        status = DataStatus.OK

        block = None
        try:
            block = await self.chain_client.get_block("latest")
        except Exception as exc:
            logger.warning("analyze_transactions_block_failed", error=str(exc))
            warnings.append(f"chain RPC unavailable: {exc}")

        if block is None or block.transactions is None:
            status = DataStatus.UNAVAILABLE
            if not warnings:
                warnings.append("latest block could not be fetched")
        else:
            analysis.block_number = block.number
            cap = min(params.limit, config.settings.tx_analysis_max)
            if params.limit > cap:
                warnings.append(f"analysis capped at the first {cap} transactions of block {block.number}")

            aggregator = ContractAggregator()
            aggregator.start()
            categories: Counter = Counter()
            succeeded = gas_total = value_total = failed = 0

            selected = block.transactions[:cap]
            for tx_hash in selected:
                sample = await self.sampler.fetch_pair(tx_hash, block.number, block.timestamp, True)
                if sample is None:
                    failed += 1
                    continue
                tx = sample.transaction
                if params.contract_address and tx.to_address != params.contract_address:
                    continue
                analysis.analyzed_count += 1
                if sample.receipt.status == 1:
                    succeeded += 1
                gas_total += sample.gas_used
                value_total += tx.value
                categories[categorize_transaction(tx)] += 1
                aggregator.fold(sample)

            if failed:
                warnings.append(f"{failed} of {len(selected)} transactions could not be fetched")
                status = DataStatus.PARTIAL

            count = analysis.analyzed_count
            if count:
                analysis.success_rate = percentage(succeeded, count)
                analysis.avg_gas_used = round(gas_total / count, 2)
                analysis.avg_value = round(wei_to_native(value_total) / count, 4)
            analysis.categories = category_shares(categories)
            analysis.top_contracts = [
                ContractInteractionCount(
                    address=record.address,
                    contract_type=record.contract_type.value,
                    interactions=record.total_interactions,
                )
                for record in aggregator.most_active_contracts(5)
            ]

        logger.info(
            "analyze_transactions_execute_complete",
            analyzed=analysis.analyzed_count,
            status=status,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return AnalyzeTransactionsOutput(
            limit=params.limit,
            contract_address=params.contract_address,
            analysis=analysis,
            status=status,
            source_meta=[
                build_meta("transactions/analyze", config.get_ttl("analyze_transactions"), start_time, status)
            ],
            warnings=warnings,
            as_of_utc=datetime.now(timezone.utc),
        )
