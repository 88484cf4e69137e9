"""
合约分析器

组合采样器、分类器与聚合器，对外提供：
- discover_active_contracts: 最活跃合约
- get_popular_functions: 热门函数
- get_contracts_by_type: 合约类型计数
- get_new_deployments: 新部署合约
- summarize_ecosystem: 以上四项并发执行后的汇总
"""
import asyncio
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Optional

from src.analytics.aggregator import ContractAggregator
from src.analytics.records import ChainClient, ContractRecord, FunctionStat, SampledTransaction, TypeShare
from src.analytics.sampler import BlockSampler, SamplerStats
from src.utils.config import Settings, config
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ScanResult:
    """一次扫描的聚合结果与诊断信息"""

    aggregator: ContractAggregator
    stats: SamplerStats
    blocks_window: int
    timed_out: bool = False
    elapsed_ms: float = 0.0
    samples: list[SampledTransaction] = field(default_factory=list)

    @property
    def unavailable(self) -> bool:
        return self.stats.chain_unavailable

    @property
    def partial(self) -> bool:
        return self.timed_out or self.stats.degraded


@dataclass
class EcosystemReport:
    """生态汇总"""

    active_contracts: list[ContractRecord]
    popular_functions: list[FunctionStat]
    type_distribution: list[TypeShare]
    new_deployments: list[ContractRecord]
    total_active_contracts: int
    total_function_calls: int
    scans: list[ScanResult] = field(default_factory=list)

    @property
    def most_popular_type(self) -> str:
        if not self.type_distribution:
            return "Unknown"
        return self.type_distribution[0].contract_type.value


class ContractAnalyzer:
    """合约活动分析器"""

    def __init__(self, chain_client: ChainClient, settings: Optional[Settings] = None):
        self.chain_client = chain_client
        self.settings = settings or config.settings
        logger.info(
            "contract_analyzer_initialized",
            sample_ceiling=self.settings.scan_sample_ceiling,
            block_delay_ms=self.settings.scan_block_delay_ms,
            scan_timeout_seconds=self.settings.scan_timeout_seconds,
        )

    def sampler(self, sample_ceiling: Optional[int] = None) -> BlockSampler:
        return BlockSampler(
            self.chain_client,
            sample_ceiling=sample_ceiling or self.settings.scan_sample_ceiling,
            block_delay=self.settings.scan_block_delay_ms / 1000,
        )

    async def scan(
        self,
        blocks_to_analyze: int,
        block_step: int = 1,
        sample_ceiling: Optional[int] = None,
        fetch_receipts: bool = True,
        keep_samples: bool = False,
    ) -> ScanResult:
        """
        采样最近 blocks_to_analyze 个区块并聚合

        keep_samples=True 时同时保留原始采样，供需要逐笔统计的工具使用。
        超过 SCAN_TIMEOUT_SECONDS 时停止采样，返回已聚合的部分结果（timed_out=True）。
        链不可用时返回空聚合，不抛异常。
        """
        start_time = time.time()
        aggregator = ContractAggregator()
        aggregator.start()
        stats = SamplerStats()
        timed_out = False
        samples: list[SampledTransaction] = []

        sampler = self.sampler(sample_ceiling)
        stream = sampler.sample(
            blocks_to_analyze,
            block_step=block_step,
            fetch_receipts=fetch_receipts,
            stats=stats,
        )
        try:
            async with asyncio.timeout(self.settings.scan_timeout_seconds):
                async with aclosing(stream) as sampled:
                    async for sample in sampled:
                        aggregator.fold(sample)
                        if keep_samples:
                            samples.append(sample)
        except TimeoutError:
            timed_out = True
            logger.warning(
                "contract_scan_timeout",
                blocks=blocks_to_analyze,
                blocks_scanned=stats.blocks_scanned,
                timeout_seconds=self.settings.scan_timeout_seconds,
            )

        elapsed_ms = round((time.time() - start_time) * 1000, 2)
        logger.info(
            "contract_scan_complete",
            blocks=blocks_to_analyze,
            block_step=block_step,
            head_block=stats.head_block,
            blocks_scanned=stats.blocks_scanned,
            blocks_failed=stats.blocks_failed,
            transactions_sampled=stats.transactions_sampled,
            contracts=aggregator.contract_count,
            elapsed_ms=elapsed_ms,
        )
        return ScanResult(
            aggregator=aggregator,
            stats=stats,
            blocks_window=blocks_to_analyze,
            timed_out=timed_out,
            elapsed_ms=elapsed_ms,
            samples=samples,
        )

    def deployment_window(self, hours_back: int) -> int:
        """新部署扫描的区块窗口：min(上限, 小时数 * 每小时区块数)"""
        return min(self.settings.deployment_max_blocks, hours_back * self.settings.blocks_per_hour)

    async def scan_deployments(self, hours_back: int = 24) -> ScanResult:
        return await self.scan(
            self.deployment_window(hours_back),
            block_step=self.settings.deployment_block_step,
            sample_ceiling=self.settings.deployment_sample_ceiling,
        )

    # ==================== 核心操作 ====================

    async def discover_active_contracts(self, blocks_to_analyze: Optional[int] = None) -> list[ContractRecord]:
        result = await self.scan(blocks_to_analyze or self.settings.scan_blocks)
        return result.aggregator.most_active_contracts()

    async def get_popular_functions(self, limit: int = 10) -> list[FunctionStat]:
        result = await self.scan(self.settings.popular_functions_blocks)
        return result.aggregator.popular_functions(limit)

    async def get_contracts_by_type(self) -> dict[str, int]:
        result = await self.scan(self.settings.contract_types_blocks)
        return result.aggregator.type_counts()

    async def get_new_deployments(self, hours_back: int = 24) -> list[ContractRecord]:
        result = await self.scan_deployments(hours_back)
        return result.aggregator.recent_deployments()

    async def summarize_ecosystem(self, hours_back: int = 24) -> EcosystemReport:
        """并发执行四项扫描并汇总"""
        active, functions, types, deployments = await asyncio.gather(
            self.scan(self.settings.active_contracts_blocks),
            self.scan(self.settings.popular_functions_blocks),
            self.scan(self.settings.contract_types_blocks),
            self.scan_deployments(hours_back),
        )
        active_contracts = active.aggregator.most_active_contracts()
        return EcosystemReport(
            active_contracts=active_contracts,
            popular_functions=functions.aggregator.popular_functions(),
            type_distribution=types.aggregator.type_distribution(),
            new_deployments=deployments.aggregator.recent_deployments(),
            total_active_contracts=len(active_contracts),
            total_function_calls=functions.aggregator.total_function_calls(),
            scans=[active, functions, types, deployments],
        )
