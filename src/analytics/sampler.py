"""
限速区块采样器

从链头开始向下遍历最近的区块，每个区块按步长抽取交易哈希，
并发获取交易与回执，以 SampledTransaction 的形式逐条产出。
采样器本身不持有聚合状态，只记录 SamplerStats 诊断信息。
"""
import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Sequence

from src.analytics.records import ChainClient, SampledTransaction
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SamplerStats:
    """一次采样的诊断计数"""

    head_block: Optional[int] = None
    blocks_requested: int = 0
    blocks_scanned: int = 0
    blocks_failed: int = 0
    transactions_seen: int = 0
    transactions_selected: int = 0
    transactions_sampled: int = 0
    transactions_failed: int = 0

    @property
    def chain_unavailable(self) -> bool:
        """链头获取失败，或请求的区块全部失败"""
        if self.head_block is None:
            return True
        return self.blocks_requested > 0 and self.blocks_scanned == 0

    @property
    def degraded(self) -> bool:
        return self.blocks_failed > 0 or self.transactions_failed > 0


class BlockSampler:
    """区块采样器"""

    def __init__(
        self,
        chain_client: ChainClient,
        sample_ceiling: int = 50,
        block_delay: float = 0.1,
    ):
        """
        Args:
            chain_client: 链访问客户端
            sample_ceiling: 每个区块最多抽取的交易数（决定步长）
            block_delay: 相邻区块之间的固定等待（秒）
        """
        self.chain_client = chain_client
        self.sample_ceiling = sample_ceiling
        self.block_delay = block_delay

    @staticmethod
    def select_hashes(hashes: Sequence[str], ceiling: int) -> list[str]:
        """
        按步长抽样交易哈希

        stride = max(1, n // min(ceiling, n))，取下标 0, stride, 2*stride, ...
        结果数量不超过 2 * ceiling。
        """
        n = len(hashes)
        if n == 0 or ceiling <= 0:
            return []
        sample_size = min(ceiling, n)
        stride = max(1, n // sample_size)
        return list(hashes[::stride])

    @staticmethod
    def block_heights(head: int, blocks_to_analyze: int, block_step: int = 1) -> list[int]:
        """从 head 向下的区块高度窗口，不低于 0"""
        lowest = max(head - blocks_to_analyze + 1, 0)
        return list(range(head, lowest - 1, -max(1, block_step)))

    async def sample(
        self,
        blocks_to_analyze: int,
        block_step: int = 1,
        fetch_receipts: bool = True,
        stats: Optional[SamplerStats] = None,
    ) -> AsyncIterator[SampledTransaction]:
        """
        逐条产出采样交易

        Args:
            blocks_to_analyze: 窗口大小（区块数）
            block_step: 窗口内的区块步长
            fetch_receipts: 是否同时获取回执
            stats: 可选的诊断计数对象，由调用方持有
        """
        stats = stats if stats is not None else SamplerStats()

        try:
            head = await self.chain_client.get_block_height()
        except Exception as e:
            logger.warning("sampler_head_unavailable", error=str(e))
            return
        stats.head_block = head

        heights = self.block_heights(head, blocks_to_analyze, block_step)
        stats.blocks_requested = len(heights)

        for index, height in enumerate(heights):
            if index > 0 and self.block_delay > 0:
                await asyncio.sleep(self.block_delay)

            try:
                block = await self.chain_client.get_block(height)
            except Exception as e:
                stats.blocks_failed += 1
                logger.warning("sampler_block_fetch_failed", block=height, error=str(e))
                continue

            if block is None or block.transactions is None:
                stats.blocks_failed += 1
                logger.warning("sampler_block_missing", block=height)
                continue

            stats.blocks_scanned += 1
            stats.transactions_seen += len(block.transactions)
            selected = self.select_hashes(block.transactions, self.sample_ceiling)
            stats.transactions_selected += len(selected)
            logger.debug(
                "sampler_block",
                block=height,
                transactions=len(block.transactions),
                selected=len(selected),
            )

            for tx_hash in selected:
                sample = await self.fetch_pair(tx_hash, block.number, block.timestamp, fetch_receipts)
                if sample is None:
                    stats.transactions_failed += 1
                    continue
                stats.transactions_sampled += 1
                yield sample

    async def fetch_pair(
        self,
        tx_hash: str,
        block_number: int,
        block_timestamp: int,
        fetch_receipts: bool,
    ) -> Optional[SampledTransaction]:
        """并发获取交易与回执，任一失败或缺失时返回 None"""
        calls = [self.chain_client.get_transaction(tx_hash)]
        if fetch_receipts:
            calls.append(self.chain_client.get_transaction_receipt(tx_hash))
        results = await asyncio.gather(*calls, return_exceptions=True)
        tx = results[0]
        receipt = results[1] if fetch_receipts else None

        for part in (tx, receipt):
            if isinstance(part, BaseException):
                if isinstance(part, asyncio.CancelledError):
                    raise part
                logger.warning("sampler_transaction_fetch_failed", tx_hash=tx_hash, error=str(part))
                return None

        if tx is None or (fetch_receipts and receipt is None):
            logger.warning("sampler_transaction_missing", tx_hash=tx_hash)
            return None

        return SampledTransaction(
            transaction=tx,
            receipt=receipt,
            block_number=block_number,
            block_timestamp=block_timestamp,
        )
