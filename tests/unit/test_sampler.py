"""
BlockSampler单元测试
"""
import pytest

from src.analytics.sampler import BlockSampler, SamplerStats


async def collect(sampler: BlockSampler, blocks: int, **kwargs):
    stats = SamplerStats()
    samples = [s async for s in sampler.sample(blocks, stats=stats, **kwargs)]
    return samples, stats


@pytest.mark.unit
class TestSelectHashes:
    """步长抽样测试"""

    def test_500_hashes_ceiling_50(self):
        """500 笔交易、上限 50 时步长为 10"""
        hashes = [f"0x{i}" for i in range(500)]
        selected = BlockSampler.select_hashes(hashes, 50)

        assert len(selected) == 50
        assert selected[0] == "0x0"
        assert selected[1] == "0x10"
        assert selected[-1] == "0x490"

    def test_fewer_hashes_than_ceiling(self):
        hashes = ["0xa", "0xb", "0xc"]
        assert BlockSampler.select_hashes(hashes, 50) == hashes

    def test_non_divisible_count_stays_under_twice_ceiling(self):
        hashes = [f"0x{i}" for i in range(99)]
        selected = BlockSampler.select_hashes(hashes, 50)
        assert len(selected) == 99
        assert len(selected) < 2 * 50

    def test_empty(self):
        assert BlockSampler.select_hashes([], 50) == []


@pytest.mark.unit
class TestBlockHeights:
    """区块窗口测试"""

    def test_descending_window(self):
        assert BlockSampler.block_heights(100, 3) == [100, 99, 98]

    def test_block_step(self):
        assert BlockSampler.block_heights(100, 30, block_step=10) == [100, 90, 80]

    def test_never_below_genesis(self):
        assert BlockSampler.block_heights(2, 10) == [2, 1, 0]


@pytest.mark.unit
class TestSample:
    """采样流程测试"""

    @pytest.mark.asyncio
    async def test_yields_pairs_newest_first(self, fake_chain):
        fake_chain.add_tx(100, "0xa")
        fake_chain.add_tx(99, "0xb")

        samples, stats = await collect(BlockSampler(fake_chain, block_delay=0), 2)

        assert [s.transaction.hash for s in samples] == ["0xa", "0xb"]
        assert samples[0].block_number == 100
        assert samples[0].receipt.gas_used == 21_000
        assert stats.blocks_scanned == 2
        assert stats.transactions_sampled == 2

    @pytest.mark.asyncio
    async def test_head_failure_yields_nothing(self, fake_chain):
        fake_chain.fail_head = True

        samples, stats = await collect(BlockSampler(fake_chain, block_delay=0), 5)

        assert samples == []
        assert stats.chain_unavailable is True

    @pytest.mark.asyncio
    async def test_all_blocks_failing_yields_nothing(self, fake_chain):
        fake_chain.failing_blocks = {100, 99, 98}

        samples, stats = await collect(BlockSampler(fake_chain, block_delay=0), 3)

        assert samples == []
        assert stats.blocks_failed == 3
        assert stats.chain_unavailable is True

    @pytest.mark.asyncio
    async def test_missing_block_is_skipped(self, fake_chain):
        fake_chain.add_tx(100, "0xa")
        # 99 不存在

        samples, stats = await collect(BlockSampler(fake_chain, block_delay=0), 2)

        assert len(samples) == 1
        assert stats.blocks_failed == 1
        assert stats.degraded is True
        assert stats.chain_unavailable is False

    @pytest.mark.asyncio
    async def test_failed_transaction_is_skipped(self, fake_chain):
        fake_chain.add_tx(100, "0xa")
        fake_chain.add_tx(100, "0xb")
        fake_chain.failing_receipts = {"0xa"}

        samples, stats = await collect(BlockSampler(fake_chain, block_delay=0), 1)

        assert [s.transaction.hash for s in samples] == ["0xb"]
        assert stats.transactions_failed == 1

    @pytest.mark.asyncio
    async def test_without_receipts(self, fake_chain):
        fake_chain.add_tx(100, "0xa")

        samples, _ = await collect(BlockSampler(fake_chain, block_delay=0), 1, fetch_receipts=False)

        assert samples[0].receipt is None
        assert samples[0].gas_used == 0
        assert fake_chain.calls["get_transaction_receipt"] == 0

    @pytest.mark.asyncio
    async def test_ceiling_limits_fetches(self, fake_chain):
        for i in range(20):
            fake_chain.add_tx(100, f"0x{i:02d}")

        samples, stats = await collect(BlockSampler(fake_chain, sample_ceiling=5, block_delay=0), 1)

        assert len(samples) == 5
        assert stats.transactions_seen == 20
        assert fake_chain.calls["get_transaction"] == 5

    @pytest.mark.asyncio
    async def test_delay_only_between_blocks(self, fake_chain, monkeypatch):
        """延迟只发生在区块之间，不在交易之间"""
        for height in (98, 99, 100):
            for i in range(4):
                fake_chain.add_tx(height, f"0x{height}{i}")
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr("src.analytics.sampler.asyncio.sleep", fake_sleep)

        samples, _ = await collect(BlockSampler(fake_chain, block_delay=0.1), 3)

        assert len(samples) == 12
        assert sleeps == [0.1, 0.1]
