"""
Pytest配置和共享fixtures
"""
import os
from collections import Counter
from typing import AsyncGenerator, Iterable, Optional, Union
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.asyncio import Redis

from src.core.data_source_registry import registry
from src.core.models import ChainBlock, ChainReceipt, ChainTransaction, FeeData
from src.utils.config import config
from src.utils.exceptions import DataSourceError, DataSourceTimeoutError

GENESIS_TIMESTAMP = 1_700_000_000


# ==================== Pytest Markers ====================

def pytest_configure(config):
    """注册自定义markers"""
    config.addinivalue_line("markers", "unit: marks fast tests without network access")
    config.addinivalue_line("markers", "live: marks tests that call a real RPC endpoint")
    config.addinivalue_line("markers", "slow: marks tests as slow running")


# ==================== Fake Chain ====================

class FakeChainClient:
    """
    内存中的确定性链

    区块、交易、回执都由测试显式添加；可以按高度或哈希注入失败。
    """

    def __init__(self, head: int = 100, block_interval: int = 1):
        self.head = head
        self.block_interval = block_interval
        self.blocks: dict[int, ChainBlock] = {}
        self.transactions: dict[str, ChainTransaction] = {}
        self.receipts: dict[str, ChainReceipt] = {}
        self.nonces: dict[str, int] = {}
        self.fee_data = FeeData(gas_price=2_500_000_000, max_priority_fee_per_gas=1_000_000_000)

        self.fail_head = False
        self.fail_fee_data = False
        self.failing_blocks: set[int] = set()
        self.failing_transactions: set[str] = set()
        self.failing_receipts: set[str] = set()
        self.calls: Counter = Counter()

    # ---------- 构造 ----------

    def add_block(
        self,
        number: int,
        timestamp: Optional[int] = None,
        gas_used: int = 0,
        gas_limit: int = 30_000_000,
    ) -> ChainBlock:
        block = ChainBlock(
            number=number,
            hash=f"0xblock{number:060x}",
            timestamp=timestamp if timestamp is not None else GENESIS_TIMESTAMP + number * self.block_interval,
            gas_used=gas_used,
            gas_limit=gas_limit,
            transactions=[],
        )
        self.blocks[number] = block
        return block

    def add_blocks(self, numbers: Iterable[int]) -> None:
        for number in numbers:
            self.add_block(number)

    def add_tx(
        self,
        block_number: int,
        tx_hash: str,
        sender: str = "0xuser1",
        to: Optional[str] = "0xcontract1",
        value: int = 0,
        data: str = "0x",
        gas_used: int = 21_000,
        status: int = 1,
        contract_address: Optional[str] = None,
    ) -> ChainTransaction:
        if block_number not in self.blocks:
            self.add_block(block_number)
        tx = ChainTransaction(
            hash=tx_hash,
            from_address=sender,
            to_address=to,
            value=value,
            input=data,
            block_number=block_number,
        )
        self.transactions[tx_hash] = tx
        self.receipts[tx_hash] = ChainReceipt(
            transaction_hash=tx_hash,
            status=status,
            gas_used=gas_used,
            contract_address=contract_address,
            block_number=block_number,
        )
        self.blocks[block_number].transactions.append(tx_hash)
        return tx

    # ---------- ChainClient ----------

    async def get_block_height(self) -> int:
        self.calls["get_block_height"] += 1
        if self.fail_head:
            raise DataSourceError("fake", "head unavailable")
        return self.head

    async def get_block(self, height_or_tag: Union[int, str]) -> Optional[ChainBlock]:
        self.calls["get_block"] += 1
        height = self.head if height_or_tag == "latest" else height_or_tag
        if height in self.failing_blocks:
            raise DataSourceTimeoutError("fake", f"block {height} timed out")
        return self.blocks.get(height)

    async def get_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
        self.calls["get_transaction"] += 1
        if tx_hash in self.failing_transactions:
            raise DataSourceTimeoutError("fake", f"tx {tx_hash} timed out")
        return self.transactions.get(tx_hash)

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[ChainReceipt]:
        self.calls["get_transaction_receipt"] += 1
        if tx_hash in self.failing_receipts:
            raise DataSourceTimeoutError("fake", f"receipt {tx_hash} timed out")
        return self.receipts.get(tx_hash)

    async def get_fee_data(self) -> FeeData:
        self.calls["get_fee_data"] += 1
        if self.fail_fee_data:
            raise DataSourceError("fake", "fee data unavailable")
        return self.fee_data

    async def get_transaction_count(self, address: str, block: str = "latest") -> int:
        self.calls["get_transaction_count"] += 1
        return self.nonces.get(address, 0)


@pytest.fixture
def fake_chain() -> FakeChainClient:
    """空的内存链，head=100"""
    return FakeChainClient()


# ==================== Settings Fixtures ====================

@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """
    关闭区块间延迟与结果缓存

    测试不依赖外部 Redis，也不等待真实的采样节流。
    """
    settings = config.settings
    monkeypatch.setattr(settings, "scan_block_delay_ms", 0)
    monkeypatch.setattr(settings, "enable_cache", False)
    monkeypatch.setattr(settings, "scan_timeout_seconds", 5)
    registry._sources.clear()
    yield settings
    registry._sources.clear()


# ==================== Live Test Fixtures ====================

@pytest.fixture
def is_live_test():
    """检查是否为真实RPC测试模式"""
    return os.getenv("TEST_MODE", "mock") == "live"


@pytest.fixture
async def mock_redis() -> AsyncGenerator[MagicMock, None]:
    """Mock Redis客户端"""
    redis_mock = MagicMock(spec=Redis)
    redis_mock.get = AsyncMock(return_value=None)
    redis_mock.set = AsyncMock(return_value=True)
    redis_mock.setex = AsyncMock(return_value=True)
    yield redis_mock


# ==================== Sample RPC Payloads ====================

@pytest.fixture
def sample_rpc_block():
    """示例 eth_getBlockByNumber 响应"""
    return {
        "number": "0x1b4",
        "hash": "0xabc",
        "timestamp": "0x6553f100",
        "gasUsed": "0x5208",
        "gasLimit": "0x1c9c380",
        "baseFeePerGas": "0x3b9aca00",
        "transactions": ["0xaaa", "0xbbb"],
    }


@pytest.fixture
def sample_rpc_transaction():
    """示例 eth_getTransactionByHash 响应"""
    return {
        "hash": "0xaaa",
        "from": "0xABCDEF0000000000000000000000000000000001",
        "to": "0xC0FFEE0000000000000000000000000000000002",
        "value": "0xde0b6b3a7640000",
        "input": "0xa9059cbb000000000000000000000000",
        "gas": "0x5208",
        "gasPrice": "0x3b9aca00",
        "nonce": "0x7",
        "blockNumber": "0x1b4",
    }


@pytest.fixture
def sample_rpc_receipt():
    """示例 eth_getTransactionReceipt 响应"""
    return {
        "transactionHash": "0xaaa",
        "status": "0x1",
        "gasUsed": "0x1e8480",
        "contractAddress": None,
        "blockNumber": "0x1b4",
        "effectiveGasPrice": "0x3b9aca00",
    }
