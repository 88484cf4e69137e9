"""
EVM JSON-RPC 客户端

通过 HTTP POST 调用节点的 eth_* 方法，并把十六进制字段解码为模型：
- eth_blockNumber / eth_getBlockByNumber
- eth_getTransactionByHash / eth_getTransactionReceipt
- eth_gasPrice / eth_maxPriorityFeePerGas
- eth_getTransactionCount
"""
import itertools
from typing import Any, Dict, List, Optional, Union

from src.core.models import ChainBlock, ChainReceipt, ChainTransaction, FeeData
from src.data_sources.base import BaseDataSource
from src.middleware.rate_limiter import RateLimitConfig, global_rate_limiter_registry
from src.utils.config import config
from src.utils.exceptions import DataSourceError, RpcError
from src.utils.logger import get_logger

logger = get_logger(__name__)

BlockId = Union[int, str]


def parse_quantity(value: Any) -> Optional[int]:
    """把 0x 前缀的十六进制数量（或十进制）解析为 int，空值返回 None"""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("quantity cannot be boolean")
    if isinstance(value, int):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    if raw.startswith(("0x", "0X")):
        return int(raw, 16) if len(raw) > 2 else 0
    if raw.isdigit():
        return int(raw, 10)
    raise ValueError(f"invalid quantity: {value!r}")


def _lower(address: Optional[str]) -> Optional[str]:
    return address.lower() if address else None


def _block_param(height_or_tag: BlockId) -> str:
    if isinstance(height_or_tag, int):
        return hex(height_or_tag)
    return height_or_tag


class EvmRpcClient(BaseDataSource):
    """EVM 节点 JSON-RPC 客户端"""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            rpc_url: 节点 URL，默认读取 RPC_URL
            api_key: 可选，以 Bearer 方式发送
            timeout: 请求超时（秒）
        """
        settings = config.settings
        if global_rate_limiter_registry.get("evm_rpc") is None:
            global_rate_limiter_registry.register(
                "evm_rpc",
                RateLimitConfig(
                    requests_per_second=settings.rate_limit_rpc,
                    burst_size=int(settings.rate_limit_rpc * 2),
                ),
            )
        super().__init__(
            name="evm_rpc",
            base_url=rpc_url or settings.rpc_url,
            timeout=timeout or settings.rpc_timeout,
            api_key=api_key or settings.rpc_api_key,
        )
        self.chain_name = settings.chain_name
        self._request_ids = itertools.count(1)

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def fetch_raw(self, endpoint: str, params: Optional[Any] = None) -> Any:
        """
        发送一次 JSON-RPC 调用，endpoint 为方法名

        Raises:
            RpcError: 响应中包含 error 对象
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": endpoint,
            "params": list(params or []),
        }
        response = await self._make_request("POST", self.base_url, json_body=payload)

        if not isinstance(response, dict):
            raise DataSourceError(self.name, f"{endpoint}: unexpected response shape")
        error = response.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(self.name, endpoint, error.get("code"), str(error.get("message")), error.get("data"))
            raise RpcError(self.name, endpoint, None, str(error))
        return response.get("result")

    def transform(self, raw_data: Any, data_type: str) -> Any:
        """按 data_type 解码 RPC 结果"""
        if data_type == "quantity":
            return parse_quantity(raw_data)
        if raw_data is None:
            return None
        if data_type == "block":
            return self._transform_block(raw_data)
        if data_type == "transaction":
            return self._transform_transaction(raw_data)
        if data_type == "receipt":
            return self._transform_receipt(raw_data)
        return raw_data

    @staticmethod
    def _transform_block(raw: Dict[str, Any]) -> ChainBlock:
        transactions: Optional[List[str]] = None
        raw_txs = raw.get("transactions")
        if isinstance(raw_txs, list):
            transactions = [tx["hash"] if isinstance(tx, dict) else tx for tx in raw_txs]
        return ChainBlock(
            number=parse_quantity(raw.get("number")) or 0,
            hash=raw.get("hash"),
            timestamp=parse_quantity(raw.get("timestamp")) or 0,
            gas_used=parse_quantity(raw.get("gasUsed")) or 0,
            gas_limit=parse_quantity(raw.get("gasLimit")) or 0,
            base_fee_per_gas=parse_quantity(raw.get("baseFeePerGas")),
            transactions=transactions,
        )

    @staticmethod
    def _transform_transaction(raw: Dict[str, Any]) -> ChainTransaction:
        return ChainTransaction(
            hash=raw["hash"],
            from_address=_lower(raw.get("from")) or "",
            to_address=_lower(raw.get("to")),
            value=parse_quantity(raw.get("value")) or 0,
            input=raw.get("input") or raw.get("data") or "0x",
            gas_limit=parse_quantity(raw.get("gas")),
            gas_price=parse_quantity(raw.get("gasPrice")),
            nonce=parse_quantity(raw.get("nonce")),
            block_number=parse_quantity(raw.get("blockNumber")),
        )

    @staticmethod
    def _transform_receipt(raw: Dict[str, Any]) -> ChainReceipt:
        return ChainReceipt(
            transaction_hash=raw.get("transactionHash", ""),
            status=parse_quantity(raw.get("status")),
            gas_used=parse_quantity(raw.get("gasUsed")),
            contract_address=_lower(raw.get("contractAddress")),
            block_number=parse_quantity(raw.get("blockNumber")),
            effective_gas_price=parse_quantity(raw.get("effectiveGasPrice")),
        )

    async def call(self, method: str, params: Optional[List[Any]] = None, data_type: str = "default") -> Any:
        """调用 RPC 方法并返回解码后的结果"""
        data, _meta = await self.fetch(method, params, data_type=data_type)
        return data

    async def get_block_height(self) -> int:
        """最新区块高度"""
        height = await self.call("eth_blockNumber", data_type="quantity")
        if height is None:
            raise DataSourceError(self.name, "eth_blockNumber returned null")
        return height

    async def get_block(self, height_or_tag: BlockId) -> Optional[ChainBlock]:
        """按高度或标签（latest）获取区块，只包含交易哈希"""
        return await self.call(
            "eth_getBlockByNumber",
            [_block_param(height_or_tag), False],
            data_type="block",
        )

    async def get_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
        return await self.call("eth_getTransactionByHash", [tx_hash], data_type="transaction")

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[ChainReceipt]:
        return await self.call("eth_getTransactionReceipt", [tx_hash], data_type="receipt")

    async def get_transaction_count(self, address: str, block: BlockId = "latest") -> Optional[int]:
        """账户 nonce，即该地址发出的交易总数"""
        return await self.call(
            "eth_getTransactionCount",
            [address, _block_param(block)],
            data_type="quantity",
        )

    async def get_fee_data(self) -> FeeData:
        """
        手续费数据

        gas_price 必须可用；EIP-1559 字段取不到时保留为 None。
        max_fee_per_gas = 2 * baseFee + priorityFee。
        """
        gas_price = await self.call("eth_gasPrice", data_type="quantity")

        priority_fee: Optional[int] = None
        try:
            priority_fee = await self.call("eth_maxPriorityFeePerGas", data_type="quantity")
        except DataSourceError as e:
            logger.debug("max_priority_fee_unavailable", error=str(e))

        max_fee: Optional[int] = None
        if priority_fee is not None:
            latest = await self.get_block("latest")
            if latest is not None and latest.base_fee_per_gas is not None:
                max_fee = latest.base_fee_per_gas * 2 + priority_fee

        return FeeData(
            gas_price=gas_price,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=priority_fee,
        )
