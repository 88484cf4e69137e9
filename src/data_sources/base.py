"""
数据源抽象基类
"""
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from src.core.models import SourceMeta
from src.core.source_meta import SourceMetaBuilder
from src.middleware import (
    CircuitBreaker,
    RateLimiter,
    global_error_aggregator,
    global_rate_limiter_registry,
    with_retry,
)
from src.utils.exceptions import (
    DataSourceAuthError,
    DataSourceError,
    DataSourceNotFoundError,
    DataSourceRateLimitError,
    DataSourceTimeoutError,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)


class BaseDataSource(ABC):
    """数据源抽象基类"""

    def __init__(
        self,
        name: str,
        base_url: str,
        timeout: float = 10.0,
        api_key: Optional[str] = None,
        enable_circuit_breaker: bool = True,
        circuit_failure_threshold: int = 5,
        circuit_recovery_timeout: float = 30.0,
    ):
        """
        初始化数据源

        Args:
            name: 数据源名称（如 evm_rpc）
            base_url: 端点URL
            timeout: 请求超时时间（秒）
            api_key: 可选的访问密钥
            enable_circuit_breaker: 是否启用断路器
            circuit_failure_threshold: 断路器失败阈值
            circuit_recovery_timeout: 断路器恢复超时（秒）
        """
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.api_key = api_key

        self._client: Optional[httpx.AsyncClient] = None

        self.circuit_breaker: Optional[CircuitBreaker] = None
        if enable_circuit_breaker:
            self.circuit_breaker = CircuitBreaker(
                name=name,
                failure_threshold=circuit_failure_threshold,
                recovery_timeout=circuit_recovery_timeout,
            )

        # 同名数据源共享一个限流器
        self.rate_limiter: Optional[RateLimiter] = global_rate_limiter_registry.get(name)
        if not self.rate_limiter:
            self.rate_limiter = global_rate_limiter_registry.register(name)

    @property
    def client(self) -> httpx.AsyncClient:
        """获取HTTP客户端（懒加载）"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._get_headers(),
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self):
        """关闭HTTP客户端"""
        if self._client:
            await self._client.aclose()
            self._client = None

    @abstractmethod
    def _get_headers(self) -> Dict[str, str]:
        """获取请求头（子类实现）"""
        pass

    @abstractmethod
    async def fetch_raw(self, endpoint: str, params: Optional[Any] = None) -> Any:
        """
        获取原始数据（子类实现）

        Args:
            endpoint: 端点路径或 RPC 方法名
            params: 请求参数

        Raises:
            DataSourceError: 数据源错误
        """
        pass

    @abstractmethod
    def transform(self, raw_data: Any, data_type: str) -> Any:
        """
        将原始数据转换为标准格式（子类实现）

        Args:
            raw_data: 原始响应
            data_type: 数据类型（如 block, receipt）
        """
        pass

    async def fetch(
        self,
        endpoint: str,
        params: Optional[Any] = None,
        data_type: str = "default",
        ttl_seconds: int = 0,
    ) -> tuple[Any, SourceMeta]:
        """
        获取并转换数据的完整流程：限流 → 重试 → 断路器 → transform

        Returns:
            (转换后的数据, SourceMeta)
        """
        start_time = time.time()

        try:
            if self.circuit_breaker:
                raw_data = await self.circuit_breaker.call(self._fetch_with_retry, endpoint, params)
            else:
                raw_data = await self._fetch_with_retry(endpoint, params)
            transformed_data = self.transform(raw_data, data_type)
        except Exception as e:
            global_error_aggregator.record_error(source=self.name, exception=e, endpoint=endpoint)
            logger.debug(
                "data_source_fetch_failed",
                provider=self.name,
                endpoint=endpoint,
                error=str(e),
                response_time_ms=round((time.time() - start_time) * 1000, 2),
            )
            raise

        response_time_ms = (time.time() - start_time) * 1000
        source_meta = SourceMetaBuilder.build(
            provider=self.name,
            endpoint=endpoint,
            ttl_seconds=ttl_seconds,
            response_time_ms=response_time_ms,
        )
        return transformed_data, source_meta

    @with_retry(max_attempts=3, backoff_base=2.0, max_backoff=10.0)
    async def _fetch_with_retry(self, endpoint: str, params: Optional[Any] = None) -> Any:
        """带限流与重试的数据获取（内部方法）"""
        if self.rate_limiter:
            allowed = await self.rate_limiter.acquire(wait=True, timeout=30.0)
            if not allowed:
                raise DataSourceRateLimitError(
                    self.name,
                    "Rate limit exceeded and could not acquire permit",
                )

        return await self.fetch_raw(endpoint, params)

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        """
        发起HTTP请求（通用方法）

        Args:
            method: HTTP方法（GET, POST等）
            endpoint: 端点路径或完整 URL
            params: 查询参数
            json_body: JSON 请求体

        Raises:
            DataSourceError: 各种数据源错误
        """
        try:
            response = await self.client.request(
                method=method,
                url=endpoint,
                params=params,
                json=json_body,
            )
        except httpx.TimeoutException:
            raise DataSourceTimeoutError(self.name, f"Request timeout after {self.timeout}s")
        except httpx.HTTPError as e:
            raise DataSourceError(self.name, f"HTTP error: {e}")

        if response.status_code in (401, 403):
            raise DataSourceAuthError(self.name, "Authentication failed. Check API key.")
        elif response.status_code == 404:
            raise DataSourceNotFoundError(self.name, f"Resource not found: {endpoint or self.base_url}")
        elif response.status_code == 429:
            raise DataSourceRateLimitError(self.name, "Rate limit exceeded")
        elif response.status_code >= 500:
            # 网关类错误按超时处理以便重试
            raise DataSourceTimeoutError(self.name, f"HTTP {response.status_code}: {response.text[:200]}")
        elif response.status_code >= 400:
            raise DataSourceError(self.name, f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            return response.json()
        except ValueError as e:
            raise DataSourceError(self.name, f"Invalid JSON response: {e}")

    def get_stats(self) -> Dict[str, Any]:
        """获取数据源统计信息"""
        stats: Dict[str, Any] = {
            "name": self.name,
            "base_url": self.base_url,
            "timeout": self.timeout,
            "has_api_key": bool(self.api_key),
        }
        if self.circuit_breaker:
            stats["circuit_breaker"] = self.circuit_breaker.get_stats()
        if self.rate_limiter:
            stats["rate_limiter"] = self.rate_limiter.get_stats()
        stats["error_rate_per_minute"] = global_error_aggregator.get_error_rate(source=self.name)
        return stats

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name} base_url={self.base_url}>"
