"""
错误处理中间件

- 指数退避重试（超时/限流类错误）
- 断路器：RPC 节点持续失败时快速失败，避免扫描卡在重试上
- 错误聚合：按数据源统计错误率，供健康检查使用
"""
import asyncio
import time
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

import structlog

from src.utils.exceptions import (
    DataSourceAuthError,
    DataSourceError,
    DataSourceRateLimitError,
    DataSourceTimeoutError,
    RpcError,
)

logger = structlog.get_logger(__name__)


class CircuitState(Enum):
    """断路器状态"""

    CLOSED = "closed"  # 正常，请求通过
    OPEN = "open"  # 断开，请求直接失败
    HALF_OPEN = "half_open"  # 放行一次试探请求


class CircuitBreaker:
    """
    断路器

    连续失败达到阈值后进入 OPEN，recovery_timeout 之后进入 HALF_OPEN，
    试探成功则关闭，失败则重新打开。
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None

        logger.debug(
            "circuit_breaker_initialized",
            name=name,
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
        )

    @property
    def state(self) -> CircuitState:
        """获取当前状态（考虑自动恢复）"""
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if time.monotonic() - self._opened_at >= self.recovery_timeout:
                logger.info("circuit_breaker_half_open", name=self.name)
                self._state = CircuitState.HALF_OPEN
        return self._state

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        通过断路器调用协程函数

        Raises:
            DataSourceError: 断路器处于 OPEN 状态
        """
        if self.state == CircuitState.OPEN:
            raise DataSourceError(
                self.name,
                f"Circuit breaker is OPEN (failures: {self._failure_count})",
            )

        try:
            result = await func(*args, **kwargs)
        except RpcError:
            # 节点已响应，不计入失败
            self._on_success()
            raise
        except DataSourceError:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _on_success(self):
        if self._state == CircuitState.HALF_OPEN:
            logger.info("circuit_breaker_closed", name=self.name)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None

    def _on_failure(self):
        self._failure_count += 1
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.error(
                    "circuit_breaker_opened",
                    name=self.name,
                    failure_count=self._failure_count,
                )
            self._state = CircuitState.OPEN
            self._opened_at = time.monotonic()

    def reset(self):
        """手动重置断路器"""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None

    def get_stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
        }


def with_retry(
    max_attempts: int = 3,
    backoff_base: float = 2.0,
    max_backoff: float = 10.0,
    initial_backoff: float = 0.5,
    retry_exceptions: tuple = (
        DataSourceTimeoutError,
        DataSourceRateLimitError,
    ),
    no_retry_exceptions: tuple = (DataSourceAuthError,),
):
    """
    异步重试装饰器（指数退避）

    第 n 次重试前等待 initial_backoff * backoff_base^(n-1) 秒，上限 max_backoff。
    retry_exceptions 之外的异常直接抛出。

    Example:
        @with_retry(max_attempts=3)
        async def fetch_block():
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    result = await func(*args, **kwargs)
                except no_retry_exceptions:
                    raise
                except retry_exceptions as e:
                    if attempt >= max_attempts:
                        logger.warning(
                            "retry_exhausted",
                            function=func.__name__,
                            attempts=max_attempts,
                            exception=type(e).__name__,
                        )
                        raise
                    backoff = min(initial_backoff * backoff_base ** (attempt - 1), max_backoff)
                    logger.debug(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt,
                        exception=type(e).__name__,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                else:
                    if attempt > 1:
                        logger.info("retry_success", function=func.__name__, attempt=attempt)
                    return result

        return wrapper

    return decorator


class ErrorAggregator:
    """按数据源聚合时间窗口内的错误"""

    def __init__(self, window_seconds: int = 300):
        self.window_seconds = window_seconds
        self._errors: List[Dict[str, Any]] = []

    def record_error(
        self,
        source: str,
        exception: Exception,
        endpoint: Optional[str] = None,
    ):
        self._errors.append(
            {
                "timestamp": time.monotonic(),
                "source": source,
                "exception_type": type(exception).__name__,
                "message": str(exception),
                "endpoint": endpoint,
            }
        )
        self._cleanup_old_errors()

    def _cleanup_old_errors(self):
        cutoff = time.monotonic() - self.window_seconds
        self._errors = [e for e in self._errors if e["timestamp"] > cutoff]

    def get_error_rate(self, source: Optional[str] = None) -> float:
        """每分钟错误数"""
        self._cleanup_old_errors()
        errors = [e for e in self._errors if source is None or e["source"] == source]
        if not errors:
            return 0.0
        return len(errors) / (self.window_seconds / 60)

    def get_error_summary(self) -> Dict[str, Any]:
        self._cleanup_old_errors()

        by_source: Dict[str, int] = {}
        by_method: Dict[str, int] = {}
        for error in self._errors:
            by_source[error["source"]] = by_source.get(error["source"], 0) + 1
            if error["endpoint"]:
                by_method[error["endpoint"]] = by_method.get(error["endpoint"], 0) + 1

        return {
            "total_errors": len(self._errors),
            "error_rate_per_minute": self.get_error_rate(),
            "errors_by_source": by_source,
            "errors_by_endpoint": by_method,
            "window_seconds": self.window_seconds,
        }


# 全局错误聚合器实例
global_error_aggregator = ErrorAggregator(window_seconds=300)
