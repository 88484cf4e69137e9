"""
SourceMeta构建器
"""
import time
from datetime import datetime, timezone
from typing import Optional

from src.core.models import SourceMeta


class SourceMetaBuilder:
    """SourceMeta构建器"""

    @staticmethod
    def build(
        provider: str,
        endpoint: str,
        ttl_seconds: int,
        degraded: bool = False,
        fallback_used: Optional[str] = None,
        response_time_ms: Optional[float] = None,
    ) -> SourceMeta:
        """
        构建SourceMeta

        Args:
            provider: 数据提供者名称
            endpoint: RPC 方法或逻辑端点
            ttl_seconds: 缓存TTL
            degraded: 是否降级（部分数据或链不可用）
            fallback_used: 使用的备用源
            response_time_ms: 响应时间（毫秒）
        """
        return SourceMeta(
            provider=provider,
            endpoint=endpoint,
            as_of_utc=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            ttl_seconds=ttl_seconds,
            degraded=degraded,
            fallback_used=fallback_used,
            response_time_ms=round(response_time_ms, 2) if response_time_ms is not None else None,
        )

    @staticmethod
    def build_for_scan(
        provider: str,
        endpoint: str,
        ttl_seconds: int,
        started_at: float,
        degraded: bool,
    ) -> SourceMeta:
        """按扫描开始时间（time.time()）构建一次扫描的 SourceMeta"""
        return SourceMetaBuilder.build(
            provider=provider,
            endpoint=endpoint,
            ttl_seconds=ttl_seconds,
            degraded=degraded,
            response_time_ms=(time.time() - started_at) * 1000,
        )
