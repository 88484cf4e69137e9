"""
Redis结果缓存

只缓存工具的最终输出（整份 JSON 快照），不缓存扫描过程中的中间状态。
并发写入同一个键时以最后一次写入为准。
"""
import hashlib
import json
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from pydantic import BaseModel
from redis.asyncio import Redis

from src.utils.config import config
from src.utils.exceptions import CacheError
from src.utils.logger import get_logger

logger = get_logger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)


class CacheManager:
    """Redis缓存管理器"""

    def __init__(self, redis_url: Optional[str] = None):
        """
        Args:
            redis_url: Redis连接URL，默认从配置读取
        """
        self.redis_url = redis_url or config.settings.redis_url
        self._redis: Optional[Redis] = None

    async def _get_redis(self) -> Redis:
        """获取Redis连接（懒加载）"""
        if self._redis is None:
            try:
                redis = Redis.from_url(
                    self.redis_url,
                    max_connections=config.settings.redis_max_connections,
                    decode_responses=True,
                )
                await redis.ping()
            except Exception as e:
                logger.warning("redis_connect_failed", url=self.redis_url, error=str(e))
                raise CacheError(f"Redis connection failed: {e}")
            self._redis = redis
            logger.info("redis_connected", url=self.redis_url)
        return self._redis

    async def close(self):
        """关闭Redis连接"""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("redis_closed")

    @staticmethod
    def build_cache_key(tool_name: str, capability: str, params: dict) -> str:
        """
        构建缓存键

        格式: tool_name:capability:params_hash
        例如: get_active_contracts:result:5f1c2a9e
        """
        params_str = json.dumps(params, sort_keys=True, default=str)
        params_hash = hashlib.md5(params_str.encode()).hexdigest()[:8]
        return f"{tool_name}:{capability}:{params_hash}"

    async def get(self, key: str) -> Optional[Any]:
        """获取缓存，失败或未命中返回None"""
        if not config.settings.enable_cache:
            return None

        try:
            redis = await self._get_redis()
            data = await redis.get(key)
        except Exception as e:
            logger.warning("cache_get_failed", key=key, error=str(e))
            return None

        if data is None:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return json.loads(data)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        设置缓存

        Args:
            key: 缓存键
            value: 可JSON序列化的数据
            ttl: 过期时间（秒），None表示永不过期
        """
        if not config.settings.enable_cache:
            return False

        try:
            redis = await self._get_redis()
            serialized = json.dumps(value, default=str)
            if ttl:
                await redis.setex(key, ttl, serialized)
            else:
                await redis.set(key, serialized)
        except Exception as e:
            logger.warning("cache_set_failed", key=key, error=str(e))
            return False

        logger.debug("cache_set", key=key, ttl=ttl)
        return True

    async def cached_execute(
        self,
        tool_name: str,
        params: BaseModel,
        output_model: Type[OutputT],
        producer: Callable[[], Awaitable[OutputT]],
    ) -> OutputT:
        """
        读缓存，未命中时执行 producer 并写回

        链不可用（status=unavailable）的结果不写缓存。
        """
        key = self.build_cache_key(tool_name, "result", params.model_dump(mode="json"))
        cached = await self.get(key)
        if cached is not None:
            try:
                return output_model.model_validate(cached)
            except ValueError as e:
                logger.warning("cache_payload_invalid", key=key, error=str(e))

        result = await producer()
        if getattr(result, "status", None) != "unavailable":
            await self.set(key, result.model_dump(mode="json"), ttl=config.get_ttl(tool_name))
        return result


# 全局缓存管理器实例
cache_manager = CacheManager()
