"""
自定义异常类
"""
from typing import Any, Optional


class MCPServerError(Exception):
    """MCP服务器基础异常"""

    pass


class ConfigurationError(MCPServerError):
    """配置错误"""

    pass


class DataSourceError(MCPServerError):
    """数据源错误基类"""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class DataSourceTimeoutError(DataSourceError):
    """数据源超时"""

    pass


class DataSourceRateLimitError(DataSourceError):
    """数据源限流"""

    pass


class DataSourceAuthError(DataSourceError):
    """数据源认证错误"""

    pass


class DataSourceNotFoundError(DataSourceError):
    """数据源未找到资源"""

    pass


class RpcError(DataSourceError):
    """JSON-RPC 返回 error 对象"""

    def __init__(self, source: str, method: str, code: Optional[int], message: str, data: Any = None):
        self.method = method
        self.code = code
        self.data = data
        super().__init__(source, f"{method} failed (code={code}): {message}")


class ScanStateError(MCPServerError):
    """聚合器在扫描开始前被读取"""

    pass


class CacheError(MCPServerError):
    """缓存错误"""

    pass
