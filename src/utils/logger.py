"""
结构化日志配置
"""
import logging
import sys
from typing import Any, Optional

import structlog


def setup_logging(level: str = "INFO", mcp_mode: bool = False, json_logs: Optional[bool] = None) -> None:
    """
    配置结构化日志

    Args:
        level: 日志级别
        mcp_mode: MCP stdio 模式，stdout 留给协议，日志输出到 stderr
        json_logs: 是否输出JSON（默认仅在 MCP 模式下启用）
    """
    stream = sys.stderr if mcp_mode else sys.stdout
    if json_logs is None:
        json_logs = mcp_mode
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=numeric_level,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=stream.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:
    """获取logger实例"""
    return structlog.get_logger(name)
