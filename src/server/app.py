"""
MCP服务器主程序
"""
import asyncio
import signal
import sys
from typing import Any, Dict, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from src.core.data_source_registry import registry
from src.data_sources.evm_rpc import EvmRpcClient
from src.middleware.cache import cache_manager
from src.server.formatters import format_output
from src.server.tool_registry import UnknownToolError, build_tools, enabled_specs, execute_tool
from src.utils.config import config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


class MCPServer:
    """MCP服务器"""

    def __init__(self, chain_client: Optional[EvmRpcClient] = None):
        self.server = Server("megaeth-analytics-mcp")
        self.chain_client = chain_client
        self.tools: Dict[str, Any] = {}

    async def initialize(self):
        """初始化服务器"""
        logger.info("mcp_server_initializing")

        # 注册数据源
        if self.chain_client is None:
            self.chain_client = EvmRpcClient()
        registry.register("evm_rpc", self.chain_client)

        # 注册工具
        self.tools = build_tools(self.chain_client)
        self._register_handlers()

        logger.info("mcp_server_initialized", tools_count=len(self.tools))

    def list_tools(self) -> list[Tool]:
        return [
            Tool(
                name=spec["name"],
                description=spec["description"],
                inputSchema=spec["input_model"].model_json_schema(),
            )
            for spec in enabled_specs(self.tools)
        ]

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]]) -> list[TextContent]:
        """执行一次工具调用，异常转为 Error 文本"""
        try:
            result = await execute_tool(self.tools, name, arguments)
            return [TextContent(type="text", text=format_output(name, result))]
        except UnknownToolError:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]
        except Exception as e:
            logger.error("tool_execution_failed", tool=name, error=str(e))
            return [TextContent(type="text", text=f"Error: {e}")]

    def _register_handlers(self):
        """注册MCP处理函数"""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return self.list_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict) -> list[TextContent]:
            return await self.dispatch(name, arguments)

    async def cleanup(self):
        """清理资源"""
        logger.info("mcp_server_cleanup")

        # 关闭所有数据源连接
        await registry.close_all()

        # 关闭Redis连接
        await cache_manager.close()

    async def run(self):
        """运行服务器"""
        try:
            await self.initialize()

            # stdout 只用于协议流
            async with stdio_server() as (read_stream, write_stream):
                logger.info("mcp_server_running", transport="stdio")
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )

        except Exception as e:
            logger.error("mcp_server_error", error=str(e))
            raise

        finally:
            await self.cleanup()


def handle_signal(signum, frame):
    """处理退出信号"""
    logger.info("shutdown_signal_received", signal=signum)
    sys.exit(0)


def main():
    """主入口"""
    log_level = config.settings.log_level
    setup_logging(log_level, mcp_mode=True)

    logger.info(
        "mcp_server_starting",
        environment=config.settings.environment,
        log_level=log_level,
        rpc_url=config.settings.rpc_url,
    )

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    server = MCPServer()

    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("mcp_server_interrupted")
    except Exception as e:
        logger.error("mcp_server_failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
