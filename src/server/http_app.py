"""
HTTP REST API Server

以 GET 路由提供与 MCP 相同的分析工具，返回 JSON。
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.core.data_source_registry import registry
from src.data_sources.evm_rpc import EvmRpcClient
from src.middleware.cache import cache_manager
from src.server.tool_registry import UnknownToolError, build_tools, enabled_specs, execute_tool
from src.utils.config import config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

VERSION = "0.1.0"

# ==================== 全局工具实例 ====================
tools: Dict[str, Any] = {}


# ==================== 生命周期管理 ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("http_server_starting")

    chain_client = EvmRpcClient()
    registry.register("evm_rpc", chain_client)
    tools.update(build_tools(chain_client))

    logger.info("http_server_started", tools_count=len(tools))

    yield

    logger.info("http_server_stopping")
    await cleanup()


async def cleanup():
    """清理资源"""
    tools.clear()

    # 关闭所有数据源连接
    await registry.close_all()

    # 关闭Redis连接
    await cache_manager.close()


# ==================== FastAPI 应用 ====================

app = FastAPI(
    title="MegaETH Analytics Server",
    description="链上活动分析工具的 REST API",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _run(name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """执行工具并映射错误码"""
    try:
        result = await execute_tool(tools, name, arguments)
        return result.model_dump(mode="json")

    except UnknownToolError:
        raise HTTPException(status_code=503, detail=f"Tool {name} not initialized")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error("tool_request_failed", tool=name, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


def _drop_none(**kwargs) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}


# ==================== 健康检查 ====================

@app.get("/health")
async def health_check():
    """健康检查端点"""
    return {
        "status": "healthy",
        "service": "megaeth-analytics",
        "version": VERSION,
        "chain": config.settings.chain_name,
        "tools_count": len(enabled_specs(tools)),
        "data_sources": registry.get_all_stats(),
    }


@app.get("/")
async def root():
    """根路径"""
    return {
        "service": "MegaETH Analytics Server",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
        "api": "/api",
        "tools": "/tools",
    }


@app.get("/api")
async def api_index():
    """列出全部分析端点"""
    return {
        "endpoints": {spec["name"]: spec["endpoint"] for spec in enabled_specs(tools)},
    }


@app.get("/tools")
async def list_tools():
    """列出已启用的工具及输入 schema"""
    return {
        "tools": [
            {
                "name": spec["name"],
                "description": spec["description"],
                "endpoint": spec["endpoint"],
                "input_schema": spec["input_model"].model_json_schema(),
            }
            for spec in enabled_specs(tools)
        ]
    }


# ==================== 工具端点 ====================

@app.get("/api/stats")
async def network_stats(timeframe: Optional[str] = None):
    return await _run("get_network_stats", _drop_none(timeframe=timeframe))


@app.get("/api/transactions/analyze")
async def analyze_transactions(limit: Optional[int] = None, contract: Optional[str] = None):
    return await _run("analyze_transactions", _drop_none(limit=limit, contract_address=contract))


@app.get("/api/contracts")
async def active_contracts(limit: Optional[int] = None, timeframe: Optional[str] = None):
    return await _run("get_active_contracts", _drop_none(limit=limit, timeframe=timeframe))


@app.get("/api/whales")
async def detect_whales(threshold: Optional[float] = None, timeframe: Optional[str] = None):
    return await _run("detect_whales", _drop_none(threshold=threshold, timeframe=timeframe))


@app.get("/api/users")
async def user_behavior(address: Optional[str] = None, metric: Optional[str] = None):
    return await _run("get_user_behavior", _drop_none(address=address, metric=metric))


@app.get("/api/defi")
async def defi_activity(protocol: Optional[str] = None, timeframe: Optional[str] = None):
    return await _run("monitor_defi_activity", _drop_none(protocol_type=protocol, timeframe=timeframe))


@app.get("/api/contracts/functions")
async def contract_functions(limit: Optional[int] = None):
    return await _run("get_contract_functions", _drop_none(limit=limit))


@app.get("/api/contracts/types")
async def contract_types():
    return await _run("get_contract_types", {})


@app.get("/api/contracts/deployments")
async def new_deployments(hours: Optional[int] = None):
    return await _run("get_new_deployments", _drop_none(hours=hours))


@app.get("/api/contracts/ecosystem")
async def contract_ecosystem():
    return await _run("analyze_contract_ecosystem", {})


# ==================== 异常处理 ====================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """全局异常处理"""
    logger.error("unhandled_exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error": str(exc)},
    )


# ==================== 主函数 ====================

def main():
    """启动 HTTP 服务器"""
    import uvicorn

    settings = config.settings
    setup_logging(
        settings.log_level,
        mcp_mode=settings.mcp_mode,
        json_logs=settings.mcp_mode or settings.environment == "production",
    )

    host = settings.http_host
    port = settings.http_port

    logger.info("http_server_listen", host=host, port=port)

    uvicorn.run(
        "src.server.http_app:app",
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
