#!/usr/bin/env python3
"""
开发服务器启动脚本

使用方式:
    python scripts/dev_server.py          # MCP (stdio)
    python scripts/dev_server.py --http   # HTTP API
"""
import sys
from pathlib import Path

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.server import app as mcp_app
from src.server import http_app

if __name__ == "__main__":
    # stdout 在 MCP 模式下属于协议流，提示信息写 stderr
    mode = "http" if "--http" in sys.argv[1:] else "mcp"
    print(f"MegaETH Analytics Server - Development Mode ({mode})", file=sys.stderr)

    try:
        if mode == "http":
            http_app.main()
        else:
            mcp_app.main()
    except KeyboardInterrupt:
        print("\nServer stopped by user", file=sys.stderr)
