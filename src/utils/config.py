"""
配置管理
"""
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.utils.exceptions import ConfigurationError


class Settings(BaseSettings):
    """全局配置"""

    # 服务器配置
    http_host: str = Field(default="0.0.0.0", alias="HTTP_HOST")
    http_port: int = Field(default=3000, alias="HTTP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    # MCP stdio 模式下 stdout 为协议通道，日志改写到 stderr
    mcp_mode: bool = Field(default=False, alias="MCP_MODE")

    # 链 RPC 配置
    rpc_url: str = Field(default="https://carrot.megaeth.com/rpc", alias="RPC_URL")
    rpc_api_key: Optional[str] = Field(default=None, alias="RPC_API_KEY")
    rpc_timeout: float = Field(default=10.0, alias="RPC_TIMEOUT")
    chain_name: str = Field(default="megaeth", alias="CHAIN_NAME")
    native_symbol: str = Field(default="ETH", alias="NATIVE_SYMBOL")
    block_time_ms: int = Field(default=10, alias="BLOCK_TIME_MS")

    # Redis配置
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    redis_max_connections: int = Field(default=10, alias="REDIS_MAX_CONNECTIONS")

    # 限流配置
    rate_limit_rpc: float = Field(default=100.0, alias="RATE_LIMIT_RPC")

    # 扫描参数
    scan_blocks: int = Field(default=10, alias="SCAN_BLOCKS")
    scan_sample_ceiling: int = Field(default=50, alias="SCAN_SAMPLE_CEILING")
    scan_block_delay_ms: int = Field(default=100, alias="SCAN_BLOCK_DELAY_MS")
    scan_timeout_seconds: float = Field(default=60.0, alias="SCAN_TIMEOUT_SECONDS")
    active_contracts_blocks: int = Field(default=8, alias="ACTIVE_CONTRACTS_BLOCKS")
    popular_functions_blocks: int = Field(default=5, alias="POPULAR_FUNCTIONS_BLOCKS")
    contract_types_blocks: int = Field(default=5, alias="CONTRACT_TYPES_BLOCKS")
    deployment_max_blocks: int = Field(default=100, alias="DEPLOYMENT_MAX_BLOCKS")
    deployment_block_step: int = Field(default=10, alias="DEPLOYMENT_BLOCK_STEP")
    deployment_sample_ceiling: int = Field(default=10, alias="DEPLOYMENT_SAMPLE_CEILING")

    # 网络统计 / 交易分析参数
    network_stats_blocks: int = Field(default=10, alias="NETWORK_STATS_BLOCKS")
    tx_type_sample: int = Field(default=10, alias="TX_TYPE_SAMPLE")
    tx_analysis_max: int = Field(default=20, alias="TX_ANALYSIS_MAX")
    whale_blocks: int = Field(default=3, alias="WHALE_BLOCKS")
    whale_sample_ceiling: int = Field(default=5, alias="WHALE_SAMPLE_CEILING")
    user_behavior_blocks: int = Field(default=5, alias="USER_BEHAVIOR_BLOCKS")
    defi_blocks: int = Field(default=5, alias="DEFI_BLOCKS")

    # 功能开关
    enable_cache: bool = Field(default=True, alias="ENABLE_CACHE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def blocks_per_hour(self) -> int:
        """按出块间隔估算每小时区块数"""
        return max(1, 3_600_000 // max(1, self.block_time_ms))


class ConfigManager:
    """配置管理器"""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        初始化配置管理器

        Args:
            config_dir: 配置文件目录，默认为项目根目录下的config/
        """
        if config_dir is None:
            project_root = Path(__file__).parent.parent.parent
            config_dir = project_root / "config"

        self.config_dir = config_dir
        self._ttl_policies: Optional[Dict] = None
        self._tools: Optional[Dict] = None
        self._settings: Optional[Settings] = None

    @property
    def settings(self) -> Settings:
        """获取全局设置"""
        if self._settings is None:
            self._settings = Settings()
        return self._settings

    @property
    def ttl_policies(self) -> Dict[str, Any]:
        """获取TTL策略配置（缺失时全部使用默认TTL）"""
        if self._ttl_policies is None:
            try:
                self._ttl_policies = self._load_yaml("ttl_policies.yaml")
            except ConfigurationError:
                self._ttl_policies = {}
        return self._ttl_policies

    @property
    def tools(self) -> Dict[str, Any]:
        """
        获取 MCP 工具开关配置。

        配置文件位于 config/tools.yaml，格式示例：

        get_network_stats:
          enabled: true
        """
        if self._tools is None:
            try:
                self._tools = self._load_yaml("tools.yaml")
            except ConfigurationError:
                self._tools = {}
        return self._tools

    def is_tool_enabled(self, tool_name: str) -> bool:
        """判断指定工具是否启用，未配置时默认启用"""
        tool_cfg = self.tools.get(tool_name) or {}
        return bool(tool_cfg.get("enabled", True))

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """加载YAML配置文件"""
        filepath = self.config_dir / filename
        if not filepath.exists():
            raise ConfigurationError(f"Configuration file not found: {filepath}")

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {filename}: {e}")

    def get_ttl(self, tool_name: str, field_type: str = "result") -> int:
        """
        获取TTL配置

        Args:
            tool_name: 工具名称，如 get_network_stats
            field_type: 字段类型，默认 result

        Returns:
            TTL秒数
        """
        tool_config = self.ttl_policies.get(tool_name) or {}
        return int(tool_config.get(field_type, self.ttl_policies.get("default", 30)))


# 全局配置实例
config = ConfigManager()
