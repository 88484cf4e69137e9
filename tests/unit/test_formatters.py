"""
MCP 文本报告模板单元测试
"""
import json

import pytest

from src.core.models import (
    ActiveContract,
    ActiveContractsOutput,
    AddressBehavior,
    ContractTypesOutput,
    DataStatus,
    DetectWhalesOutput,
    NetworkStats,
    NetworkStatsOutput,
    UserBehaviorOutput,
    WhaleTransaction,
)
from src.server.formatters import FORMATTERS, format_output, short_hash
from src.server.tool_registry import TOOL_SPECS

AS_OF = "2026-01-01T00:00:00Z"


@pytest.mark.unit
class TestHelpers:
    """辅助函数测试"""

    def test_short_hash(self):
        value = "0x" + "ab" * 32
        assert short_hash(value) == value[:10] + "..." + value[-8:]

    def test_short_value_untouched(self):
        assert short_hash("0xabc") == "0xabc"

    def test_every_tool_has_a_template(self):
        assert set(FORMATTERS) == {spec["name"] for spec in TOOL_SPECS}


@pytest.mark.unit
class TestTemplates:
    """模板渲染测试"""

    def test_network_stats(self):
        output = NetworkStatsOutput(
            timeframe="1h",
            stats=NetworkStats(chain="megaeth", block_number=123, current_tps=4.5, gas_utilization=50.0),
            as_of_utc=AS_OF,
        )

        text = format_output("get_network_stats", output)

        assert "**megaeth Network Statistics (1h):**" in text
        assert "**Latest Block:** 123" in text
        assert "**Current TPS:** 4.5" in text
        assert "**Gas Utilization:** 50.0%" in text
        assert "Status" not in text

    def test_no_whales_message(self):
        output = DetectWhalesOutput(threshold=10, timeframe="24h", as_of_utc=AS_OF)

        text = format_output("detect_whales", output)

        assert "**No significant whale activity detected.**" in text

    def test_whale_lines(self):
        output = DetectWhalesOutput(
            threshold=10,
            timeframe="24h",
            transactions_scanned=4,
            whales=[
                WhaleTransaction(
                    hash="0x" + "11" * 32,
                    from_address="0xwhale",
                    to_address=None,
                    value=42.0,
                    block_number=7,
                    timestamp=AS_OF,
                    category="Contract Deploy",
                )
            ],
            as_of_utc=AS_OF,
        )

        text = format_output("detect_whales", output)

        assert "**42.0 ETH** - 0xwhale → contract creation" in text
        assert "4 transactions scanned" in text

    def test_active_contracts(self):
        output = ActiveContractsOutput(
            timeframe="24h",
            blocks_analyzed=8,
            contracts=[
                ActiveContract(
                    address="0xtoken",
                    contract_type="ERC20 Token",
                    interactions=3,
                    unique_users=2,
                    total_gas=1_234_567,
                )
            ],
            as_of_utc=AS_OF,
        )

        text = format_output("get_active_contracts", output)

        assert "**1. 0xtoken**" in text
        assert "Total Gas: 1,234,567" in text
        assert "Type: ERC20 Token" in text

    def test_lifetime_not_available(self):
        output = UserBehaviorOutput(
            metric="activity",
            address_behavior=AddressBehavior(address="0xa", transaction_count=2),
            as_of_utc=AS_OF,
        )

        text = format_output("get_user_behavior", output)

        assert "**Lifetime Transactions:** N/A" in text
        assert "**Most Used Contracts:** None" in text

    def test_footer_on_degraded_output(self):
        output = ContractTypesOutput(
            status=DataStatus.PARTIAL,
            warnings=["contract types: 1 of 5 blocks could not be fetched"],
            as_of_utc=AS_OF,
        )

        text = format_output("get_contract_types", output)

        assert "*No contracts found in the sampled blocks.*" in text
        assert "**Status:** partial" in text
        assert "⚠ contract types: 1 of 5 blocks could not be fetched" in text

    def test_unknown_tool_falls_back_to_json(self):
        output = ContractTypesOutput(total_contracts=3, as_of_utc=AS_OF)

        text = format_output("not_a_tool", output)

        assert json.loads(text)["total_contracts"] == 3
