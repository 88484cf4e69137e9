"""
MCP 文本报告模板

每个工具一个格式化函数，把输出模型渲染成 markdown 文本。
状态不是 ok 时在末尾附上状态与警告。
"""
from typing import Callable, Dict, Iterable

from pydantic import BaseModel

from src.core.models import (
    ActiveContract,
    ActiveContractsOutput,
    AnalyticsOutput,
    AnalyzeTransactionsOutput,
    ContractFunctionsOutput,
    ContractTypesOutput,
    DataStatus,
    DeFiActivityOutput,
    DetectWhalesOutput,
    EcosystemOutput,
    NetworkStatsOutput,
    NewDeploymentsOutput,
    ShareEntry,
    UserBehaviorOutput,
)
from src.utils.config import config


def short_hash(value: str, head: int = 10, tail: int = 8) -> str:
    if len(value) <= head + tail + 3:
        return value
    return f"{value[:head]}...{value[-tail:]}"


def _symbol() -> str:
    return config.settings.native_symbol


def _shares(entries: Iterable[ShareEntry]) -> str:
    lines = [f"  • {e.type}: {e.count} ({e.percentage}%)" for e in entries]
    return "\n".join(lines) or "  • None"


def _footer(output: AnalyticsOutput) -> str:
    if output.status == DataStatus.OK and not output.warnings:
        return ""
    lines = ["", "", f"**Status:** {output.status.value}"]
    lines.extend(f"  ⚠ {w}" for w in output.warnings)
    return "\n".join(lines)


def _contract_block(index: int, c: ActiveContract) -> str:
    return (
        f"**{index}. {c.address}**\n"
        f"   • Interactions: {c.interactions}\n"
        f"   • Unique Users: {c.unique_users}\n"
        f"   • Total Gas: {c.total_gas:,}\n"
        f"   • Type: {c.contract_type}"
    )


def format_network_stats(output: NetworkStatsOutput) -> str:
    s = output.stats
    return (
        f"**{s.chain} Network Statistics ({output.timeframe.value}):**\n\n"
        f"**Latest Block:** {s.block_number}\n"
        f"**Current TPS:** {s.current_tps}\n"
        f"**Average Gas Price:** {s.avg_gas_price_gwei} Gwei\n"
        f"**Average Block Time:** {s.avg_block_time_ms}ms\n"
        f"**Transactions (latest block):** {s.total_transactions}\n"
        f"**Sampled Volume:** {s.sampled_volume} {_symbol()}\n"
        f"**Gas Utilization:** {s.gas_utilization}%\n\n"
        f"**Transaction Types:**\n{_shares(s.transaction_types)}"
    ) + _footer(output)


def format_transaction_analysis(output: AnalyzeTransactionsOutput) -> str:
    a = output.analysis
    top = "\n".join(f"  • {c.address}: {c.interactions} interactions" for c in a.top_contracts) or "  • None"
    scope = f", to {output.contract_address}" if output.contract_address else ""
    return (
        f"**Transaction Analysis** ({a.analyzed_count} transactions from block {a.block_number}{scope}):\n\n"
        f"**Success Rate:** {a.success_rate}%\n"
        f"**Average Gas Used:** {a.avg_gas_used}\n"
        f"**Average Transaction Value:** {a.avg_value} {_symbol()}\n\n"
        f"**Transaction Categories:**\n{_shares(a.categories)}\n\n"
        f"**Most Active Contracts:**\n{top}"
    ) + _footer(output)


def format_active_contracts(output: ActiveContractsOutput) -> str:
    body = "\n\n".join(_contract_block(i, c) for i, c in enumerate(output.contracts, 1))
    return (
        f"**Most Active Smart Contracts** ({output.timeframe.value}, {output.blocks_analyzed} blocks):\n\n"
        f"{body or '*No contract activity found in the sampled blocks.*'}"
    ) + _footer(output)


def format_whales(output: DetectWhalesOutput) -> str:
    if not output.whales:
        body = "**No significant whale activity detected.**"
    else:
        body = "\n\n".join(
            f"**{w.value} {_symbol()}** - {short_hash(w.from_address)} → {short_hash(w.to_address or 'contract creation')}\n"
            f"   • Hash: {short_hash(w.hash)}\n"
            f"   • Time: {w.timestamp}\n"
            f"   • Type: {w.category}\n"
            f"   • Block: {w.block_number}"
            for w in output.whales
        )
    return (
        f"**Whale Activity Detection** ({output.timeframe.value}, >={output.threshold} {_symbol()}, "
        f"{output.transactions_scanned} transactions scanned):\n\n{body}"
    ) + _footer(output)


def format_user_behavior(output: UserBehaviorOutput) -> str:
    if output.address_behavior is not None:
        b = output.address_behavior
        lifetime = b.lifetime_transactions if b.lifetime_transactions is not None else "N/A"
        text = (
            f"**User Behavior Analysis** for {b.address}:\n\n"
            f"**Sampled Transactions:** {b.transaction_count}\n"
            f"**Lifetime Transactions:** {lifetime}\n"
            f"**Total Volume:** {b.total_volume} {_symbol()}\n"
            f"**Active Blocks:** {b.active_blocks}\n"
            f"**Most Used Contracts:** {', '.join(b.top_contracts) or 'None'}"
        )
    else:
        n = output.network_behavior
        text = (
            f"**Network User Behavior Metrics** ({output.blocks_analyzed} blocks):\n\n"
            f"**Active Users:** {n.active_users}\n"
            f"**Returning Users:** {n.returning_users}\n"
            f"**Average Transactions per User:** {n.avg_transactions_per_user}\n"
            f"**Average Volume per User:** {n.avg_volume_per_user} {_symbol()}\n"
            f"**User Retention Rate:** {n.retention_rate}%\n\n"
            f"**Transaction Patterns:**\n{_shares(n.transaction_patterns)}"
        )
    return text + _footer(output)


def format_defi_activity(output: DeFiActivityOutput) -> str:
    a = output.activity
    sections = [
        (
            f"**{p.protocol_type.value}:**\n"
            f"  • Transactions: {p.transactions}\n"
            f"  • Volume: {p.volume} {_symbol()}\n"
            f"  • Unique Users: {p.unique_users}\n"
            f"  • Average Size: {p.avg_transaction_size} {_symbol()}"
        )
        for p in a.protocols
    ]
    top = "\n".join(
        f"  • {c.address} ({c.contract_type}): {c.transactions} txs, {c.volume} {_symbol()}" for c in a.top_contracts
    )
    return (
        f"**DeFi Activity Monitor** ({output.protocol_type.value}, {output.timeframe.value}):\n\n"
        f"**Total Volume:** {a.total_volume} {_symbol()}\n"
        f"**Total Transactions:** {a.total_transactions}\n"
        f"**Unique Users:** {a.unique_users}\n\n"
        + "\n\n".join(sections)
        + f"\n\n**Top Contracts:**\n{top or '  • None detected'}"
    ) + _footer(output)


def format_contract_functions(output: ContractFunctionsOutput) -> str:
    body = "\n\n".join(
        f"**{i}. {f.name}**\n"
        f"   • Signature: `{f.signature}`\n"
        f"   • Call Count: {f.call_count}\n"
        f"   • Total Gas Used: {f.gas_usage:,}\n"
        f"   • Average Gas per Call: {f.avg_gas_per_call:,}"
        for i, f in enumerate(output.functions, 1)
    )
    return (
        f"**Most Popular Smart Contract Functions** (Top {len(output.functions)}):\n\n"
        f"**Total Functions Analyzed:** {output.total_functions}\n\n"
        f"{body or '*No function calls found in the sampled blocks.*'}"
    ) + _footer(output)


def format_contract_types(output: ContractTypesOutput) -> str:
    body = "\n\n".join(
        f"**{i}. {t.type}**\n   • Count: {t.count}\n   • Percentage: {t.percentage}%"
        for i, t in enumerate(output.distribution, 1)
    )
    return (
        f"**Smart Contract Type Distribution**:\n\n"
        f"**Total Active Contracts:** {output.total_contracts}\n\n"
        f"{body or '*No contracts found in the sampled blocks.*'}"
    ) + _footer(output)


def format_new_deployments(output: NewDeploymentsOutput) -> str:
    if not output.deployments:
        body = "*No new deployments found in the specified timeframe.*"
    else:
        body = "\n\n".join(
            f"**{i}. {d.address}**\n"
            f"     • Type: {d.contract_type}\n"
            f"     • Creator: {d.creator}\n"
            f"     • Block: {d.creation_block}\n"
            f"     • Gas Used: {d.gas_used:,}\n"
            f"     • Time: {d.timestamp}"
            for i, d in enumerate(output.deployments, 1)
        )
    return (
        f"**New Contract Deployments** (Last {output.hours} hours, {output.blocks_window} block window):\n\n"
        f"**Total New Contracts:** {output.total_deployments}\n\n{body}"
    ) + _footer(output)


def format_ecosystem(output: EcosystemOutput) -> str:
    s = output.summary
    active = "\n\n".join(_contract_block(i, c) for i, c in enumerate(output.active_contracts, 1))
    functions = "\n".join(f"• **{f.name}**: {f.call_count} calls" for f in output.popular_functions)
    types = "\n".join(f"• **{t.type}**: {t.count} contracts ({t.percentage}%)" for t in output.contract_types)
    deployments = "\n".join(
        f"• **{d.contract_type}** at {d.address} by {d.creator}" for d in output.recent_deployments
    )
    return (
        f"**{config.settings.chain_name} Contract Ecosystem Analysis**\n\n"
        f"## Summary\n"
        f"• **Active Contracts:** {s.total_active_contracts}\n"
        f"• **Total Function Calls:** {s.total_function_calls:,}\n"
        f"• **Most Popular Type:** {s.most_popular_type}\n"
        f"• **New Deployments Today:** {s.new_deployments_today}\n\n"
        f"## Most Active Contracts\n{active or '• None found'}\n\n"
        f"## Popular Functions\n{functions or '• None found'}\n\n"
        f"## Contract Types\n{types or '• None found'}\n\n"
        f"## Recent Deployments\n{deployments or '• No recent deployments found'}"
    ) + _footer(output)


FORMATTERS: Dict[str, Callable[..., str]] = {
    "get_network_stats": format_network_stats,
    "analyze_transactions": format_transaction_analysis,
    "get_active_contracts": format_active_contracts,
    "detect_whales": format_whales,
    "get_user_behavior": format_user_behavior,
    "monitor_defi_activity": format_defi_activity,
    "get_contract_functions": format_contract_functions,
    "get_contract_types": format_contract_types,
    "get_new_deployments": format_new_deployments,
    "analyze_contract_ecosystem": format_ecosystem,
}


def format_output(tool_name: str, output: BaseModel) -> str:
    """未登记模板的工具退回 JSON 文本"""
    formatter = FORMATTERS.get(tool_name)
    if formatter is None:
        return output.model_dump_json(indent=2)
    return formatter(output)
