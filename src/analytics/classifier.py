"""
交易分类器

纯函数，只依赖 (transaction, receipt)：
- 交易类别：Contract Deploy > Transfer > Contract Call
- 合约类型：按调用数据的前 4 字节选择器匹配，未命中时按 gasUsed 分档
- 函数名：选择器到签名的固定表
"""
from enum import StrEnum
from typing import Optional

from src.core.models import ChainReceipt, ChainTransaction


class TransactionCategory(StrEnum):
    TRANSFER = "Transfer"
    CONTRACT_CALL = "Contract Call"
    CONTRACT_DEPLOY = "Contract Deploy"


class ContractType(StrEnum):
    ERC20 = "ERC20 Token"
    ERC721 = "ERC721 NFT"
    DEX = "DEX"
    LENDING = "Lending"
    STAKING = "Staking"
    COMPLEX_DEFI = "Complex DeFi"
    MULTI_FUNCTION = "Multi-Function"
    STANDARD_CONTRACT = "Standard Contract"
    UNKNOWN = "Unknown"


# 按顺序匹配，先命中者生效
SELECTOR_RULES: tuple[tuple[ContractType, frozenset[str]], ...] = (
    (ContractType.ERC20, frozenset({"0xa9059cbb", "0x23b872dd", "0x095ea7b3"})),
    (ContractType.ERC721, frozenset({"0x42842e0e", "0xb88d4fde"})),
    (ContractType.DEX, frozenset({"0x1f00ca74", "0x38ed1739", "0x7ff36ab5"})),
    (ContractType.LENDING, frozenset({"0xb6b55f25", "0x69328dec", "0xc5ebeaec"})),
    (ContractType.STAKING, frozenset({"0xe2bbb158", "0x2e1a7d4d"})),
)

# (下限, 类型)，gasUsed 严格大于下限
GAS_BANDS: tuple[tuple[int, ContractType], ...] = (
    (1_000_000, ContractType.COMPLEX_DEFI),
    (500_000, ContractType.MULTI_FUNCTION),
    (100_000, ContractType.STANDARD_CONTRACT),
)

FUNCTION_NAMES: dict[str, str] = {
    "0xa9059cbb": "transfer(address,uint256)",
    "0x23b872dd": "transferFrom(address,address,uint256)",
    "0x095ea7b3": "approve(address,uint256)",
    "0x18160ddd": "totalSupply()",
    "0x70a08231": "balanceOf(address)",
    "0x42842e0e": "safeTransferFrom(address,address,uint256)",
    "0xb88d4fde": "safeTransferFrom(address,address,uint256,bytes)",
    "0x38ed1739": "swapExactTokensForTokens(uint256,uint256,address[],address,uint256)",
    "0x7ff36ab5": "swapExactETHForTokens(uint256,address[],address,uint256)",
    "0x1f00ca74": "getAmountsOut(uint256,address[])",
    "0xb6b55f25": "deposit(uint256)",
    "0x2e1a7d4d": "withdraw(uint256)",
    "0xe2bbb158": "stake(uint256)",
    "0x69328dec": "withdraw(address,uint256,address)",
    "0xb7a16251": "mint(address,uint256)",
    "0x40c10f19": "mint(address,uint256)",
    "0x440a5e20": "addLiquidity(...)",
}

SELECTOR_HEX_LENGTH = 8


def has_call_data(data: Optional[str]) -> bool:
    """调用数据是否非空（"" 与 "0x" 视为空）"""
    return bool(data) and data not in ("0x", "0X")


def extract_selector(data: Optional[str]) -> Optional[str]:
    """
    取调用数据的前 4 字节作为选择器

    Returns:
        小写的 "0x" + 8 位十六进制；不足 4 字节时返回 None
    """
    if not data:
        return None
    body = data[2:] if data[:2] in ("0x", "0X") else data
    if len(body) < SELECTOR_HEX_LENGTH:
        return None
    return "0x" + body[:SELECTOR_HEX_LENGTH].lower()


def categorize_transaction(tx: ChainTransaction) -> TransactionCategory:
    if not tx.to_address:
        return TransactionCategory.CONTRACT_DEPLOY
    if not has_call_data(tx.input):
        return TransactionCategory.TRANSFER
    return TransactionCategory.CONTRACT_CALL


def classify_contract_type(tx: ChainTransaction, receipt: Optional[ChainReceipt]) -> ContractType:
    """
    推断交易所涉及合约的类型

    没有调用数据时为 Unknown；选择器命中规则表时取对应类型；
    否则按回执的 gasUsed 分档（缺失视为 0）。
    """
    if not has_call_data(tx.input):
        return ContractType.UNKNOWN

    selector = extract_selector(tx.input)
    if selector is not None:
        for contract_type, selectors in SELECTOR_RULES:
            if selector in selectors:
                return contract_type

    gas_used = (receipt.gas_used if receipt else None) or 0
    for lower_bound, contract_type in GAS_BANDS:
        if gas_used > lower_bound:
            return contract_type
    return ContractType.UNKNOWN


def resolve_function_name(selector: str) -> str:
    return FUNCTION_NAMES.get(selector.lower(), f"Unknown ({selector})")
