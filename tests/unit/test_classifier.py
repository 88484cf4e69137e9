"""
交易分类器单元测试
"""
import pytest

from src.analytics.classifier import (
    ContractType,
    TransactionCategory,
    categorize_transaction,
    classify_contract_type,
    extract_selector,
    has_call_data,
    resolve_function_name,
)
from src.core.models import ChainReceipt, ChainTransaction


def make_tx(data: str = "0x", to: str | None = "0xcontract", value: int = 0) -> ChainTransaction:
    return ChainTransaction(hash="0xh", from_address="0xsender", to_address=to, value=value, input=data)


def make_receipt(gas_used: int | None) -> ChainReceipt:
    return ChainReceipt(transaction_hash="0xh", status=1, gas_used=gas_used)


@pytest.mark.unit
class TestSelectorExtraction:
    """选择器提取测试"""

    def test_extract_selector_lowercases(self):
        assert extract_selector("0xA9059CBB0000") == "0xa9059cbb"

    def test_extract_selector_short_data(self):
        """不足 4 字节时返回 None"""
        assert extract_selector("0xa905") is None
        assert extract_selector("0x") is None
        assert extract_selector(None) is None

    def test_extract_selector_without_prefix(self):
        assert extract_selector("095ea7b3ffff") == "0x095ea7b3"

    def test_has_call_data(self):
        assert has_call_data("0x00") is True
        assert has_call_data("0x") is False
        assert has_call_data("") is False
        assert has_call_data(None) is False


@pytest.mark.unit
class TestCategorize:
    """交易类别测试"""

    def test_deploy_when_no_recipient(self):
        assert categorize_transaction(make_tx(data="0x6080", to=None)) == TransactionCategory.CONTRACT_DEPLOY

    def test_transfer_without_call_data(self):
        assert categorize_transaction(make_tx(value=10**18)) == TransactionCategory.TRANSFER

    def test_contract_call(self):
        assert categorize_transaction(make_tx(data="0xa9059cbb00")) == TransactionCategory.CONTRACT_CALL


@pytest.mark.unit
class TestClassifyContractType:
    """合约类型推断测试"""

    def test_selector_wins_over_gas(self):
        """ERC20 transfer 选择器即使 gas 很高也判为 ERC20"""
        tx = make_tx(data="0xa9059cbb" + "00" * 64)
        assert classify_contract_type(tx, make_receipt(2_000_000)) == ContractType.ERC20

    @pytest.mark.parametrize(
        "selector,expected",
        [
            ("0x23b872dd", ContractType.ERC20),
            ("0x42842e0e", ContractType.ERC721),
            ("0x38ed1739", ContractType.DEX),
            ("0xc5ebeaec", ContractType.LENDING),
            ("0xe2bbb158", ContractType.STAKING),
        ],
    )
    def test_selector_rules(self, selector, expected):
        assert classify_contract_type(make_tx(data=selector + "00"), None) == expected

    def test_withdraw_collision_resolves_by_rule_order(self):
        """0x2e1a7d4d 只在 Staking 规则中，0x69328dec 只在 Lending 规则中"""
        assert classify_contract_type(make_tx(data="0x2e1a7d4d"), None) == ContractType.STAKING
        assert classify_contract_type(make_tx(data="0x69328dec"), None) == ContractType.LENDING

    @pytest.mark.parametrize(
        "gas_used,expected",
        [
            (1_000_001, ContractType.COMPLEX_DEFI),
            (1_000_000, ContractType.MULTI_FUNCTION),
            (500_001, ContractType.MULTI_FUNCTION),
            (500_000, ContractType.STANDARD_CONTRACT),
            (100_001, ContractType.STANDARD_CONTRACT),
            (100_000, ContractType.UNKNOWN),
        ],
    )
    def test_gas_bands_are_strict(self, gas_used, expected):
        tx = make_tx(data="0xdeadbeef")
        assert classify_contract_type(tx, make_receipt(gas_used)) == expected

    def test_missing_receipt_gas_defaults_to_zero(self):
        tx = make_tx(data="0xdeadbeef")
        assert classify_contract_type(tx, None) == ContractType.UNKNOWN
        assert classify_contract_type(tx, make_receipt(None)) == ContractType.UNKNOWN

    def test_no_call_data_is_unknown(self):
        assert classify_contract_type(make_tx(), make_receipt(5_000_000)) == ContractType.UNKNOWN

    def test_classification_is_idempotent(self):
        tx = make_tx(data="0x7ff36ab5" + "00" * 32)
        receipt = make_receipt(150_000)
        assert classify_contract_type(tx, receipt) == classify_contract_type(tx, receipt)


@pytest.mark.unit
class TestFunctionNames:
    """函数名解析测试"""

    def test_known_selector(self):
        assert resolve_function_name("0xa9059cbb") == "transfer(address,uint256)"

    def test_unknown_selector(self):
        assert resolve_function_name("0x12345678") == "Unknown (0x12345678)"
