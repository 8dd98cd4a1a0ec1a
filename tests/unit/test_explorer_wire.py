"""tests for blockscout wire models and their mapping into records"""

from datetime import timezone

import pytest

from chainsage.agent.explorer_wire import (
    InternalTransactionWire,
    SmartContractWire,
    SourceCodeWire,
    TokenTransferWire,
    TokenWire,
    TransactionWire,
    parse_optional_int,
    parse_timestamp,
    parse_uint,
    to_contract,
    to_internal_transaction,
    to_source_code,
    to_token,
    to_token_transfer,
    to_transaction,
)
from chainsage.models.records import TxStatus

ADDRESS = "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984"


class TestParseUint:
    def test_large_decimal_string_is_exact(self):
        assert parse_uint("115792089237316195423570985008687907853269984665640564039457584007913129639935") == 2 ** 256 - 1

    def test_hex_and_empty(self):
        assert parse_uint("0x10") == 16
        assert parse_uint(None) == 0
        assert parse_uint("") == 0
        assert parse_uint(7) == 7

    @pytest.mark.parametrize("value", ["1.5", "1e18", "-3", "abc"])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ValueError):
            parse_uint(value)

    def test_optional(self):
        assert parse_optional_int(None) is None
        assert parse_optional_int("12") == 12


def test_parse_timestamp_handles_z_suffix_and_garbage():
    parsed = parse_timestamp("2024-03-01T12:00:00.000000Z")
    assert parsed.tzinfo == timezone.utc
    assert parsed.year == 2024
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None


def test_contract_defaults_for_sparse_payload():
    record = to_contract(SmartContractWire.model_validate({"is_verified": False}), ADDRESS)
    assert record.address == ADDRESS
    assert record.name == "Unknown"
    assert record.compiler_version == "Unknown"
    assert record.verified is False
    assert record.abi == []
    assert record.source_code is None
    assert record.transaction_count == 0
    assert record.balance == 0


def test_contract_full_payload_ignores_extra_fields():
    wire = SmartContractWire.model_validate({
        "address_hash": ADDRESS,
        "name": "UniswapToken",
        "compiler_version": "v0.5.16+commit.9c3226ce",
        "is_verified": True,
        "abi": [{"type": "function", "name": "transfer"}, {"type": "event", "name": "Transfer"}],
        "source_code": "contract Uni {}",
        "tx_count": "1234",
        "coin_balance": "1000000000000000000",
        "creator_address_hash": "0xcreator",
        "some_new_field": {"nested": True},
    })
    record = to_contract(wire, "0xignored")
    assert record.address == ADDRESS
    assert record.verified is True
    assert record.function_names() == ["transfer"]
    assert record.transaction_count == 1234
    assert record.balance == 10 ** 18
    assert record.creator == "0xcreator"


def test_source_code_defaults():
    record = to_source_code(SourceCodeWire.model_validate({}))
    assert record.contract_name == "Unknown"
    assert record.runs == 200
    assert record.proxy is False
    assert record.source_code == ""


def test_transaction_mapping():
    wire = TransactionWire.model_validate({
        "hash": "0xabc",
        "from": {"hash": "0xsender"},
        "to": {"hash": "0xreceiver", "name": None},
        "value": "5",
        "gas_price": "20000000000",
        "gas_used": "21000",
        "raw_input": "0xa9059cbb",
        "block_number": 19000000,
        "timestamp": "2024-01-01T00:00:00Z",
        "status": "ok",
        "method": "transfer",
    })
    record = to_transaction(wire)
    assert record.from_address == "0xsender"
    assert record.to_address == "0xreceiver"
    assert record.gas_used == 21000
    assert record.input == "0xa9059cbb"
    assert record.block_number == 19000000
    assert record.status is TxStatus.SUCCESS
    assert record.function_name == "transfer"
    assert not record.is_contract_creation


def test_transaction_non_ok_status_is_failed_and_creation_has_no_to():
    record = to_transaction(TransactionWire.model_validate({"hash": "0x1", "status": "error", "to": None}))
    assert record.status is TxStatus.FAILED
    assert record.input == "0x"
    assert record.is_contract_creation


def test_transaction_requires_hash():
    with pytest.raises(Exception):
        TransactionWire.model_validate({"status": "ok"})


def test_internal_transaction_error_flag():
    ok = to_internal_transaction(InternalTransactionWire.model_validate({"type": "call", "gas_limit": "100"}))
    failed = to_internal_transaction(InternalTransactionWire.model_validate({"error": "Reverted"}))
    assert ok.is_error is False
    assert ok.gas == 100
    assert failed.is_error is True
    assert failed.error_code == "Reverted"


def test_token_defaults():
    record = to_token(TokenWire.model_validate({}), ADDRESS)
    assert record.address == ADDRESS
    assert record.symbol == "UNKNOWN"
    assert record.decimals == 18
    assert record.type == "ERC20"
    assert record.holders is None


def test_token_zero_decimals_kept():
    record = to_token(TokenWire.model_validate({"decimals": "0", "holders": "42"}), ADDRESS)
    assert record.decimals == 0
    assert record.holders == 42


def test_token_transfer_mapping():
    wire = TokenTransferWire.model_validate({
        "from": {"hash": "0xa"},
        "to": {"hash": "0xb"},
        "total": {"value": "2500", "decimals": "6"},
        "token": {"address": "0xtoken", "symbol": "USDC", "name": "USD Coin"},
        "transaction_hash": "0xtx",
    })
    record = to_token_transfer(wire)
    assert record.value == 2500
    assert record.token_symbol == "USDC"
    assert record.transaction_hash == "0xtx"
    assert record.to_dict()["token"]["address"] == "0xtoken"
