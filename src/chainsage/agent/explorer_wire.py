# spdx-license-identifier: mit
"""raw blockscout v2 response shapes and their mapping into domain records.

every defaulting rule for explorer data lives here: wire models accept what the
api sends (extra fields ignored, most fields optional), and the to_* functions
are pure conversions into the records in chainsage.models.records.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from chainsage.models.records import (
    ContractRecord,
    InternalTransactionRecord,
    SourceCodeRecord,
    TokenRecord,
    TokenTransferRecord,
    TransactionRecord,
    TxStatus,
)

Numeric = Union[str, int, float, None]


def parse_uint(value: Numeric) -> int:
    """decimal (or 0x-hex) string to int without passing through float"""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        return max(int(value), 0)
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    if "." in text or "e" in text.lower():
        # scientific or fractional strings are rejected rather than rounded
        raise ValueError(f"not an unsigned integer: {text!r}")
    result = int(text)
    if result < 0:
        raise ValueError(f"negative value for unsigned field: {text!r}")
    return result


def parse_optional_int(value: Numeric) -> Optional[int]:
    if value is None or value == "":
        return None
    return parse_uint(value)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AddressRef(WireModel):
    hash: Optional[str] = None
    name: Optional[str] = None


def _hash_of(ref: Optional[AddressRef]) -> str:
    return (ref.hash or "") if ref else ""


class SmartContractWire(WireModel):
    address: Optional[str] = None
    address_hash: Optional[str] = None
    name: Optional[str] = None
    compiler_version: Optional[str] = None
    is_verified: Optional[bool] = None
    abi: Optional[List[Dict[str, Any]]] = None
    source_code: Optional[str] = None
    tx_count: Numeric = None
    coin_balance: Numeric = None
    created_at: Optional[str] = None
    creator_address_hash: Optional[str] = None


class SourceCodeWire(WireModel):
    source_code: Optional[str] = None
    abi: Optional[List[Dict[str, Any]]] = None
    name: Optional[str] = None
    compiler_version: Optional[str] = None
    optimization_enabled: Optional[bool] = None
    optimization_runs: Numeric = None
    constructor_args: Optional[str] = None
    evm_version: Optional[str] = None
    external_libraries: Optional[Any] = None
    license_type: Optional[str] = None
    is_proxy: Optional[bool] = None
    implementation_address: Optional[str] = None
    swarm_source: Optional[str] = None


class TransactionWire(WireModel):
    hash: str
    from_: Optional[AddressRef] = Field(default=None, alias="from")
    to: Optional[AddressRef] = None
    value: Numeric = None
    gas_price: Numeric = None
    gas_used: Numeric = None
    input: Optional[str] = None
    raw_input: Optional[str] = None
    block: Numeric = None
    block_number: Numeric = None
    timestamp: Optional[str] = None
    status: Optional[str] = None
    method: Optional[str] = None
    method_id: Optional[str] = None


class InternalTransactionWire(WireModel):
    from_: Optional[AddressRef] = Field(default=None, alias="from")
    to: Optional[AddressRef] = None
    value: Numeric = None
    type: Optional[str] = None
    gas: Numeric = None
    gas_limit: Numeric = None
    gas_used: Numeric = None
    error: Optional[str] = None


class AddressWire(WireModel):
    coin_balance: Numeric = None


class TokenWire(WireModel):
    address: Optional[str] = None
    address_hash: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Numeric = None
    total_supply: Numeric = None
    type: Optional[str] = None
    holders_count: Numeric = None
    holders: Numeric = None


class TokenTotal(WireModel):
    value: Numeric = None
    decimals: Numeric = None


class TokenRef(WireModel):
    address: Optional[str] = None
    address_hash: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None


class TokenTransferWire(WireModel):
    from_: Optional[AddressRef] = Field(default=None, alias="from")
    to: Optional[AddressRef] = None
    total: Optional[TokenTotal] = None
    token: Optional[TokenRef] = None
    timestamp: Optional[str] = None
    tx_hash: Optional[str] = None
    transaction_hash: Optional[str] = None


class Page(WireModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    next_page_params: Optional[Dict[str, Any]] = None


def to_contract(wire: SmartContractWire, requested_address: str) -> ContractRecord:
    return ContractRecord(
        address=wire.address or wire.address_hash or requested_address,
        name=wire.name or "Unknown",
        compiler_version=wire.compiler_version or "Unknown",
        verified=bool(wire.is_verified),
        abi=list(wire.abi or []),
        source_code=wire.source_code or None,
        transaction_count=parse_uint(wire.tx_count),
        balance=parse_uint(wire.coin_balance),
        created_at=parse_timestamp(wire.created_at),
        creator=wire.creator_address_hash or None,
    )


def to_source_code(wire: SourceCodeWire) -> SourceCodeRecord:
    return SourceCodeRecord(
        source_code=wire.source_code or "",
        abi=list(wire.abi or []),
        contract_name=wire.name or "Unknown",
        compiler_version=wire.compiler_version or "",
        optimization_used=bool(wire.optimization_enabled),
        runs=parse_uint(wire.optimization_runs) or 200,
        constructor_arguments=wire.constructor_args or None,
        evm_version=wire.evm_version or None,
        library=wire.external_libraries or None,
        license_type=wire.license_type or None,
        proxy=bool(wire.is_proxy),
        implementation=wire.implementation_address or None,
        swarm_source=wire.swarm_source or None,
    )


def to_transaction(wire: TransactionWire) -> TransactionRecord:
    block = wire.block if wire.block is not None else wire.block_number
    return TransactionRecord(
        hash=wire.hash,
        from_address=_hash_of(wire.from_),
        to_address=_hash_of(wire.to),
        value=parse_uint(wire.value),
        gas_price=parse_uint(wire.gas_price),
        gas_used=parse_uint(wire.gas_used),
        input=wire.input or wire.raw_input or "0x",
        block_number=parse_uint(block),
        timestamp=parse_timestamp(wire.timestamp),
        status=TxStatus.SUCCESS if wire.status == "ok" else TxStatus.FAILED,
        function_name=wire.method or None,
        method_id=wire.method_id or None,
    )


def to_internal_transaction(wire: InternalTransactionWire) -> InternalTransactionRecord:
    gas = wire.gas if wire.gas is not None else wire.gas_limit
    return InternalTransactionRecord(
        from_address=_hash_of(wire.from_),
        to_address=_hash_of(wire.to),
        value=parse_uint(wire.value),
        type=wire.type or "",
        gas=parse_uint(gas),
        gas_used=parse_uint(wire.gas_used),
        is_error=wire.error is not None,
        error_code=wire.error,
    )


def to_balance(wire: AddressWire) -> int:
    return parse_uint(wire.coin_balance)


def to_token(wire: TokenWire, requested_address: str) -> TokenRecord:
    holders = wire.holders_count if wire.holders_count is not None else wire.holders
    return TokenRecord(
        address=wire.address or wire.address_hash or requested_address,
        name=wire.name or "Unknown",
        symbol=wire.symbol or "UNKNOWN",
        decimals=parse_uint(wire.decimals) if wire.decimals not in (None, "") else 18,
        total_supply=parse_uint(wire.total_supply),
        type=wire.type or "ERC20",
        holders=parse_optional_int(holders),
    )


def to_token_transfer(wire: TokenTransferWire) -> TokenTransferRecord:
    token = wire.token or TokenRef()
    return TokenTransferRecord(
        from_address=_hash_of(wire.from_),
        to_address=_hash_of(wire.to),
        value=parse_uint(wire.total.value if wire.total else None),
        token_address=token.address or token.address_hash or "",
        token_name=token.name or "Unknown",
        token_symbol=token.symbol or "UNKNOWN",
        timestamp=parse_timestamp(wire.timestamp),
        transaction_hash=wire.tx_hash or wire.transaction_hash or "",
    )
