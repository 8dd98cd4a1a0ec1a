"""on-chain facts as returned by the explorer, after normalization"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from datetime import datetime


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class TxStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ContractRecord:
    """contract metadata keyed by address"""
    address: str
    name: str = "Unknown"
    compiler_version: str = "Unknown"
    verified: bool = False
    abi: List[Dict[str, Any]] = field(default_factory=list)
    source_code: Optional[str] = None
    transaction_count: int = 0
    balance: int = 0
    created_at: Optional[datetime] = None
    creator: Optional[str] = None

    def function_names(self) -> List[str]:
        return [
            entry.get("name", "")
            for entry in self.abi
            if isinstance(entry, dict) and entry.get("type") == "function"
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "compilerVersion": self.compiler_version,
            "verified": self.verified,
            "abi": self.abi,
            "sourceCode": self.source_code,
            "transactionCount": self.transaction_count,
            "balance": str(self.balance),
            "createdAt": _iso(self.created_at),
            "creator": self.creator,
        }


@dataclass
class SourceCodeRecord:
    """verified source and compiler settings for a contract"""
    source_code: str = ""
    abi: List[Dict[str, Any]] = field(default_factory=list)
    contract_name: str = "Unknown"
    compiler_version: str = ""
    optimization_used: bool = False
    runs: int = 200
    constructor_arguments: Optional[str] = None
    evm_version: Optional[str] = None
    library: Optional[Any] = None
    license_type: Optional[str] = None
    proxy: bool = False
    implementation: Optional[str] = None
    swarm_source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceCode": self.source_code,
            "abi": self.abi,
            "contractName": self.contract_name,
            "compilerVersion": self.compiler_version,
            "optimizationUsed": self.optimization_used,
            "runs": self.runs,
            "constructorArguments": self.constructor_arguments,
            "evmVersion": self.evm_version,
            "library": self.library,
            "licenseType": self.license_type,
            "proxy": self.proxy,
            "implementation": self.implementation,
            "swarmSource": self.swarm_source,
        }


@dataclass(frozen=True)
class TransactionRecord:
    """a mined transaction; immutable once fetched"""
    hash: str
    from_address: str
    to_address: str = ""
    value: int = 0
    gas_price: int = 0
    gas_used: int = 0
    input: str = "0x"
    block_number: int = 0
    timestamp: Optional[datetime] = None
    status: TxStatus = TxStatus.FAILED
    function_name: Optional[str] = None
    method_id: Optional[str] = None

    @property
    def is_contract_creation(self) -> bool:
        return not self.to_address

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "from": self.from_address,
            "to": self.to_address,
            "value": str(self.value),
            "gasPrice": str(self.gas_price),
            "gasUsed": str(self.gas_used),
            "input": self.input,
            "blockNumber": self.block_number,
            "timestamp": _iso(self.timestamp),
            "status": self.status.value,
            "functionName": self.function_name,
            "methodId": self.method_id,
        }


@dataclass
class InternalTransactionRecord:
    from_address: str
    to_address: str
    value: int = 0
    type: str = ""
    gas: int = 0
    gas_used: int = 0
    is_error: bool = False
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_address,
            "to": self.to_address,
            "value": str(self.value),
            "type": self.type,
            "gas": str(self.gas),
            "gasUsed": str(self.gas_used),
            "isError": self.is_error,
            "errCode": self.error_code,
        }


@dataclass
class TokenRecord:
    address: str
    name: str = "Unknown"
    symbol: str = "UNKNOWN"
    decimals: int = 18
    total_supply: int = 0
    type: str = "ERC20"
    holders: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "totalSupply": str(self.total_supply),
            "type": self.type,
            "holders": self.holders,
        }


@dataclass
class TokenTransferRecord:
    from_address: str
    to_address: str
    value: int = 0
    token_address: str = ""
    token_name: str = "Unknown"
    token_symbol: str = "UNKNOWN"
    timestamp: Optional[datetime] = None
    transaction_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_address,
            "to": self.to_address,
            "value": str(self.value),
            "token": {
                "address": self.token_address,
                "name": self.token_name,
                "symbol": self.token_symbol,
            },
            "timestamp": _iso(self.timestamp),
            "transactionHash": self.transaction_hash,
        }
