"""input validation utilities"""

from pathlib import Path
from typing import Optional, List, Any
from dataclasses import dataclass, field
import re


@dataclass
class ValidationResult:
    """result of input validation."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        """allow using validationresult in boolean context."""
        return self.valid

    def __str__(self) -> str:
        """string representation for easy error reporting."""
        lines = []
        if self.errors:
            lines.append("ERRORS:")
            for error in self.errors:
                lines.append(f"  - {error}")
        if self.warnings:
            lines.append("WARNINGS:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")
        return "\n".join(lines) if lines else "Validation passed"

    def add_error(self, error: str) -> None:
        """add an error and mark as invalid."""
        self.errors.append(error)
        self.valid = False

    def add_warning(self, warning: str) -> None:
        """add a warning without invalidating."""
        self.warnings.append(warning)

    def merge(self, other: "ValidationResult") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        if not other.valid:
            self.valid = False


class InputValidator:
    """validates user inputs before any network call is made."""

    ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')
    TX_HASH_PATTERN = re.compile(r'^0x[a-fA-F0-9]{64}$')

    # batch input files are plain text, one address per line
    MAX_BATCH_FILE_SIZE = 5 * 1024 * 1024

    def validate_address(self, address: str) -> ValidationResult:
        """validate a 20-byte hex address"""
        result = ValidationResult(valid=True)

        if not address or not isinstance(address, str):
            result.add_error("Address must be a non-empty string")
            return result

        if address != address.strip():
            result.add_warning("Address has leading/trailing whitespace (will be stripped)")
            address = address.strip()

        if not self.ADDRESS_PATTERN.match(address):
            result.add_error(f"Invalid address format: {address} (expected 0x followed by 40 hex characters)")

        return result

    def validate_tx_hash(self, tx_hash: str) -> ValidationResult:
        """validate a 32-byte hex transaction hash"""
        result = ValidationResult(valid=True)

        if not tx_hash or not isinstance(tx_hash, str):
            result.add_error("Transaction hash must be a non-empty string")
            return result

        if not self.TX_HASH_PATTERN.match(tx_hash.strip()):
            result.add_error(f"Invalid transaction hash format: {tx_hash} (expected 0x followed by 64 hex characters)")

        return result

    def validate_network(self, network: str) -> ValidationResult:
        from chainsage.agent.chain_config import NETWORKS, normalize_network

        result = ValidationResult(valid=True)
        if not network or not isinstance(network, str):
            result.add_error("Network must be a non-empty string")
            return result

        canonical = normalize_network(network)
        if canonical not in NETWORKS:
            result.add_error(f"Unsupported network '{network}' (known: {', '.join(sorted(NETWORKS))})")
        elif canonical != network.strip().lower():
            result.add_warning(f"Network alias '{network}' resolved to '{canonical}'")
        return result

    def validate_batch_file(self, path: str) -> ValidationResult:
        """validate a batch input file before reading it"""
        result = ValidationResult(valid=True)

        if not path or not isinstance(path, str):
            result.add_error("Batch file path must be a non-empty string")
            return result

        p = Path(path)
        if not p.exists():
            result.add_error(f"Batch file not found: {path}")
            return result
        if not p.is_file():
            result.add_error(f"Path is not a regular file: {path}")
            return result

        size = p.stat().st_size
        if size == 0:
            result.add_error("File is empty")
        elif size > self.MAX_BATCH_FILE_SIZE:
            result.add_error(f"File too large: {size} bytes (max {self.MAX_BATCH_FILE_SIZE})")

        return result

    def validate_config_value(
        self,
        name: str,
        value: Any,
        expected_type: type,
        min_val: Optional[float] = None,
        max_val: Optional[float] = None,
        allowed_values: Optional[List[Any]] = None
    ) -> ValidationResult:
        """validate a configuration value against a type, a range and an allowed set."""
        result = ValidationResult(valid=True)

        if isinstance(value, bool) and expected_type in (int, float):
            result.add_error(f"{name} must be {expected_type.__name__}, got bool")
            return result

        accepted = (int, float) if expected_type is float else expected_type
        if not isinstance(value, accepted):
            result.add_error(
                f"{name} must be {expected_type.__name__}, got {type(value).__name__}"
            )
            return result

        if allowed_values is not None:
            if value not in allowed_values:
                result.add_error(
                    f"{name} must be one of {allowed_values}, got {value}"
                )
                return result

        if expected_type in (int, float):
            if min_val is not None and value < min_val:
                result.add_error(f"{name} must be >= {min_val}, got {value}")

            if max_val is not None and value > max_val:
                result.add_error(f"{name} must be <= {max_val}, got {value}")

        return result


def validate_startup_config(cfg=None) -> ValidationResult:
    """validate configuration before any network call. raises configinvaliderror on errors."""
    # import config here to avoid circular dependency
    from chainsage.config import ConfigInvalidError, get_config

    cfg = cfg or get_config()
    result = cfg.validate()
    validator = InputValidator()

    config_checks = [
        ("REQUEST_TIMEOUT", cfg.REQUEST_TIMEOUT, float, 1.0, 300.0),
        ("LLM_TEMPERATURE", cfg.LLM_TEMPERATURE, float, 0.0, 2.0),
        ("LLM_MAX_TOKENS", cfg.LLM_MAX_TOKENS, int, 1, 200000),
        ("CACHE_TTL", cfg.CACHE_TTL, int, 0, 86400),
        ("CACHE_MAX_SIZE", cfg.CACHE_MAX_SIZE, int, 1, 100000),
        ("BATCH_WORKERS", cfg.BATCH_WORKERS, int, 1, 32),
    ]
    for name, value, expected_type, min_val, max_val in config_checks:
        result.merge(validator.validate_config_value(name, value, expected_type, min_val, max_val))

    if not result.valid:
        raise ConfigInvalidError(result.errors)
    return result

