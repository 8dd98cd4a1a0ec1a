"""tests for input and startup validation"""

from unittest.mock import MagicMock

import pytest

from chainsage.config import ConfigInvalidError
from chainsage.utils.validation import (
    InputValidator,
    ValidationResult,
    validate_startup_config,
)

ADDRESS = "0x" + "aB" * 20
TX_HASH = "0x" + "0f" * 32

validator = InputValidator()


class TestValidationResult:
    def test_truthiness(self):
        assert bool(ValidationResult(valid=True)) is True
        assert bool(ValidationResult(valid=False)) is False

    def test_add_error_invalidates(self):
        result = ValidationResult(valid=True)
        result.add_warning("careful")
        assert result.valid
        result.add_error("broken")
        assert not result.valid
        assert str(result) == "ERRORS:\n  - broken\nWARNINGS:\n  - careful"

    def test_merge(self):
        result = ValidationResult(valid=True)
        other = ValidationResult(valid=False, errors=["bad"], warnings=["meh"])
        result.merge(other)
        assert not result.valid
        assert result.errors == ["bad"]
        assert result.warnings == ["meh"]

    def test_passed_string(self):
        assert str(ValidationResult(valid=True)) == "Validation passed"


class TestAddress:
    def test_valid_mixed_case(self):
        assert validator.validate_address(ADDRESS).valid

    @pytest.mark.parametrize("value", ["", None, "0x123", "abcdef" * 7, "0x" + "g" * 40, ADDRESS + "00"])
    def test_invalid(self, value):
        assert not validator.validate_address(value).valid

    def test_whitespace_is_a_warning(self):
        result = validator.validate_address(f"  {ADDRESS} ")
        assert result.valid
        assert result.warnings


class TestTxHash:
    def test_valid(self):
        assert validator.validate_tx_hash(TX_HASH).valid

    def test_address_length_is_not_a_hash(self):
        assert not validator.validate_tx_hash(ADDRESS).valid


class TestNetwork:
    def test_known(self):
        result = validator.validate_network("base")
        assert result.valid and not result.warnings

    def test_alias_warns(self):
        result = validator.validate_network("mainnet")
        assert result.valid
        assert "resolved to 'ethereum'" in result.warnings[0]

    def test_unknown(self):
        result = validator.validate_network("dogechain")
        assert not result.valid
        assert "Unsupported network" in result.errors[0]


class TestBatchFile:
    def test_missing(self, tmp_path):
        assert not InputValidator().validate_batch_file(str(tmp_path / "nope.txt")).valid

    def test_directory(self, tmp_path):
        assert not InputValidator().validate_batch_file(str(tmp_path)).valid

    def test_empty(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("")
        result = InputValidator().validate_batch_file(str(path))
        assert result.errors == ["File is empty"]

    def test_ok(self, tmp_path):
        path = tmp_path / "list.txt"
        path.write_text(ADDRESS + "\n")
        assert InputValidator().validate_batch_file(str(path)).valid


class TestConfigValue:
    def test_range(self):
        validator = InputValidator()
        assert validator.validate_config_value("X", 5, int, 1, 10).valid
        assert not validator.validate_config_value("X", 0, int, 1, 10).valid
        assert not validator.validate_config_value("X", 11, int, 1, 10).valid

    def test_int_accepted_for_float(self):
        assert InputValidator().validate_config_value("T", 30, float, 1.0, 300.0).valid

    def test_bool_rejected_for_numbers(self):
        result = InputValidator().validate_config_value("N", True, int)
        assert "got bool" in result.errors[0]

    def test_allowed_values(self):
        validator = InputValidator()
        assert validator.validate_config_value("P", "openai", str, allowed_values=["openai"]).valid
        assert not validator.validate_config_value("P", "other", str, allowed_values=["openai"]).valid


def _cfg(**overrides):
    values = dict(
        REQUEST_TIMEOUT=30.0,
        LLM_TEMPERATURE=0.7,
        LLM_MAX_TOKENS=4096,
        CACHE_TTL=900,
        CACHE_MAX_SIZE=1000,
        BATCH_WORKERS=1,
    )
    values.update(overrides)
    cfg = MagicMock(**values)
    cfg.validate.return_value = ValidationResult(valid=True)
    return cfg


class TestStartupConfig:
    def test_passes(self):
        assert validate_startup_config(_cfg()).valid

    def test_out_of_range_setting_raises(self):
        with pytest.raises(ConfigInvalidError) as excinfo:
            validate_startup_config(_cfg(BATCH_WORKERS=64))
        assert any("BATCH_WORKERS" in error for error in excinfo.value.errors)

    def test_config_errors_are_collected(self):
        cfg = _cfg(LLM_TEMPERATURE=5.0)
        cfg.validate.return_value = ValidationResult(valid=False, errors=["OPENAI_API_KEY environment variable not set."])
        with pytest.raises(ConfigInvalidError) as excinfo:
            validate_startup_config(cfg)
        assert len(excinfo.value.errors) == 2
