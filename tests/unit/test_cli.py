"""tests for the command line entry point: dispatch, output and exit codes"""

import json
from unittest.mock import MagicMock, patch

import pytest

from chainsage import cli
from chainsage.agent.explorer_client import FetchFailedError
from chainsage.agent.reasoner import ReasoningFailedError
from chainsage.config import ConfigInvalidError
from chainsage.models.analysis import AnalysisRecord, FixSuggestion, Risk, Severity, TransactionAnalysisRecord
from chainsage.models.records import ContractRecord, TransactionRecord, TxStatus
from chainsage.utils.validation import ValidationResult

ADDRESS = "0x" + "4" * 40
TX_HASH = "0x" + "5" * 64


@pytest.fixture
def cfg():
    config = MagicMock(LOG_LEVEL="info", BATCH_WORKERS=1, DEFAULT_NETWORK="ethereum")
    config.validate.return_value = ValidationResult(valid=True)
    config.summary.return_value = "ChainSage Configuration:"
    return config


@pytest.fixture
def runtime():
    explorer = MagicMock()
    explorer.get_contract.return_value = ContractRecord(
        address=ADDRESS, name="Vault", verified=True, source_code="contract Vault {}", transaction_count=3,
    )
    explorer.get_transactions.return_value = []
    explorer.get_transaction.return_value = TransactionRecord(hash=TX_HASH, from_address="0xa",
                                                              status=TxStatus.SUCCESS)
    explorer.get_internal_transactions.return_value = []

    reasoner = MagicMock()
    reasoner.analyze_contract.return_value = AnalysisRecord(
        contract_address=ADDRESS, contract_name="Vault", summary="A vault.", security_score=64,
        risks=[Risk(Severity.HIGH, category="Reentrancy", description="withdraw")],
    )
    reasoner.analyze_transaction.return_value = TransactionAnalysisRecord(transaction_hash=TX_HASH, summary="Withdraws.")
    reasoner.generate_fixes.return_value = [
        FixSuggestion("Reentrancy", Severity.HIGH, "state after call", "a()", "b()", ["CEI"]),
    ]
    return cli.Runtime(explorer=explorer, reasoner=reasoner, call_logger=MagicMock())


@pytest.fixture
def run(cfg, runtime):
    """invoke main() with config, startup validation and runtime wiring patched out"""
    with patch("chainsage.cli.get_config", return_value=cfg), \
            patch("chainsage.cli.configure_logging"), \
            patch("chainsage.cli.validate_startup_config", return_value=ValidationResult(valid=True)) as startup, \
            patch("chainsage.cli.build_runtime", return_value=runtime) as build:
        def invoke(*argv):
            return cli.main(list(argv))
        invoke.startup = startup
        invoke.build = build
        yield invoke


class TestAnalyze:
    def test_text_report(self, run, runtime, capsys):
        assert run("analyze", ADDRESS) == 0
        out = capsys.readouterr().out
        assert "CONTRACT ANALYSIS REPORT" in out
        assert "Security Score: 64/100" in out
        runtime.explorer.get_transactions.assert_called_once_with(ADDRESS, 50, None)

    def test_network_is_passed_through(self, run, runtime):
        assert run("analyze", ADDRESS, "-n", "base") == 0
        runtime.explorer.get_contract.assert_called_once_with(ADDRESS, "base")

    def test_json_to_file(self, run, tmp_path):
        output = tmp_path / "report.json"
        assert run("analyze", ADDRESS, "-f", "json", "-o", str(output)) == 0
        assert json.loads(output.read_text(encoding="utf-8"))["securityScore"] == 64

    def test_sarif(self, run, capsys):
        assert run("analyze", ADDRESS, "-f", "sarif") == 0
        assert json.loads(capsys.readouterr().out)["version"] == "2.1.0"

    def test_invalid_address(self, run, runtime, capsys):
        assert run("analyze", "0x123") == 1
        assert "Invalid address format" in capsys.readouterr().err
        runtime.explorer.get_contract.assert_not_called()

    def test_fetch_failure_exits_1_and_is_logged(self, run, runtime, capsys):
        runtime.explorer.get_contract.side_effect = FetchFailedError("explorer returned HTTP 404", identifier=ADDRESS)
        assert run("analyze", ADDRESS) == 1
        assert "could not fetch data" in capsys.readouterr().err
        runtime.call_logger.log_error.assert_called_once_with("analyze", ADDRESS, "FetchFailedError",
                                                              "explorer returned HTTP 404")

    def test_reasoning_failure_exits_1(self, run, runtime, capsys):
        runtime.reasoner.analyze_contract.side_effect = ReasoningFailedError("analyze_contract failed: 401")
        assert run("analyze", ADDRESS) == 1
        assert "analysis failed" in capsys.readouterr().err


class TestStartup:
    def test_runtime_is_closed_after_the_command(self, run, runtime):
        assert run("analyze", ADDRESS) == 0
        runtime.explorer.close.assert_called_once_with()
        runtime.reasoner.backend.close.assert_called_once_with()

    def test_runtime_is_closed_after_a_failure(self, run, runtime):
        runtime.explorer.get_contract.side_effect = FetchFailedError("explorer returned HTTP 500")
        assert run("analyze", ADDRESS) == 1
        runtime.explorer.close.assert_called_once_with()

    def test_config_error_exits_2(self, run, capsys):
        run.startup.side_effect = ConfigInvalidError(["OPENAI_API_KEY environment variable not set"])
        assert run("analyze", ADDRESS) == 2
        assert "OPENAI_API_KEY" in capsys.readouterr().err
        run.build.assert_not_called()

    def test_backend_construction_error_exits_2(self, run):
        run.build.side_effect = ConfigInvalidError("GEMINI_API_KEY not set")
        assert run("analyze", ADDRESS) == 2

    def test_unknown_network_exits_1(self, run, capsys):
        assert run("analyze", ADDRESS, "--network", "dogechain") == 1
        assert "Unsupported network" in capsys.readouterr().err

    def test_sarif_rejected_outside_analyze(self, run, capsys):
        assert run("explain", TX_HASH, "-f", "sarif") == 1
        assert "sarif" in capsys.readouterr().err

    def test_missing_command_is_a_usage_error(self, run):
        with pytest.raises(SystemExit) as excinfo:
            run()
        assert excinfo.value.code == 2


class TestExplain:
    def test_markdown(self, run, runtime, capsys):
        assert run("explain", TX_HASH, "-f", "markdown") == 0
        assert "# chainsage transaction explanation" in capsys.readouterr().out
        runtime.reasoner.analyze_transaction.assert_called_once()

    def test_invalid_hash(self, run):
        assert run("explain", "0xabc") == 1


class TestCompare:
    @pytest.fixture
    def files(self, tmp_path):
        sim = tmp_path / "sim.json"
        chain = tmp_path / "chain.json"
        sim.write_text(json.dumps({"gasUsed": "110000", "events": [{"name": "Transfer"}]}))
        chain.write_text(json.dumps({"gas_used": 100000, "events": [{"name": "Transfer"}]}))
        return str(sim), str(chain)

    def test_offline_skips_config_and_runtime(self, run, files, capsys):
        assert run("compare", *files, "--no-ai", "-f", "json") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["functionBehaviorMatch"] == 90
        assert data["gasDeviation"] == 10.0
        run.startup.assert_not_called()
        run.build.assert_not_called()

    def test_with_ai_uses_reasoner(self, run, runtime, files):
        runtime.reasoner.compare_results.return_value = cli.ComparisonEngine().compare(
            cli.ExecutionResult(), cli.ExecutionResult())
        assert run("compare", *files) == 0
        runtime.reasoner.compare_results.assert_called_once()

    def test_unreadable_file(self, run, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2]")
        assert run("compare", str(bad), str(bad), "--no-ai") == 1
        assert "could not read execution result" in capsys.readouterr().err


class TestBatch:
    def test_writes_results_and_summary(self, run, runtime, tmp_path, capsys):
        listing = tmp_path / "addresses.txt"
        listing.write_text(f"{ADDRESS}\n# comment\n0x{'6' * 40}\n")
        output = tmp_path / "out.json"
        runtime.explorer.get_contract.side_effect = [
            runtime.explorer.get_contract.return_value,
            FetchFailedError("explorer returned HTTP 500"),
        ]

        assert run("batch", str(listing), "-o", str(output)) == 0

        results = json.loads(output.read_text(encoding="utf-8"))
        assert [item["success"] for item in results] == [True, False]
        assert results[0]["securityScore"] == 64
        out = capsys.readouterr().out
        assert "Successful: 1" in out
        assert "Failed: 1" in out
        assert "Average Security Score: 64.0/100" in out

    def test_unwritable_output_exits_1(self, run, tmp_path, capsys):
        listing = tmp_path / "addresses.txt"
        listing.write_text(f"{ADDRESS}\n")
        # a directory cannot be written as a file
        assert run("batch", str(listing), "-o", str(tmp_path)) == 1
        assert "file operation failed" in capsys.readouterr().err

    def test_empty_file(self, run, tmp_path, capsys):
        listing = tmp_path / "empty.txt"
        listing.write_text("")
        assert run("batch", str(listing)) == 1
        assert "File is empty" in capsys.readouterr().err

    def test_no_addresses(self, run, tmp_path, capsys):
        listing = tmp_path / "junk.txt"
        listing.write_text("hello\nworld\n")
        assert run("batch", str(listing)) == 1
        assert "No valid addresses found in file" in capsys.readouterr().err


class TestFix:
    def test_unverified_contract(self, run, runtime, capsys):
        runtime.explorer.get_contract.return_value = ContractRecord(address=ADDRESS, verified=False)
        assert run("fix", ADDRESS) == 1
        assert "must be verified" in capsys.readouterr().err
        runtime.reasoner.generate_fixes.assert_not_called()

    def test_report_file(self, run, tmp_path, capsys):
        output = tmp_path / "fixes.json"
        assert run("fix", ADDRESS, "-o", str(output)) == 0
        report = json.loads(output.read_text(encoding="utf-8"))
        assert report["contract"] == {"name": "Vault", "address": ADDRESS, "network": "ethereum"}
        assert report["analysis"]["securityScore"] == 64
        assert report["fixes"][0]["fixedCode"] == "b()"
        assert "AUTOMATED FIX SUGGESTIONS" in capsys.readouterr().out


class TestConfigCommand:
    def test_valid(self, run, capsys):
        assert run("config") == 0
        assert "Validation passed" in capsys.readouterr().out

    def test_invalid(self, run, cfg, capsys):
        cfg.validate.return_value = ValidationResult(valid=False, errors=["OPENAI_API_KEY environment variable not set"])
        assert run("config") == 2
        assert "OPENAI_API_KEY" in capsys.readouterr().out
        run.build.assert_not_called()
