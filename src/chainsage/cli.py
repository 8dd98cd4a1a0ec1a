"""chainsage command line: analyze, explain, compare, batch, fix, config"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from chainsage import __version__
from chainsage.agent.batch import BatchAnalyzer, read_addresses
from chainsage.agent.comparison import ComparisonEngine
from chainsage.agent.explorer_client import ExplorerClient, FetchFailedError
from chainsage.agent.reasoner import Reasoner, ReasoningFailedError
from chainsage.config import ChainSageConfig, ConfigInvalidError, get_config
from chainsage.models.analysis import ExecutionResult
from chainsage.utils.caching import get_cache
from chainsage.utils.logging import CallLogger, configure_logging
from chainsage.utils.output_formats import OutputFormat, TextFormatter, get_formatter
from chainsage.utils.validation import InputValidator, ValidationResult, validate_startup_config

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2

# analyze pulls a short history window for behavioural context
ANALYZE_HISTORY_LIMIT = 50


@dataclass
class Runtime:
    explorer: ExplorerClient
    reasoner: Reasoner
    call_logger: CallLogger

    def close(self) -> None:
        self.explorer.close()
        self.reasoner.backend.close()


def build_runtime(cfg: ChainSageConfig) -> Runtime:
    """composition root: one cache, one call log, one backend per process"""
    call_logger = CallLogger.from_config(cfg)
    explorer = ExplorerClient.from_config(cfg, cache=get_cache(), call_logger=call_logger)
    reasoner = Reasoner.from_config(cfg, call_logger=call_logger)
    return Runtime(explorer=explorer, reasoner=reasoner, call_logger=call_logger)


def _report_invalid(result: ValidationResult) -> None:
    for error in result.errors:
        print(f"Error: {error}", file=sys.stderr)


def _emit(text: str, output: Optional[str]) -> None:
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        print(f"Saved to: {output}")
    else:
        print(text)


def _formatter(args):
    fmt = OutputFormat(args.format)
    if fmt is OutputFormat.TEXT:
        return TextFormatter(detailed=getattr(args, "detailed", True))
    return get_formatter(fmt)


def cmd_analyze(args, cfg: ChainSageConfig, runtime: Runtime) -> int:
    check = InputValidator().validate_address(args.address)
    if not check:
        _report_invalid(check)
        return EXIT_FAILURE
    address = args.address.strip()

    contract = runtime.explorer.get_contract(address, args.network)
    transactions = runtime.explorer.get_transactions(address, ANALYZE_HISTORY_LIMIT, args.network)
    if not transactions:
        logger.info("no transaction history for %s; analyzing without it", address)
    analysis = runtime.reasoner.analyze_contract(contract, transactions)

    _emit(_formatter(args).format(analysis, contract), args.output)
    return EXIT_OK


def cmd_explain(args, cfg: ChainSageConfig, runtime: Runtime) -> int:
    check = InputValidator().validate_tx_hash(args.tx_hash)
    if not check:
        _report_invalid(check)
        return EXIT_FAILURE
    tx_hash = args.tx_hash.strip()

    tx = runtime.explorer.get_transaction(tx_hash, args.network)
    internal = runtime.explorer.get_internal_transactions(tx_hash, args.network)
    analysis = runtime.reasoner.analyze_transaction(tx, internal)

    _emit(_formatter(args).format(analysis, tx), args.output)
    return EXIT_OK


def _load_execution(path: str) -> ExecutionResult:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return ExecutionResult.from_dict(data)


def cmd_compare(args, cfg: ChainSageConfig, runtime: Optional[Runtime]) -> int:
    try:
        simulation = _load_execution(args.simulation)
        onchain = _load_execution(args.onchain)
    except (OSError, ValueError) as exc:
        print(f"Error: could not read execution result: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    if args.no_ai or runtime is None:
        result = ComparisonEngine().compare(simulation, onchain)
    else:
        result = runtime.reasoner.compare_results(simulation, onchain)

    _emit(_formatter(args).format(result), args.output)
    return EXIT_OK


def cmd_batch(args, cfg: ChainSageConfig, runtime: Runtime) -> int:
    check = InputValidator().validate_batch_file(args.file)
    if not check:
        _report_invalid(check)
        return EXIT_FAILURE

    addresses = read_addresses(args.file)
    if not addresses:
        print("Error: No valid addresses found in file", file=sys.stderr)
        return EXIT_FAILURE

    def progress(index: int, total: int, address: str) -> None:
        logger.info("analyzed %d/%d: %s", index, total, address)

    analyzer = BatchAnalyzer(
        runtime.explorer,
        runtime.reasoner,
        max_workers=args.workers or cfg.BATCH_WORKERS,
        on_progress=progress,
    )
    results = analyzer.run(addresses, args.network)

    Path(args.output).write_text(
        json.dumps([item.to_dict() for item in results], indent=2) + "\n", encoding="utf-8"
    )

    successful = [item for item in results if item.success]
    print("=" * 60)
    print("BATCH ANALYSIS SUMMARY")
    print("=" * 60)
    print(f"Total Contracts: {len(addresses)}")
    print(f"Successful: {len(successful)}")
    print(f"Failed: {len(results) - len(successful)}")
    if successful:
        average = sum(item.security_score or 0 for item in successful) / len(successful)
        print(f"Average Security Score: {average:.1f}/100")
    print(f"Results saved to: {args.output}")
    return EXIT_OK


def _fix_report(contract, network: str, analysis, fixes) -> Dict[str, Any]:
    return {
        "contract": {
            "name": contract.name,
            "address": contract.address,
            "network": network,
        },
        "analysis": {
            "securityScore": analysis.security_score,
            "risks": [risk.to_dict() for risk in analysis.risks],
        },
        "fixes": [fix.to_dict() for fix in fixes],
    }


def cmd_fix(args, cfg: ChainSageConfig, runtime: Runtime) -> int:
    check = InputValidator().validate_address(args.address)
    if not check:
        _report_invalid(check)
        return EXIT_FAILURE
    address = args.address.strip()

    contract = runtime.explorer.get_contract(address, args.network)
    if not contract.verified or not contract.source_code:
        print("Error: Contract must be verified on Blockscout to generate fixes", file=sys.stderr)
        return EXIT_FAILURE

    analysis = runtime.reasoner.analyze_contract(contract)
    fixes = runtime.reasoner.generate_fixes(contract, analysis)

    print("=" * 60)
    print("AUTOMATED FIX SUGGESTIONS")
    print("=" * 60)
    print(f"Contract: {contract.name}")
    print(f"Address: {address}")
    print(f"Security Score: {analysis.security_score}/100\n")
    for index, fix in enumerate(fixes, 1):
        print(f"{index}. {fix.vulnerability}")
        print(f"   Severity: {fix.severity.value.upper()}")
        print(f"   {fix.explanation}\n")
        if fix.original_code and fix.original_code != "// Refer to contract source code":
            print("   Original Code:")
            print("   " + fix.original_code.replace("\n", "\n   "))
            print("   Fixed Code:")
            print("   " + fix.fixed_code.replace("\n", "\n   ") + "\n")
        if fix.best_practices:
            print("   Best Practices:")
            for practice in fix.best_practices:
                print(f"   - {practice}")
            print()

    if args.output:
        network = args.network or cfg.DEFAULT_NETWORK
        report = _fix_report(contract, network, analysis, fixes)
        Path(args.output).write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
        print(f"Fix suggestions saved to: {args.output}")
    return EXIT_OK


def cmd_config(cfg: ChainSageConfig) -> int:
    result = cfg.validate()
    print(cfg.summary())
    print()
    print(str(result))
    return EXIT_OK if result.valid else EXIT_CONFIG


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chainsage",
        description="ChainSage - AI-assisted blockchain contract and transaction analysis"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Logging verbosity (default: $LOG_LEVEL or info)"
    )

    network = argparse.ArgumentParser(add_help=False)
    network.add_argument(
        "-n", "--network",
        type=str,
        default=None,
        help="Network to use (default: $DEFAULT_NETWORK or ethereum)"
    )
    formatting = argparse.ArgumentParser(add_help=False)
    formatting.add_argument(
        "-f", "--format",
        type=str,
        choices=[fmt.value for fmt in OutputFormat],
        default=OutputFormat.TEXT.value,
        help="Output format"
    )
    formatting.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Write the report to this file instead of stdout"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", parents=[network, formatting],
                             help="Analyze a smart contract using AI")
    analyze.add_argument("address", help="Contract address to analyze")
    analyze.add_argument("-d", "--detailed", action="store_true",
                         help="Include optimization opportunities in text output")

    explain = sub.add_parser("explain", parents=[network, formatting],
                             help="Explain a transaction using AI")
    explain.add_argument("tx_hash", help="Transaction hash to explain")

    compare = sub.add_parser("compare", parents=[formatting],
                             help="Compare a simulated execution with its on-chain execution")
    compare.add_argument("simulation", help="JSON file with the simulated execution result")
    compare.add_argument("onchain", help="JSON file with the on-chain execution result")
    compare.add_argument("--no-ai", action="store_true",
                         help="Score only; skip the LLM narrative")

    batch = sub.add_parser("batch", parents=[network],
                           help="Batch analyze contracts listed in a file")
    batch.add_argument("file", help="File containing contract addresses (one per line)")
    batch.add_argument("-o", "--output", type=str, default="batch-results.json",
                       help="Output file for results")
    batch.add_argument("--workers", type=int, default=None,
                       help="Parallel workers (default: $BATCH_WORKERS or 1)")

    fix = sub.add_parser("fix", parents=[network],
                         help="Generate fix suggestions for contract vulnerabilities")
    fix.add_argument("address", help="Contract address to analyze")
    fix.add_argument("-o", "--output", type=str, default=None,
                     help="Output file for fix suggestions")

    sub.add_parser("config", help="Validate and display configuration")
    return parser


COMMANDS = {
    "analyze": cmd_analyze,
    "explain": cmd_explain,
    "compare": cmd_compare,
    "batch": cmd_batch,
    "fix": cmd_fix,
}


def main(argv=None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = get_config()
    configure_logging(args.log_level or cfg.LOG_LEVEL)

    if args.command == "config":
        return cmd_config(cfg)

    if getattr(args, "format", None) == OutputFormat.SARIF.value and args.command != "analyze":
        print("Error: sarif output is only available for contract analysis", file=sys.stderr)
        return EXIT_FAILURE

    offline = args.command == "compare" and args.no_ai
    try:
        if not offline:
            result = validate_startup_config(cfg)
            for warning in result.warnings:
                logger.warning(warning)
        if getattr(args, "network", None):
            check = InputValidator().validate_network(args.network)
            if not check:
                _report_invalid(check)
                return EXIT_FAILURE
        runtime = None if offline else build_runtime(cfg)
    except ConfigInvalidError as exc:
        print("Configuration errors:", file=sys.stderr)
        for error in exc.errors:
            print(f"  - {error}", file=sys.stderr)
        return EXIT_CONFIG

    try:
        return COMMANDS[args.command](args, cfg, runtime)
    except FetchFailedError as exc:
        print(f"Error: could not fetch data from the explorer: {exc}", file=sys.stderr)
        if runtime is not None:
            runtime.call_logger.log_error(args.command, exc.identifier, "FetchFailedError", str(exc))
        return EXIT_FAILURE
    except ReasoningFailedError as exc:
        print(f"Error: analysis failed: {exc}", file=sys.stderr)
        if runtime is not None:
            runtime.call_logger.log_error(args.command, None, "ReasoningFailedError", str(exc))
        return EXIT_FAILURE
    except OSError as exc:
        print(f"Error: file operation failed: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        if runtime is not None:
            runtime.close()


if __name__ == "__main__":
    sys.exit(main())
