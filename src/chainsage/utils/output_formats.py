"""output formatters for analysis results: text, json, sarif, markdown"""

from enum import Enum
from typing import Protocol, Dict, Any, List, Optional, Union
import json

from chainsage import __version__
from chainsage.models.analysis import (
    AnalysisRecord,
    ComparisonResult,
    Risk,
    Severity,
    TransactionAnalysisRecord,
)
from chainsage.models.records import ContractRecord, TransactionRecord

Result = Union[AnalysisRecord, TransactionAnalysisRecord, ComparisonResult]
Subject = Union[ContractRecord, TransactionRecord, None]

RULE = "=" * 60


class OutputFormat(Enum):
    """supported output formats"""
    TEXT = "text"
    JSON = "json"
    SARIF = "sarif"
    MARKDOWN = "markdown"


class OutputFormatter(Protocol):
    """protocol for output formatters"""
    def format(self, result: Result, subject: Subject = None) -> str:
        """format an analysis result; subject is the record it was computed from"""
        ...


def _unsupported(formatter: object, result: object) -> TypeError:
    return TypeError(f"{type(formatter).__name__} cannot format {type(result).__name__}")


class TextFormatter:
    """human-readable text output (default terminal format)"""

    def __init__(self, detailed: bool = True):
        self.detailed = detailed

    def format(self, result: Result, subject: Subject = None) -> str:
        if isinstance(result, AnalysisRecord):
            return self._contract(result, subject if isinstance(subject, ContractRecord) else None)
        if isinstance(result, TransactionAnalysisRecord):
            return self._transaction(result, subject if isinstance(subject, TransactionRecord) else None)
        if isinstance(result, ComparisonResult):
            return self._comparison(result)
        raise _unsupported(self, result)

    def _contract(self, result: AnalysisRecord, contract: Optional[ContractRecord]) -> str:
        lines = [RULE, "CONTRACT ANALYSIS REPORT", RULE]
        lines.append(f"Contract: {result.contract_name}")
        lines.append(f"Address: {result.contract_address}")
        if contract is not None:
            lines.append(f"Verified: {'Yes' if contract.verified else 'No'}")
            lines.append(f"Transactions: {contract.transaction_count}")
        lines.append(f"Security Score: {result.security_score}/100")
        if result.parse_degraded:
            lines.append("Note: the model reply was not structured; showing raw text")

        lines.append("\nSummary:")
        lines.append(result.summary)

        if result.functionality:
            lines.append("\nKey Functionality:")
            lines.extend(f"  - {item}" for item in result.functionality)

        if result.risks:
            lines.append("\nSecurity Risks:")
            for risk in result.risks:
                lines.append(f"  [{risk.severity.value.upper()}] {risk.category or 'general'}")
                lines.append(f"    {risk.description}")
                if risk.recommendation:
                    lines.append(f"    Fix: {risk.recommendation}")

        if result.optimizations and self.detailed:
            lines.append("\nOptimization Opportunities:")
            for opt in result.optimizations:
                lines.append(f"  [{opt.category.value}] {opt.description}")
                lines.append(f"    Impact: {opt.impact.value}")

        if result.behavior_insights:
            lines.append("\nBehavioral Insights:")
            lines.extend(f"  - {insight}" for insight in result.behavior_insights)

        lines.append(RULE)
        return "\n".join(lines)

    def _transaction(self, result: TransactionAnalysisRecord, tx: Optional[TransactionRecord]) -> str:
        lines = [RULE, "TRANSACTION EXPLANATION", RULE]
        lines.append(f"Transaction: {result.transaction_hash}")
        if tx is not None:
            lines.append(f"Status: {tx.status.value}")
            lines.append(f"From: {tx.from_address}")
            lines.append(f"To: {tx.to_address or '(contract creation)'}")
            lines.append(f"Value: {tx.value} wei")
            lines.append(f"Gas Used: {tx.gas_used}")

        lines.append("\nSummary:")
        lines.append(result.summary)
        if result.intent:
            lines.append("\nIntent:")
            lines.append(result.intent)

        if result.value_flow:
            lines.append("\nValue Flow:")
            for flow in result.value_flow:
                lines.append(f"  {flow.from_address} -> {flow.to_address}: {flow.amount} {flow.token or 'ETH'}")
                if flow.description:
                    lines.append(f"  {flow.description}")

        if result.risks:
            lines.append("\nRisks:")
            lines.extend(f"  - {risk}" for risk in result.risks)

        if result.explanation and result.explanation != result.summary:
            lines.append("\nExplanation:")
            lines.append(result.explanation)

        lines.append(RULE)
        return "\n".join(lines)

    def _comparison(self, result: ComparisonResult) -> str:
        lines = [RULE, "SIMULATION VS ON-CHAIN", RULE]
        lines.append(f"Behavior Match: {result.function_behavior_match}%")
        lines.append(f"Gas Deviation: {result.gas_deviation:+.1f}%")
        lines.append(f"Events Match: {'yes' if result.event_structure_match else 'no'}")
        lines.append(f"State Changes Match: {'yes' if result.state_changes_match else 'no'}")
        lines.append(f"\n{result.summary}")

        if result.execution_path_differences:
            lines.append("\nExecution Path Differences:")
            lines.extend(f"  - {diff}" for diff in result.execution_path_differences)
        if result.unexpected_reverts:
            lines.append("\nUnexpected Reverts:")
            for revert in result.unexpected_reverts:
                lines.append(f"  - {revert.location.value}: {revert.function} ({revert.reason})")

        lines.append("\nRecommendations:")
        lines.extend(f"  - {rec}" for rec in result.recommendations)
        if result.narrative:
            lines.append("\nAnalysis:")
            lines.append(result.narrative)

        lines.append(RULE)
        return "\n".join(lines)


class JSONFormatter:
    """json output for programmatic consumption"""

    def format(self, result: Result, subject: Subject = None) -> str:
        return json.dumps(result.to_dict(), indent=2, default=str)


class SARIFFormatter:
    """sarif 2.1.0 formatter for code scanning and ide diagnostics (contract analyses only)"""

    def format(self, result: Result, subject: Subject = None) -> str:
        if not isinstance(result, AnalysisRecord):
            raise _unsupported(self, result)
        sarif = {
            "$schema": "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json",
            "version": "2.1.0",
            "runs": [self._build_run(result)]
        }
        return json.dumps(sarif, indent=2)

    def _build_run(self, result: AnalysisRecord) -> Dict[str, Any]:
        return {
            "tool": self._build_tool(result),
            "results": [self._build_result(risk, result) for risk in result.risks],
            "properties": {
                "contractAddress": result.contract_address,
                "contractName": result.contract_name,
                "securityScore": result.security_score,
                "parseDegraded": result.parse_degraded,
            }
        }

    def _build_tool(self, result: AnalysisRecord) -> Dict[str, Any]:
        categories = sorted({self._rule_id(risk) for risk in result.risks})
        return {
            "driver": {
                "name": "ChainSage",
                "version": __version__,
                "semanticVersion": __version__,
                "shortDescription": {
                    "text": "AI-assisted smart contract analysis"
                },
                "rules": [
                    {
                        "id": rule_id,
                        "name": rule_id.replace("-", " ").title(),
                        "shortDescription": {"text": f"{rule_id} risk"},
                        "defaultConfiguration": {"level": "warning"},
                        "properties": {"tags": ["security", "smart-contract"]},
                    }
                    for rule_id in categories
                ]
            }
        }

    @staticmethod
    def _rule_id(risk: Risk) -> str:
        category = (risk.category or "general").strip().lower()
        return "-".join(category.split()) or "general"

    def _build_result(self, risk: Risk, result: AnalysisRecord) -> Dict[str, Any]:
        sarif_result = {
            "ruleId": self._rule_id(risk),
            "level": self._severity_to_sarif_level(risk.severity),
            "message": {
                "text": risk.description or risk.category
            },
            "locations": [{
                "physicalLocation": {
                    "artifactLocation": {
                        "uri": result.contract_address,
                    },
                    "region": {
                        "startLine": risk.line or 1,
                        "startColumn": 1
                    }
                },
                "message": {
                    "text": f"Risk in {result.contract_name}"
                }
            }],
            "properties": {
                "severity": risk.severity.value,
            }
        }
        if risk.raw_severity and not risk.is_known_severity:
            sarif_result["properties"]["rawSeverity"] = risk.raw_severity
        if risk.recommendation:
            sarif_result["fixes"] = [{
                "description": {
                    "text": risk.recommendation
                }
            }]
        return sarif_result

    def _severity_to_sarif_level(self, severity: Severity) -> str:
        mapping = {
            Severity.CRITICAL: "error",
            Severity.HIGH: "error",
            Severity.MEDIUM: "warning",
            Severity.LOW: "note",
        }
        return mapping.get(severity, "note")


class MarkdownFormatter:
    """markdown report formatter"""

    def format(self, result: Result, subject: Subject = None) -> str:
        if isinstance(result, AnalysisRecord):
            return self._contract(result, subject if isinstance(subject, ContractRecord) else None)
        if isinstance(result, TransactionAnalysisRecord):
            return self._transaction(result)
        if isinstance(result, ComparisonResult):
            return self._comparison(result)
        raise _unsupported(self, result)

    def _contract(self, result: AnalysisRecord, contract: Optional[ContractRecord]) -> str:
        lines = ["# chainsage contract analysis", ""]
        lines.append("| Property | Value |")
        lines.append("|----------|-------|")
        lines.append(f"| Contract | `{result.contract_name}` |")
        lines.append(f"| Address | `{result.contract_address}` |")
        if contract is not None:
            lines.append(f"| Verified | {'yes' if contract.verified else 'no'} |")
            lines.append(f"| Transactions | {contract.transaction_count} |")
        lines.append(f"| Security Score | {result.security_score}/100 |")
        lines.append("")

        lines.append("## summary")
        lines.append("")
        lines.append(result.summary)
        lines.append("")

        if result.functionality:
            lines.append("## functionality")
            lines.append("")
            lines.extend(f"- {item}" for item in result.functionality)
            lines.append("")

        if result.risks:
            lines.append("### severity breakdown")
            lines.append("")
            lines.append("| Severity | Count |")
            lines.append("|----------|-------|")
            for severity in reversed(list(Severity)):
                lines.append(f"| {severity.value.title()} | {len(result.risks_by_severity(severity))} |")
            lines.append("")

            lines.append("## risks")
            lines.append("")
            ordered = sorted(result.risks, key=lambda r: r.severity.rank, reverse=True)
            for i, risk in enumerate(ordered, 1):
                lines.append(f"### {i}. [{risk.severity.value.upper()}] {risk.category or 'general'}")
                lines.append("")
                lines.append(f"**Description**: {risk.description}")
                lines.append("")
                if risk.recommendation:
                    lines.append(f"**Recommendation**: {risk.recommendation}")
                    lines.append("")

        if result.optimizations:
            lines.append("## optimizations")
            lines.append("")
            for opt in result.optimizations:
                lines.append(f"- **{opt.category.value}** ({opt.impact.value} impact): {opt.description}")
            lines.append("")

        if result.behavior_insights:
            lines.append("## behavioral insights")
            lines.append("")
            lines.extend(f"- {insight}" for insight in result.behavior_insights)
            lines.append("")

        lines.extend(self._footer())
        return "\n".join(lines)

    def _transaction(self, result: TransactionAnalysisRecord) -> str:
        lines = ["# chainsage transaction explanation", ""]
        lines.append(f"**Transaction**: `{result.transaction_hash}`")
        lines.append("")
        lines.append("## summary")
        lines.append("")
        lines.append(result.summary)
        lines.append("")
        if result.intent:
            lines.append(f"**Intent**: {result.intent}")
            lines.append("")
        if result.value_flow:
            lines.append("## value flow")
            lines.append("")
            lines.append("| From | To | Amount | Description |")
            lines.append("|------|----|--------|-------------|")
            for flow in result.value_flow:
                lines.append(f"| `{flow.from_address}` | `{flow.to_address}` | {flow.amount} | {flow.description} |")
            lines.append("")
        if result.risks:
            lines.append("## risks")
            lines.append("")
            lines.extend(f"- {risk}" for risk in result.risks)
            lines.append("")
        lines.extend(self._footer())
        return "\n".join(lines)

    def _comparison(self, result: ComparisonResult) -> str:
        lines = ["# chainsage simulation comparison", ""]
        lines.append("| Metric | Value |")
        lines.append("|--------|-------|")
        lines.append(f"| Behavior Match | {result.function_behavior_match}% |")
        lines.append(f"| Gas Deviation | {result.gas_deviation:+.1f}% |")
        lines.append(f"| Events Match | {'yes' if result.event_structure_match else 'no'} |")
        lines.append(f"| State Changes Match | {'yes' if result.state_changes_match else 'no'} |")
        lines.append("")
        lines.append(result.summary)
        lines.append("")
        lines.append("## recommendations")
        lines.append("")
        lines.extend(f"- {rec}" for rec in result.recommendations)
        lines.append("")
        if result.narrative:
            lines.append("## analysis")
            lines.append("")
            lines.append(result.narrative)
            lines.append("")
        lines.extend(self._footer())
        return "\n".join(lines)

    @staticmethod
    def _footer() -> List[str]:
        return ["---", "", "*Generated by ChainSage*", ""]


def get_formatter(format_type: OutputFormat) -> OutputFormatter:
    formatters = {
        OutputFormat.TEXT: TextFormatter(),
        OutputFormat.JSON: JSONFormatter(),
        OutputFormat.SARIF: SARIFFormatter(),
        OutputFormat.MARKDOWN: MarkdownFormatter(),
    }
    return formatters[format_type]
