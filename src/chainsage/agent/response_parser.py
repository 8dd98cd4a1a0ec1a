"""turn free-form llm replies into analysis records.

models are asked for json but replies arrive as prose, fenced blocks, json
wrapped in commentary, or broken json. every parser here returns a record:
when nothing can be recovered the record is marked parse_degraded and keeps
the raw text, so callers never see a parse exception.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from chainsage.models.analysis import (
    AnalysisRecord,
    FixSuggestion,
    FunctionInvocation,
    Optimization,
    OptimizationCategory,
    Impact,
    Risk,
    Severity,
    TransactionAnalysisRecord,
    ValueFlow,
)
from chainsage.utils.json_sanitizer import parse_json_object

logger = logging.getLogger(__name__)

NO_ISSUE_PHRASES = ("no vulnerabilities found", "no issues found", "no security issues")
DEGRADED_SUMMARY_LIMIT = 2000
DEFAULT_SECURITY_SCORE = 50

SEVERITY_MARKER = re.compile(r"\[(CRITICAL|HIGH|MEDIUM|LOW)\]")
LINE_NUMBER = re.compile(r"Line\s+(\d+)", re.IGNORECASE)
LINE_PREFIX = re.compile(r"Line\s+\d+:\s*", re.IGNORECASE)
SCORE_LINE = re.compile(r"(\d+)/100")


def reports_no_issues(text: str) -> bool:
    lowered = (text or "").lower()
    return any(phrase in lowered for phrase in NO_ISSUE_PHRASES)


def coerce_score(value: Any, default: int = DEFAULT_SECURITY_SCORE) -> int:
    """numeric score clamped to 0-100; anything else yields the default"""
    if isinstance(value, bool) or value is None:
        return default
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    if score != score:  # nan
        return default
    return max(0, min(100, int(round(score))))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_text_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [_as_text(item) for item in value if item is not None]


def _as_dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def risk_from_dict(data: Dict[str, Any]) -> Risk:
    raw = _as_text(data.get("severity")).strip()
    affected = data.get("affectedFunctions") or data.get("affected_functions") or []
    line = data.get("line")
    return Risk(
        severity=Severity.parse(raw),
        category=_as_text(data.get("category") or data.get("title")),
        description=_as_text(data.get("description")),
        recommendation=_as_text(data.get("recommendation")),
        affected_functions=_as_text_list(affected),
        raw_severity=raw,
        line=line if isinstance(line, int) and not isinstance(line, bool) else None,
    )


def _risks(value: Any) -> List[Risk]:
    risks = []
    if not isinstance(value, list):
        return risks
    for item in value:
        if isinstance(item, dict):
            risks.append(risk_from_dict(item))
        elif isinstance(item, str) and item.strip():
            risks.append(Risk(severity=Severity.LOW, description=item))
    return risks


def optimization_from_dict(data: Dict[str, Any]) -> Optimization:
    return Optimization(
        category=OptimizationCategory.parse(data.get("category")),
        description=_as_text(data.get("description")),
        impact=Impact.parse(data.get("impact")),
        implementation=_as_text(data.get("implementation")),
    )


def extract_marked_risks(text: str) -> List[Risk]:
    """lift '[HIGH] ...' style lines (optionally 'Line N:') out of prose"""
    risks = []
    for line in (text or "").splitlines():
        match = SEVERITY_MARKER.search(line)
        if not match:
            continue
        line_match = LINE_NUMBER.search(line)
        description = LINE_PREFIX.sub("", SEVERITY_MARKER.sub("", line, count=1), count=1).strip()
        risks.append(Risk(
            severity=Severity.parse(match.group(1)),
            description=description,
            raw_severity=match.group(1),
            line=int(line_match.group(1)) if line_match else 1,
        ))
    return risks


def extract_score(text: str) -> Optional[int]:
    for line in (text or "").splitlines():
        if "Security Score:" in line:
            match = SCORE_LINE.search(line)
            if match:
                return coerce_score(match.group(1))
    return None


def _degraded(operation: str, target: str, text: str) -> str:
    logger.warning(
        "%s reply for %s was not valid JSON (%d chars); keeping raw text",
        operation, target, len(text or ""),
    )
    return (text or "")[:DEGRADED_SUMMARY_LIMIT]


def parse_contract_analysis(text: str, address: str,
                            contract_name: Optional[str] = None) -> AnalysisRecord:
    fallback_name = contract_name or "Unknown"
    if reports_no_issues(text):
        return AnalysisRecord(
            contract_address=address,
            contract_name=fallback_name,
            summary=(text or "").strip()[:DEGRADED_SUMMARY_LIMIT],
            security_score=100,
        )

    data = parse_json_object(text, marker='"summary"')
    if data is None:
        score = extract_score(text)
        return AnalysisRecord(
            contract_address=address,
            contract_name=fallback_name,
            summary=_degraded("contract analysis", address, text),
            risks=extract_marked_risks(text),
            security_score=score if score is not None else DEFAULT_SECURITY_SCORE,
            parse_degraded=True,
        )

    return AnalysisRecord(
        contract_address=address,
        contract_name=_as_text(data.get("contractName")) or fallback_name,
        summary=_as_text(data.get("summary")),
        functionality=_as_text_list(data.get("functionality")),
        risks=_risks(data.get("risks")),
        optimizations=[optimization_from_dict(o) for o in _as_dict_list(data.get("optimizations"))],
        behavior_insights=_as_text_list(data.get("behaviorInsights")),
        security_score=coerce_score(data.get("securityScore")),
    )


def _value_flow(data: Dict[str, Any]) -> ValueFlow:
    return ValueFlow(
        from_address=_as_text(data.get("from")),
        to_address=_as_text(data.get("to")),
        amount=_as_text(data.get("amount")),
        token=_as_text(data.get("token")) or None,
        description=_as_text(data.get("description")),
    )


def _invocations(value: Any) -> List[FunctionInvocation]:
    """functionsInvoked items may be bare names or objects"""
    if not isinstance(value, list):
        return []
    invocations = []
    for item in value:
        if isinstance(item, str):
            invocations.append(FunctionInvocation(function=item))
        elif isinstance(item, dict):
            invocations.append(_invocation(item))
    return invocations


def _invocation(data: Dict[str, Any]) -> FunctionInvocation:
    return FunctionInvocation(
        function=_as_text(data.get("function")),
        contract=_as_text(data.get("contract")),
        gas_used=_as_text(data.get("gasUsed")),
    )


def parse_transaction_analysis(text: str, tx_hash: str) -> TransactionAnalysisRecord:
    data = parse_json_object(text, marker='"summary"')
    if data is None:
        raw = _degraded("transaction analysis", tx_hash, text)
        return TransactionAnalysisRecord(
            transaction_hash=tx_hash,
            summary=raw,
            explanation=text or "",
            parse_degraded=True,
        )

    return TransactionAnalysisRecord(
        transaction_hash=tx_hash,
        summary=_as_text(data.get("summary")),
        intent=_as_text(data.get("intent")),
        value_flow=[_value_flow(v) for v in _as_dict_list(data.get("valueFlow"))],
        functions_invoked=_invocations(data.get("functionsInvoked")),
        risks=_as_text_list(data.get("risks")),
        explanation=_as_text(data.get("explanation")) or text,
    )


def parse_comparison_narrative(text: str) -> Tuple[str, bool]:
    """(narrative, degraded): the parsed summary, or the raw reply"""
    data = parse_json_object(text, marker='"summary"')
    if data is not None and _as_text(data.get("summary")):
        return _as_text(data.get("summary")), False
    return (text or "").strip(), data is None


def parse_risks(text: str) -> List[Risk]:
    """risk list from a reply; prose falls back to severity-marked lines"""
    if reports_no_issues(text):
        return []
    data = parse_json_object(text, marker='"risks"')
    if data is not None:
        return _risks(data.get("risks"))
    return extract_marked_risks(text)


def parse_optimizations(text: str) -> List[Optimization]:
    data = parse_json_object(text, marker='"optimizations"')
    if data is None:
        return []
    return [optimization_from_dict(o) for o in _as_dict_list(data.get("optimizations"))]


def fallback_fixes(analysis: AnalysisRecord, title_of) -> List[FixSuggestion]:
    """one templated suggestion per risk, used when the fix reply is unreadable"""
    return [
        FixSuggestion(
            vulnerability=title_of(risk),
            severity=risk.severity,
            explanation=risk.description,
            original_code="// Refer to contract source code",
            fixed_code="// Manual review recommended",
            best_practices=["Follow OpenZeppelin patterns", "Add comprehensive tests"],
        )
        for risk in analysis.risks
    ]


def parse_fixes(text: str) -> Optional[List[FixSuggestion]]:
    """fix list from a reply, or none when no fixes object can be recovered"""
    data = parse_json_object(text, marker='"fixes"')
    if data is None or not isinstance(data.get("fixes"), list):
        return None
    fixes = []
    for item in _as_dict_list(data.get("fixes")):
        fixes.append(FixSuggestion(
            vulnerability=_as_text(item.get("vulnerability")),
            severity=Severity.parse(item.get("severity")),
            explanation=_as_text(item.get("explanation")),
            original_code=_as_text(item.get("originalCode")),
            fixed_code=_as_text(item.get("fixedCode")),
            best_practices=_as_text_list(item.get("bestPractices")),
        ))
    return fixes
