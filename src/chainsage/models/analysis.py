"""analysis records produced by the reasoner and the comparator"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Union


class Severity(Enum):
    """risk severity, lowest first"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """case-insensitive; anything unrecognized is treated as low"""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return cls.LOW

    @property
    def rank(self) -> int:
        return list(Severity).index(self)


class OptimizationCategory(Enum):
    GAS = "gas"
    SECURITY = "security"
    DESIGN = "design"
    READABILITY = "readability"

    @classmethod
    def parse(cls, value: Any) -> "OptimizationCategory":
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return cls.DESIGN


class Impact(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Any) -> "Impact":
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return cls.LOW


@dataclass
class Risk:
    """one security risk. raw_severity keeps whatever the model wrote"""
    severity: Severity
    category: str = ""
    description: str = ""
    recommendation: str = ""
    affected_functions: List[str] = field(default_factory=list)
    raw_severity: str = ""
    line: Optional[int] = None

    @property
    def is_known_severity(self) -> bool:
        return self.raw_severity.strip().lower() in {s.value for s in Severity}

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "severity": self.severity.value,
            "category": self.category,
            "description": self.description,
            "recommendation": self.recommendation,
        }
        if self.affected_functions:
            data["affectedFunctions"] = self.affected_functions
        if self.raw_severity and not self.is_known_severity:
            data["rawSeverity"] = self.raw_severity
        if self.line is not None:
            data["line"] = self.line
        return data


@dataclass
class Optimization:
    category: OptimizationCategory
    description: str = ""
    impact: Impact = Impact.LOW
    implementation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "description": self.description,
            "impact": self.impact.value,
            "implementation": self.implementation,
        }


@dataclass
class AnalysisRecord:
    """contract analysis. parse_degraded marks a reply that could not be read as json"""
    contract_address: str
    contract_name: str = "Unknown"
    summary: str = ""
    functionality: List[str] = field(default_factory=list)
    risks: List[Risk] = field(default_factory=list)
    optimizations: List[Optimization] = field(default_factory=list)
    behavior_insights: List[str] = field(default_factory=list)
    security_score: int = 50
    parse_degraded: bool = False

    def risks_by_severity(self, severity: Severity) -> List[Risk]:
        return [risk for risk in self.risks if risk.severity == severity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractAddress": self.contract_address,
            "contractName": self.contract_name,
            "summary": self.summary,
            "functionality": self.functionality,
            "risks": [risk.to_dict() for risk in self.risks],
            "optimizations": [opt.to_dict() for opt in self.optimizations],
            "behaviorInsights": self.behavior_insights,
            "securityScore": self.security_score,
            "parseDegraded": self.parse_degraded,
        }


@dataclass
class ValueFlow:
    from_address: str = ""
    to_address: str = ""
    amount: str = ""
    token: Optional[str] = None
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "from": self.from_address,
            "to": self.to_address,
            "amount": self.amount,
            "description": self.description,
        }
        if self.token:
            data["token"] = self.token
        return data


@dataclass
class FunctionInvocation:
    function: str
    contract: str = ""
    gas_used: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"contract": self.contract, "function": self.function, "gasUsed": self.gas_used}


@dataclass
class TransactionAnalysisRecord:
    """transaction explanation. risks here are free text, unlike contract risks"""
    transaction_hash: str
    summary: str = ""
    intent: str = ""
    value_flow: List[ValueFlow] = field(default_factory=list)
    functions_invoked: List[FunctionInvocation] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)
    explanation: str = ""
    parse_degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactionHash": self.transaction_hash,
            "summary": self.summary,
            "intent": self.intent,
            "valueFlow": [flow.to_dict() for flow in self.value_flow],
            "functionsInvoked": [fn.to_dict() for fn in self.functions_invoked],
            "risks": self.risks,
            "explanation": self.explanation,
            "parseDegraded": self.parse_degraded,
        }


def _to_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    try:
        return int(text)
    except ValueError:
        return int(float(text))


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class ExecutionResult:
    """one execution of a call, simulated or observed on chain"""
    gas_used: int = 0
    events: List[Dict[str, Any]] = field(default_factory=list)
    state_changes: List[Any] = field(default_factory=list)
    function_calls: Any = None
    reverted: bool = False
    revert_reason: str = ""
    function: str = ""
    status: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionResult":
        """accepts camelCase (front-end) or snake_case keys"""
        events = _pick(data, "events", default=[]) or []
        return cls(
            gas_used=_to_int(_pick(data, "gasUsed", "gas_used", default=0)),
            events=[e if isinstance(e, dict) else {"name": str(e)} for e in events],
            state_changes=list(_pick(data, "stateChanges", "state_changes", default=[]) or []),
            function_calls=_pick(data, "functionCalls", "function_calls"),
            reverted=bool(_pick(data, "reverted", default=False)),
            revert_reason=str(_pick(data, "revertReason", "revert_reason", default="")),
            function=str(_pick(data, "function", default="")),
            status=str(_pick(data, "status", default="")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gasUsed": str(self.gas_used),
            "events": self.events,
            "stateChanges": self.state_changes,
            "functionCalls": self.function_calls,
            "reverted": self.reverted,
            "revertReason": self.revert_reason,
            "function": self.function,
            "status": self.status,
        }


class RevertLocation(Enum):
    SIMULATION = "simulation"
    ONCHAIN = "onchain"


@dataclass
class RevertInfo:
    function: str
    reason: str
    location: RevertLocation
    expected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "reason": self.reason,
            "expected": self.expected,
            "location": self.location.value,
        }


@dataclass
class ComparisonResult:
    function_behavior_match: int
    gas_deviation: float
    event_structure_match: bool
    state_changes_match: bool
    execution_path_differences: List[str] = field(default_factory=list)
    unexpected_reverts: List[RevertInfo] = field(default_factory=list)
    summary: str = ""
    recommendations: List[str] = field(default_factory=list)
    narrative: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "functionBehaviorMatch": self.function_behavior_match,
            "gasDeviation": self.gas_deviation,
            "eventStructureMatch": self.event_structure_match,
            "stateChangesMatch": self.state_changes_match,
            "executionPathDifferences": self.execution_path_differences,
            "unexpectedReverts": [r.to_dict() for r in self.unexpected_reverts],
            "summary": self.summary,
            "recommendations": self.recommendations,
        }
        if self.narrative:
            data["narrative"] = self.narrative
        return data


@dataclass
class Difference:
    type: str
    description: str
    severity: str
    simulation: Union[int, str, None] = None
    onchain: Union[int, str, None] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "severity": self.severity,
            "simulation": self.simulation,
            "onchain": self.onchain,
        }


@dataclass
class ComparisonMetrics:
    similarity: int
    differences: List[Difference] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "similarity": self.similarity,
            "differences": [d.to_dict() for d in self.differences],
            "insights": self.insights,
        }


@dataclass
class FixSuggestion:
    vulnerability: str
    severity: Severity = Severity.LOW
    explanation: str = ""
    original_code: str = ""
    fixed_code: str = ""
    best_practices: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vulnerability": self.vulnerability,
            "severity": self.severity.value,
            "explanation": self.explanation,
            "originalCode": self.original_code,
            "fixedCode": self.fixed_code,
            "bestPractices": self.best_practices,
        }


@dataclass
class BatchItemResult:
    """one line of batch output; failures carry the error instead of scores"""
    address: str
    success: bool
    name: Optional[str] = None
    verified: Optional[bool] = None
    security_score: Optional[int] = None
    critical_risks: int = 0
    high_risks: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"address": self.address, "success": False, "error": self.error}
        return {
            "address": self.address,
            "name": self.name,
            "verified": self.verified,
            "securityScore": self.security_score,
            "criticalRisks": self.critical_risks,
            "highRisks": self.high_risks,
            "success": True,
        }
