"""remediation prompt for the fix command"""

from typing import Optional

from chainsage.models.analysis import AnalysisRecord, Risk

FIX_RESPONSE_SHAPE = """Format as JSON with this structure:
{
  "fixes": [
    {
      "vulnerability": "Vulnerability name",
      "severity": "critical/high/medium/low",
      "explanation": "Why this is a problem",
      "originalCode": "// vulnerable code",
      "fixedCode": "// secure code with comments",
      "bestPractices": ["practice 1", "practice 2"]
    }
  ]
}"""


def risk_title(risk: Risk) -> str:
    """short name for a risk; models rarely send a title, so category stands in"""
    return risk.category or risk.description[:60] or "Unnamed risk"


def build_fix_prompt(contract_name: str, source_code: Optional[str], analysis: AnalysisRecord) -> str:
    risk_lines = "\n".join(
        f"- [{(risk.raw_severity or risk.severity.value).upper()}] {risk_title(risk)}: {risk.description}"
        for risk in analysis.risks
    )
    return f"""You are a Solidity security expert. Analyze the following vulnerabilities and provide specific code fixes.

Contract: {contract_name}
Source Code:
{source_code or '// source code not available'}

Identified Vulnerabilities:
{risk_lines}

For each vulnerability, provide:
1. Brief explanation of the issue
2. Original vulnerable code snippet
3. Fixed code snippet with comments
4. Security best practices

""" + FIX_RESPONSE_SHAPE
