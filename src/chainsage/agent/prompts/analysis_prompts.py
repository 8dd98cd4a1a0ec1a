"""
Analysis Prompt Templates

Prompts for contract analysis, transaction explanation, simulation comparison,
risk identification and gas optimization. Every reply is requested as JSON;
the response parser tolerates replies that ignore the request.
"""

import json
from typing import Any, Dict, List, Optional

from chainsage.models.analysis import ExecutionResult
from chainsage.models.records import ContractRecord, TransactionRecord

SYSTEM_PROMPT = """You are ChainSage, an AI blockchain researcher connected to the Hardhat 3 Simulator and Blockscout MCP Server.

Your role is to:
1. Analyze smart contracts and explain their functionality
2. Interpret blockchain transactions and trace value flows
3. Compare simulated behavior with on-chain reality
4. Identify security risks and suggest optimizations
5. Provide clear, actionable insights in natural language

Always be precise, technical when needed, but explain complex concepts clearly."""

CONTRACT_RESPONSE_SHAPE = """Format your response as JSON with these fields:
{
  "summary": "...",
  "functionality": ["...", "..."],
  "risks": [{"severity": "...", "category": "...", "description": "...", "recommendation": "..."}],
  "optimizations": [{"category": "...", "description": "...", "impact": "...", "implementation": "..."}],
  "behaviorInsights": ["...", "..."],
  "securityScore": 0-100
}"""

TRANSACTION_RESPONSE_SHAPE = """Format as JSON:
{
  "summary": "...",
  "intent": "...",
  "valueFlow": [{"from": "...", "to": "...", "amount": "...", "description": "..."}],
  "functionsInvoked": [{"contract": "...", "function": "...", "gasUsed": "..."}],
  "risks": ["..."],
  "explanation": "detailed explanation"
}"""

COMPARISON_RESPONSE_SHAPE = """Format as JSON:
{
  "functionBehaviorMatch": 0-100,
  "gasDeviation": percentage,
  "eventStructureMatch": boolean,
  "stateChangesMatch": boolean,
  "executionPathDifferences": ["..."],
  "unexpectedReverts": [],
  "summary": "...",
  "recommendations": ["..."]
}"""


def build_contract_prompt(contract: ContractRecord,
                          transactions: Optional[List[TransactionRecord]] = None) -> str:
    """contract facts plus the requested report structure"""
    function_names = json.dumps(contract.function_names(), indent=2)
    return f"""Analyze this smart contract and provide a comprehensive report:

**Contract Address:** {contract.address}
**Name:** {contract.name}
**Verified:** {str(contract.verified).lower()}
**Transactions:** {contract.transaction_count}

**ABI Functions:**
{function_names}

**Recent Transactions:** {len(transactions or [])}

Please provide:
1. A summary of what this contract does
2. Key functionality and features
3. Potential security risks (rate severity: low/medium/high/critical)
4. Gas optimization opportunities
5. Behavioral insights based on transaction patterns

""" + CONTRACT_RESPONSE_SHAPE


def build_transaction_prompt(tx: TransactionRecord, internal_count: int = 0) -> str:
    internal_line = f"**Internal Calls:** {internal_count}\n" if internal_count else ""
    return f"""Analyze this blockchain transaction and explain what it does:

**Transaction Hash:** {tx.hash}
**From:** {tx.from_address}
**To:** {tx.to_address}
**Value:** {tx.value} wei
**Function:** {tx.function_name or 'N/A'}
**Status:** {tx.status.value}
**Gas Used:** {tx.gas_used}
{internal_line}
**Input Data:**
{tx.input}

Provide:
1. Summary of what this transaction does
2. The likely intent/purpose
3. Value flows (who paid whom, how much)
4. Functions invoked
5. Any unusual patterns or risks

""" + TRANSACTION_RESPONSE_SHAPE


def _execution_block(result: ExecutionResult) -> str:
    return (
        f"- Gas Used: {result.gas_used}\n"
        f"- Events Emitted: {len(result.events)}\n"
        f"- State Changes: {len(result.state_changes)}\n"
        f"- Status: {result.status or ('reverted' if result.reverted else 'success')}"
    )


def build_comparison_prompt(simulation: ExecutionResult, onchain: ExecutionResult) -> str:
    return f"""Compare the Hardhat simulation with on-chain reality:

**Simulation Data:**
{_execution_block(simulation)}

**On-Chain Data:**
{_execution_block(onchain)}

Analyze the differences and provide insights:

""" + COMPARISON_RESPONSE_SHAPE


def build_risk_prompt(contract: Dict[str, Any]) -> str:
    return f"""Identify security risks in this smart contract:

{json.dumps(contract, indent=2, default=str)}

List all potential risks with severity levels."""


def build_optimization_prompt(gas_report: Dict[str, Any]) -> str:
    return f"""Based on this gas report, suggest optimizations:

{json.dumps(gas_report, indent=2, default=str)}

Provide specific, actionable optimization suggestions."""
