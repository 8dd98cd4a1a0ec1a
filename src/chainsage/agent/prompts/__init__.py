"""
Prompt Templates Module

Centralized location for the prompt templates sent by the Reasoner.

Exports:
    From analysis_prompts:
        - SYSTEM_PROMPT: fixed ChainSage system prompt, sent with every call
        - build_contract_prompt, build_transaction_prompt, build_comparison_prompt
        - build_risk_prompt, build_optimization_prompt

    From fix_prompts:
        - build_fix_prompt: remediation request for the fix command
"""

from .analysis_prompts import (
    SYSTEM_PROMPT,
    build_contract_prompt,
    build_transaction_prompt,
    build_comparison_prompt,
    build_risk_prompt,
    build_optimization_prompt,
)
from .fix_prompts import build_fix_prompt

__all__ = [
    "SYSTEM_PROMPT",
    "build_contract_prompt",
    "build_transaction_prompt",
    "build_comparison_prompt",
    "build_risk_prompt",
    "build_optimization_prompt",
    "build_fix_prompt",
]
