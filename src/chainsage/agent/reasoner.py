# spdx-license-identifier: mit
"""llm-backed analysis of contracts, transactions and simulation comparisons"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from chainsage.agent.comparison import ComparisonEngine
from chainsage.agent.prompts import (
    SYSTEM_PROMPT,
    build_comparison_prompt,
    build_contract_prompt,
    build_fix_prompt,
    build_optimization_prompt,
    build_risk_prompt,
    build_transaction_prompt,
)
from chainsage.agent.prompts.fix_prompts import risk_title
from chainsage.agent import response_parser
from chainsage.models.analysis import (
    AnalysisRecord,
    ComparisonResult,
    ExecutionResult,
    FixSuggestion,
    Optimization,
    Risk,
    TransactionAnalysisRecord,
)
from chainsage.models.records import ContractRecord, InternalTransactionRecord, TransactionRecord
from chainsage.utils.llm_backend.base import LLMBackend, LLMResponse

logger = logging.getLogger(__name__)


class ReasoningFailedError(Exception):
    """the llm call itself failed; parse problems never raise this"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class Reasoner:
    """
    Builds prompts from domain records, sends them to one configured backend,
    and normalizes the replies into analysis records.

    A failed backend call raises ReasoningFailedError. A reply that cannot be
    parsed never raises: it becomes a degraded record (parse_degraded=True).
    identify_risks and suggest_optimizations are best-effort and return []
    on any failure.
    """

    def __init__(
        self,
        backend: LLMBackend,
        comparator: Optional[ComparisonEngine] = None,
        call_logger=None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        debug: bool = False,
    ):
        self.backend = backend
        self.comparator = comparator or ComparisonEngine()
        self.call_logger = call_logger
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.debug = debug

    @classmethod
    def from_config(cls, cfg, backend: Optional[LLMBackend] = None, call_logger=None) -> "Reasoner":
        if backend is None:
            from chainsage.utils.llm_backend import create_backend
            backend = create_backend(cfg)
        return cls(
            backend=backend,
            call_logger=call_logger,
            max_tokens=cfg.LLM_MAX_TOKENS,
            temperature=cfg.LLM_TEMPERATURE,
            debug=bool(cfg.DEBUG_LLM_CALLS),
        )

    def _call(self, operation: str, target: Optional[str], prompt: str) -> str:
        """one backend round trip; every failure surfaces as ReasoningFailedError"""
        started = time.time()
        response: Optional[LLMResponse] = None
        error: Optional[Exception] = None
        try:
            response = self.backend.generate(
                prompt,
                system_prompt=SYSTEM_PROMPT,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as exc:
            error = exc
        duration = time.time() - started

        if self.call_logger is not None:
            self.call_logger.log_ai_call(
                operation=operation,
                target=target,
                provider=getattr(self.backend, "provider", type(self.backend).__name__),
                model=getattr(self.backend, "model", ""),
                prompt=prompt,
                response=response.text if response else f"error: {error}",
                prompt_tokens=response.prompt_tokens if response else 0,
                output_tokens=response.output_tokens if response else 0,
                cost=response.cost if response else 0.0,
                duration_seconds=duration,
                success=error is None,
            )

        if error is not None:
            logger.error("%s for %s failed: %s", operation, target, error)
            raise ReasoningFailedError(f"{operation} failed: {error}", error) from error
        logger.debug("%s for %s took %.1fs", operation, target, duration)
        if self.debug:
            logger.debug("%s prompt:\n%s\nreply:\n%s", operation, prompt, response.text)
        return response.text or ""

    def _note_degraded(self, operation: str, target: Optional[str], text: str) -> None:
        if self.call_logger is not None:
            self.call_logger.log_parse_degraded(operation, target, text)

    def analyze_contract(self, contract: ContractRecord,
                         transactions: Optional[List[TransactionRecord]] = None) -> AnalysisRecord:
        prompt = build_contract_prompt(contract, transactions)
        text = self._call("analyze_contract", contract.address, prompt)
        record = response_parser.parse_contract_analysis(text, contract.address, contract.name)
        if record.parse_degraded:
            self._note_degraded("analyze_contract", contract.address, text)
        return record

    def analyze_transaction(self, tx: TransactionRecord,
                            internal_transactions: Optional[List[InternalTransactionRecord]] = None
                            ) -> TransactionAnalysisRecord:
        prompt = build_transaction_prompt(tx, len(internal_transactions or []))
        text = self._call("analyze_transaction", tx.hash, prompt)
        record = response_parser.parse_transaction_analysis(text, tx.hash)
        if record.parse_degraded:
            self._note_degraded("analyze_transaction", tx.hash, text)
        return record

    def compare_results(self, simulation: ExecutionResult, onchain: ExecutionResult) -> ComparisonResult:
        """comparator score plus an llm narrative; the numbers always come from the comparator"""
        result = self.comparator.compare(simulation, onchain)
        text = self._call("compare_results", None, build_comparison_prompt(simulation, onchain))
        narrative, degraded = response_parser.parse_comparison_narrative(text)
        if degraded:
            self._note_degraded("compare_results", None, text)
        result.narrative = narrative
        return result

    def identify_risks(self, contract: Dict[str, Any]) -> List[Risk]:
        target = contract.get("address") if isinstance(contract, dict) else None
        try:
            text = self._call("identify_risks", target, build_risk_prompt(contract))
            return response_parser.parse_risks(text)
        except Exception as exc:
            logger.warning("risk identification failed, returning no risks: %s", exc)
            return []

    def suggest_optimizations(self, gas_report: Dict[str, Any]) -> List[Optimization]:
        try:
            text = self._call("suggest_optimizations", None, build_optimization_prompt(gas_report))
            return response_parser.parse_optimizations(text)
        except Exception as exc:
            logger.warning("optimization suggestions failed, returning none: %s", exc)
            return []

    def generate_text(self, prompt: str) -> str:
        """raw passthrough, no parsing"""
        return self._call("generate_text", None, prompt)

    def generate_fixes(self, contract: ContractRecord, analysis: AnalysisRecord,
                       source_code: Optional[str] = None) -> List[FixSuggestion]:
        """code fixes for the risks in analysis; templated per risk when the reply is unreadable"""
        prompt = build_fix_prompt(contract.name, source_code or contract.source_code, analysis)
        text = self._call("generate_fixes", contract.address, prompt)
        fixes = response_parser.parse_fixes(text)
        if fixes is None:
            logger.warning("fix reply for %s was not valid JSON; using templated fixes", contract.address)
            self._note_degraded("generate_fixes", contract.address, text)
            return response_parser.fallback_fixes(analysis, risk_title)
        return fixes
