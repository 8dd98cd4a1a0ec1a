# spdx-license-identifier: mit
"""deterministic scoring of a simulated execution against its on-chain twin"""

from __future__ import annotations

import logging
import math
from typing import List

from chainsage.models.analysis import (
    ComparisonMetrics,
    ComparisonResult,
    Difference,
    ExecutionResult,
    RevertInfo,
    RevertLocation,
)

logger = logging.getLogger(__name__)

# fixed deduction caps for the behaviour score
GAS_PENALTY_CAP = 20
EVENT_PENALTY = 30
STATE_PENALTY = 20
PATH_PENALTY_PER_DIFF = 10
PATH_PENALTY_CAP = 30

GAS_RECOMMENDATION_THRESHOLD = 10.0
GAS_DIFFERENCE_THRESHOLD = 5.0
GAS_HIGH_SEVERITY_THRESHOLD = 20.0

CALL_SEQUENCE_DIFFERS = "Different function call sequences detected"
REVERT_STATUS_DIFFERS = "Simulation and on-chain revert status differ"


def _round_half_up(value: float, digits: int = 0) -> float:
    """round half toward +inf, so -2.25 -> -2.2 and 2.25 -> 2.3"""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


class ComparisonEngine:
    """pure function object: no i/o, no state, never raises on valid records"""

    def compare(self, simulation: ExecutionResult, onchain: ExecutionResult) -> ComparisonResult:
        gas_deviation = self.gas_deviation(simulation, onchain)
        events_match = self.events_match(simulation, onchain)
        state_match = self.state_changes_match(simulation, onchain)
        path_diffs = self.execution_path_differences(simulation, onchain)
        score = self.behavior_score(gas_deviation, events_match, state_match, path_diffs)

        logger.debug("comparison scored %d (gas deviation %.1f%%)", score, gas_deviation)
        return ComparisonResult(
            function_behavior_match=score,
            gas_deviation=gas_deviation,
            event_structure_match=events_match,
            state_changes_match=state_match,
            execution_path_differences=path_diffs,
            unexpected_reverts=self.unexpected_reverts(simulation, onchain),
            summary=self.summary(score),
            recommendations=self.recommendations(gas_deviation, events_match, state_match, path_diffs),
        )

    @staticmethod
    def gas_deviation(simulation: ExecutionResult, onchain: ExecutionResult) -> float:
        """signed percentage, one decimal; 0 when on-chain gas is 0"""
        if onchain.gas_used == 0:
            return 0.0
        deviation = (simulation.gas_used - onchain.gas_used) / onchain.gas_used * 100
        return _round_half_up(deviation, 1)

    @staticmethod
    def events_match(simulation: ExecutionResult, onchain: ExecutionResult) -> bool:
        if len(simulation.events) != len(onchain.events):
            return False
        return all(
            sim_event.get("name") == chain_event.get("name")
            for sim_event, chain_event in zip(simulation.events, onchain.events)
        )

    @staticmethod
    def state_changes_match(simulation: ExecutionResult, onchain: ExecutionResult) -> bool:
        # counts only; contents are not compared
        return len(simulation.state_changes) == len(onchain.state_changes)

    @staticmethod
    def execution_path_differences(simulation: ExecutionResult, onchain: ExecutionResult) -> List[str]:
        differences = []
        if simulation.function_calls != onchain.function_calls:
            differences.append(CALL_SEQUENCE_DIFFERS)
        if simulation.reverted != onchain.reverted:
            differences.append(REVERT_STATUS_DIFFERS)
        return differences

    @staticmethod
    def unexpected_reverts(simulation: ExecutionResult, onchain: ExecutionResult) -> List[RevertInfo]:
        if simulation.reverted and not onchain.reverted:
            return [RevertInfo(
                function=simulation.function or "unknown",
                reason=simulation.revert_reason or "Unknown",
                location=RevertLocation.SIMULATION,
            )]
        if onchain.reverted and not simulation.reverted:
            return [RevertInfo(
                function=onchain.function or "unknown",
                reason=onchain.revert_reason or "Unknown",
                location=RevertLocation.ONCHAIN,
            )]
        return []

    @staticmethod
    def behavior_score(gas_deviation: float, events_match: bool, state_match: bool,
                       path_diffs: List[str]) -> int:
        score = 100.0
        score -= min(abs(gas_deviation), GAS_PENALTY_CAP)
        if not events_match:
            score -= EVENT_PENALTY
        if not state_match:
            score -= STATE_PENALTY
        score -= min(len(path_diffs) * PATH_PENALTY_PER_DIFF, PATH_PENALTY_CAP)
        return max(0, min(100, int(_round_half_up(score))))

    @staticmethod
    def summary(score: int) -> str:
        if score >= 95:
            return "Simulation closely matches on-chain behavior. Excellent consistency!"
        if score >= 80:
            return "Simulation matches on-chain behavior with minor differences."
        if score >= 60:
            return "Simulation shows moderate differences from on-chain behavior. Review recommended."
        return ("Significant differences detected between simulation and on-chain behavior. "
                "Investigation required.")

    @staticmethod
    def recommendations(gas_deviation: float, events_match: bool, state_match: bool,
                        path_diffs: List[str]) -> List[str]:
        recommendations = []
        if abs(gas_deviation) > GAS_RECOMMENDATION_THRESHOLD:
            recommendations.append(
                f"Gas usage differs by {abs(gas_deviation):.1f}%. "
                "Consider updating Hardhat config to match deployment environment."
            )
        if not events_match:
            recommendations.append(
                "Event emissions differ between simulation and on-chain. "
                "Verify event parameters and conditions."
            )
        if not state_match:
            recommendations.append("State changes differ. Review contract logic and initial state in tests.")
        if path_diffs:
            recommendations.append(
                "Execution paths diverge. This may indicate different contract states or external dependencies."
            )
        if not recommendations:
            recommendations.append(
                "No significant issues detected. Your simulation is well-aligned with on-chain behavior."
            )
        return recommendations

    def detailed_report(self, simulation: ExecutionResult, onchain: ExecutionResult) -> ComparisonMetrics:
        """itemized differences for display; similarity is the behaviour score"""
        result = self.compare(simulation, onchain)
        differences = []

        if abs(result.gas_deviation) > GAS_DIFFERENCE_THRESHOLD:
            differences.append(Difference(
                type="gas",
                description=f"Gas usage differs by {result.gas_deviation:.1f}%",
                severity="high" if abs(result.gas_deviation) > GAS_HIGH_SEVERITY_THRESHOLD else "medium",
                simulation=simulation.gas_used,
                onchain=onchain.gas_used,
            ))
        if not result.event_structure_match:
            differences.append(Difference(
                type="event",
                description="Event emissions do not match",
                severity="high",
                simulation=len(simulation.events),
                onchain=len(onchain.events),
            ))
        if not result.state_changes_match:
            differences.append(Difference(
                type="state",
                description="State changes differ",
                severity="medium",
                simulation=len(simulation.state_changes),
                onchain=len(onchain.state_changes),
            ))

        return ComparisonMetrics(
            similarity=result.function_behavior_match,
            differences=differences,
            insights=result.recommendations,
        )
