# spdx-license-identifier: mit
"""batch contract analysis over a list of addresses"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, List, Optional, Union

from chainsage.agent.explorer_client import ExplorerClient
from chainsage.agent.reasoner import Reasoner
from chainsage.models.analysis import BatchItemResult, Severity

logger = logging.getLogger(__name__)


def read_addresses(path: Union[str, Path]) -> List[str]:
    """one address per line; blank lines and lines not starting with 0x are skipped"""
    text = Path(path).read_text(encoding="utf-8")
    return [line.strip() for line in text.splitlines() if line.strip().startswith("0x")]


class BatchAnalyzer:
    """
    Fetch and analyze each address in turn (or with a bounded worker pool).

    Output order always matches input order. A failure on one address is
    recorded on its BatchItemResult and never stops the others.
    """

    def __init__(self, explorer: ExplorerClient, reasoner: Reasoner, max_workers: int = 1,
                 on_progress: Optional[Callable[[int, int, str], None]] = None):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.explorer = explorer
        self.reasoner = reasoner
        self.max_workers = max_workers
        self.on_progress = on_progress

    def analyze_one(self, address: str, network: Optional[str] = None) -> BatchItemResult:
        try:
            contract = self.explorer.get_contract(address, network)
            analysis = self.reasoner.analyze_contract(contract)
        except Exception as exc:
            logger.warning("batch item %s failed: %s", address, exc)
            return BatchItemResult(address=address, success=False, error=str(exc))

        return BatchItemResult(
            address=address,
            success=True,
            name=contract.name,
            verified=contract.verified,
            security_score=analysis.security_score,
            critical_risks=len(analysis.risks_by_severity(Severity.CRITICAL)),
            high_risks=len(analysis.risks_by_severity(Severity.HIGH)),
        )

    def run(self, addresses: List[str], network: Optional[str] = None) -> List[BatchItemResult]:
        total = len(addresses)
        logger.info("batch analysis of %d contracts (%d workers)", total, self.max_workers)

        if self.max_workers == 1 or total <= 1:
            results = []
            for index, address in enumerate(addresses):
                self._progress(index + 1, total, address)
                results.append(self.analyze_one(address, network))
            return results

        slots: List[Optional[BatchItemResult]] = [None] * total
        done = 0
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self.analyze_one, address, network): index
                for index, address in enumerate(addresses)
            }
            for future in as_completed(futures):
                index = futures[future]
                slots[index] = future.result()
                done += 1
                self._progress(done, total, addresses[index])
        return [slot for slot in slots if slot is not None]

    def _progress(self, index: int, total: int, address: str) -> None:
        if self.on_progress is not None:
            self.on_progress(index, total, address)
