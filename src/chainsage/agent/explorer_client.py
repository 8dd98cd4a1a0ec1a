# spdx-license-identifier: mit
"""blockscout v2 explorer client with cache-aside lookups"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from chainsage.agent.chain_config import normalize_network
from chainsage.agent.explorer_wire import (
    AddressWire,
    InternalTransactionWire,
    Page,
    SmartContractWire,
    SourceCodeWire,
    TokenTransferWire,
    TokenWire,
    TransactionWire,
    to_balance,
    to_contract,
    to_internal_transaction,
    to_source_code,
    to_token,
    to_token_transfer,
    to_transaction,
)
from chainsage.models.records import (
    ContractRecord,
    InternalTransactionRecord,
    SourceCodeRecord,
    TokenRecord,
    TokenTransferRecord,
    TransactionRecord,
)
from chainsage.utils.caching import TTLCache

logger = logging.getLogger(__name__)

T = TypeVar("T")
W = TypeVar("W", bound=BaseModel)


class FetchFailedError(Exception):
    """explorer lookup failed (transport error, non-2xx, or unreadable body)"""

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 network: Optional[str] = None, identifier: Optional[str] = None):
        super().__init__(message)
        self.cause = cause
        self.network = network
        self.identifier = identifier


class ExplorerClient:
    """
    Read-only client for a Blockscout v2 explorer (or the Blockscout MCP
    proxy, which serves the same paths).

    Metadata lookups (contract, source, token, transaction) are cache-aside
    through the shared TTLCache and raise FetchFailedError on failure.
    History lookups are never cached and degrade to an empty list; balance
    degrades to 0.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30,
        cache: Optional[TTLCache] = None,
        default_network: str = "ethereum",
        session: Optional[requests.Session] = None,
        call_logger=None,
        history_limit: int = 100,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache if cache is not None else TTLCache(enabled=False)
        self.default_network = normalize_network(default_network)
        self.call_logger = call_logger
        self.history_limit = history_limit

        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    @classmethod
    def from_config(cls, cfg, cache: Optional[TTLCache] = None, call_logger=None) -> "ExplorerClient":
        if cache is None:
            cache = TTLCache.from_config(cfg)
        return cls(
            base_url=cfg.EXPLORER_URL,
            api_key=cfg.EXPLORER_API_KEY,
            timeout=cfg.REQUEST_TIMEOUT,
            cache=cache,
            default_network=cfg.DEFAULT_NETWORK,
            call_logger=call_logger,
            history_limit=cfg.HISTORY_LIMIT,
        )

    def close(self) -> None:
        self.session.close()

    def _network(self, network: Optional[str]) -> str:
        return normalize_network(network) if network else self.default_network

    def _request(self, path: str, network: str, identifier: str,
                 params: Optional[Dict[str, Any]] = None) -> Any:
        query = {"network": network}
        if params:
            query.update(params)
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=query, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchFailedError(f"request to {path} failed: {exc}", exc, network, identifier) from exc

        if not 200 <= response.status_code < 300:
            raise FetchFailedError(
                f"explorer returned HTTP {response.status_code} for {path}",
                network=network,
                identifier=identifier,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise FetchFailedError(f"explorer returned a non-JSON body for {path}", exc,
                                   network, identifier) from exc

    def _parse(self, model: type[W], body: Any, network: str, identifier: str) -> W:
        if not isinstance(body, dict):
            raise FetchFailedError(f"expected a JSON object, got {type(body).__name__}",
                                   network=network, identifier=identifier)
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            raise FetchFailedError(f"unexpected {model.__name__} shape: {exc}", exc,
                                   network, identifier) from exc

    def _log_fetch(self, operation: str, network: str, identifier: str, cache_hit: bool,
                   started: float, error: Optional[str] = None) -> None:
        if self.call_logger is None:
            return
        self.call_logger.log_fetch(
            operation=operation,
            network=network,
            identifier=identifier,
            cache_hit=cache_hit,
            duration_seconds=time.time() - started,
            error=error,
        )

    def _cached(self, kind: str, network: str, identifier: str, fetch: Callable[[], T]) -> T:
        """cache-aside: hit returns the stored record, miss fetches and stores on success"""
        key = f"{kind}:{network}:{identifier.lower()}"
        started = time.time()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache hit %s", key)
            self._log_fetch(kind, network, identifier, True, started)
            return cached

        try:
            record = fetch()
        except FetchFailedError as exc:
            self._log_fetch(kind, network, identifier, False, started, str(exc))
            raise
        self.cache.set(key, record)
        self._log_fetch(kind, network, identifier, False, started)
        return record

    def _history(self, operation: str, path: str, network: str, identifier: str,
                 params: Dict[str, Any], model: type[W], convert: Callable[[W], T]) -> List[T]:
        """best-effort list lookup: any failure is logged and yields []"""
        started = time.time()
        try:
            body = self._request(path, network, identifier, params)
            page = self._parse(Page, body, network, identifier)
            records = [convert(model.model_validate(item)) for item in page.items]
        except (FetchFailedError, ValidationError, ValueError) as exc:
            logger.warning("%s for %s on %s failed, returning no items: %s",
                           operation, identifier, network, exc)
            self._log_fetch(operation, network, identifier, False, started, str(exc))
            return []
        self._log_fetch(operation, network, identifier, False, started)
        return records

    def _convert(self, convert: Callable[[], T], network: str, identifier: str) -> T:
        try:
            return convert()
        except ValueError as exc:
            raise FetchFailedError(f"could not map explorer data: {exc}", exc,
                                   network, identifier) from exc

    def get_contract(self, address: str, network: Optional[str] = None) -> ContractRecord:
        network = self._network(network)

        def fetch() -> ContractRecord:
            body = self._request(f"/api/v2/smart-contracts/{address}", network, address)
            wire = self._parse(SmartContractWire, body, network, address)
            return self._convert(lambda: to_contract(wire, address), network, address)

        return self._cached("contract", network, address, fetch)

    def get_source_code(self, address: str, network: Optional[str] = None) -> SourceCodeRecord:
        network = self._network(network)

        def fetch() -> SourceCodeRecord:
            body = self._request(f"/api/v2/smart-contracts/{address}/source-code", network, address)
            wire = self._parse(SourceCodeWire, body, network, address)
            return self._convert(lambda: to_source_code(wire), network, address)

        return self._cached("source", network, address, fetch)

    def get_transaction(self, tx_hash: str, network: Optional[str] = None) -> TransactionRecord:
        network = self._network(network)

        def fetch() -> TransactionRecord:
            body = self._request(f"/api/v2/transactions/{tx_hash}", network, tx_hash)
            wire = self._parse(TransactionWire, body, network, tx_hash)
            return self._convert(lambda: to_transaction(wire), network, tx_hash)

        return self._cached("transaction", network, tx_hash, fetch)

    def get_token_info(self, address: str, network: Optional[str] = None) -> TokenRecord:
        network = self._network(network)

        def fetch() -> TokenRecord:
            body = self._request(f"/api/v2/tokens/{address}", network, address)
            wire = self._parse(TokenWire, body, network, address)
            return self._convert(lambda: to_token(wire, address), network, address)

        return self._cached("token", network, address, fetch)

    def get_transactions(self, address: str, limit: Optional[int] = None,
                         network: Optional[str] = None) -> List[TransactionRecord]:
        network = self._network(network)
        return self._history(
            "transactions", f"/api/v2/addresses/{address}/transactions", network, address,
            {"limit": limit or self.history_limit}, TransactionWire, to_transaction,
        )

    def get_internal_transactions(self, tx_hash: str,
                                  network: Optional[str] = None) -> List[InternalTransactionRecord]:
        network = self._network(network)
        return self._history(
            "internal_transactions", f"/api/v2/transactions/{tx_hash}/internal-transactions",
            network, tx_hash, {}, InternalTransactionWire, to_internal_transaction,
        )

    def get_token_transfers(self, address: str, limit: Optional[int] = None,
                            network: Optional[str] = None) -> List[TokenTransferRecord]:
        network = self._network(network)
        return self._history(
            "token_transfers", f"/api/v2/addresses/{address}/token-transfers", network, address,
            {"limit": limit or self.history_limit}, TokenTransferWire, to_token_transfer,
        )

    def get_balance(self, address: str, network: Optional[str] = None) -> int:
        """native balance in wei; 0 when the lookup fails"""
        network = self._network(network)
        started = time.time()
        try:
            body = self._request(f"/api/v2/addresses/{address}", network, address)
            balance = to_balance(self._parse(AddressWire, body, network, address))
        except (FetchFailedError, ValueError) as exc:
            logger.warning("balance lookup for %s on %s failed, reporting 0: %s", address, network, exc)
            self._log_fetch("balance", network, address, False, started, str(exc))
            return 0
        self._log_fetch("balance", network, address, False, started)
        return balance
