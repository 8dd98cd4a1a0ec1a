"""tests for the explorer client: cache-aside, error mapping and best-effort history"""

from unittest.mock import MagicMock

import pytest

from chainsage.agent.explorer_client import ExplorerClient, FetchFailedError
from chainsage.utils.caching import TTLCache

ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
CONTRACT_PATH = f"/api/v2/smart-contracts/{ADDRESS}"
TX_HASH = "0x" + "ab" * 32


def _client(session, cache=None, **kwargs):
    return ExplorerClient(
        "https://explorer.test/",
        cache=cache if cache is not None else TTLCache(max_size=10),
        session=session,
        **kwargs,
    )


class TestMetadataLookups:
    def test_contract_is_fetched_once_then_served_from_cache(self, make_session):
        session = make_session({CONTRACT_PATH: {"name": "USDC", "is_verified": True}})
        client = _client(session)

        first = client.get_contract(ADDRESS)
        second = client.get_contract(ADDRESS)

        assert first.name == "USDC"
        assert second is first
        assert session.count(CONTRACT_PATH) == 1

    def test_cache_key_ignores_address_case(self, make_session):
        session = make_session({CONTRACT_PATH: {"name": "USDC"}})
        client = _client(session)
        client.get_contract(ADDRESS)
        client.get_contract(ADDRESS.lower())
        # second lookup is a hit even though the path would differ
        assert len(session.calls) == 1

    def test_cache_is_per_network(self, make_session):
        session = make_session({CONTRACT_PATH: {"name": "USDC"}})
        client = _client(session)
        client.get_contract(ADDRESS, "ethereum")
        client.get_contract(ADDRESS, "base")
        assert session.count(CONTRACT_PATH) == 2
        assert [call["params"]["network"] for call in session.calls] == ["ethereum", "base"]

    def test_network_alias_is_normalized(self, make_session):
        session = make_session({CONTRACT_PATH: {"name": "USDC"}})
        client = _client(session)
        client.get_contract(ADDRESS, "Mainnet")
        client.get_contract(ADDRESS, "eth")
        assert session.calls[0]["params"] == {"network": "ethereum"}
        assert session.count(CONTRACT_PATH) == 1

    def test_disabled_cache_always_fetches(self, make_session):
        session = make_session({CONTRACT_PATH: {"name": "USDC"}})
        client = _client(session, cache=TTLCache(enabled=False))
        client.get_contract(ADDRESS)
        client.get_contract(ADDRESS)
        assert session.count(CONTRACT_PATH) == 2

    def test_expired_entry_is_refetched(self, make_session, fake_clock):
        session = make_session({CONTRACT_PATH: {"name": "USDC"}})
        client = _client(session, cache=TTLCache(default_ttl=60, clock=fake_clock))
        client.get_contract(ADDRESS)
        fake_clock.advance(61)
        client.get_contract(ADDRESS)
        assert session.count(CONTRACT_PATH) == 2

    def test_http_error_raises_and_is_not_cached(self, make_session, make_response):
        session = make_session({CONTRACT_PATH: make_response(500, {"message": "boom"})})
        client = _client(session)

        with pytest.raises(FetchFailedError) as excinfo:
            client.get_contract(ADDRESS)
        assert "500" in str(excinfo.value)
        assert excinfo.value.network == "ethereum"
        assert excinfo.value.identifier == ADDRESS

        session.routes[CONTRACT_PATH] = {"name": "USDC"}
        assert client.get_contract(ADDRESS).name == "USDC"

    def test_not_found_raises(self, make_session):
        client = _client(make_session({}))
        with pytest.raises(FetchFailedError):
            client.get_token_info(ADDRESS)

    def test_non_json_body_raises(self, make_session, make_response):
        session = make_session({CONTRACT_PATH: make_response(200, text="<html>gateway</html>")})
        with pytest.raises(FetchFailedError, match="non-JSON"):
            _client(session).get_contract(ADDRESS)

    def test_transport_error_raises_with_cause(self, make_session, connection_error):
        session = make_session({CONTRACT_PATH: connection_error})
        with pytest.raises(FetchFailedError) as excinfo:
            _client(session).get_contract(ADDRESS)
        assert excinfo.value.cause is connection_error

    def test_non_object_body_raises(self, make_session):
        session = make_session({CONTRACT_PATH: ["not", "an", "object"]})
        with pytest.raises(FetchFailedError):
            _client(session).get_contract(ADDRESS)

    def test_unmappable_value_raises(self, make_session):
        session = make_session({f"/api/v2/tokens/{ADDRESS}": {"total_supply": "1.5e6"}})
        with pytest.raises(FetchFailedError):
            _client(session).get_token_info(ADDRESS)

    def test_transaction_and_source_code(self, make_session):
        session = make_session({
            f"/api/v2/transactions/{TX_HASH}": {"hash": TX_HASH, "status": "ok", "from": {"hash": "0xs"}},
            f"{CONTRACT_PATH}/source-code": {"source_code": "contract A {}", "name": "A"},
        })
        client = _client(session)
        assert client.get_transaction(TX_HASH).from_address == "0xs"
        assert client.get_source_code(ADDRESS).contract_name == "A"

    def test_request_carries_timeout(self, make_session):
        session = make_session({CONTRACT_PATH: {"name": "USDC"}})
        _client(session, timeout=7).get_contract(ADDRESS)
        assert session.calls[0]["timeout"] == 7


class TestHistoryLookups:
    def test_transactions_use_history_limit(self, make_session):
        path = f"/api/v2/addresses/{ADDRESS}/transactions"
        session = make_session({path: {"items": [{"hash": "0x1", "status": "ok"}, {"hash": "0x2"}]}})
        client = _client(session, history_limit=25)

        records = client.get_transactions(ADDRESS)

        assert [r.hash for r in records] == ["0x1", "0x2"]
        assert session.calls[0]["params"]["limit"] == 25

    def test_history_is_never_cached(self, make_session):
        path = f"/api/v2/addresses/{ADDRESS}/transactions"
        session = make_session({path: {"items": []}})
        client = _client(session)
        client.get_transactions(ADDRESS, limit=5)
        client.get_transactions(ADDRESS, limit=5)
        assert session.count(path) == 2

    def test_history_failure_returns_empty(self, make_session, connection_error):
        session = make_session({f"/api/v2/addresses/{ADDRESS}/token-transfers": connection_error})
        assert _client(session).get_token_transfers(ADDRESS) == []

    def test_malformed_item_returns_empty(self, make_session):
        path = f"/api/v2/addresses/{ADDRESS}/transactions"
        session = make_session({path: {"items": [{"status": "ok"}]}})
        assert _client(session).get_transactions(ADDRESS) == []

    def test_internal_transactions(self, make_session):
        path = f"/api/v2/transactions/{TX_HASH}/internal-transactions"
        session = make_session({path: {"items": [{"type": "call"}, {"type": "call", "error": "Reverted"}]}})
        records = _client(session).get_internal_transactions(TX_HASH)
        assert [r.is_error for r in records] == [False, True]
        assert "limit" not in session.calls[0]["params"]

    def test_balance(self, make_session):
        session = make_session({f"/api/v2/addresses/{ADDRESS}": {"coin_balance": "42"}})
        assert _client(session).get_balance(ADDRESS) == 42

    def test_balance_failure_is_zero(self, make_session, make_response):
        session = make_session({f"/api/v2/addresses/{ADDRESS}": make_response(502, {})})
        assert _client(session).get_balance(ADDRESS) == 0


class TestSessionSetup:
    def test_bearer_header_when_key_given(self, make_session):
        session = make_session()
        _client(session, api_key="secret")
        assert session.headers["Authorization"] == "Bearer secret"
        assert session.headers["Content-Type"] == "application/json"

    def test_no_auth_header_without_key(self, make_session):
        session = make_session()
        _client(session)
        assert "Authorization" not in session.headers

    def test_base_url_trailing_slash_trimmed(self, make_session):
        session = make_session({CONTRACT_PATH: {"name": "USDC"}})
        client = _client(session)
        assert client.base_url == "https://explorer.test"
        client.get_contract(ADDRESS)
        assert session.calls[0]["path"] == CONTRACT_PATH

    def test_fetches_are_reported_to_call_logger(self, make_session):
        session = make_session({CONTRACT_PATH: {"name": "USDC"}})
        call_logger = MagicMock()
        client = _client(session, call_logger=call_logger)
        client.get_contract(ADDRESS)
        client.get_contract(ADDRESS)

        hits = [c.kwargs["cache_hit"] for c in call_logger.log_fetch.call_args_list]
        assert hits == [False, True]

    def test_from_config(self, make_session):
        cfg = MagicMock(
            EXPLORER_URL="https://mcp.test",
            EXPLORER_API_KEY=None,
            REQUEST_TIMEOUT=12,
            DEFAULT_NETWORK="base",
            HISTORY_LIMIT=10,
            ENABLE_CACHE=True,
            CACHE_TTL=30,
            CACHE_MAX_SIZE=3,
        )
        client = ExplorerClient.from_config(cfg)
        assert client.base_url == "https://mcp.test"
        assert client.default_network == "base"
        assert client.timeout == 12
        assert client.cache.enabled
        assert client.history_limit == 10
        client.close()
