"""
bazaarscore/tests/test_ledger_client.py

Tests for the participation ledger REST client.

The HTTP session is mocked; requests still run on trio worker threads.
"""

import time
from unittest.mock import Mock

import pytest
import requests

from bazaarscore.ledger.client import LedgerClient, LedgerError
from bazaarscore.metrics import ScoreMetrics
from bazaarscore.protocol.activity import MarketplaceEvent, ReferralEvent


ENDPOINT = "http://ledger.test/api/participation"
ADDRESS = "0xabc123"

RECORD = {
    'referrals': {'count': 2, 'points': 2},
    'forumActivity': {'points': 3, 'lastActivityDate': 1_700_000_000_000},
}


def make_response(status_code: int = 200, data=None, invalid_json: bool = False) -> Mock:
    response = Mock(status_code=status_code)
    if invalid_json:
        response.json = Mock(side_effect=ValueError("Expecting value"))
    else:
        response.json = Mock(return_value=data)
    return response


def make_client(response=None, side_effect=None, timeout: float = 5, metrics=None):
    session = Mock()
    if side_effect is not None:
        session.request.side_effect = side_effect
    else:
        session.request.return_value = response
    client = LedgerClient(endpoint=ENDPOINT, timeout=timeout, session=session, metrics=metrics)
    return client, session


# ============================================================================
# Test fetch_record
# ============================================================================

class TestFetchRecord:
    """Tests for reading score records."""

    @pytest.mark.trio
    async def test_success(self):
        client, session = make_client(make_response(200, RECORD))

        record = await client.fetch_record(ADDRESS)

        assert record == RECORD
        args, kwargs = session.request.call_args
        assert args == ("GET", f"{ENDPOINT}/score/{ADDRESS}")
        assert kwargs['timeout'] == 5

    @pytest.mark.trio
    async def test_address_is_url_quoted(self):
        client, session = make_client(make_response(200, {}))

        await client.fetch_record("a/b c")

        args, _ = session.request.call_args
        assert args[1] == f"{ENDPOINT}/score/a%2Fb%20c"

    @pytest.mark.trio
    async def test_non_2xx_returns_none(self):
        client, _ = make_client(make_response(404, {'error': 'not found'}))
        assert await client.fetch_record(ADDRESS) is None

    @pytest.mark.trio
    async def test_server_error_returns_none(self):
        client, _ = make_client(make_response(500))
        assert await client.fetch_record(ADDRESS) is None

    @pytest.mark.trio
    async def test_connection_error_returns_none(self):
        client, _ = make_client(side_effect=requests.ConnectionError("refused"))
        assert await client.fetch_record(ADDRESS) is None

    @pytest.mark.trio
    async def test_requests_timeout_returns_none(self):
        client, _ = make_client(side_effect=requests.Timeout("read timed out"))
        assert await client.fetch_record(ADDRESS) is None

    @pytest.mark.trio
    async def test_slow_ledger_is_abandoned(self):
        """A request that outlives the timeout is abandoned, not awaited."""
        def hang(*args, **kwargs):
            time.sleep(0.5)
            return make_response(200, RECORD)

        metrics = ScoreMetrics()
        client, _ = make_client(side_effect=hang, timeout=0.05, metrics=metrics)

        assert await client.fetch_record(ADDRESS) is None
        assert metrics.get_stats()['ledger_requests'] == {"score:timeout": 1}

    @pytest.mark.trio
    async def test_invalid_json_returns_none(self):
        client, _ = make_client(make_response(200, invalid_json=True))
        assert await client.fetch_record(ADDRESS) is None

    @pytest.mark.trio
    async def test_malformed_record_returns_none(self):
        client, _ = make_client(make_response(200, ["not", "a", "record"]))
        assert await client.fetch_record(ADDRESS) is None

        client, _ = make_client(make_response(200, {'forumActivity': 5}))
        assert await client.fetch_record(ADDRESS) is None


# ============================================================================
# Test post_update
# ============================================================================

class TestPostUpdate:
    """Tests for reporting activity."""

    @pytest.mark.trio
    async def test_success(self):
        client, session = make_client(make_response(200, RECORD))
        event = MarketplaceEvent(type="sell", transaction_id="tx-1")

        record = await client.post_update(ADDRESS, event, timestamp=1234)

        assert record == RECORD
        args, kwargs = session.request.call_args
        assert args == ("POST", f"{ENDPOINT}/update")
        assert kwargs['json'] == {
            'address': ADDRESS,
            'component': 'marketplaceActivity',
            'activity': {'type': 'sell', 'transactionId': 'tx-1'},
            'timestamp': 1234,
        }

    @pytest.mark.trio
    async def test_timestamp_defaults_to_now(self):
        client, session = make_client(make_response(201, RECORD))
        before = int(time.time() * 1000)

        await client.post_update(ADDRESS, ReferralEvent(referred="0xdef"))

        sent = session.request.call_args[1]['json']['timestamp']
        assert before <= sent <= int(time.time() * 1000)

    @pytest.mark.trio
    async def test_non_2xx_raises(self):
        client, _ = make_client(make_response(503))

        with pytest.raises(LedgerError) as exc_info:
            await client.post_update(ADDRESS, ReferralEvent())

        assert exc_info.value.status == 503
        assert "503" in str(exc_info.value)

    @pytest.mark.trio
    async def test_transport_error_raises(self):
        client, _ = make_client(side_effect=requests.ConnectionError("refused"))

        with pytest.raises(LedgerError) as exc_info:
            await client.post_update(ADDRESS, ReferralEvent())
        assert exc_info.value.status is None

    @pytest.mark.trio
    async def test_timeout_raises(self):
        def hang(*args, **kwargs):
            time.sleep(0.5)

        client, _ = make_client(side_effect=hang, timeout=0.05)

        with pytest.raises(LedgerError, match="timed out"):
            await client.post_update(ADDRESS, ReferralEvent())

    @pytest.mark.trio
    async def test_invalid_body_raises(self):
        client, _ = make_client(make_response(200, "ok"))
        with pytest.raises(LedgerError, match="Invalid response data"):
            await client.post_update(ADDRESS, ReferralEvent())

        client, _ = make_client(make_response(200, invalid_json=True))
        with pytest.raises(LedgerError, match="Invalid response data"):
            await client.post_update(ADDRESS, ReferralEvent())

    def test_ledger_error_is_runtime_error(self):
        assert issubclass(LedgerError, RuntimeError)


# ============================================================================
# Test fetch_leaderboard
# ============================================================================

class TestFetchLeaderboard:
    """Tests for reading the leaderboard."""

    @pytest.mark.trio
    async def test_success(self):
        entries = [{'address': '0x1', 'score': 30}, {'address': '0x2', 'score': 12}]
        client, session = make_client(make_response(200, entries))

        assert await client.fetch_leaderboard(5) == entries

        args, kwargs = session.request.call_args
        assert args == ("GET", f"{ENDPOINT}/leaderboard")
        assert kwargs['params'] == {'limit': 5}

    @pytest.mark.trio
    async def test_non_list_returns_empty(self):
        client, _ = make_client(make_response(200, {'entries': []}))
        assert await client.fetch_leaderboard(5) == []

    @pytest.mark.trio
    async def test_failure_returns_empty(self):
        client, _ = make_client(make_response(500))
        assert await client.fetch_leaderboard(5) == []

        client, _ = make_client(side_effect=requests.ConnectionError("refused"))
        assert await client.fetch_leaderboard(5) == []


# ============================================================================
# Test bookkeeping
# ============================================================================

class TestClientStats:

    def test_endpoint_trailing_slash_stripped(self):
        client = LedgerClient(endpoint=ENDPOINT + "/", session=Mock())
        assert client.endpoint == ENDPOINT

    @pytest.mark.trio
    async def test_metrics_outcomes(self):
        metrics = ScoreMetrics()
        client, session = make_client(make_response(200, RECORD), metrics=metrics)

        await client.fetch_record(ADDRESS)
        session.request.return_value = make_response(500)
        await client.fetch_record(ADDRESS)

        assert metrics.get_stats()['ledger_requests'] == {
            "score:ok": 1,
            "score:http_error": 1,
        }
        stats = client.get_stats()
        assert stats['requests_sent'] == 2
        assert stats['requests_failed'] == 1

    def test_close_leaves_injected_session_open(self):
        session = Mock()
        LedgerClient(endpoint=ENDPOINT, session=session).close()
        session.close.assert_not_called()
