"""
bazaarscore.ledger.client - Client for the participation ledger REST API

The ledger is the single authority for raw activity counters. This client
reads score records, posts activity events and reads the leaderboard.

Protocol:
    - GET  {endpoint}/score/{address}       -> participation record
    - POST {endpoint}/update                -> updated participation record
          body: {address, component, activity, timestamp}
    - GET  {endpoint}/leaderboard?limit=N   -> [{address, score}, ...]

Reads never raise: any failure comes back as None / []. Writes raise
LedgerError, since dropping reported activity would corrupt a user's score.
"""

from functools import partial
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import logging
import time

import requests
import trio

from ..config import DEFAULT_LEDGER_ENDPOINT, REQUEST_TIMEOUT
from ..protocol.activity import ActivityEvent
from ..protocol.decay import now_ms
from ..protocol.participation import is_participation_record

logger = logging.getLogger("bazaarscore.ledger.client")


class LedgerError(RuntimeError):
    """A ledger write failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class LedgerClient:
    """
    Client for the participation ledger.

    Blocking HTTP calls run on a worker thread so that callers on the trio
    event loop stay responsive, and every call is bounded by ``timeout``.

    Attributes:
        endpoint: Base URL of the participation API
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_LEDGER_ENDPOINT,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
        metrics: Any = None,
    ):
        """
        Initialize LedgerClient.

        Args:
            endpoint: Base URL (default: http://localhost:3001/api/participation)
            timeout: Per-request timeout in seconds
            session: Optional requests session (created if not given)
            metrics: Optional ScoreMetrics for request outcomes
        """
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.metrics = metrics
        self._session = session or requests.Session()
        self._owns_session = session is None

        # Stats
        self._requests_sent = 0
        self._requests_failed = 0

    async def fetch_record(self, address: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the raw participation record for an address.

        Returns:
            The record, or None if the ledger is unreachable, answered with a
            non-2xx status, or returned a malformed body
        """
        url = f"{self.endpoint}/score/{quote(address, safe='')}"
        data = await self._get_json("score", url)
        if data is None:
            return None

        if not is_participation_record(data):
            logger.warning(f"Invalid participation record for {address}")
            self._record("score", "invalid")
            return None

        return data

    async def post_update(
        self,
        address: str,
        event: ActivityEvent,
        timestamp: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Append an activity event to the ledger.

        Args:
            address: Wallet address the activity belongs to
            event: Component activity event
            timestamp: Event time (epoch ms), defaults to now

        Returns:
            The updated participation record

        Raises:
            LedgerError: On transport failure, timeout, non-2xx status or a
                malformed response
        """
        url = f"{self.endpoint}/update"
        body = {
            "address": address,
            "component": event.component,
            "activity": event.to_dict(),
            "timestamp": timestamp if timestamp is not None else now_ms(),
        }

        started = time.monotonic()
        try:
            response = await self._request("POST", url, json=body)
        except trio.TooSlowError:
            self._record("update", "timeout")
            raise LedgerError(f"Ledger update timed out after {self.timeout}s")
        except requests.RequestException as e:
            self._record("update", "error")
            raise LedgerError(f"Failed to update activity: {e}") from e
        latency = time.monotonic() - started

        if not _is_success(response.status_code):
            self._record("update", "http_error", latency)
            raise LedgerError(
                f"Failed to update activity: ledger returned {response.status_code}",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            self._record("update", "invalid", latency)
            raise LedgerError("Invalid response data") from e

        if not is_participation_record(data):
            self._record("update", "invalid", latency)
            raise LedgerError("Invalid response data")

        self._record("update", "ok", latency)
        return data

    async def fetch_leaderboard(self, limit: int) -> List[Dict[str, Any]]:
        """
        Fetch the ledger's ranked score list.

        Returns:
            List of raw entries, or [] on any failure
        """
        url = f"{self.endpoint}/leaderboard"
        data = await self._get_json("leaderboard", url, params={"limit": limit})
        if data is None:
            return []

        if not isinstance(data, list):
            logger.warning("Invalid leaderboard data")
            self._record("leaderboard", "invalid")
            return []

        return data

    async def _get_json(self, operation: str, url: str, **kwargs) -> Any:
        """GET a JSON document, logging and swallowing every failure."""
        logger.debug(f"GET {url}")
        started = time.monotonic()
        try:
            response = await self._request("GET", url, **kwargs)
        except trio.TooSlowError:
            logger.warning(f"Ledger {operation} request timed out after {self.timeout}s")
            self._record(operation, "timeout")
            return None
        except requests.RequestException as e:
            logger.warning(f"Ledger {operation} request failed: {e}")
            self._record(operation, "error")
            return None
        latency = time.monotonic() - started

        if not _is_success(response.status_code):
            logger.warning(f"Ledger {operation} returned {response.status_code}")
            self._record(operation, "http_error", latency)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Ledger {operation} returned a non-JSON body")
            self._record(operation, "invalid", latency)
            return None

        self._record(operation, "ok", latency)
        return data

    async def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Run a blocking request on a worker thread, bounded by the timeout."""
        self._requests_sent += 1
        call = partial(self._session.request, method, url, timeout=self.timeout, **kwargs)
        with trio.fail_after(self.timeout):
            return await trio.to_thread.run_sync(call, abandon_on_cancel=True)

    def _record(self, operation: str, outcome: str, latency: Optional[float] = None) -> None:
        if outcome != "ok":
            self._requests_failed += 1
        if self.metrics is not None:
            self.metrics.record_ledger_request(operation, outcome, latency)

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self._session.close()

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        return {
            "endpoint": self.endpoint,
            "timeout": self.timeout,
            "requests_sent": self._requests_sent,
            "requests_failed": self._requests_failed,
        }

    def __repr__(self) -> str:
        return f"LedgerClient({self.endpoint})"


def _is_success(status: int) -> bool:
    return 200 <= status < 300
