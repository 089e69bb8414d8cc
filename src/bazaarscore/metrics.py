"""
bazaarscore/metrics.py

Prometheus metrics collection for bazaarscore.

Tracks cache effectiveness, ledger request outcomes and latency, and
reported activity per component.
"""

import time
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .cache import ScoreCache

logger = logging.getLogger("bazaarscore.metrics")


class ScoreMetrics:
    """
    Prometheus metrics collector for the participation service.

    Usage:
        metrics = ScoreMetrics(cache)
        metrics.record_ledger_request("score", "ok", 0.042)

        prometheus_output = metrics.collect()
    """

    # Metric definitions
    METRICS = {
        "bazaarscore_cache_hits_total": {
            "type": "counter",
            "help": "Score reads served from cache",
        },
        "bazaarscore_cache_misses_total": {
            "type": "counter",
            "help": "Score reads that required a ledger fetch",
        },
        "bazaarscore_cache_entries": {
            "type": "gauge",
            "help": "Number of cached scores",
        },
        "bazaarscore_ledger_requests_total": {
            "type": "counter",
            "help": "Ledger requests by operation and outcome",
        },
        "bazaarscore_activity_reports_total": {
            "type": "counter",
            "help": "Activity events reported by component",
        },
        "bazaarscore_ledger_latency_seconds": {
            "type": "histogram",
            "help": "Ledger request latency in seconds",
            "buckets": [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
        },
        "bazaarscore_uptime_seconds": {
            "type": "counter",
            "help": "Service uptime in seconds",
        },
    }

    def __init__(self, cache: Optional["ScoreCache"] = None):
        """
        Initialize metrics collector.

        Args:
            cache: Score cache to report the size of
        """
        self.cache = cache
        self._start_time = time.time()

        self._cache_hits = 0
        self._cache_misses = 0
        self._ledger_requests: Dict[Tuple[str, str], int] = {}
        self._activity_reports: Dict[str, int] = {}

        self._latency_buckets: List[float] = list(
            self.METRICS["bazaarscore_ledger_latency_seconds"]["buckets"]
        )
        self._reset_latency()

    def _reset_latency(self) -> None:
        self._latency_counts = {b: 0 for b in self._latency_buckets}
        self._latency_sum = 0.0
        self._latency_count = 0

    def record_cache_hit(self) -> None:
        self._cache_hits += 1

    def record_cache_miss(self) -> None:
        self._cache_misses += 1

    def record_ledger_request(
        self,
        operation: str,
        outcome: str,
        latency_seconds: Optional[float] = None,
    ) -> None:
        """
        Record a ledger request.

        Args:
            operation: "score", "update" or "leaderboard"
            outcome: "ok", "http_error", "timeout", "error" or "invalid"
            latency_seconds: Round-trip time, if the request completed
        """
        key = (operation, outcome)
        self._ledger_requests[key] = self._ledger_requests.get(key, 0) + 1

        if latency_seconds is not None:
            self._latency_sum += latency_seconds
            self._latency_count += 1
            for bucket in self._latency_buckets:
                if latency_seconds <= bucket:
                    self._latency_counts[bucket] += 1

    def record_activity(self, component: str) -> None:
        """Record an activity report for a component."""
        self._activity_reports[component] = self._activity_reports.get(component, 0) + 1

    def collect(self) -> str:
        """
        Collect all metrics and return in Prometheus format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines = []

        def add_header(name: str):
            metric_def = self.METRICS.get(name, {})
            lines.append(f"# HELP {name} {metric_def.get('help', '')}")
            lines.append(f"# TYPE {name} {metric_def.get('type', 'gauge')}")

        def add_metric(name: str, value: float, labels: Dict[str, str] = None):
            if labels:
                label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
                lines.append(f"{name}{{{label_str}}} {value}")
            else:
                lines.append(f"{name} {value}")

        try:
            add_header("bazaarscore_cache_hits_total")
            add_metric("bazaarscore_cache_hits_total", self._cache_hits)

            add_header("bazaarscore_cache_misses_total")
            add_metric("bazaarscore_cache_misses_total", self._cache_misses)

            add_header("bazaarscore_cache_entries")
            add_metric("bazaarscore_cache_entries", len(self.cache) if self.cache is not None else 0)

            add_header("bazaarscore_ledger_requests_total")
            for (operation, outcome), count in sorted(self._ledger_requests.items()):
                add_metric(
                    "bazaarscore_ledger_requests_total",
                    count,
                    {"operation": operation, "outcome": outcome},
                )

            add_header("bazaarscore_activity_reports_total")
            for component, count in sorted(self._activity_reports.items()):
                add_metric("bazaarscore_activity_reports_total", count, {"component": component})

            add_header("bazaarscore_uptime_seconds")
            add_metric("bazaarscore_uptime_seconds", time.time() - self._start_time)

            # Latency histogram
            if self._latency_count > 0:
                add_header("bazaarscore_ledger_latency_seconds")
                for bucket in self._latency_buckets:
                    lines.append(
                        f'bazaarscore_ledger_latency_seconds_bucket{{le="{bucket}"}} '
                        f'{self._latency_counts[bucket]}'
                    )
                lines.append(
                    f'bazaarscore_ledger_latency_seconds_bucket{{le="+Inf"}} {self._latency_count}'
                )
                lines.append(f"bazaarscore_ledger_latency_seconds_sum {self._latency_sum}")
                lines.append(f"bazaarscore_ledger_latency_seconds_count {self._latency_count}")

        except Exception as e:
            logger.error(f"Error collecting metrics: {e}")
            lines.append(f"# Error collecting metrics: {e}")

        return "\n".join(lines) + "\n"

    def get_stats(self) -> Dict[str, Any]:
        """
        Get metrics as a dictionary (for JSON output).

        Returns:
            Dictionary of metric values
        """
        return {
            "cache_hits": self._cache_hits,
            "cache_misses": self._cache_misses,
            "cache_entries": len(self.cache) if self.cache is not None else 0,
            "ledger_requests": {
                f"{operation}:{outcome}": count
                for (operation, outcome), count in self._ledger_requests.items()
            },
            "activity_reports": dict(self._activity_reports),
            "ledger_latency_avg": (
                self._latency_sum / self._latency_count if self._latency_count else 0.0
            ),
            "uptime_seconds": time.time() - self._start_time,
        }

    def reset_counters(self) -> None:
        """Reset all counters (useful for testing)."""
        self._cache_hits = 0
        self._cache_misses = 0
        self._ledger_requests = {}
        self._activity_reports = {}
        self._reset_latency()
