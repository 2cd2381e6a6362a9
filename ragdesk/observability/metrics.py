"""
Prometheus Metrics for RagDesk

Tracks:
- queries_total / queries_successful / queries_failed: query outcomes
- query_latency_seconds: latency buckets and percentiles
- no_match_rate: share of queries whose index returned nothing
- ingestions_total / ingestions_failed: model creation outcomes
"""

import logging
import threading
from collections import deque

logger = logging.getLogger(__name__)

# Thread-safe metrics storage
_lock = threading.Lock()

_metrics: dict[str, float] = {
    "queries_total": 0,
    "queries_successful": 0,
    "queries_failed": 0,
    "queries_no_match": 0,
    "ingestions_total": 0,
    "ingestions_failed": 0,
    "avg_latency_ms": 0.0,
}

# Percentiles and the average cover the most recent queries only
LATENCY_WINDOW = 10000

_latencies: deque[float] = deque(maxlen=LATENCY_WINDOW)
_latency_sum = 0.0


def record_query(
    latency_ms: float,
    success: bool = True,
    no_match: bool = False,
) -> None:
    """Record metrics for a processed query."""
    global _latency_sum
    with _lock:
        _metrics["queries_total"] += 1
        if success:
            _metrics["queries_successful"] += 1
        else:
            _metrics["queries_failed"] += 1
        if no_match:
            _metrics["queries_no_match"] += 1
        if len(_latencies) == _latencies.maxlen:
            _latency_sum -= _latencies[0]
        _latencies.append(latency_ms)
        _latency_sum += latency_ms
        _metrics["avg_latency_ms"] = _latency_sum / len(_latencies)


def record_ingestion(success: bool = True) -> None:
    """Record the outcome of one ingestion run."""
    with _lock:
        _metrics["ingestions_total"] += 1
        if not success:
            _metrics["ingestions_failed"] += 1


def get_metrics_text() -> str:
    """Generate Prometheus-compatible metrics text."""
    with _lock:
        total = _metrics["queries_total"]
        no_match_rate = _metrics["queries_no_match"] / total if total > 0 else 0.0

        sorted_latencies = sorted(_latencies) if _latencies else [0]
        p50 = _percentile(sorted_latencies, 50)
        p95 = _percentile(sorted_latencies, 95)
        p99 = _percentile(sorted_latencies, 99)

        lines = [
            "# HELP queries_total Total number of queries processed",
            "# TYPE queries_total counter",
            f'queries_total {int(_metrics["queries_total"])}',
            "",
            "# HELP queries_successful Total successful queries",
            "# TYPE queries_successful counter",
            f'queries_successful {int(_metrics["queries_successful"])}',
            "",
            "# HELP queries_failed Total failed queries",
            "# TYPE queries_failed counter",
            f'queries_failed {int(_metrics["queries_failed"])}',
            "",
            "# HELP query_latency_seconds Query response time histogram",
            "# TYPE query_latency_seconds histogram",
            f'query_latency_seconds{{le="0.5"}} {_count_below(sorted_latencies, 500)}',
            f'query_latency_seconds{{le="1.0"}} {_count_below(sorted_latencies, 1000)}',
            f'query_latency_seconds{{le="2.0"}} {_count_below(sorted_latencies, 2000)}',
            f'query_latency_seconds{{le="5.0"}} {_count_below(sorted_latencies, 5000)}',
            f"query_latency_seconds_p50 {p50 / 1000:.4f}",
            f"query_latency_seconds_p95 {p95 / 1000:.4f}",
            f"query_latency_seconds_p99 {p99 / 1000:.4f}",
            f'query_latency_seconds_avg {_metrics["avg_latency_ms"] / 1000:.4f}',
            "",
            "# HELP no_match_rate Share of queries with zero retrieval matches",
            "# TYPE no_match_rate gauge",
            f"no_match_rate {no_match_rate:.4f}",
            "",
            "# HELP ingestions_total Total ingestion runs",
            "# TYPE ingestions_total counter",
            f'ingestions_total {int(_metrics["ingestions_total"])}',
            "",
            "# HELP ingestions_failed Failed ingestion runs",
            "# TYPE ingestions_failed counter",
            f'ingestions_failed {int(_metrics["ingestions_failed"])}',
        ]

        return "\n".join(lines) + "\n"


def reset_metrics() -> None:
    """Reset all metrics to zero."""
    global _latency_sum
    with _lock:
        for key in _metrics:
            _metrics[key] = 0
        _latencies.clear()
        _latency_sum = 0.0


def _percentile(sorted_data: list[float], percentile: int) -> float:
    """Compute the given percentile from sorted data."""
    if not sorted_data:
        return 0.0
    idx = int(len(sorted_data) * percentile / 100)
    idx = min(idx, len(sorted_data) - 1)
    return sorted_data[idx]


def _count_below(sorted_data: list[float], threshold_ms: float) -> int:
    """Count values at or below threshold in sorted data."""
    count = 0
    for v in sorted_data:
        if v <= threshold_ms:
            count += 1
        else:
            break
    return count
