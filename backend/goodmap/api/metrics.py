from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from typing import Dict, Any, Iterable, List
from datetime import datetime
import time
import threading
from collections import Counter, defaultdict, deque
from goodmap.auth.rate_limiter import rate_limiter

router = APIRouter()

# Recent samples kept per route for the latency summary
MAX_TIMINGS_PER_ROUTE = 1000


class MetricsCollector:
    """Thread-safe in-process counters for the board.

    Counts cache outcomes, post and marker mutations by kind, and keeps a
    bounded window of request durations per route template.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._start_time = time.time()
        self._reset_locked()

    def _reset_locked(self):
        self._route_timings = defaultdict(lambda: deque(maxlen=MAX_TIMINGS_PER_ROUTE))
        self._cache = Counter()
        self._post_mutations = Counter()
        self._marker_mutations = Counter()

    def record_request(self, route: str, duration_ms: float):
        with self._lock:
            self._route_timings[route].append(duration_ms)

    def record_cache_hit(self):
        with self._lock:
            self._cache["hits"] += 1

    def record_cache_miss(self):
        with self._lock:
            self._cache["misses"] += 1

    def record_cache_error(self):
        with self._lock:
            self._cache["errors"] += 1

    def record_post_mutation(self, kind: str):
        with self._lock:
            self._post_mutations[kind] += 1

    def record_marker_mutation(self, kind: str):
        with self._lock:
            self._marker_mutations[kind] += 1

    def reset(self):
        with self._lock:
            self._reset_locked()

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics snapshot."""
        with self._lock:
            hits, misses = self._cache["hits"], self._cache["misses"]
            lookups = hits + misses

            return {
                "timestamp": datetime.now().isoformat(),
                "uptime_seconds": time.time() - self._start_time,
                "cache": {
                    "hits": hits,
                    "misses": misses,
                    "errors": self._cache["errors"],
                    "hit_rate": hits / lookups if lookups else 0
                },
                "post_mutations": dict(self._post_mutations),
                "marker_mutations": dict(self._marker_mutations),
                "route_timings": {
                    route: _summarize(timings) for route, timings in self._route_timings.items() if timings
                },
                "rate_limiter": rate_limiter.get_stats()
            }


def _percentile(sorted_data: List[float], percentile: int) -> float:
    index = int((percentile / 100) * len(sorted_data))
    return sorted_data[min(index, len(sorted_data) - 1)]


def _summarize(timings: Iterable[float]) -> Dict[str, float]:
    ordered = sorted(timings)
    total = sum(ordered)
    return {
        "count": len(ordered),
        "sum_ms": total,
        "avg_ms": total / len(ordered),
        "min_ms": ordered[0],
        "max_ms": ordered[-1],
        "p95_ms": _percentile(ordered, 95),
        "p99_ms": _percentile(ordered, 99)
    }


def _prometheus_block(name: str, kind: str, help_text: str, samples: Iterable[str]) -> List[str]:
    return [f"# HELP {name} {help_text}", f"# TYPE {name} {kind}", *samples, ""]


# Global metrics collector instance
metrics_collector = MetricsCollector()


@router.get("/metrics")
async def get_metrics():
    """
    Get application metrics in JSON format.
    Includes route timings, cache hit rates and mutation counts.
    """
    return metrics_collector.get_metrics()


@router.get("/metrics/prometheus", response_class=PlainTextResponse)
async def get_prometheus_metrics():
    """
    Get metrics in Prometheus text exposition format.
    """
    metrics = metrics_collector.get_metrics()
    cache = metrics["cache"]

    lines = []
    lines += _prometheus_block(
        "goodmap_uptime_seconds", "counter", "Application uptime in seconds",
        [f"goodmap_uptime_seconds {metrics['uptime_seconds']}"]
    )
    lines += _prometheus_block(
        "goodmap_cache_hit_rate", "gauge", "Post list cache hit rate",
        [f"goodmap_cache_hit_rate {cache['hit_rate']}"]
    )
    lines += _prometheus_block(
        "goodmap_cache_operations_total", "counter", "Post list cache lookups and failures",
        [
            f'goodmap_cache_operations_total{{type="{outcome}"}} {cache[key]}'
            for outcome, key in (("hit", "hits"), ("miss", "misses"), ("error", "errors"))
        ]
    )
    for entity in ("post", "marker"):
        name = f"goodmap_{entity}_mutations_total"
        lines += _prometheus_block(
            name, "counter", f"{entity.capitalize()} mutations by kind",
            [f'{name}{{kind="{kind}"}} {count}' for kind, count in metrics[f"{entity}_mutations"].items()]
        )

    durations = []
    for route, stats in metrics["route_timings"].items():
        durations.append(f'goodmap_request_duration_ms_count{{route="{route}"}} {stats["count"]}')
        durations.append(f'goodmap_request_duration_ms_sum{{route="{route}"}} {stats["sum_ms"]}')
    lines += _prometheus_block(
        "goodmap_request_duration_ms", "summary", "Request duration in milliseconds", durations
    )

    return "\n".join(lines)
