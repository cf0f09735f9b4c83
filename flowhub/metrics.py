"""In-process metrics exposed in Prometheus text format.

Tracks:
- HTTP request counts and latencies
- Template lookups and listing queries by outcome
- Template submissions by outcome
- Newsletter signups by outcome
"""

from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)


@dataclass
class Histogram:
    """Cumulative-bucket latency histogram."""

    buckets: tuple[float, ...] = DEFAULT_BUCKETS
    counts: dict[float, int] = field(default_factory=lambda: defaultdict(int))
    sum: float = 0.0
    count: int = 0

    def observe(self, value: float) -> None:
        self.sum += value
        self.count += 1
        for bucket in self.buckets:
            if value <= bucket:
                self.counts[bucket] += 1

    def render(self, name: str, labels: str = "") -> list[str]:
        """Render the histogram as Prometheus exposition lines."""
        extra = f", {labels}" if labels else ""
        lines = [
            f'{name}_bucket{{le="{bucket}"{extra}}} {self.counts[bucket]}'
            for bucket in self.buckets
        ]
        lines.append(f'{name}_bucket{{le="+Inf"{extra}}} {self.count}')
        suffix = f"{{{labels}}}" if labels else ""
        lines.append(f"{name}_sum{suffix} {self.sum}")
        lines.append(f"{name}_count{suffix} {self.count}")
        return lines


class MetricsRegistry:
    """Thread-safe registry of counters and histograms keyed by label set."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._histograms: dict[str, dict[str, Histogram]] = defaultdict(dict)

    @staticmethod
    def _label_key(labels: dict[str, str] | None) -> str:
        if not labels:
            return ""
        return ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))

    def inc_counter(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        key = self._label_key(labels)
        with self._lock:
            self._counters[name][key] += value

    def observe(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        key = self._label_key(labels)
        with self._lock:
            histogram = self._histograms[name].get(key)
            if histogram is None:
                histogram = self._histograms[name][key] = Histogram()
            histogram.observe(value)

    def reset(self) -> None:
        """Forget every recorded value."""
        with self._lock:
            self._counters.clear()
            self._histograms.clear()

    def to_prometheus(self) -> str:
        lines: list[str] = []
        with self._lock:
            for name, series in self._counters.items():
                lines.append(f"# TYPE {name} counter")
                for key, value in series.items():
                    lines.append(f"{name}{{{key}}} {value}" if key else f"{name} {value}")
                lines.append("")
            for name, series in self._histograms.items():
                lines.append(f"# TYPE {name} histogram")
                for key, histogram in series.items():
                    lines.extend(histogram.render(name, key))
                lines.append("")
        return "\n".join(lines)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": {name: dict(series) for name, series in self._counters.items()},
                "histograms": {
                    name: {key: {"count": h.count, "sum": h.sum} for key, h in series.items()}
                    for name, series in self._histograms.items()
                },
            }


metrics = MetricsRegistry()


def record_request(method: str, path: str, status_code: int, duration: float) -> None:
    """Record an HTTP request."""
    labels = {"method": method, "path": path, "status": str(status_code)}
    metrics.inc_counter("flowhub_http_requests_total", labels)
    metrics.observe("flowhub_http_request_duration_seconds", duration, {"method": method})


def record_template_lookup(outcome: str) -> None:
    """Record a single-template lookup (found, not_found, error)."""
    metrics.inc_counter("flowhub_template_lookups_total", {"outcome": outcome})


def record_template_query(outcome: str, duration: float) -> None:
    """Record a listing query (ok, error)."""
    metrics.inc_counter("flowhub_template_queries_total", {"outcome": outcome})
    metrics.observe("flowhub_template_query_duration_seconds", duration)


def record_submission(outcome: str) -> None:
    """Record a template submission (accepted, duplicate, invalid, error)."""
    metrics.inc_counter("flowhub_template_submissions_total", {"outcome": outcome})


def record_newsletter_signup(outcome: str) -> None:
    """Record a newsletter signup attempt by outcome."""
    metrics.inc_counter("flowhub_newsletter_signups_total", {"outcome": outcome})
