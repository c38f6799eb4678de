"""
Prometheus Metrics for the TTS Proxy.

Metrics Exposed:
    tts_proxy_requests_total{outcome}            - Requests by outcome
    tts_proxy_upstream_duration_seconds          - Upstream call latency
    tts_proxy_upstream_errors_total{kind}        - Upstream failures (rejected/transport)
    tts_proxy_audio_bytes_total                  - Audio bytes fetched from upstream
    tts_proxy_cache_entries                      - Current cache size
    tts_proxy_singleflight_joins_total           - Requests that shared an in-flight fetch

Outcomes:
    hit, miss, preflight, bad_request, upstream_error, transport_error, internal_error

Usage:
    from tts_proxy.core.metrics import metrics

    metrics.record_request("hit")
    metrics.observe_upstream(0.42, audio_bytes=5120)
    content, content_type = metrics.get_metrics_response()

Prometheus Scrape Config Example:
    scrape_configs:
      - job_name: 'tts-proxy'
        static_configs:
          - targets: ['localhost:4001']
        metrics_path: '/metrics'
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class ProxyMetrics:
    """
    Metric collection for the proxy.

    Each instance owns its own CollectorRegistry so tests and multiple
    app instances in one process do not collide on metric names.
    """

    def __init__(self):
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "tts_proxy_requests_total",
            "Total proxy requests by outcome",
            ["outcome"],
            registry=self._registry,
        )
        self._upstream_duration = Histogram(
            "tts_proxy_upstream_duration_seconds",
            "Upstream TTS call duration in seconds",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )
        self._upstream_errors = Counter(
            "tts_proxy_upstream_errors_total",
            "Upstream failures by kind",
            ["kind"],
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "tts_proxy_audio_bytes_total",
            "Total audio bytes fetched from upstream",
            registry=self._registry,
        )
        self._cache_entries = Gauge(
            "tts_proxy_cache_entries",
            "Current number of cached responses",
            registry=self._registry,
        )
        self._singleflight_joins = Counter(
            "tts_proxy_singleflight_joins_total",
            "Requests that joined an in-flight upstream fetch",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_request(self, outcome: str) -> None:
        """Count a finished request by outcome."""
        self._requests_total.labels(outcome=outcome).inc()

    def observe_upstream(self, duration: float, audio_bytes: int = 0) -> None:
        """Record a successful upstream call."""
        self._upstream_duration.observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_upstream_error(self, kind: str) -> None:
        """Count an upstream failure ("rejected" or "transport")."""
        self._upstream_errors.labels(kind=kind).inc()

    def set_cache_entries(self, count: int) -> None:
        self._cache_entries.set(count)

    def inc_singleflight_joins(self) -> None:
        self._singleflight_joins.inc()

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus text format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Global metrics instance shared by the service and the /metrics route
metrics = ProxyMetrics()
