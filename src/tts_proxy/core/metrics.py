"""
Prometheus Metrics for tts-proxy.

Metrics Exposed:
    tts_proxy_requests_total                 - Counter of requests by route and status
    tts_proxy_quota_rejections_total         - Counter of requests rejected by the quota
    tts_proxy_provider_latency_seconds       - Histogram of time to first audio chunk
    tts_proxy_audio_bytes_total              - Counter of audio bytes streamed to callers
    tts_proxy_active_streams                 - Gauge of responses currently streaming
    tts_proxy_quota_identities               - Gauge of client identities being tracked

Usage:
    from tts_proxy.core.metrics import metrics

    metrics.record_request("/api/speech", 200)
    metrics.record_quota_rejection()
    metrics.observe_provider_latency(0.42)

    # /metrics endpoint
    content, content_type = metrics.get_metrics_response()

Prometheus Scrape Config Example:
    scrape_configs:
      - job_name: 'tts-proxy'
        static_configs:
          - targets: ['localhost:3001']
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
    Metrics collection using the Prometheus client.

    Uses a private CollectorRegistry so that several instances (one per
    test, for example) never collide on metric names.

    Thread Safety:
        All Prometheus metric operations are thread-safe by design.
    """

    def __init__(self):
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "tts_proxy_requests_total",
            "Total HTTP requests handled",
            ["route", "status"],
            registry=self._registry,
        )
        self._quota_rejections = Counter(
            "tts_proxy_quota_rejections_total",
            "Synthesis requests rejected by the daily quota",
            registry=self._registry,
        )
        self._provider_latency = Histogram(
            "tts_proxy_provider_latency_seconds",
            "Time from provider call to first audio chunk",
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "tts_proxy_audio_bytes_total",
            "Total audio bytes streamed to callers",
            registry=self._registry,
        )
        self._active_streams = Gauge(
            "tts_proxy_active_streams",
            "Responses currently streaming audio",
            registry=self._registry,
        )
        self._quota_identities = Gauge(
            "tts_proxy_quota_identities",
            "Client identities tracked by the quota store",
            registry=self._registry,
        )

    def record_request(self, route: str, status: int) -> None:
        """Record a completed request."""
        self._requests_total.labels(route=route, status=str(status)).inc()

    def record_quota_rejection(self) -> None:
        """Record a request rejected by the quota."""
        self._quota_rejections.inc()

    def observe_provider_latency(self, seconds: float) -> None:
        """Record provider time to first chunk."""
        self._provider_latency.observe(seconds)

    def add_audio_bytes(self, count: int) -> None:
        """Add streamed audio bytes."""
        if count > 0:
            self._audio_bytes_total.inc(count)

    def stream_started(self) -> None:
        self._active_streams.inc()

    def stream_finished(self) -> None:
        self._active_streams.dec()

    def set_quota_identities(self, count: int) -> None:
        """Set number of tracked client identities."""
        self._quota_identities.set(count)

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Global metrics instance
metrics = ProxyMetrics()
