"""
Metrics collection for the search index crawler.
"""

import time
import logging
from typing import Dict, Optional, Any

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, start_http_server


class MetricsCollector:
    """Collects crawler metrics into a private Prometheus registry."""

    def __init__(self, enable_http: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.enable_http = enable_http
        self.prometheus_port = prometheus_port
        self.values: Dict[str, float] = {}

        self.registry = CollectorRegistry()
        self.prometheus_metrics = {
            'pages_crawled_total': Counter(
                'searchindex_pages_crawled_total',
                'Total number of pages crawled and indexed',
                registry=self.registry
            ),
            'pages_skipped_total': Counter(
                'searchindex_pages_skipped_total',
                'Total number of pages skipped',
                ['reason'],
                registry=self.registry
            ),
            'urls_added_total': Counter(
                'searchindex_urls_added_total',
                'Total number of URLs added to the frontier',
                registry=self.registry
            ),
            'postings_upserted_total': Counter(
                'searchindex_postings_upserted_total',
                'Total number of postings written to the index',
                registry=self.registry
            ),
            'fetch_time_seconds': Histogram(
                'searchindex_fetch_time_seconds',
                'Time spent fetching pages',
                registry=self.registry
            ),
            'queue_size': Gauge(
                'searchindex_queue_size',
                'Number of URLs pending in the frontier',
                registry=self.registry
            ),
        }

    def start_http_server(self):
        """Start the Prometheus exposition server if enabled."""
        if not self.enable_http:
            return
        start_http_server(self.prometheus_port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")

    def increment_counter(self, name: str, amount: float = 1, labels: Optional[Dict[str, str]] = None):
        """Increment a counter metric."""
        key = name if not labels else f"{name}{{{','.join(f'{k}={v}' for k, v in sorted(labels.items()))}}}"
        self.values[key] = self.values.get(key, 0) + amount

        metric = self.prometheus_metrics[name]
        if labels:
            metric.labels(**labels).inc(amount)
        else:
            metric.inc(amount)

    def set_gauge(self, name: str, value: float):
        """Set a gauge metric value."""
        self.values[name] = value
        self.prometheus_metrics[name].set(value)

    def observe_histogram(self, name: str, value: float):
        """Record a histogram observation."""
        self.values[name] = value
        self.prometheus_metrics[name].observe(value)

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all metrics."""
        return dict(self.values)


class CrawlerMonitor:
    """High-level monitoring interface for the crawler."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.start_time = time.time()

    def record_page_crawled(self, url: str, fetch_time: float):
        self.metrics.increment_counter('pages_crawled_total')
        self.metrics.observe_histogram('fetch_time_seconds', fetch_time)

    def record_page_skipped(self, url: str, reason: str):
        self.metrics.increment_counter('pages_skipped_total', labels={'reason': reason})

    def record_urls_added(self, count: int):
        if count:
            self.metrics.increment_counter('urls_added_total', count)

    def record_postings_upserted(self, count: int):
        if count:
            self.metrics.increment_counter('postings_upserted_total', count)

    def update_queue_size(self, size: int):
        self.metrics.set_gauge('queue_size', size)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        current_values = self.metrics.get_current_values()
        runtime = time.time() - self.start_time

        return {
            'runtime_seconds': runtime,
            'metrics': current_values,
            'rates': {
                'pages_per_minute': current_values.get('pages_crawled_total', 0) / (runtime / 60) if runtime > 0 else 0,
            }
        }
