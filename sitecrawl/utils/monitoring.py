"""
Monitoring and metrics collection for the site crawler.
"""

import time
import logging
from typing import Dict, Optional, Any
from dataclasses import dataclass

from prometheus_client import Counter, Gauge, CollectorRegistry, start_http_server


@dataclass
class Metric:
    """In-process metric value."""
    name: str
    description: str
    metric_type: str  # counter, gauge
    current_value: float = 0.0


class MetricsCollector:
    """Collects crawler metrics and mirrors them to Prometheus."""

    def __init__(self, enable_prometheus: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.metrics: Dict[str, Metric] = {}
        self.enable_prometheus = enable_prometheus
        self.prometheus_port = prometheus_port

        self.prometheus_registry = CollectorRegistry()
        self.prometheus_metrics = {
            'pages_crawled_total': Counter(
                'sitecrawl_pages_crawled_total',
                'Total number of pages fetched successfully',
                registry=self.prometheus_registry
            ),
            'fetch_failures_total': Counter(
                'sitecrawl_fetch_failures_total',
                'Total number of failed fetches',
                ['outcome'],
                registry=self.prometheus_registry
            ),
            'retries_recovered_total': Counter(
                'sitecrawl_retries_recovered_total',
                'URLs that succeeded after at least one failure',
                registry=self.prometheus_registry
            ),
            'queue_size': Gauge(
                'sitecrawl_queue_size',
                'Number of URLs waiting in the frontier',
                registry=self.prometheus_registry
            ),
            'batch_size': Gauge(
                'sitecrawl_batch_size',
                'Number of URLs in the batch currently dispatched',
                registry=self.prometheus_registry
            ),
        }

    def start_server(self):
        """Start the Prometheus metrics HTTP exporter if enabled."""
        if not self.enable_prometheus:
            return

        start_http_server(self.prometheus_port, registry=self.prometheus_registry)
        self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")

    def _metric(self, name: str, description: str, metric_type: str) -> Metric:
        if name not in self.metrics:
            self.metrics[name] = Metric(name=name, description=description, metric_type=metric_type)
        return self.metrics[name]

    def increment_counter(self, name: str, labels: Optional[Dict[str, str]] = None,
                          description: str = ""):
        """Increment a counter metric."""
        key = name
        if labels:
            key = name + ''.join(f":{v}" for _, v in sorted(labels.items()))
        self._metric(key, description, 'counter').current_value += 1

        prom_metric = self.prometheus_metrics.get(name)
        if prom_metric is not None:
            if labels:
                prom_metric.labels(**labels).inc()
            else:
                prom_metric.inc()

    def set_gauge(self, name: str, value: float, description: str = ""):
        """Set a gauge metric value."""
        self._metric(name, description, 'gauge').current_value = value

        prom_metric = self.prometheus_metrics.get(name)
        if prom_metric is not None:
            prom_metric.set(value)

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all metrics."""
        return {name: metric.current_value for name, metric in self.metrics.items()}


class CrawlerMonitor:
    """High-level monitoring interface used by the scheduler."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.start_time = time.time()

    def record_page_crawled(self, url: str):
        self.metrics.increment_counter('pages_crawled_total', description='Pages crawled')

    def record_fetch_failure(self, url: str, outcome: str):
        self.metrics.increment_counter('fetch_failures_total', {'outcome': outcome},
                                       'Failed fetches by outcome')

    def record_retry_recovered(self, url: str):
        self.metrics.increment_counter('retries_recovered_total', description='Recovered retries')

    def update_queue_size(self, size: int):
        self.metrics.set_gauge('queue_size', size, description='URLs in queue')

    def update_batch_size(self, size: int):
        self.metrics.set_gauge('batch_size', size, description='URLs in current batch')

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        current_values = self.metrics.get_current_values()
        runtime = time.time() - self.start_time
        crawled = current_values.get('pages_crawled_total', 0)

        return {
            'runtime_seconds': runtime,
            'metrics': current_values,
            'pages_per_minute': crawled / (runtime / 60) if runtime > 0 else 0,
        }


def initialize_monitoring(enable_prometheus: bool = False, prometheus_port: int = 8000) -> CrawlerMonitor:
    """Create a monitor and start the exporter when enabled."""
    metrics_collector = MetricsCollector(enable_prometheus, prometheus_port)
    metrics_collector.start_server()
    return CrawlerMonitor(metrics_collector)
