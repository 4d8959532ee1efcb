"""
Metrics Collection

Prometheus metrics for the tile engine: index builds, tile materialization
(eager at build time or lazy on query), query outcomes and skipped features.
Each collector owns its registry so several indexes can live in one process.
"""

import threading
from collections import defaultdict
from typing import Dict, FrozenSet, Optional, Tuple, Union

import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

# name -> (type, description, label names)
METRIC_DEFINITIONS = {
    'tile_index_builds_total': ('counter', 'Total number of tile index builds', []),
    'tile_queries_total': ('counter', 'Total number of tile queries', ['result']),
    'tiles_materialized_total': ('counter', 'Total number of tiles created', ['mode']),
    'invalid_geometries_total': ('counter', 'Total number of features skipped as invalid', []),
    'tile_index_build_seconds': ('histogram', 'Duration of tile index builds', []),
    'tile_split_seconds': ('histogram', 'Duration of lazy tile splits', []),
}

LabelKey = Tuple[str, FrozenSet[Tuple[str, str]]]


class MetricsCollector:
    """
    Collects tile engine metrics into a private Prometheus registry and keeps
    running totals that can be read back without scraping.
    """

    def __init__(self, enable_prometheus: bool = True):
        """
        Initialize the metrics collector.

        Args:
            enable_prometheus: Enable Prometheus metrics collection
        """
        self.enable_prometheus = enable_prometheus
        self.logger = structlog.get_logger(collector_type="MetricsCollector")

        self.lock = threading.RLock()
        self.totals: Dict[LabelKey, float] = defaultdict(float)
        self.histograms: Dict[str, Dict[str, float]] = {}

        self.prometheus_registry = CollectorRegistry()
        self.prometheus_counters = {}
        self.prometheus_histograms = {}

        if self.enable_prometheus:
            for name, (metric_type, description, labels) in METRIC_DEFINITIONS.items():
                self._create_prometheus_metric(metric_type, name, description, labels)

    def _create_prometheus_metric(self, metric_type: str, name: str, description: str, labels) -> None:
        if metric_type == 'counter':
            self.prometheus_counters[name] = Counter(
                name, description, labels,
                registry=self.prometheus_registry
            )
        elif metric_type == 'histogram':
            self.prometheus_histograms[name] = Histogram(
                name, description, labels,
                registry=self.prometheus_registry
            )

    def increment_counter(
        self,
        name: str,
        value: Union[int, float] = 1,
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name
            value: Value to increment by
            labels: Metric labels
        """
        labels = labels or {}

        with self.lock:
            self.totals[(name, frozenset(labels.items()))] += value

            if name in self.prometheus_counters:
                if labels:
                    self.prometheus_counters[name].labels(**labels).inc(value)
                else:
                    self.prometheus_counters[name].inc(value)

    def record_histogram(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Record a histogram observation.

        Args:
            name: Metric name
            value: Value to record
            labels: Metric labels
        """
        labels = labels or {}

        with self.lock:
            summary = self.histograms.setdefault(name, {'count': 0, 'sum': 0.0, 'max': 0.0})
            summary['count'] += 1
            summary['sum'] += value
            summary['max'] = max(summary['max'], value)

            if name in self.prometheus_histograms:
                if labels:
                    self.prometheus_histograms[name].labels(**labels).observe(value)
                else:
                    self.prometheus_histograms[name].observe(value)

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current total of a counter for the given labels."""
        with self.lock:
            return self.totals.get((name, frozenset((labels or {}).items())), 0.0)

    def get_metrics_summary(self) -> Dict[str, Dict]:
        """Counter totals and histogram summaries keyed by metric name."""
        with self.lock:
            counters: Dict[str, float] = defaultdict(float)
            for (name, _), value in self.totals.items():
                counters[name] += value

            histograms = {name: dict(summary) for name, summary in self.histograms.items()}

        return {'counters': dict(counters), 'histograms': histograms}

    def export_prometheus(self) -> bytes:
        """Metrics in the Prometheus text exposition format."""
        return generate_latest(self.prometheus_registry)
