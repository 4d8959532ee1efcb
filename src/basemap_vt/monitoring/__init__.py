"""
Monitoring Module

Prometheus metrics for index builds, tile materialization and queries.
"""

from .metrics import MetricsCollector

__all__ = [
    "MetricsCollector"
]
