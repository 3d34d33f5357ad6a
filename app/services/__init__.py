"""
app/services package marker.
"""

from app.services.metrics_service import MetricsService, OverviewMetrics

__all__ = [
    "MetricsService",
    "OverviewMetrics",
]
