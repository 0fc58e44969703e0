from .metrics import FeedMetrics, MetricsCollector

__all__ = ["FeedMetrics", "MetricsCollector"]
