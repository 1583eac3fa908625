"""PostgreSQL statistics collectors that yield Prometheus-style metrics."""

__version__ = "0.1.0"