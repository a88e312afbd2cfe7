"""Observability: structlog-based audit backend and request middleware."""
