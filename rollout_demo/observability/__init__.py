"""Observability for the demo service.

Request timing and access logs (pure ASGI middleware over structlog contextvars),
a prometheus_client-backed metrics registry scraped at ``/metrics``, and the
JSON error boundary that keeps every failure observable.
"""
