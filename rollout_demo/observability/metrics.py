from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from rollout_demo.config import Settings


HTTP_DURATION_BUCKETS_MS: tuple[float, ...] = (10, 50, 100, 200, 500, 1000, 2000, 5000)
HTTP_LABELS: tuple[str, ...] = ("method", "route", "status_code")

HTTP_REQUEST_DURATION = "http_request_duration_milliseconds"
HTTP_REQUESTS_TOTAL = "http_requests_total"
HTTP_REQUESTS_IN_FLIGHT = "http_requests_in_flight"
APP_VERSION_INFO = "app_version_info"


class MetricsError(Exception):
    """Base class for registry misuse."""


class DuplicateMetricError(MetricsError):
    pass


class UnknownMetricError(MetricsError):
    pass


class LabelMismatchError(MetricsError):
    pass


class MetricTypeError(MetricsError):
    pass


class MetricKind(str, Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    help: str
    kind: MetricKind
    label_names: tuple[str, ...] = ()
    buckets: tuple[float, ...] | None = None


class MetricsRegistry:
    """Thread-safe, process-local metrics backed by a prometheus_client registry.

    Each instance owns its own ``CollectorRegistry`` so that several apps (and tests)
    can live in one process without colliding on the global default registry.
    """

    def __init__(self, *, include_process_metrics: bool = True) -> None:
        self._lock = Lock()
        self._registry = CollectorRegistry()
        self._definitions: dict[str, MetricDefinition] = {}
        self._metrics: dict[str, Any] = {}
        self._started_at = time.time()

        if include_process_metrics:
            ProcessCollector(registry=self._registry)
            PlatformCollector(registry=self._registry)
            GCCollector(registry=self._registry)
            uptime = Gauge(
                "process_uptime_seconds",
                "Seconds since the metrics registry was created",
                registry=self._registry,
            )
            uptime.set_function(self.uptime_seconds)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def uptime_seconds(self) -> float:
        return max(0.0, time.time() - self._started_at)

    def register(self, definition: MetricDefinition) -> None:
        with self._lock:
            if definition.name in self._definitions:
                raise DuplicateMetricError(f"Metric already registered: {definition.name}")
            try:
                metric = self._build(definition)
            except ValueError as exc:
                # prometheus_client refuses names that collide with an existing collector.
                raise DuplicateMetricError(str(exc)) from exc
            self._definitions[definition.name] = definition
            self._metrics[definition.name] = metric

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._definitions)

    def definition(self, name: str) -> MetricDefinition:
        with self._lock:
            try:
                return self._definitions[name]
            except KeyError:
                raise UnknownMetricError(f"Unknown metric: {name}") from None

    def observe_duration(self, name: str, labels: Mapping[str, Any] | None, value_ms: float) -> None:
        if value_ms < 0:
            raise ValueError(f"Duration must be non-negative, got {value_ms}")
        child = self._child(name, labels, allowed=(MetricKind.HISTOGRAM,))
        child.observe(float(value_ms))

    def increment(self, name: str, labels: Mapping[str, Any] | None = None, delta: float = 1) -> None:
        kind = self.definition(name).kind
        if kind is MetricKind.COUNTER and delta < 0:
            raise MetricTypeError(f"Counter {name} cannot be decremented")
        child = self._child(name, labels, allowed=(MetricKind.COUNTER, MetricKind.GAUGE))
        child.inc(delta)

    def set(self, name: str, labels: Mapping[str, Any] | None, value: float) -> None:
        child = self._child(name, labels, allowed=(MetricKind.GAUGE,))
        child.set(value)

    def sample(self, name: str, labels: Mapping[str, Any] | None = None) -> float:
        """Current value of a series; histograms report their observation count."""

        definition = self.definition(name)
        label_values = self._check_labels(definition, labels)
        sample_name = f"{name}_count" if definition.kind is MetricKind.HISTOGRAM else name
        value = self._registry.get_sample_value(sample_name, label_values)
        return 0.0 if value is None else value

    def snapshot(self) -> bytes:
        """Render every registered collector in the text exposition format."""

        return generate_latest(self._registry)

    def _build(self, definition: MetricDefinition) -> Any:
        common: dict[str, Any] = {
            "name": definition.name,
            "documentation": definition.help,
            "labelnames": definition.label_names,
            "registry": self._registry,
        }
        if definition.kind is MetricKind.COUNTER:
            return Counter(**common)
        if definition.kind is MetricKind.GAUGE:
            return Gauge(**common)
        if definition.kind is MetricKind.HISTOGRAM:
            if definition.buckets:
                return Histogram(buckets=definition.buckets, **common)
            return Histogram(**common)
        raise MetricTypeError(f"Unsupported metric kind: {definition.kind}")

    def _child(self, name: str, labels: Mapping[str, Any] | None, *, allowed: Iterable[MetricKind]) -> Any:
        definition = self.definition(name)
        if definition.kind not in tuple(allowed):
            raise MetricTypeError(f"Metric {name} is a {definition.kind.value}")
        label_values = self._check_labels(definition, labels)
        metric = self._metrics[name]
        if not definition.label_names:
            return metric
        return metric.labels(**label_values)

    @staticmethod
    def _check_labels(definition: MetricDefinition, labels: Mapping[str, Any] | None) -> dict[str, str]:
        given = dict(labels or {})
        if set(given) != set(definition.label_names):
            raise LabelMismatchError(
                f"Metric {definition.name} expects labels {sorted(definition.label_names)}, got {sorted(given)}"
            )
        return {key: str(value) for key, value in given.items()}


def build_http_metrics(registry: MetricsRegistry, settings: Settings) -> MetricsRegistry:
    registry.register(
        MetricDefinition(
            name=HTTP_REQUEST_DURATION,
            help="Duration of HTTP requests in milliseconds",
            kind=MetricKind.HISTOGRAM,
            label_names=HTTP_LABELS,
            buckets=HTTP_DURATION_BUCKETS_MS,
        )
    )
    registry.register(
        MetricDefinition(
            name=HTTP_REQUESTS_TOTAL,
            help="Total number of HTTP requests",
            kind=MetricKind.COUNTER,
            label_names=HTTP_LABELS,
        )
    )
    registry.register(
        MetricDefinition(
            name=HTTP_REQUESTS_IN_FLIGHT,
            help="Number of HTTP requests currently being processed",
            kind=MetricKind.GAUGE,
        )
    )
    registry.register(
        MetricDefinition(
            name=APP_VERSION_INFO,
            help="Application version information",
            kind=MetricKind.GAUGE,
            label_names=("version", "commit"),
        )
    )
    registry.set(APP_VERSION_INFO, {"version": settings.app_version, "commit": settings.git_commit}, 1)
    return registry
