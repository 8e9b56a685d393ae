"""
Prometheus Metrics for the Validation Pipeline

Counters and histograms describing how requests fare in the pipeline
stages. Metrics live in the default prometheus-client registry and are
exposed by the ``/metrics`` endpoint of the health blueprint.

Metrics:
    catalog_validation_failures_total{stage, schema}: Rejected requests (400)
    catalog_unexpected_errors_total{stage}: Unexpected failures (500)
    catalog_validation_seconds{schema}: Schema load duration
"""

from typing import Tuple

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Histogram, generate_latest

validation_failures = Counter(
    'catalog_validation_failures_total',
    'Requests rejected by a validation stage',
    ['stage', 'schema']
)

unexpected_errors = Counter(
    'catalog_unexpected_errors_total',
    'Unexpected failures raised inside a pipeline stage or handler',
    ['stage']
)

validation_duration = Histogram(
    'catalog_validation_seconds',
    'Time spent loading request data through a schema',
    ['schema'],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25)
)


def record_validation_failure(stage: str, schema: str) -> None:
    validation_failures.labels(stage=stage, schema=schema).inc()


def record_unexpected_error(stage: str) -> None:
    unexpected_errors.labels(stage=stage).inc()


def render_latest() -> Tuple[bytes, str]:
    """Return the exposition payload and its content type."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


__all__ = [
    'validation_failures',
    'unexpected_errors',
    'validation_duration',
    'record_validation_failure',
    'record_unexpected_error',
    'render_latest',
]
