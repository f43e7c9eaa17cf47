"""
Prometheus Metrics for Observability

Tracks HTTP traffic, per-stage pipeline latency, prediction outcomes and
model loading. Exposed through GET /api/v1/metrics for Prometheus scraping.
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

# Pipeline Latency - Per Stage (preprocess, inference, ranking)
pipeline_latency_seconds = Histogram(
    "detector_stage_latency_seconds",
    "Time spent in each prediction stage",
    labelnames=["stage", "status"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Prediction outcomes
predictions_total = Counter(
    "detector_predictions_total",
    "Total number of prediction requests by outcome",
    labelnames=["status", "error_type"]
)

top_prediction_total = Counter(
    "detector_top_prediction_total",
    "Highest ranked prediction per request",
    labelnames=["code", "violation"]
)

# Model loading
model_load_seconds = Histogram(
    "detector_model_load_seconds",
    "Time to load the ONNX model",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0]
)

# API Request Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    labelnames=["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Application Info
app_info = Info(
    "detector_app",
    "Application information"
)


# =============================================================================
# Helper Functions
# =============================================================================

def set_app_info(version: str, environment: str):
    """Set application info metric."""
    app_info.info({
        "version": version,
        "environment": environment
    })


@contextmanager
def track_stage_latency(stage: str):
    """
    Context manager to track stage latency.

    Usage:
        with track_stage_latency("inference"):
            # do work
    """
    start = time.time()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.time() - start
        pipeline_latency_seconds.labels(stage=stage, status=status).observe(duration)


def record_prediction(status: str, error_type: str = "none"):
    """Record the outcome of a prediction request."""
    predictions_total.labels(status=status, error_type=error_type).inc()


def record_top_prediction(code: str, is_violation: bool):
    """Record which class ranked first."""
    top_prediction_total.labels(
        code=code,
        violation=str(is_violation).lower()
    ).inc()


def record_model_load_time(load_time_seconds: float):
    """Record model loading time."""
    model_load_seconds.observe(load_time_seconds)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
