from time import perf_counter

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

HTTP_REQUESTS_TOTAL = Counter(
    "netguard_http_requests_total",
    "Total HTTP requests.",
    ["method", "path", "status"],
)
HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "netguard_http_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

SECURITY_EVENTS_TOTAL = Counter(
    "netguard_security_events_total",
    "Security events published, by type and severity.",
    ["type", "severity"],
)
THREAT_PREDICTIONS_TOTAL = Counter(
    "netguard_threat_predictions_total",
    "Ensemble predictions by risk level.",
    ["risk_level"],
)
DEGRADED_PREDICTIONS_TOTAL = Counter(
    "netguard_degraded_predictions_total",
    "Predictions that fell back to the neutral response after an internal error.",
)
MODEL_TRAINING_RUNS_TOTAL = Counter(
    "netguard_model_training_runs_total",
    "Completed training runs of both forests.",
)
MODEL_TRAINING_SECONDS = Histogram(
    "netguard_model_training_seconds",
    "Wall time of one full training run.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)
TRAINING_SET_SIZE = Gauge(
    "netguard_training_set_size",
    "Labelled samples currently held by the detection engine.",
)
MODEL_READY = Gauge(
    "netguard_model_ready",
    "Model readiness (1 trained, 0 not trained).",
    ["model"],
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = perf_counter()
        response = await call_next(request)
        duration = perf_counter() - start

        path = request.url.path
        if path == "/metrics":
            return response

        HTTP_REQUESTS_TOTAL.labels(
            method=request.method,
            path=path,
            status=str(response.status_code),
        ).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(
            method=request.method,
            path=path,
        ).observe(duration)
        return response


def metrics_response() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
