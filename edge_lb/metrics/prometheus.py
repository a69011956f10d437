from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

metrics_router = APIRouter()

REQUESTS = Counter("lb_requests_total", "Total incoming LB requests")
SELECTION_ERRORS = Counter("lb_selection_errors_total", "Requests rejected because no backend was healthy")
FORWARD_ERRORS = Counter("lb_forward_errors_total", "Requests that failed while forwarding", ["backend"])
BACKEND_REQUESTS = Counter("lb_backend_requests_total", "Requests forwarded per backend", ["backend"])
FORWARD_LATENCY = Histogram("lb_forward_latency_seconds", "Outbound request latency seconds")

PROBES = Counter("lb_probe_total", "Health probes by outcome", ["backend", "result"])
PROBE_LATENCY = Histogram("lb_probe_latency_seconds", "Health probe latency seconds")
HEALTHY_BACKENDS = Gauge("lb_healthy_backends", "Backends in the current healthy set")


@metrics_router.get("/metrics")
async def metrics():
    """Prometheus exposition endpoint for LB process metrics."""
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
