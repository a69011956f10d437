"""API routes for the load balancer.

Every method on every path (outside the admin prefix) is proxied to one
backend chosen by the app's Picker.
"""
from __future__ import annotations

from logging import getLogger
from time import perf_counter

from fastapi import APIRouter, Request, Response
from fastapi.responses import PlainTextResponse

from edge_lb.errors import ForwardingError, NoHealthyBackends
from edge_lb.metrics.prometheus import BACKEND_REQUESTS, FORWARD_ERRORS, REQUESTS, SELECTION_ERRORS
from edge_lb.services.picker import Picker
from edge_lb.services.proxy import forward, forward_request, strip_hop_items

log = getLogger("edge_lb.api")
router = APIRouter()

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
NO_HEALTHY_BODY = "No healthy backends available"
INTERNAL_ERROR_BODY = "Internal Server Error"

# Recomputed by the server or invalid once httpx has decoded the body
_DROP_REPLY_HEADERS = {"content-length", "content-encoding"}


def _get_picker(request: Request) -> Picker:
    """Return the app-scoped Picker placed on ``app.state`` during lifespan."""
    picker = getattr(request.app.state, "picker", None)
    if picker is None:
        raise RuntimeError("Load balancer is not initialised: run the app inside its lifespan")
    return picker


def _log_request(request: Request) -> None:
    client = f"{request.client.host}:{request.client.port}" if request.client else "unknown"
    log.info("Received request from %s", client)
    log.info("%s %s HTTP/%s", request.method, request.url.path, request.scope.get("http_version", "1.1"))
    log.info("Host: %s", request.headers.get("host", ""))
    for name, value in request.headers.items():
        log.info("%s: %s", name, value)


async def _handle(request: Request) -> Response:
    settings = request.app.state.settings
    transport = getattr(request.app.state, "transport", None)
    picker = _get_picker(request)

    try:
        backend = picker.pick()
    except NoHealthyBackends as e:
        SELECTION_ERRORS.inc()
        log.warning("Error load balancing: %s", e)
        return PlainTextResponse(NO_HEALTHY_BODY, status_code=503)

    log.info("Forwarding request to backend: %s", backend)
    BACKEND_REQUESTS.labels(backend=backend).inc()
    try:
        if settings.passthrough:
            reply = await forward_request(request, backend, timeout_s=settings.forward_timeout_s, transport=transport)
        else:
            reply = await forward(backend, timeout_s=settings.forward_timeout_s, transport=transport)
    except ForwardingError as e:
        FORWARD_ERRORS.labels(backend=backend).inc()
        log.error("Error handling request: %s", e)
        return PlainTextResponse(INTERNAL_ERROR_BODY, status_code=500)

    if settings.relay_upstream_status:
        response = Response(content=reply.body, status_code=reply.status_code)
        for name, value in strip_hop_items(reply.headers, drop=_DROP_REPLY_HEADERS):
            response.headers.append(name, value)
        return response
    # Only the body is relayed; status and headers from the backend are dropped
    return Response(content=reply.body)


@router.api_route("/{path:path}", methods=PROXY_METHODS)
async def proxy_all(request: Request, path: str = ""):
    """Select a backend, forward to it, and answer with its body."""
    start = perf_counter()
    REQUESTS.inc()
    _log_request(request)
    response = await _handle(request)
    log.info("Request processed in %.3fs", perf_counter() - start)
    return response
