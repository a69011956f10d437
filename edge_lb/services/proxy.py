"""Reverse-proxy utilities for the edge load balancer.

Provides the forwarder that issues the outbound request to the selected
backend and reads its whole response, plus helpers for the pass-through
mode that relays the client's method, path, query, headers and body.
"""
from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import httpx
from fastapi import Request

from edge_lb.errors import ForwardingError
from edge_lb.metrics.prometheus import FORWARD_LATENCY
from edge_lb.models.schemas import UpstreamReply
from edge_lb.services.registry import backend_url

log = logging.getLogger("edge_lb.proxy")

# RFC 9110 hop-by-hop headers (must not be forwarded)
HOP_BY_HOP = {
    "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
    "te", "trailers", "transfer-encoding", "upgrade",
}


def strip_hop_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP}


def strip_hop_items(items: Iterable[Tuple[str, str]], drop: Iterable[str] = ()) -> List[Tuple[str, str]]:
    """Like ``strip_hop_headers`` for raw header pairs; repeated names are kept."""
    skip = HOP_BY_HOP | {d.lower() for d in drop}
    return [(k, v) for k, v in items if k.lower() not in skip]


def _add_forwarded(req: Request, headers: Dict[str, str]) -> Dict[str, str]:
    client_ip = req.client.host if req.client else "unknown"
    prior = headers.get("x-forwarded-for")
    headers["x-forwarded-for"] = f"{prior}, {client_ip}" if prior else client_ip
    headers.setdefault("x-forwarded-proto", req.url.scheme)
    headers.setdefault("x-forwarded-host", req.headers.get("host", ""))
    if "x-forwarded-port" not in headers:
        port = req.url.port or (443 if req.url.scheme == "https" else 80)
        headers["x-forwarded-port"] = str(port)
    return headers


async def forward(
    backend: str,
    *,
    method: str = "GET",
    path: str = "/",
    params: Optional[Mapping[str, str]] = None,
    headers: Optional[Mapping[str, str]] = None,
    body: bytes = b"",
    timeout_s: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> UpstreamReply:
    """Send one request to ``backend`` and read the full response.

    ``timeout_s=None`` leaves the call unbounded. Any transport failure,
    timeout or truncated body raises ForwardingError; nothing is retried.
    """
    target_url = backend_url(backend, path)

    async def send() -> httpx.Response:
        async with httpx.AsyncClient(
            transport=transport, timeout=httpx.Timeout(timeout_s), follow_redirects=True
        ) as client:
            return await client.request(method, target_url, params=params, headers=headers, content=body or None)

    start = perf_counter()
    try:
        # The deadline covers the whole exchange, body included
        r = await (send() if timeout_s is None else asyncio.wait_for(send(), timeout_s))
    except asyncio.TimeoutError as e:
        raise ForwardingError(backend, e) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ForwardingError(backend, e) from e
    elapsed = perf_counter() - start

    FORWARD_LATENCY.observe(elapsed)
    log.info("Response from %s: %s %s (took %.3fs)", backend, r.http_version, r.status_code, elapsed)
    return UpstreamReply(
        backend=backend,
        status_code=r.status_code,
        headers=r.headers.multi_items(),
        body=r.content,
        elapsed_s=elapsed,
    )


async def forward_request(
    req: Request,
    backend: str,
    *,
    timeout_s: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> UpstreamReply:
    """Forward ``req`` as-is (method, path, query, headers, body) to ``backend``."""
    headers = strip_hop_headers(dict(req.headers))
    headers.pop("host", None)
    headers = _add_forwarded(req, headers)
    body = await req.body()
    return await forward(
        backend,
        method=req.method,
        path=req.url.path,
        params=req.query_params,
        headers=headers,
        body=body,
        timeout_s=timeout_s,
        transport=transport,
    )
