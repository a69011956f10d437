"""Pydantic models used by the edge load balancer."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ProbeResult(BaseModel):
    """Outcome of one ``GET /health`` probe against one backend."""

    backend: str
    healthy: bool
    status_code: Optional[int] = None
    latency_s: float = 0.0
    error: Optional[str] = None


class UpstreamReply(BaseModel):
    """What a backend answered to a forwarded request."""

    backend: str
    status_code: int
    # Repeated headers (Set-Cookie) stay separate entries
    headers: list[tuple[str, str]] = []
    body: bytes = b""
    elapsed_s: float = 0.0


class BackendsView(BaseModel):
    """Shape returned by the ``/_lb/backends`` admin endpoint."""

    policy: str
    configured: list[str]
    healthy: list[str]
    probe_cycles: int
