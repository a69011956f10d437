"""Active health checking of the configured backends.

Each cycle probes every backend's ``/health`` concurrently, waits for all of
them, and swaps the resulting healthy set into the registry in one step.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Optional, Sequence

import httpx

from edge_lb.errors import ProbeError
from edge_lb.metrics.prometheus import HEALTHY_BACKENDS, PROBE_LATENCY, PROBES
from edge_lb.models.schemas import ProbeResult
from edge_lb.services.registry import BackendRegistry, backend_url

log = logging.getLogger("edge_lb.health")


async def _check(client: httpx.AsyncClient, backend: str, timeout_s: float) -> int:
    url = backend_url(backend, "/health")
    try:
        # timeout_s bounds the whole probe, httpx's own timeout only each read
        r = await asyncio.wait_for(client.get(url, timeout=timeout_s, follow_redirects=True), timeout_s)
    except asyncio.TimeoutError as e:
        raise ProbeError(backend, f"no answer within {timeout_s}s", e) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ProbeError(backend, f"{type(e).__name__}: {e}", e) from e
    if r.status_code != 200:
        raise ProbeError(backend, f"status code {r.status_code}", status_code=r.status_code)
    return r.status_code


async def probe_backend(client: httpx.AsyncClient, backend: str, timeout_s: float) -> ProbeResult:
    """Probe one backend. Never raises; failures come back as ``healthy=False``."""
    start = perf_counter()
    try:
        status_code = await _check(client, backend, timeout_s)
    except ProbeError as e:
        latency = perf_counter() - start
        PROBES.labels(backend=backend, result="unhealthy").inc()
        PROBE_LATENCY.observe(latency)
        log.warning("%s (took %.3fs)", e, latency)
        return ProbeResult(
            backend=backend,
            healthy=False,
            status_code=e.status_code,
            latency_s=latency,
            error=e.reason,
        )

    latency = perf_counter() - start
    PROBES.labels(backend=backend, result="healthy").inc()
    PROBE_LATENCY.observe(latency)
    log.info("Health check succeeded for %s (took %.3fs)", backend, latency)
    return ProbeResult(backend=backend, healthy=True, status_code=status_code, latency_s=latency)


async def run_probe_cycle(
    backends: Sequence[str],
    registry: BackendRegistry,
    *,
    timeout_s: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[ProbeResult]:
    """Run one probe cycle and swap the new healthy set into ``registry``.

    The healthy set keeps the configured order of ``backends``, whatever
    order the probes finished in.
    """
    async with httpx.AsyncClient(transport=transport) as client:
        outcomes = await asyncio.gather(
            *(probe_backend(client, b, timeout_s) for b in backends),
            return_exceptions=True,
        )

    results: list[ProbeResult] = []
    for backend, outcome in zip(backends, outcomes):
        if isinstance(outcome, Exception):
            log.error("Health check crashed for %s: %r", backend, outcome)
            outcome = ProbeResult(backend=backend, healthy=False, error=repr(outcome))
        results.append(outcome)

    healthy = [r.backend for r in results if r.healthy]
    registry.swap(healthy)
    HEALTHY_BACKENDS.set(len(healthy))
    log.info("Healthy backends: %s", healthy)
    return results


async def poll_backends_loop(
    backends: Sequence[str],
    registry: BackendRegistry,
    *,
    interval_s: float,
    timeout_s: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """Re-run the probe cycle every ``interval_s`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval_s)
        try:
            await run_probe_cycle(backends, registry, timeout_s=timeout_s, transport=transport)
        except Exception:
            log.exception("Probe cycle failed")
