"""Edge load balancer FastAPI application.

Builds the balancer app for one Settings object: wires the proxy and admin
routes, and owns the backend registry, the picker and the health poller for
the lifetime of the app.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from edge_lb.api.admin import ADMIN_PREFIX, admin_router
from edge_lb.api.routes import router
from edge_lb.core.config import Settings, load_settings
from edge_lb.metrics.prometheus import metrics_router
from edge_lb.services.health import poll_backends_loop, run_probe_cycle
from edge_lb.services.picker import Picker
from edge_lb.services.registry import BackendRegistry

log = logging.getLogger("edge_lb")


def create_app(settings: Optional[Settings] = None, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Create the balancer app.

    ``transport`` replaces the network for both probes and forwarded
    requests; tests pass an ``httpx.MockTransport`` here.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan.

        Runs one probe cycle before the server starts accepting traffic,
        then keeps the health poller running in the background until
        shutdown.
        """
        registry = BackendRegistry()
        app.state.picker = Picker(registry, settings.policy)
        log.info("Backends: %s (policy %s, interval %ss)", settings.backends, settings.policy, settings.interval_s)

        await run_probe_cycle(settings.backends, registry, timeout_s=settings.probe_timeout_s, transport=transport)
        poller = asyncio.create_task(
            poll_backends_loop(
                settings.backends,
                registry,
                interval_s=settings.interval_s,
                timeout_s=settings.probe_timeout_s,
                transport=transport,
            )
        )
        try:
            yield
        finally:
            poller.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await poller

    # No docs routes: every path outside the admin prefix belongs to the backends
    app = FastAPI(
        title="edge-lb",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.transport = transport
    app.include_router(admin_router, prefix=ADMIN_PREFIX)
    app.include_router(metrics_router, prefix=ADMIN_PREFIX)
    app.include_router(router)
    return app
