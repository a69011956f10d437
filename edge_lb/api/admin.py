"""Internal endpoints served under the admin prefix instead of being proxied."""
from __future__ import annotations

from fastapi import APIRouter, Request

from edge_lb.models.schemas import BackendsView

ADMIN_PREFIX = "/_lb"

admin_router = APIRouter()


@admin_router.get("/readyz")
async def readyz():
    """Readiness probe endpoint returning a minimal OK payload."""
    return {"status": "ok"}


@admin_router.get("/backends", response_model=BackendsView)
async def backends(request: Request):
    """Configured backends next to the current healthy set."""
    state = request.app.state
    registry = state.picker.registry
    return BackendsView(
        policy=state.picker.policy,
        configured=list(state.settings.backends),
        healthy=list(registry.snapshot()),
        probe_cycles=registry.cycles,
    )
