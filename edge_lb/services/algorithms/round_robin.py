"""Round-robin selection algorithm."""
from __future__ import annotations

from edge_lb.errors import NoHealthyBackends
from edge_lb.services.registry import BackendRegistry

from .base import BaseAlgorithm


class RoundRobinAlgorithm(BaseAlgorithm):
    """Round-robin over the healthy set using the registry's shared cursor."""

    def __init__(self):
        super().__init__("round_robin")

    def pick(self, registry: BackendRegistry) -> str:
        """Pick next backend using round-robin."""
        # The same snapshot is used for the modulo and the lookup
        backends = registry.snapshot()
        if not backends:
            raise NoHealthyBackends()

        backend = backends[registry.advance() % len(backends)]
        self.record_request()
        return backend
