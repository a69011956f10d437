"""Uniform random selection algorithm."""
from __future__ import annotations

import random
from typing import Optional

from edge_lb.errors import NoHealthyBackends
from edge_lb.services.registry import BackendRegistry

from .base import BaseAlgorithm


class RandomAlgorithm(BaseAlgorithm):
    """Picks a uniformly random member of the healthy set."""

    def __init__(self, rng: Optional[random.Random] = None):
        super().__init__("random")
        self._rng = rng or random.Random()

    def pick(self, registry: BackendRegistry) -> str:
        backends = registry.snapshot()
        if not backends:
            raise NoHealthyBackends()

        backend = self._rng.choice(backends)
        self.record_request()
        return backend
