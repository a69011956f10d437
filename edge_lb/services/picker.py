"""Backend selection with one policy fixed at startup."""
from __future__ import annotations

import logging
from typing import Callable

from edge_lb.errors import ConfigError
from edge_lb.services.registry import BackendRegistry

from .algorithms.base import BaseAlgorithm
from .algorithms.random_choice import RandomAlgorithm
from .algorithms.round_robin import RoundRobinAlgorithm

log = logging.getLogger("edge_lb.picker")

ALGORITHMS: dict[str, Callable[[], BaseAlgorithm]] = {
    "round_robin": RoundRobinAlgorithm,
    "random": RandomAlgorithm,
}


class Picker:
    """
    Binds one load-balancing algorithm to one backend registry.

    Every request handler calls ``pick``; the registry is only read here,
    apart from advancing the round-robin cursor.
    """

    def __init__(self, registry: BackendRegistry, policy: str = "round_robin", algorithm: BaseAlgorithm | None = None):
        if algorithm is None:
            factory = ALGORITHMS.get(policy)
            if factory is None:
                raise ConfigError(f"Unknown load balancing policy: {policy!r}")
            algorithm = factory()
        self._registry = registry
        self._algorithm = algorithm
        log.info("Using %s policy", algorithm.name)

    @property
    def policy(self) -> str:
        return self._algorithm.name

    @property
    def registry(self) -> BackendRegistry:
        return self._registry

    def pick(self) -> str:
        """Pick a backend, or raise NoHealthyBackends."""
        return self._algorithm.pick(self._registry)
