"""Base class for load-balancing algorithms."""
from __future__ import annotations

import abc

from edge_lb.services.registry import BackendRegistry


class BaseAlgorithm(abc.ABC):
    """Base class for load balancing algorithms with common functionality."""

    def __init__(self, name: str):
        self.name = name
        self.request_count = 0

    @abc.abstractmethod
    def pick(self, registry: BackendRegistry) -> str:
        """Pick a backend from the registry's healthy set.

        Raises NoHealthyBackends if the healthy set is empty.
        """
        pass

    def record_request(self) -> None:
        """Record a successful pick."""
        self.request_count += 1
