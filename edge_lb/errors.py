"""
Defines project-specific exception classes.
"""
from typing import Optional


class EdgeLBError(Exception):
    """Base class for all custom exceptions in the edge load balancer."""
    pass


class ConfigError(EdgeLBError):
    """Raised when the balancer configuration is missing or invalid."""
    pass


class ProbeError(EdgeLBError):
    """
    Raised inside a probe when a backend fails its health check.

    Never leaves the health prober: the backend is just left out of the
    next healthy set.
    """

    def __init__(self,
                 backend: str,
                 reason: str,
                 orig_exc: Optional[Exception] = None,
                 status_code: Optional[int] = None):
        self.backend = backend
        self.reason = reason
        self.orig_exc = orig_exc
        self.status_code = status_code
        super().__init__(f"Health check failed for {backend}: {reason}")


class NoHealthyBackends(EdgeLBError):
    """Raised by a selector when the healthy set is empty."""

    def __init__(self, message: str = "no healthy backends available"):
        super().__init__(message)


class ForwardingError(EdgeLBError):
    """
    Raised when the outbound request to a backend fails, or when its
    response body cannot be read in full.
    """

    def __init__(self, backend: str, orig_exc: Optional[Exception] = None):
        self.backend = backend
        self.orig_exc = orig_exc

        full_msg = f"Error forwarding request to backend {backend}"
        if orig_exc:
            full_msg += f": {type(orig_exc).__name__}: {orig_exc}"
        super().__init__(full_msg)
