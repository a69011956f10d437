from threading import Lock
from time import monotonic
from typing import Iterable, Optional, Tuple


def backend_url(authority: str, path: str = "/") -> str:
    """Build an absolute URL for ``path`` on a backend authority.

    A bare port (``8081`` or ``:8081``) means a backend on localhost.
    """
    bare = authority.lstrip(":")
    host = f"localhost:{bare}" if bare.isdigit() else authority
    if not path.startswith("/"):
        path = f"/{path}"
    return f"http://{host}{path}"


class BackendRegistry:
    """Holds the current healthy set and the round-robin cursor.

    The healthy set is stored as a tuple and replaced wholesale, so a caller
    holding a snapshot never sees it change underneath.
    """

    def __init__(self, backends: Iterable[str] = ()):
        self._healthy: Tuple[str, ...] = tuple(backends)
        self._cursor = 0
        self._cycles = 0
        self._last_swap_at: Optional[float] = None
        self._lock = Lock()

    def snapshot(self) -> Tuple[str, ...]:
        with self._lock:
            return self._healthy

    def swap(self, new_set: Iterable[str]) -> Tuple[str, ...]:
        """Replace the healthy set; returns the set it replaced."""
        fresh = tuple(new_set)
        with self._lock:
            previous = self._healthy
            self._healthy = fresh
            self._cycles += 1
            self._last_swap_at = monotonic()
            return previous

    def advance(self) -> int:
        """Return the cursor value and move it forward by one."""
        with self._lock:
            value = self._cursor
            self._cursor += 1
            return value

    @property
    def cycles(self) -> int:
        with self._lock:
            return self._cycles

    @property
    def last_swap_at(self) -> Optional[float]:
        with self._lock:
            return self._last_swap_at
