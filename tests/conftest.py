import socket
import threading
import time
from contextlib import closing

import pytest
import uvicorn


@pytest.fixture
def anyio_backend():
    return "asyncio"


# --- helpers ---------------------------------------------------------------

def free_port() -> int:
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class BgServer:
    """Run a uvicorn server in a background thread; stop with should_exit=True."""
    def __init__(self, app, host: str, port: int):
        self.config = uvicorn.Config(app, host=host, port=port, log_level="error")
        self.server = uvicorn.Server(self.config)
        self.thread = threading.Thread(target=self.server.run, daemon=True)

    def start(self):
        self.thread.start()
        # Wait until port is accepting connections
        deadline = time.time() + 5
        while time.time() < deadline:
            try:
                with socket.create_connection((self.config.host, self.config.port), timeout=0.25):
                    return
            except OSError:
                time.sleep(0.05)
        raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.should_exit = True
        self.thread.join(timeout=3)


class RawBackend:
    """Socket-level backend in a background thread, one thread per connection."""

    def __init__(self):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(16)
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self._stop = threading.Event()
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn):
        with conn:
            conn.settimeout(2)
            try:
                self.reply(conn, conn.recv(65536))
            except OSError:
                return

    def reply(self, conn, request: bytes):
        raise NotImplementedError

    def start(self):
        self.thread.start()

    def stop(self):
        self._stop.set()
        self.thread.join(timeout=3)
        self.sock.close()


class TruncatingBackend(RawBackend):
    """Healthy on /health, drops the connection mid-body elsewhere."""

    HEALTH = b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\nConnection: close\r\n\r\nOK"
    PARTIAL = b"HTTP/1.1 200 OK\r\nContent-Length: 100\r\nConnection: close\r\n\r\npartial"

    def reply(self, conn, request: bytes):
        conn.sendall(self.HEALTH if request.startswith(b"GET /health") else self.PARTIAL)


class SlowBodyBackend(RawBackend):
    """Answers 200 at once on every path, then trickles the body a byte at a time."""

    def __init__(self, chunks: int = 6, pause_s: float = 0.3):
        super().__init__()
        self.chunks = chunks
        self.pause_s = pause_s

    def reply(self, conn, request: bytes):
        conn.sendall(b"HTTP/1.1 200 OK\r\nContent-Length: %d\r\nConnection: close\r\n\r\n" % self.chunks)
        for _ in range(self.chunks):
            time.sleep(self.pause_s)
            conn.sendall(b"x")
