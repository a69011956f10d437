"""Reference backend for trying the balancer locally.

Answers every path with a fixed greeting and exposes ``GET /health``.
Start a couple of them on different ports and point ``edge-lb`` at them:

    edge-lb-backend --port 8081 &
    edge-lb-backend --port 8082 &
    edge-lb --backends localhost:8081,localhost:8082
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from edge_lb.core.logging import setup_logging

log = logging.getLogger("edge_lb.demo_backend")

DEFAULT_MESSAGE = "Hello from backend server"


def create_backend_app(message: str = DEFAULT_MESSAGE) -> FastAPI:
    """Build a backend app. Flip ``app.state.healthy`` to fail health checks."""
    app = FastAPI(title="edge-lb demo backend", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.healthy = True

    @app.get("/health")
    async def health(request: Request):
        if not request.app.state.healthy:
            return JSONResponse({"status": "DOWN"}, status_code=503)
        return {"status": "OK"}

    @app.api_route("/{path:path}", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    async def serve(request: Request, path: str = ""):
        client = f"{request.client.host}:{request.client.port}" if request.client else "unknown"
        log.info("Received request from %s: %s %s", client, request.method, request.url.path)
        log.info("Response: %s", message)
        return PlainTextResponse(message)

    return app


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="edge-lb-backend", description="Demo backend for edge-lb.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8081, help="server port")
    parser.add_argument("--message", default=DEFAULT_MESSAGE, help="response body")
    args = parser.parse_args(argv)

    setup_logging()
    log.info("Starting server on port :%s", args.port)
    uvicorn.run(create_backend_app(args.message), host=args.host, port=args.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
