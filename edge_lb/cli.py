"""CLI argument parsing and main entry point."""

import argparse
import logging
import sys
from typing import Optional, Sequence

import uvicorn

from edge_lb.core.config import POLICIES, load_settings
from edge_lb.core.logging import setup_logging
from edge_lb.errors import ConfigError
from edge_lb.main import create_app

module_logger = logging.getLogger("edge_lb.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edge-lb",
        description="HTTP load balancer with active health checks.",
    )
    # Unset flags fall back to LB_* environment variables, then to defaults
    parser.add_argument("--host", default=None, help="listen address (default 0.0.0.0)")
    parser.add_argument("--port", default=None, help="server port (default 8080)")
    parser.add_argument(
        "--backends",
        default=None,
        help="comma-separated list of backend authorities (default localhost:8081,localhost:8082)",
    )
    parser.add_argument("--interval", default=None, help="health check interval, e.g. 10s (default 10s)")
    parser.add_argument("--probe-timeout", default=None, help="timeout of one health probe (default 2s)")
    parser.add_argument("--forward-timeout", default=None, help="deadline for forwarded requests (default none)")
    parser.add_argument("--policy", default=None, choices=POLICIES, help="backend selection policy")
    parser.add_argument(
        "--passthrough",
        action="store_true",
        default=None,
        help="forward the client's method, path, query, headers and body",
    )
    parser.add_argument(
        "--relay-status",
        action="store_true",
        default=None,
        help="return the backend's status code and headers instead of 200",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(
            host=args.host,
            port=args.port,
            backends=args.backends,
            interval_s=args.interval,
            probe_timeout_s=args.probe_timeout,
            forward_timeout_s=args.forward_timeout,
            policy=args.policy,
            passthrough=args.passthrough,
            relay_upstream_status=args.relay_status,
            log_level=args.log_level,
        )
    except ConfigError as e:
        setup_logging("INFO")
        module_logger.error("%s", e)
        return 2

    setup_logging(settings.log_level)
    module_logger.info("Starting server on %s:%s", settings.host, settings.port)

    server = uvicorn.Server(
        uvicorn.Config(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_config=None,
            log_level=settings.log_level.lower(),
        )
    )
    server.run()
    if not server.started:
        module_logger.error("Server failed to start on port %s", settings.port)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
