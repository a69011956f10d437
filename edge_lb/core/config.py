"""Configuration for the edge load balancer.

Provides strongly-typed settings using Pydantic and a loader from environment
variables with defaults suitable for local development. Command line flags
are layered on top by passing them to ``load_settings`` as overrides.
"""

from __future__ import annotations

import os
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from edge_lb.errors import ConfigError

POLICIES = ("round_robin", "random")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}
_DURATION_RE = re.compile(r"(?:\d+(?:\.\d+)?(?:ms|s|m|h))+")
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")


def parse_duration(value: Any) -> float:
    """Parse ``10s``, ``500ms``, ``1m30s`` or a bare number of seconds."""
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        try:
            seconds = float(text)
        except ValueError:
            if not _DURATION_RE.fullmatch(text):
                raise ValueError(f"invalid duration: {value!r}") from None
            seconds = sum(float(n) * _UNITS[unit] for n, unit in _DURATION_PART_RE.findall(text))
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {value!r}")
    return seconds


class Settings(BaseModel):
    """Pydantic settings for the LB service."""

    host: str = "0.0.0.0"
    port: int = Field(8080, ge=1, le=65535)
    # Order matters: round-robin walks the healthy subset in this order
    backends: list[str] = Field(default_factory=lambda: ["localhost:8081", "localhost:8082"])
    interval_s: float = 10.0
    probe_timeout_s: float = 2.0
    # None keeps the outbound call unbounded
    forward_timeout_s: float | None = None
    policy: str = "round_robin"
    passthrough: bool = False
    relay_upstream_status: bool = False
    log_level: str = "INFO"

    @field_validator("backends", mode="before")
    @classmethod
    def _split_backends(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            value = value.split(",")
        items = [str(item).strip() for item in value]
        items = [item for item in items if item]
        if not items:
            raise ValueError("no backends provided")
        return items

    @field_validator("interval_s", "probe_timeout_s", mode="before")
    @classmethod
    def _parse_interval(cls, value: Any) -> float:
        return parse_duration(value)

    @field_validator("forward_timeout_s", mode="before")
    @classmethod
    def _parse_forward_timeout(cls, value: Any) -> float | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return parse_duration(value)

    @field_validator("policy", mode="before")
    @classmethod
    def _check_policy(cls, value: Any) -> str:
        name = str(value).strip().lower().replace("-", "_")
        if name not in POLICIES:
            raise ValueError(f"unknown policy {value!r}, expected one of {', '.join(POLICIES)}")
        return name

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> str:
        level = str(value).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level


_ENV = {
    "host": "LB_HOST",
    "port": "LB_PORT",
    "backends": "LB_BACKENDS",
    "interval_s": "LB_INTERVAL",
    "probe_timeout_s": "LB_PROBE_TIMEOUT",
    "forward_timeout_s": "LB_FORWARD_TIMEOUT",
    "policy": "LB_POLICY",
    "passthrough": "LB_PASSTHROUGH",
    "relay_upstream_status": "LB_RELAY_STATUS",
    "log_level": "LOG_LEVEL",
}


def load_settings(**overrides: Any) -> Settings:
    """Load settings from environment variables, apply overrides, validate.

    Overrides whose value is None are ignored so unset CLI flags fall back to
    the environment or the defaults.
    """
    values: dict[str, Any] = {}
    for field, env_name in _ENV.items():
        raw = os.getenv(env_name)
        if raw is not None:
            values[field] = raw
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
