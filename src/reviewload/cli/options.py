"""Configuration assembly shared by CLI commands."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from reviewload._internal.config import DriverConfig, load_config, parse_duration, parse_stage


def build_config(
    *,
    base_url: str | None = None,
    stages: list[str] | None = None,
    pacing: str | None = None,
    timeout: str | None = None,
    graceful_stop: str | None = None,
    start_vus: int | None = None,
    tick_interval: float | None = None,
) -> DriverConfig:
    """Load the environment configuration and apply CLI overrides on top.

    Only options the user actually passed override the environment.

    Raises:
        ConfigError: If the environment or any override is invalid.
    """
    config = load_config()
    overrides: dict[str, Any] = {}
    if base_url is not None:
        overrides["base_url"] = base_url
    if stages:
        overrides["stages"] = tuple(parse_stage(s) for s in stages)
    if pacing is not None:
        overrides["pacing"] = parse_duration(pacing)
    if timeout is not None:
        overrides["request_timeout"] = parse_duration(timeout)
    if graceful_stop is not None:
        overrides["graceful_stop"] = parse_duration(graceful_stop)
    if start_vus is not None:
        overrides["start_vus"] = start_vus
    if tick_interval is not None:
        overrides["tick_interval"] = tick_interval
    return replace(config, **overrides) if overrides else config
