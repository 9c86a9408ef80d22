"""Configuration loading for reviewload."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from reviewload._internal.errors import ConfigError
from reviewload.patterns.base import _validate_non_negative, _validate_positive
from reviewload.patterns.stages import Stage

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_STAGES = "20s:10,40s:30,20s:0"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(text: str) -> float:
    """Parse a duration string into seconds.

    Accepts a bare number of seconds (``"20"``, ``"0.5"``) or one or more
    ``<number><unit>`` parts with units ``ms``, ``s``, ``m`` and ``h``
    (``"20s"``, ``"1m30s"``, ``"500ms"``).

    Args:
        text: Duration string.

    Returns:
        Duration in seconds.

    Raises:
        ConfigError: If the string is empty, not a valid duration, or not a
            finite non-negative number.
    """
    value = text.strip()
    if not value:
        msg = "duration must not be empty"
        raise ConfigError(msg)

    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds) or seconds < 0:
            msg = f"duration must be a finite non-negative number, got {text!r}"
            raise ConfigError(msg)
        return seconds

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(value):
        msg = f"invalid duration {text!r}; expected e.g. '20s', '1m30s' or '500ms'"
        raise ConfigError(msg)
    if not math.isfinite(total):
        msg = f"duration {text!r} is too large"
        raise ConfigError(msg)
    return total


def parse_stage(text: str) -> Stage:
    """Parse a single ``"<duration>:<target>"`` stage string, e.g. ``"40s:30"``.

    Raises:
        ConfigError: If the string is malformed.
    """
    duration_text, sep, target_text = text.strip().partition(":")
    if not sep:
        msg = f"stage must look like '<duration>:<target>', got {text!r}"
        raise ConfigError(msg)
    try:
        target = int(target_text)
    except ValueError:
        msg = f"stage target must be an integer, got {target_text!r} in {text!r}"
        raise ConfigError(msg) from None
    return Stage(duration=parse_duration(duration_text), target=target)


def parse_stages(text: str) -> tuple[Stage, ...]:
    """Parse a comma-separated stage list such as ``"20s:10,40s:30,20s:0"``.

    Raises:
        ConfigError: If the list is empty or any stage is malformed.
    """
    parts = [part for part in text.split(",") if part.strip()]
    if not parts:
        msg = "at least one stage is required"
        raise ConfigError(msg)
    return tuple(parse_stage(part) for part in parts)


def validate_base_url(url: str) -> str:
    """Check that *url* is an absolute http(s) URL and strip trailing slashes.

    Raises:
        ConfigError: If the URL has no http/https scheme or no host.
    """
    parts = urlsplit(url.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        msg = f"base URL must be an absolute http(s) URL, got {url!r}"
        raise ConfigError(msg)
    return url.strip().rstrip("/")


@dataclass(frozen=True)
class DriverConfig:
    """Immutable load driver configuration, loaded once per run.

    Attributes:
        stages: Ordered stage schedule driving the VU ramp.
        base_url: Root URL all requests are resolved against.
        pacing: Seconds slept between pull-request creation and review
            retrieval within an iteration.
        request_timeout: Total timeout per request in seconds.
        graceful_stop: Seconds in-flight iterations get to finish when the
            run ends or is interrupted, before being cancelled.
        tick_interval: Seconds between concurrency adjustments and metric
            snapshots.
        start_vus: Virtual users active at t=0.
    """

    stages: tuple[Stage, ...] = parse_stages(DEFAULT_STAGES)
    base_url: str = DEFAULT_BASE_URL
    pacing: float = 0.2
    request_timeout: float = 30.0
    graceful_stop: float = 5.0
    tick_interval: float = 1.0
    start_vus: int = 0

    def __post_init__(self) -> None:
        if not self.stages:
            msg = "at least one stage is required"
            raise ConfigError(msg)
        _validate_positive(sum(s.duration for s in self.stages), "total stage duration")
        object.__setattr__(self, "stages", tuple(self.stages))
        object.__setattr__(self, "base_url", validate_base_url(self.base_url))
        _validate_non_negative(self.pacing, "pacing")
        _validate_positive(self.request_timeout, "request_timeout")
        _validate_non_negative(self.graceful_stop, "graceful_stop")
        _validate_positive(self.tick_interval, "tick_interval")
        if self.start_vus < 0:
            msg = f"start_vus must be non-negative, got {self.start_vus}"
            raise ConfigError(msg)

    @property
    def total_duration(self) -> float:
        """Return the sum of all stage durations in seconds."""
        return sum(stage.duration for stage in self.stages)


def _env_seconds(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return parse_duration(raw)
    except ConfigError as exc:
        msg = f"{name} must be a duration, got: {raw!r}"
        raise ConfigError(msg) from exc


def load_config() -> DriverConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        REVIEWLOAD_BASE_URL: Target service root (default: http://localhost:8080).
        REVIEWLOAD_STAGES: Stage list (default: ``20s:10,40s:30,20s:0``).
        REVIEWLOAD_PACING: Pause between PR creation and review lookup
            (default: 200ms).
        REVIEWLOAD_TIMEOUT: Request timeout (default: 30s).
        REVIEWLOAD_GRACEFUL_STOP: Drain time for in-flight iterations
            (default: 5s).
        REVIEWLOAD_START_VUS: Virtual users at t=0 (default: 0).

    Returns:
        Populated DriverConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    start_vus_str = os.environ.get("REVIEWLOAD_START_VUS", "0")
    try:
        start_vus = int(start_vus_str)
    except ValueError:
        msg = f"REVIEWLOAD_START_VUS must be an integer, got: {start_vus_str!r}"
        raise ConfigError(msg) from None

    return DriverConfig(
        stages=parse_stages(os.environ.get("REVIEWLOAD_STAGES", DEFAULT_STAGES)),
        base_url=os.environ.get("REVIEWLOAD_BASE_URL", DEFAULT_BASE_URL),
        pacing=_env_seconds("REVIEWLOAD_PACING", "200ms"),
        request_timeout=_env_seconds("REVIEWLOAD_TIMEOUT", "30s"),
        graceful_stop=_env_seconds("REVIEWLOAD_GRACEFUL_STOP", "5s"),
        start_vus=start_vus,
    )
