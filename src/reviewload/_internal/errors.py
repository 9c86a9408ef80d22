"""Custom exception hierarchy for reviewload."""

from __future__ import annotations


class ReviewLoadError(Exception):
    """Base exception for all reviewload errors.

    All custom exceptions raised by the load driver inherit from this class,
    making it easy to catch any reviewload-specific error with a single
    except clause.
    """


class ConfigError(ReviewLoadError):
    """Raised when configuration is invalid or missing.

    Configuration errors are fatal and are raised before any iteration
    executes.

    Examples:
        - A stage list is empty or a stage target is negative.
        - A duration string such as ``"20x"`` cannot be parsed.
        - The base URL has no scheme or host.
    """


class EngineError(ReviewLoadError):
    """Raised when a run session fails for reasons other than configuration."""

