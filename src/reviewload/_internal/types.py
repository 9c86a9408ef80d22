"""Shared type aliases for reviewload."""

from __future__ import annotations

# HTTP headers dictionary.
Headers = dict[str, str]

# Query string parameters, kept as an immutable sequence of pairs.
QueryParams = tuple[tuple[str, str], ...]

# JSON object sent as a request body.
JsonObject = dict[str, object]
