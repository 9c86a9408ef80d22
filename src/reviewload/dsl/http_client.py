"""Instrumented HTTP client with auto-timing, check evaluation and metric emission."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

if TYPE_CHECKING:
    from collections.abc import Callable

    from reviewload._internal.types import Headers
    from reviewload.dsl.checks import CheckResult
    from reviewload.dsl.request_spec import RequestSpec

_JSON_HEADERS = {"Content-Type": "application/json"}


def _noop_metric_callback(metric: RequestMetric) -> None:
    """Default no-op metric callback."""


def _noop_check_callback(result: CheckResult) -> None:
    """Default no-op check callback."""


@dataclass
class RequestMetric:
    """Raw metric emitted for every HTTP request.

    Attributes:
        timestamp: Monotonic timestamp when the request started.
        name: Logical name for metric grouping (e.g., "create_team").
        method: HTTP method (GET, POST, etc.).
        url: Full request URL, without the query string.
        status_code: HTTP response status code (0 if the request failed).
        latency_ms: Response time in milliseconds, including the body read.
        content_length: Response body size in bytes.
        error: Transport error message if the request failed, None otherwise.
        vu: Virtual user that issued the request.
    """

    timestamp: float
    name: str
    method: str
    url: str
    status_code: int
    latency_ms: float
    content_length: int
    error: str | None = None
    vu: int = 0


@dataclass(frozen=True)
class RequestResult:
    """What one executed request produced.

    Exactly one of ``check`` and ``error`` is set: a response always has its
    check evaluated, a transport failure never does.

    Attributes:
        name: Logical request name.
        status_code: HTTP status, 0 when no response arrived.
        check: The evaluated check, None on a transport failure.
        error: Transport error message, None when a response arrived.
    """

    name: str
    status_code: int
    check: CheckResult | None = None
    error: str | None = None

    @property
    def passed(self) -> bool:
        """Return True if a response arrived and its check passed."""
        return self.check is not None and self.check.passed


class HttpClient:
    """Instrumented async HTTP client wrapping ``aiohttp.ClientSession``.

    :meth:`execute` sends a :class:`RequestSpec`, times it, reports a
    ``RequestMetric`` through ``metric_callback``, evaluates the request's
    check and reports the ``CheckResult`` through ``check_callback``.  Both
    callbacks default to no-ops; the engine wires them to the collector.

    Attributes:
        base_url: Base URL prepended to all request paths.
        headers: Headers applied to every request.
    """

    def __init__(
        self,
        base_url: str,
        headers: Headers | None = None,
        metric_callback: Callable[[RequestMetric], None] | None = None,
        check_callback: Callable[[CheckResult], None] | None = None,
        vu: int = 0,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Base URL prepended to all request paths.
            headers: Default headers applied to every request.
            metric_callback: Called with a ``RequestMetric`` after every
                request that finished or failed; cancelled ones are skipped.
            check_callback: Called with the ``CheckResult`` of every request
                that produced a status code.
            vu: Virtual user number for metric tagging.
            timeout: Total request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.headers: Headers = dict(headers or {})
        self._metric_callback = metric_callback or _noop_metric_callback
        self._check_callback = check_callback or _noop_check_callback
        self._vu = vu
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def execute(self, request: RequestSpec) -> RequestResult:
        """Send *request*, record its metric and evaluate its check.

        A response with an unexpected status is not an error: it only
        produces a failed ``CheckResult``.  A request that gets no response
        at all (connection error, DNS failure, timeout) is recorded as a
        transport error and returned without a check, so the caller can go
        on with its next step.

        Args:
            request: The request descriptor to send.

        Returns:
            The request's check result or transport error.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        url = f"{self.base_url}{request.path}"
        headers = {**self.headers}
        if request.body is not None:
            headers.update(_JSON_HEADERS)

        start = time.monotonic()
        status_code = 0
        content_length = 0
        error: str | None = None
        completed = False

        try:
            async with self._session.request(
                request.method,
                url,
                params=list(request.params) or None,
                data=request.body,
                headers=headers,
            ) as resp:
                status_code = resp.status
                body = await resp.read()
                content_length = len(body)
                completed = True
        except (aiohttp.ClientError, TimeoutError) as exc:
            status_code = 0
            error = f"{type(exc).__name__}: {exc}"
        finally:
            # Only a fully read response or a transport error is recorded;
            # a cancelled request leaves nothing behind.
            if completed or error is not None:
                latency_ms = (time.monotonic() - start) * 1000
                self._metric_callback(
                    RequestMetric(
                        timestamp=start,
                        name=request.name,
                        method=request.method,
                        url=url,
                        status_code=status_code,
                        latency_ms=latency_ms,
                        content_length=content_length,
                        error=error,
                        vu=self._vu,
                    )
                )

        if error is not None:
            return RequestResult(name=request.name, status_code=0, error=error)

        check = request.check.evaluate(status_code)
        self._check_callback(check)
        return RequestResult(name=request.name, status_code=status_code, check=check)
