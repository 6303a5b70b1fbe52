"""
Resilient fetch client for the remote row store.

Issues one logical request against the row store's web endpoint with a
per-attempt wall-clock timeout, classifies every failure into the
:mod:`fieldtally.core.errors` taxonomy and retries the retryable ones on a
fixed delay schedule.

Manifesto:
    - **Classify, then decide:** Every failure becomes a typed error first;
      the retry loop only looks at ``error.retryable``
    - **Bounded:** 1 attempt + ``len(retry_delays)`` retries, never more
    - **Writes go out once:** A POST is never retried; a timed-out write may
      already have appended its row
    - **Semantic failures are final:** ``success: false`` is an answer, not
      a glitch, and is never retried
    - **Result-returning:** ``fetch`` returns ``Ok``/``Err``; ``fetch_or_raise``
      is the exception-flavoured twin

Architecture:
    ::

        fetch(request)
          └─ RetryContext(FixedScheduleBackoff | NoRetry for POST).run_async(_attempt)
               └─ _attempt
                    ├─ with_deadline_async(timeout)
                    │     httpx GET ?action=..   or   POST text/plain JSON
                    ├─ TimeoutExpired / httpx.TimeoutException → TransportTimeout  (retry)
                    ├─ other httpx.RequestError              → TransportNetworkError (retry)
                    ├─ status 408/429/5xx                    → HttpStatusError    (retry)
                    ├─ other non-2xx                         → HttpStatusError    (final)
                    ├─ undecodable body                      → MalformedPayload   (final)
                    └─ success: false                        → ApiSemanticError   (final)

Examples:
    Testing with a mock transport:

        transport = httpx.MockTransport(lambda req: httpx.Response(200, json={"success": True, "data": []}))
        fetcher = ResilientFetcher("https://example.test/exec", client=httpx.AsyncClient(transport=transport))
        result = await fetcher.fetch(FetchRequest("getTasks"))

Tags:
    http, httpx, retry, timeout, resilience, fieldtally
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from fieldtally.core.errors import (
    ConfigError,
    FieldTallyError,
    HttpStatusError,
    TransportNetworkError,
    TransportTimeout,
)
from fieldtally.core.logging import get_logger
from fieldtally.core.result import Err, Ok, Result
from fieldtally.core.settings import FieldTallySettings
from fieldtally.execution.retry import FixedScheduleBackoff, NoRetry, RetryContext, RetryStrategy, Sleep
from fieldtally.execution.timeout import TimeoutExpired, with_deadline_async
from fieldtally.sources.envelope import ApiEnvelope, parse_envelope, unwrap_envelope

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_RETRY_DELAYS: tuple[float, ...] = (0.4, 1.2)
USER_AGENT = "fieldtally/0.1"


@dataclass(frozen=True)
class FetchRequest:
    """One logical call against the row store.

    Requests with a ``body`` are writes and go out as POST; everything else
    is a GET with ``action`` and the non-empty ``params`` in the query string.
    """

    action: str
    params: Mapping[str, str] = field(default_factory=dict)
    body: Mapping[str, Any] | None = None

    @property
    def method(self) -> str:
        return "POST" if self.body is not None else "GET"

    def query(self) -> dict[str, str]:
        query = {"action": self.action}
        query.update({k: v for k, v in self.params.items() if v != ""})
        return query


class ResilientFetcher:
    """Timeout, error classification and bounded retry around httpx."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._strategy = FixedScheduleBackoff(delays=tuple(retry_delays))
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: FieldTallySettings, **kwargs: Any) -> ResilientFetcher:
        return cls(
            settings.resolved_script_url(),
            timeout=settings.request_timeout_seconds,
            retry_delays=settings.retry_delays,
            **kwargs,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def max_attempts(self) -> int:
        return self._strategy.max_attempts

    def is_configured(self) -> bool:
        return bool(self._base_url)

    async def fetch(self, request: FetchRequest) -> Result[ApiEnvelope]:
        """Run ``request`` with retry and return ``Ok(envelope)`` or ``Err(error)``.

        Only :class:`~fieldtally.core.errors.FieldTallyError` failures are
        captured into ``Err``; programming errors still raise.
        """
        if not self._base_url:
            return Err(
                ConfigError("Row store URL not configured. Set FIELDTALLY_SCRIPT_URL.").with_context(
                    action=request.action
                )
            )

        logger.debug("fetch_request", action=request.action, method=request.method, params=dict(request.params))
        ctx = RetryContext(
            strategy=self._strategy_for(request),
            on_retry=lambda attempt, error, delay: logger.info(
                "fetch_retry",
                action=request.action,
                attempt=attempt,
                delay=delay,
                error_type=type(error).__name__,
                error=str(error),
            ),
            sleep=self._sleep,
        )
        try:
            envelope = await ctx.run_async(self._attempt, request, ctx)
        except FieldTallyError as e:
            logger.warning("fetch_failed", attempts=ctx.attempts, **e.to_dict())
            return Err(e)
        logger.debug("fetch_succeeded", action=request.action, attempts=ctx.attempts)
        return Ok(envelope)

    async def fetch_or_raise(self, request: FetchRequest) -> ApiEnvelope:
        """Like :meth:`fetch` but raise the error instead of returning ``Err``."""
        return (await self.fetch(request)).unwrap()

    async def fetch_data(self, request: FetchRequest) -> Any:
        """The ``data`` member of a successful envelope."""
        return (await self.fetch_or_raise(request)).data

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ResilientFetcher:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # ── Internals ────────────────────────────────────────────────────

    def _strategy_for(self, request: FetchRequest) -> RetryStrategy:
        if request.method == "POST":
            return NoRetry()
        return self._strategy

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT, "Cache-Control": "no-store"},
            )
        return self._client

    async def _attempt(self, request: FetchRequest, ctx: RetryContext) -> ApiEnvelope:
        try:
            response = await self._send(request)
        except FieldTallyError as e:
            raise e.with_context(action=request.action, url=self._base_url, attempt=ctx.attempt)

        if not response.is_success:
            raise HttpStatusError(response.status_code, response.text[:500]).with_context(
                action=request.action, url=self._base_url, attempt=ctx.attempt
            )

        try:
            envelope = parse_envelope(response.text, response.headers.get("content-type", ""))
            unwrap_envelope(envelope, "Submit failed" if request.method == "POST" else "Unknown API error")
        except FieldTallyError as e:
            raise e.with_context(action=request.action, url=self._base_url, attempt=ctx.attempt)
        return envelope

    async def _send(self, request: FetchRequest) -> httpx.Response:
        client = self._http()
        try:
            async with with_deadline_async(self._timeout, operation=request.action):
                if request.method == "POST":
                    return await client.post(
                        self._base_url,
                        content=json.dumps(request.body),
                        headers={"Content-Type": "text/plain"},
                        follow_redirects=True,
                        timeout=self._timeout,
                    )
                return await client.get(
                    self._base_url,
                    params=request.query(),
                    follow_redirects=True,
                    timeout=self._timeout,
                )
        except (TimeoutExpired, httpx.TimeoutException) as e:
            raise TransportTimeout(f"Request timed out after {self._timeout}s", cause=e) from e
        except httpx.RequestError as e:
            raise TransportNetworkError(f"Request failed: {str(e) or type(e).__name__}", cause=e) from e


__all__ = [
    "DEFAULT_RETRY_DELAYS",
    "DEFAULT_TIMEOUT_SECONDS",
    "FetchRequest",
    "ResilientFetcher",
]
