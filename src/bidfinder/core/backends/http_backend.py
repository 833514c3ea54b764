"""
HTTP Backend implementation using httpx.

Provides async HTTP fetching with:
- A realistic browser identity
- Bounded retry with exponential backoff
- Rate limit and block detection
"""

from __future__ import annotations

import logging
import time

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bidfinder.core.config.models import DEFAULT_USER_AGENT

from .base import (
    Backend,
    BlockedError,
    FetchError,
    FetchResult,
    RateLimitError,
    RequestSpec,
)


logger = logging.getLogger(__name__)

# Status codes that indicate blocking
BLOCKED_STATUS_CODES = {403, 406, 418, 451}

# Status codes that should trigger retry
RETRY_STATUS_CODES = {500, 502, 503, 504}

# Markers of an interstitial challenge page rather than real content
BLOCKED_INDICATORS = (
    "captcha",
    "challenge-platform",
    "cf-browser-verification",
    "please verify you are human",
)


class _RetryableStatus(Exception):
    """Transient server-side status, retried before giving up."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class HttpBackend(Backend):
    """HTTP backend using httpx for async requests.

    Requests are made one at a time; a failed page is retried a bounded
    number of times and then surfaces as FetchError.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_attempts: int = 2,
        user_agent: str | None = None,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP backend.

        Args:
            timeout: Request timeout in seconds
            max_attempts: Attempts per request (1 disables retry)
            user_agent: Custom user agent
            default_headers: Default headers for all requests
            transport: Custom httpx transport (used by tests)
        """
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.transport = transport

        self.default_headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-GB,en;q=0.9",
            **(default_headers or {}),
        }

        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers=self.default_headers,
                transport=self.transport,
            )
        return self._client

    def _check_rate_limit(self, response: httpx.Response) -> None:
        """Check for rate limiting."""
        if response.status_code != 429:
            return

        retry_seconds = None
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                retry_seconds = float(retry_after)
            except ValueError:
                retry_seconds = None

        raise RateLimitError(
            "Rate limit exceeded",
            url=str(response.url),
            retry_after=retry_seconds,
        )

    def _check_blocked(self, response: httpx.Response, html: str) -> None:
        """Check if response indicates blocking."""
        if response.status_code in BLOCKED_STATUS_CODES:
            raise BlockedError(
                f"Request blocked with status {response.status_code}",
                url=str(response.url),
                status_code=response.status_code,
            )

        # Only small pages: a real listing can mention these words in passing
        if len(html) < 20000:
            html_lower = html.lower()
            for indicator in BLOCKED_INDICATORS:
                if indicator in html_lower:
                    raise BlockedError(
                        f"Possible anti-bot block detected: '{indicator}' in response",
                        url=str(response.url),
                        status_code=response.status_code,
                    )

    async def _get(self, request: RequestSpec) -> httpx.Response:
        client = await self._ensure_client()
        response = await client.get(
            request.url,
            headers={**self.default_headers, **request.headers},
            params=request.params or None,
        )
        self._check_rate_limit(response)
        if response.status_code in RETRY_STATUS_CODES:
            raise _RetryableStatus(response)
        return response

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL with bounded retry.

        Raises:
            FetchError: On transport failure or non-2xx response
            RateLimitError: When rate limiting persists across attempts
            BlockedError: When the site refuses the request
        """
        retry_count = 0
        started = time.monotonic()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type(
                    (httpx.TransportError, RateLimitError, _RetryableStatus)
                ),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    retry_count = attempt.retry_state.attempt_number - 1
                    response = await self._get(request)

        except (BlockedError, RateLimitError):
            raise
        except _RetryableStatus as e:
            raise FetchError(
                f"Server error {e.response.status_code} after {retry_count + 1} attempts",
                url=request.url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(
                f"Transport error after {retry_count + 1} attempts: {e}",
                url=request.url,
                cause=e,
            ) from e

        html = response.text
        self._check_blocked(response, html)

        if not response.is_success:
            raise FetchError(
                f"Unexpected status {response.status_code}",
                url=request.url,
                status_code=response.status_code,
            )

        return FetchResult(
            url=request.url,
            final_url=str(response.url),
            status_code=response.status_code,
            html=html,
            headers=dict(response.headers),
            elapsed_ms=(time.monotonic() - started) * 1000,
            retry_count=retry_count,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
