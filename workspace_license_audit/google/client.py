"""
Async Google REST client with throttling, retry, and safety enforcement.
Shared by the directory, licensing and sheets services.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from ..config import (
    MAX_RETRIES,
    INITIAL_BACKOFF_SECONDS,
    MAX_BACKOFF_SECONDS,
    BACKOFF_MULTIPLIER,
    MAX_CONCURRENT_REQUESTS,
)
from ..safety.guardian import SafetyGuardian, SafetyViolation

logger = logging.getLogger("workspace_license_audit.google")

RETRYABLE_STATUS = (429, 500, 502, 503, 504)

# Google reports quota exhaustion as 403 with one of these reasons
RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded"}


class GoogleAPIError(Exception):
    """Raised when a Google API returns a non-recoverable error."""
    def __init__(self, status_code: int, message: str, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"Google API Error {status_code} for {url}: {message}")


def _error_details(response: httpx.Response) -> tuple[str, set[str]]:
    """Pull the message and reason codes out of a Google error body."""
    try:
        body = response.json() if response.content else {}
    except ValueError:
        return response.text[:200], set()
    error = body.get("error", {}) if isinstance(body, dict) else {}
    if not isinstance(error, dict):
        # OAuth endpoints use {"error": "...", "error_description": "..."}
        return str(body.get("error_description", error)), set()
    reasons = {e.get("reason", "") for e in error.get("errors", []) if isinstance(e, dict)}
    return error.get("message", response.text[:200]), reasons


class GoogleAPIClient:
    """
    Async Google Workspace API client.
    Features:
      - Safety-validated requests (tenant APIs are read-only)
      - Exponential backoff on 429/5xx and 403 rate-limit reasons
        (POSTs only where the server cannot have applied them)
      - Concurrent request semaphore
      - 404 surfaced as a marker instead of an exception
    """

    def __init__(
        self,
        access_token: str,
        guardian: SafetyGuardian,
        max_concurrency: int = MAX_CONCURRENT_REQUESTS,
        initial_backoff: float = INITIAL_BACKOFF_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.guardian = guardian
        self.initial_backoff = initial_backoff
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._transport = transport
        self._max_concurrency = max_concurrency
        self._request_count = 0
        self._throttle_count = 0
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(60.0, connect=30.0),
            limits=httpx.Limits(
                max_connections=self._max_concurrency * 2,
                max_keepalive_connections=self._max_concurrency,
            ),
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Accept": "application/json",
            },
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, url: str, params: Optional[dict] = None) -> dict:
        """Execute a single GET request with retry/throttle handling."""
        self.guardian.validate_request("GET", url)
        async with self._semaphore:
            return await self._execute_with_retry("GET", url, params=params)

    async def post(
        self,
        url: str,
        json_body: Optional[dict] = None,
        params: Optional[dict] = None,
        retry_unsafe: bool = False,
    ) -> dict:
        """
        Execute a single POST request.

        POSTs are not idempotent, so by default they are only retried when
        the server cannot have applied them: throttling responses and
        failures to connect. Pass ``retry_unsafe=True`` to also retry
        timeouts and 5xx responses.
        """
        self.guardian.validate_request("POST", url, json_body)
        async with self._semaphore:
            return await self._execute_with_retry(
                "POST", url, params=params, json_body=json_body, idempotent=retry_unsafe
            )

    async def _execute_with_retry(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
        idempotent: bool = True,
    ) -> dict:
        """Execute request with exponential backoff on throttling."""
        backoff = self.initial_backoff
        retry_status = RETRYABLE_STATUS if idempotent else (429,)

        for attempt in range(MAX_RETRIES + 1):
            try:
                response = await self._execute_raw(
                    method, url, params=params, json_body=json_body
                )
                self._request_count += 1

                if response.status_code in (200, 201):
                    if not response.content or not response.content.strip():
                        return {}
                    return response.json()

                if response.status_code == 204:
                    return {}

                if response.status_code == 404:
                    logger.debug(f"404 Not Found: {url}")
                    return {"_not_found": True}

                message, reasons = _error_details(response)
                throttled = response.status_code in retry_status or (
                    response.status_code == 403 and reasons & RATE_LIMIT_REASONS
                )
                if throttled and attempt < MAX_RETRIES:
                    self._throttle_count += 1
                    try:
                        retry_after = float(response.headers.get("Retry-After", backoff))
                    except ValueError:
                        retry_after = backoff
                    wait_time = max(retry_after, backoff)
                    logger.warning(
                        f"Throttled ({response.status_code}) on {url}. "
                        f"Retry {attempt + 1}/{MAX_RETRIES} in {wait_time:.1f}s"
                    )
                    await asyncio.sleep(wait_time)
                    backoff = min(backoff * BACKOFF_MULTIPLIER, MAX_BACKOFF_SECONDS)
                    continue

                raise GoogleAPIError(response.status_code, message, url)

            except httpx.TimeoutException as e:
                logger.warning(f"Timeout on {url}, attempt {attempt + 1}/{MAX_RETRIES}")
                # The request may have reached the server
                if attempt == MAX_RETRIES or (
                    not idempotent and not isinstance(e, (httpx.ConnectTimeout, httpx.PoolTimeout))
                ):
                    raise
                await asyncio.sleep(backoff)
                backoff = min(backoff * BACKOFF_MULTIPLIER, MAX_BACKOFF_SECONDS)

            except httpx.ConnectError as e:
                logger.warning(f"Connection error on {url}: {e}")
                if attempt == MAX_RETRIES:
                    raise
                await asyncio.sleep(backoff)
                backoff = min(backoff * BACKOFF_MULTIPLIER, MAX_BACKOFF_SECONDS)

        raise GoogleAPIError(0, "Maximum retries exceeded", url)

    async def _execute_raw(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> httpx.Response:
        """Execute raw HTTP request."""
        if not self._client:
            raise RuntimeError("GoogleAPIClient not initialized. Use 'async with' context.")

        if method == "GET":
            return await self._client.get(url, params=params)
        elif method == "POST":
            return await self._client.post(url, json=json_body, params=params)
        else:
            raise SafetyViolation(f"Unsupported method at raw level: {method}")

    def get_stats(self) -> dict:
        """Return client statistics."""
        return {
            "total_requests": self._request_count,
            "throttle_events": self._throttle_count,
        }
