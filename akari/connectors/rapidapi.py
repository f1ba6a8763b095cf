"""Shared RapidAPI transport.

Every RapidAPI-hosted provider is reached the same way: HTTPS to
``https://{host}``, a fixed ``X-RapidAPI-Key`` / ``X-RapidAPI-Host`` header
pair, and a per-provider timeout.

Interface contract:
  - get(path, params) / post(path, body) → parsed JSON
  - 404 → RapidApiNotFoundError (callers may turn it into None)
  - 401/403 → RapidApiAuthError
  - anything else non-2xx, timeouts, transport errors → RapidApiError
    with message "<provider> request failed for <path>"
  - the provider body (or transport message) is logged before raising

Attempts per call come from ``rapidapi.max_attempts``. The default of 1 is a
single attempt with no retry; values above 1 retry 429 / 5xx / transport
failures with exponential backoff.
"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp

from akari.config.settings import AkariConfig, ConfigurationError
from akari.utils.logger import get_logger

logger = get_logger("rapidapi")

DEFAULT_TIMEOUT_S = 30
BASE_DELAY_S = 0.5


# ================================================================
# Error types
# ================================================================


class RapidApiError(Exception):
    """Base error for RapidAPI provider calls."""

    def __init__(self, provider: str, path: str, status: int | None = None) -> None:
        self.provider = provider
        self.path = path
        self.status = status
        super().__init__(f"{provider} request failed for {path}")


class RapidApiNotFoundError(RapidApiError):
    """Provider answered 404."""


class RapidApiAuthError(RapidApiError):
    """Invalid or missing RapidAPI key or provider token."""


# ================================================================
# Transport
# ================================================================


class RapidApiTransport:
    """One provider host reached through RapidAPI.

    Args:
        api_key: RapidAPI key (X-RapidAPI-Key).
        host: Provider host, e.g. "twitter-api65.p.rapidapi.com".
        provider: Display name used in errors and log events.
        session: Optional shared aiohttp session.
        timeout_s: Total request timeout.
        max_attempts: Attempts per call (1 = no retry).
        extra_headers: Provider-specific headers sent on every call.
    """

    def __init__(
        self,
        api_key: str,
        host: str,
        provider: str,
        session: aiohttp.ClientSession | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_attempts: int = 1,
        base_delay_s: float = BASE_DELAY_S,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError(["RAPIDAPI_KEY"])
        self._api_key = api_key
        self._host = host
        self._provider = provider
        self._event_prefix = provider.replace("-", "_").replace(" ", "_")
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._max_attempts = max(1, max_attempts)
        self._base_delay_s = base_delay_s
        self._extra_headers = extra_headers or {}

    @classmethod
    def from_config(
        cls,
        config: AkariConfig,
        host: str,
        provider: str,
        session: aiohttp.ClientSession | None = None,
        timeout_s: float | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> RapidApiTransport:
        return cls(
            api_key=config.require_rapidapi_key(),
            host=host,
            provider=provider,
            session=session,
            timeout_s=timeout_s or config.rapidapi.timeout_seconds,
            max_attempts=config.rapidapi.max_attempts,
            base_delay_s=config.rapidapi.retry_base_delay_s,
            extra_headers=extra_headers,
        )

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def base_url(self) -> str:
        return f"https://{self._host}"

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if we own it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "X-RapidAPI-Key": self._api_key,
            "X-RapidAPI-Host": self._host,
            **self._extra_headers,
        }

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, body: Any) -> Any:
        return await self._request("POST", path, json_body=body)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Send one call, retrying only when max_attempts > 1.

        Raises:
            RapidApiNotFoundError: On 404.
            RapidApiAuthError: On 401/403.
            RapidApiError: On any other failure.
        """
        session = await self._get_session()
        url = f"{self.base_url}{path}"

        last_error: RapidApiError | None = None
        for attempt in range(self._max_attempts):
            if attempt > 0:
                delay = self._base_delay_s * (2 ** (attempt - 1))
                logger.info(
                    f"{self._event_prefix}_retry",
                    path=path,
                    attempt=attempt + 1,
                    delay_s=delay,
                )
                await asyncio.sleep(delay)

            try:
                async with session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=self._headers(),
                    timeout=self._timeout,
                ) as resp:
                    if 200 <= resp.status < 300:
                        return await resp.json(content_type=None)

                    body = await resp.text()
                    logger.warning(
                        f"{self._event_prefix}_request_failed",
                        path=path,
                        status=resp.status,
                        body=body[:500],
                        attempt=attempt + 1,
                    )

                    if resp.status == 404:
                        raise RapidApiNotFoundError(self._provider, path, resp.status)
                    if resp.status in (401, 403):
                        raise RapidApiAuthError(self._provider, path, resp.status)

                    last_error = RapidApiError(self._provider, path, resp.status)
                    if resp.status == 429 or resp.status >= 500:
                        continue
                    raise last_error

            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                # ValueError covers undecodable JSON bodies
                logger.warning(
                    f"{self._event_prefix}_request_failed",
                    path=path,
                    error=str(e) or type(e).__name__,
                    attempt=attempt + 1,
                )
                last_error = RapidApiError(self._provider, path)

        raise last_error or RapidApiError(self._provider, path)
