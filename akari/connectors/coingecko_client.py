"""CoinGecko price index connector and memecoin radar.

Interface contract:
  - get_markets(category, order, per_page, page) → list[CoinMarket]
  - get_top_memecoins(limit) → list[CoinMarket], never raises

Memecoin radar fallback chain, first non-empty wins:
  1. pump-fun category by volume
  2. meme-token category by volume
  3. top 250 by market cap filtered through is_meme_token
  4. top coins by market cap

Auth: optional x-cg-demo-api-key header (COINGECKO_API_KEY env var).
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from typing import Any

import aiohttp

from akari.config.settings import AkariConfig
from akari.portal.tokens import is_meme_token
from akari.utils.logger import get_logger

logger = get_logger("coingecko")

BASE_URL = "https://api.coingecko.com/api/v3"
BASE_DELAY_S = 1.0
KEYWORD_SCAN_SIZE = 250


# ================================================================
# Data models
# ================================================================


@dataclass(frozen=True)
class CoinMarket:
    """A coin row from /coins/markets."""

    id: str
    symbol: str
    name: str
    price_usd: float
    market_cap_usd: float | None = None
    price_change_24h_pct: float | None = None
    volume_24h_usd: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ================================================================
# Error types
# ================================================================


class CoinGeckoError(Exception):
    """Base error for CoinGecko API calls."""


class CoinGeckoRateLimitError(CoinGeckoError):
    """Rate limit exceeded."""


class CoinGeckoAuthError(CoinGeckoError):
    """Invalid API key."""


# ================================================================
# Client
# ================================================================


class CoinGeckoClient:
    """Async CoinGecko client.

    Args:
        api_key: Demo API key; empty uses the keyless public tier.
        session: Optional shared aiohttp session.
        base_url: API root.
        timeout_s: Request timeout.
        max_attempts: Attempts per call (1 = no retry).
    """

    def __init__(
        self,
        api_key: str = "",
        session: aiohttp.ClientSession | None = None,
        base_url: str = BASE_URL,
        timeout_s: float = 30,
        max_attempts: int = 1,
    ) -> None:
        self._api_key = api_key
        self._session = session
        self._owns_session = session is None
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._max_attempts = max(1, max_attempts)

    @classmethod
    def from_config(
        cls, config: AkariConfig, session: aiohttp.ClientSession | None = None
    ) -> CoinGeckoClient:
        return cls(
            api_key=config.coingecko_api_key,
            session=session,
            base_url=config.coingecko.base_url,
            timeout_s=config.coingecko.timeout_seconds,
            max_attempts=config.rapidapi.max_attempts,
        )

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

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Authenticated GET.

        Raises:
            CoinGeckoAuthError: On 401.
            CoinGeckoRateLimitError: On 429 once attempts are used up.
            CoinGeckoError: On other failures.
        """
        session = await self._get_session()
        url = f"{self._base_url}{path}"
        headers: dict[str, str] = {}
        if self._api_key:
            headers["x-cg-demo-api-key"] = self._api_key

        last_error: CoinGeckoError | None = None
        for attempt in range(self._max_attempts):
            if attempt > 0:
                await asyncio.sleep(BASE_DELAY_S * (2 ** (attempt - 1)))
            try:
                async with session.get(url, params=params, headers=headers) as resp:
                    if resp.status == 200:
                        try:
                            return await resp.json(content_type=None)
                        except ValueError as e:
                            raise CoinGeckoError(f"Invalid JSON body: {e}") from e

                    body = await resp.text()
                    if resp.status == 401:
                        raise CoinGeckoAuthError(f"Invalid CoinGecko API key: {body[:200]}")

                    if resp.status == 429:
                        logger.warning("coingecko_429", attempt=attempt + 1)
                        last_error = CoinGeckoRateLimitError(f"Rate limited (attempt {attempt + 1})")
                        continue

                    if resp.status >= 500:
                        logger.warning("coingecko_5xx", status=resp.status, attempt=attempt + 1)
                        last_error = CoinGeckoError(f"Server error {resp.status}")
                        continue

                    raise CoinGeckoError(f"Unexpected status {resp.status}: {body[:200]}")

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning("coingecko_network_error", error=str(e), attempt=attempt + 1)
                last_error = CoinGeckoError(f"Network error: {e}")

        raise last_error or CoinGeckoError("Request failed")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_markets(
        self,
        category: str | None = None,
        order: str = "market_cap_desc",
        per_page: int = 100,
        page: int = 1,
    ) -> list[CoinMarket]:
        params: dict[str, Any] = {
            "vs_currency": "usd",
            "order": order,
            "per_page": per_page,
            "page": page,
        }
        if category:
            params["category"] = category

        data = await self._request("/coins/markets", params=params)
        if not isinstance(data, list):
            return []
        return [coin for coin in (self._parse_market(item) for item in data) if coin is not None]

    async def _radar_step(self, step: str, **kwargs: Any) -> list[CoinMarket]:
        """One fallback step; a failing source counts as empty."""
        try:
            coins = await self.get_markets(**kwargs)
        except CoinGeckoError as e:
            logger.warning("memecoin_radar_step_failed", step=step, error=str(e))
            return []
        logger.info("memecoin_radar_step", step=step, count=len(coins))
        return coins

    async def get_top_memecoins(self, limit: int = 10) -> list[CoinMarket]:
        """Memecoin radar; [] when every source fails or is empty."""
        for step, category in (("pump_fun", "pump-fun"), ("meme_token", "meme-token")):
            coins = await self._radar_step(
                step, category=category, order="volume_desc", per_page=limit
            )
            if coins:
                return coins[:limit]

        top = await self._radar_step("keyword_scan", per_page=KEYWORD_SCAN_SIZE)
        memes = [c for c in top if is_meme_token(c.symbol, c.name)]
        logger.info("memecoin_radar_step", step="keyword_filter", count=len(memes))
        if memes:
            return memes[:limit]

        fallback = await self._radar_step("top_coins", per_page=limit)
        if not fallback:
            logger.error("memecoin_radar_empty")
        return fallback[:limit]

    # ------------------------------------------------------------------
    # Parsers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_market(raw: Any) -> CoinMarket | None:
        """Rows without a symbol or a current price are dropped."""
        if not isinstance(raw, dict) or not raw.get("symbol"):
            return None
        price = _safe_float(raw.get("current_price"))
        if price is None:
            return None
        return CoinMarket(
            id=str(raw.get("id", "")),
            symbol=str(raw["symbol"]),
            name=str(raw.get("name", "")),
            price_usd=price,
            market_cap_usd=_safe_float(raw.get("market_cap")),
            price_change_24h_pct=_safe_float(raw.get("price_change_percentage_24h")),
            volume_24h_usd=_safe_float(raw.get("total_volume")),
        )


def _safe_float(val: Any) -> float | None:
    """Convert to float, returning None on failure."""
    if val is None:
        return None
    try:
        return float(val)
    except (ValueError, TypeError):
        return None
