"""get-twitter-mentions connector.

Interface contract:
  - fetch_project_mentions(keyword, period_days, limit) → list[MentionResult]
  - fetch_handle_mentions(handle, ...) searches "@handle"
  - fetch_ticker_mentions(ticker, ...) searches "$TICKER"

Failures raise RapidApiError; there is no not-found case for a keyword search.
"""

from __future__ import annotations

import aiohttp

from akari.config.settings import AkariConfig
from akari.connectors.rapidapi import RapidApiTransport
from akari.normalizers.mentions import MentionResult, normalize_mention_item
from akari.normalizers.variants import normalize_many
from akari.utils.logger import get_logger

logger = get_logger("mentions")


class MentionsClient:
    def __init__(
        self,
        config: AkariConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._transport = RapidApiTransport.from_config(
            config,
            host=config.rapidapi.mentions_host,
            provider="twitter-mentions",
            session=session,
        )

    async def close(self) -> None:
        await self._transport.close()

    async def fetch_project_mentions(
        self,
        keyword: str,
        period_days: int = 1,
        limit: int = 100,
    ) -> list[MentionResult]:
        data = await self._transport.get("/", {"keyword": keyword, "period": period_days})

        raw_items: object = []
        if isinstance(data, list):
            raw_items = data
        elif isinstance(data, dict):
            raw_items = next(
                (data[k] for k in ("tweets", "mentions", "results", "data") if data.get(k)),
                [],
            )
        if not isinstance(raw_items, list):
            raw_items = []

        mentions = normalize_many(raw_items, normalize_mention_item, limit)
        logger.info("mentions_fetched", keyword=keyword, count=len(mentions))
        return mentions

    async def fetch_handle_mentions(
        self, handle: str, period_days: int = 1, limit: int = 100
    ) -> list[MentionResult]:
        clean = handle.strip().replace("@", "", 1)
        return await self.fetch_project_mentions(f"@{clean}", period_days, limit)

    async def fetch_ticker_mentions(
        self, ticker: str, period_days: int = 1, limit: int = 100
    ) -> list[MentionResult]:
        clean = ticker.strip().replace("$", "", 1).upper()
        return await self.fetch_project_mentions(f"${clean}", period_days, limit)
