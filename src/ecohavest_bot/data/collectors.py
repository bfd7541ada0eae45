"""
Data collectors for cryptocurrency prices and news.
Fetches top-coin snapshots from CoinRanking and recent articles from NewsAPI.
Neither collector raises on upstream failure: every outcome is a FetchResult.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp

from ..utils.config import MarketApiConfig, NewsApiConfig
from .models import (
    CoinSnapshot, DataSource, ErrorEnvelope, FetchResult, MarketSnapshot,
    MarketStats, NewsArticle,
)

logger = logging.getLogger(__name__)

USER_AGENT = "EcohavestBot/1.0"


class _BaseCollector:
    """Shared session and timeout handling for upstream clients."""

    def __init__(self, timeout_seconds: float, session: Optional[aiohttp.ClientSession] = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Yield the injected session, or a short-lived one closed after the request."""
        if self._session is not None:
            yield self._session
            return
        async with aiohttp.ClientSession(timeout=self.timeout, headers={'User-Agent': USER_AGENT}) as session:
            yield session

    async def _get_json(self, url: str, params: Dict[str, Any], headers: Dict[str, str]) -> Any:
        async with self._session_scope() as session:
            async with session.get(url, params=params, headers=headers, timeout=self.timeout) as response:
                # Both services report failures in the JSON body, so the body is read regardless of HTTP status
                return await response.json(content_type=None)


class MarketDataClient(_BaseCollector):
    """Collects the top-N coin snapshot and market totals from CoinRanking."""

    def __init__(self, config: MarketApiConfig, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(config.timeout_seconds, session)
        self.config = config
        self.url = f"{config.base_url.rstrip('/')}/coins"

    async def fetch(self) -> FetchResult:
        """Fetch the top coins. Any failure becomes an UNAVAILABLE result."""
        params = {'limit': self.config.limit, 'timePeriod': self.config.time_period}
        headers = {}
        if self.config.api_key:
            headers['x-access-token'] = self.config.api_key

        try:
            payload = await self._get_json(self.url, params, headers)
        except asyncio.TimeoutError:
            logger.error(f"CoinRanking request timed out after {self.config.timeout_seconds}s")
            return FetchResult.unavailable("Request timed out", DataSource.COINRANKING)
        except aiohttp.ClientError as e:
            logger.error(f"Error fetching crypto data: {e}")
            return FetchResult.unavailable(f"Request error: {e}", DataSource.COINRANKING)
        except Exception as e:
            logger.error(f"Unexpected error fetching crypto data: {e}")
            return FetchResult.unavailable(f"Unexpected error: {e}", DataSource.COINRANKING)

        status = payload.get('status') if isinstance(payload, dict) else None
        if status != 'success':
            logger.error(f"CoinRanking API returned status: {status}")
            return FetchResult.unavailable(f"Upstream status: {status}", DataSource.COINRANKING)

        try:
            snapshot = self._parse_snapshot(payload['data'])
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed CoinRanking payload: {e!r}")
            return FetchResult.unavailable(f"Malformed payload: {e!r}", DataSource.COINRANKING)

        logger.info(f"Fetched {len(snapshot.coins)} coins from CoinRanking")
        return FetchResult.ok(snapshot, DataSource.COINRANKING)

    @staticmethod
    def _parse_snapshot(data: Dict[str, Any]) -> MarketSnapshot:
        coins = [
            CoinSnapshot(
                symbol=coin['symbol'],
                name=coin['name'],
                price=str(coin.get('price') or ''),
                change=str(coin.get('change') or ''),
            )
            for coin in data['coins']
        ]
        stats = data['stats']
        return MarketSnapshot(
            coins=coins,
            stats=MarketStats(
                total_coins=int(stats['totalCoins']),
                total_market_cap=str(stats['totalMarketCap']),
                total_24h_volume=str(stats['total24hVolume']),
            ),
        )


class NewsClient(_BaseCollector):
    """Collects recent articles for a topic query from NewsAPI."""

    def __init__(self, config: NewsApiConfig, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(config.timeout_seconds, session)
        self.config = config
        self.url = f"{config.base_url.rstrip('/')}/everything"

    async def fetch(self) -> FetchResult:
        """
        Fetch recent articles.

        Returns MISSING_CONFIG without touching the network when no API key is
        configured, REJECTED with the upstream envelope when NewsAPI answers
        with status "error", and UNAVAILABLE on transport failures.
        """
        if not self.config.api_key:
            logger.error("NewsAPI key is missing. Please set the NEWS_API_ORG_KEY environment variable.")
            return FetchResult.missing_config("NewsAPI key is not configured", DataSource.NEWSAPI)

        params = {'q': self.config.query, 'pageSize': self.config.page_size}
        headers = {'X-Api-Key': self.config.api_key}

        try:
            payload = await self._get_json(self.url, params, headers)
        except asyncio.TimeoutError:
            logger.error(f"NewsAPI request timed out after {self.config.timeout_seconds}s")
            return FetchResult.unavailable("Request timed out", DataSource.NEWSAPI)
        except aiohttp.ClientError as e:
            logger.error(f"Error fetching crypto news: {e}")
            return FetchResult.unavailable(f"Request error: {e}", DataSource.NEWSAPI)
        except Exception as e:
            logger.error(f"Unexpected error fetching crypto news: {e}")
            return FetchResult.unavailable(f"Unexpected error: {e}", DataSource.NEWSAPI)

        if not isinstance(payload, dict):
            logger.error("NewsAPI returned a non-object payload")
            return FetchResult.unavailable("Malformed payload", DataSource.NEWSAPI)

        status = payload.get('status')
        if status != 'ok':
            envelope = ErrorEnvelope(
                status=status or 'error',
                code=payload.get('code'),
                message=payload.get('message'),
            )
            logger.error(f"NewsAPI returned status: {envelope.status} ({envelope.code}): {envelope.message}")
            return FetchResult.rejected(envelope, DataSource.NEWSAPI)

        try:
            articles = self._parse_articles(payload.get('articles') or [])
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(f"Malformed NewsAPI payload: {e!r}")
            return FetchResult.unavailable(f"Malformed payload: {e!r}", DataSource.NEWSAPI)

        logger.info(f"Fetched {len(articles)} articles from NewsAPI")
        return FetchResult.ok(articles, DataSource.NEWSAPI)

    @staticmethod
    def _parse_articles(raw_articles: List[Dict[str, Any]]) -> List[NewsArticle]:
        # NewsAPI nulls out title and url on removed articles
        return [
            NewsArticle(
                title=article['title'],
                url=article['url'],
                source_name=(article.get('source') or {}).get('name') or 'Unknown',
                published_at=article.get('publishedAt') or '',
            )
            for article in raw_articles
            if article.get('title') and article.get('url')
        ]
