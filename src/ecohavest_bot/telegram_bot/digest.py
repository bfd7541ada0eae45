"""
Combined market + news digest.
Fetches both sources concurrently, formats whatever succeeded and sends a
single HTML message.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Union

import telegram
from telegram.constants import ParseMode

from ..data.collectors import MarketDataClient, NewsClient
from ..data.models import DataSource, FailureReason, FetchResult
from .formatters import format_market_message, format_news_message

logger = logging.getLogger(__name__)

MARKET_FAILED = '⚠️ Failed to retrieve crypto prices.'
NEWS_FAILED = '⚠️ Failed to retrieve crypto news.'


@dataclass(frozen=True)
class DigestResult:
    market_ok: bool
    market_text: str
    news_ok: bool
    news_text: str

    @property
    def text(self) -> str:
        return f"{self.market_text}\n\n{self.news_text}"


class DigestService:
    """Builds and delivers the crypto digest."""

    def __init__(self, market_client: MarketDataClient, news_client: NewsClient,
                 bot: telegram.Bot, chat_id: Union[int, str]):
        self.market_client = market_client
        self.news_client = news_client
        self.bot = bot
        self.chat_id = chat_id

    async def build_digest(self, market_failed: str = MARKET_FAILED, news_failed: str = NEWS_FAILED) -> DigestResult:
        """Fetch both sources; one failing never cancels or fails the other.

        Args:
            market_failed: Text used when prices could not be fetched
            news_failed: Text used when news could not be fetched and the API gave no error
        """
        market_result, news_result = await asyncio.gather(
            self.market_client.fetch(),
            self.news_client.fetch(),
            return_exceptions=True,
        )
        market_result = self._as_result(market_result, DataSource.COINRANKING)
        news_result = self._as_result(news_result, DataSource.NEWSAPI)

        if market_result.success:
            snapshot = market_result.data
            market_text = format_market_message(snapshot.coins, snapshot.stats)
        else:
            logger.error(f"Failed to get crypto data for digest: {market_result.error}")
            market_text = market_failed

        if news_result.success:
            news_text = format_news_message(news_result.data)
        elif news_result.reason == FailureReason.REJECTED:
            logger.error(f"News API rejected digest request: {news_result.error}")
            news_text = format_news_message(None, news_result.envelope)
        else:
            logger.error(f"Failed to get news data for digest: {news_result.error}")
            news_text = news_failed

        return DigestResult(
            market_ok=market_result.success,
            market_text=market_text,
            news_ok=news_result.success,
            news_text=news_text,
        )

    @staticmethod
    def _as_result(outcome, source: DataSource) -> FetchResult:
        # Clients do not raise, but a bug in one must not take the digest down
        if isinstance(outcome, BaseException):
            logger.error(f"Unexpected exception from {source.value} client: {outcome!r}")
            return FetchResult.unavailable(f"Unexpected error: {outcome!r}", source)
        return outcome

    async def send_digest(self) -> bool:
        """Build the digest and send it to the configured chat. Failures are logged only."""
        try:
            digest = await self.build_digest()
            await self.bot.send_message(
                chat_id=self.chat_id,
                text=digest.text,
                parse_mode=ParseMode.HTML,
            )
            logger.info(f"Crypto digest sent to chat {self.chat_id}")
            return True
        except Exception as e:
            logger.error(f"Error sending crypto digest: {e}", exc_info=True)
            return False
