"""
HTML message formatters for market and news digests.
All functions are pure and never raise on bad or missing data.
"""

import html
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Sequence

from ..data.models import CoinSnapshot, ErrorEnvelope, MarketStats, NewsArticle

MARKET_NOT_AVAILABLE = 'Could not retrieve cryptocurrency data at this time.'
NEWS_NOT_AVAILABLE = 'Could not retrieve cryptocurrency news at this time.'

GLYPH_UP = '📈'
GLYPH_DOWN = '📉'
GLYPH_FLAT = '➡️'

CENTS = Decimal('0.01')


def _to_decimal(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def format_usd(value) -> str:
    """Render a decimal string as en-US currency: '1234.5' -> '$1,234.50'."""
    amount = _to_decimal(value)
    if amount is None:
        return 'N/A'
    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = '-' if amount < 0 else ''
    return f"{sign}${abs(amount):,.2f}"


def change_glyph(value) -> str:
    """Directional glyph for a percentage change."""
    change = _to_decimal(value)
    if change is None or change == 0:
        return GLYPH_FLAT
    return GLYPH_UP if change > 0 else GLYPH_DOWN


def format_change(value) -> str:
    change = _to_decimal(value)
    if change is None:
        return f"{GLYPH_FLAT} N/A"
    return f"{change_glyph(change)} {change.quantize(CENTS, rounding=ROUND_HALF_UP)}%"


def format_market_message(coins: Optional[Sequence[CoinSnapshot]], stats: Optional[MarketStats]) -> str:
    """Format the top coin snapshot and market totals."""
    if not coins:
        return MARKET_NOT_AVAILABLE

    top_coins = list(coins)[:10]
    lines = [f"<b>📊 Top {len(top_coins)} Crypto Updates (Last 3h):</b>", ""]

    for coin in top_coins:
        lines.append(f"<b>{html.escape(coin.name)} ({html.escape(coin.symbol)})</b>")
        lines.append(f"  Price: {format_usd(coin.price)}")
        lines.append(f"  Change: {format_change(coin.change)}")
        lines.append("")

    if stats is not None:
        lines.append("<b>Market Stats:</b>")
        lines.append(f"  Total Coins: {stats.total_coins:,}")
        lines.append(f"  Total Market Cap: {format_usd(stats.total_market_cap)}")
        lines.append(f"  Total 24h Vol: {format_usd(stats.total_24h_volume)}")

    return "\n".join(lines).rstrip("\n")


def format_news_message(articles: Optional[Sequence[NewsArticle]], envelope: Optional[ErrorEnvelope] = None) -> str:
    """Format a numbered list of linked headlines, or the failure line when there are none."""
    if envelope is not None or not articles:
        message = NEWS_NOT_AVAILABLE
        if envelope is not None and envelope.status == 'error':
            message += f" (API Error: {html.escape(envelope.message or 'Unknown')})"
        return message

    lines = ["<b>📰 Latest Crypto News:</b>", ""]
    for index, article in enumerate(articles, start=1):
        title = html.escape(article.title or 'Untitled')
        if article.url:
            lines.append(f'{index}. <a href="{html.escape(article.url, quote=True)}">{title}</a>')
        else:
            lines.append(f"{index}. {title}")
        lines.append(f"   <i>Source: {html.escape(article.source_name or 'Unknown')}</i>")
        lines.append("")

    return "\n".join(lines).rstrip("\n")
