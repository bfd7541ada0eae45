"""
Upstream data clients and the payload models they produce.
"""

from .collectors import MarketDataClient, NewsClient
from .models import (
    CoinSnapshot, DataSource, ErrorEnvelope, FailureReason, FetchResult,
    MarketSnapshot, MarketStats, NewsArticle,
)

__all__ = [
    'MarketDataClient', 'NewsClient', 'CoinSnapshot', 'DataSource', 'ErrorEnvelope',
    'FailureReason', 'FetchResult', 'MarketSnapshot', 'MarketStats', 'NewsArticle',
]
