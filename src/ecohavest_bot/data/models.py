"""
Data models for market and news payloads.
Numeric market fields are kept as the upstream decimal strings; they are
parsed only when formatted for display.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional


class DataSource(Enum):
    """Upstream services the bot reads from."""
    COINRANKING = "coinranking"
    NEWSAPI = "newsapi"


class FailureReason(Enum):
    """Why a fetch produced no data."""
    UNAVAILABLE = "unavailable"        # transport error, timeout, bad payload or non-success status
    REJECTED = "rejected"              # upstream answered with its own error envelope
    MISSING_CONFIG = "missing_config"  # required secret absent, no request made


@dataclass(frozen=True)
class CoinSnapshot:
    symbol: str
    name: str
    price: str
    change: str


@dataclass(frozen=True)
class MarketStats:
    total_coins: int
    total_market_cap: str
    total_24h_volume: str


@dataclass(frozen=True)
class MarketSnapshot:
    coins: List[CoinSnapshot]
    stats: MarketStats


@dataclass(frozen=True)
class NewsArticle:
    title: str
    url: str
    source_name: str
    published_at: str


@dataclass(frozen=True)
class ErrorEnvelope:
    """Service-reported failure, e.g. NewsAPI's {"status": "error", "code": ..., "message": ...}."""
    status: str
    code: Optional[str] = None
    message: Optional[str] = None


@dataclass
class FetchResult:
    """Tagged result shared by all upstream clients."""
    success: bool
    data: Any = None
    reason: Optional[FailureReason] = None
    error: Optional[str] = None
    envelope: Optional[ErrorEnvelope] = None
    source: Optional[DataSource] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, data: Any, source: DataSource) -> "FetchResult":
        return cls(success=True, data=data, source=source)

    @classmethod
    def unavailable(cls, error: str, source: DataSource) -> "FetchResult":
        return cls(success=False, reason=FailureReason.UNAVAILABLE, error=error, source=source)

    @classmethod
    def rejected(cls, envelope: ErrorEnvelope, source: DataSource) -> "FetchResult":
        return cls(
            success=False,
            reason=FailureReason.REJECTED,
            error=envelope.message or envelope.code or envelope.status,
            envelope=envelope,
            source=source,
        )

    @classmethod
    def missing_config(cls, error: str, source: DataSource) -> "FetchResult":
        return cls(success=False, reason=FailureReason.MISSING_CONFIG, error=error, source=source)
