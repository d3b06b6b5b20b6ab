"""Read-only facade over the catalog and ledger used by the API and CLI."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Protocol, Sequence

from app.domain import Market, MarketStats
from ingestion.normalize import DEFAULT_EXPIRY_GRACE, filter_expired, normalize_market

from .stats_service import StatsService

MAX_LIST_LIMIT = 100
DEFAULT_LIST_LIMIT = 50
MAX_SEARCH_LIMIT = 50
DEFAULT_SEARCH_LIMIT = 20


class CatalogSource(Protocol):
    def fetch_markets(self, *, limit: int, offset: int, **filters: Any) -> list[dict[str, Any]]:
        ...

    def fetch_market(self, market_id: str) -> dict[str, Any]:
        ...

    def search_markets(self, query: str, *, limit: int) -> list[dict[str, Any]]:
        ...


@dataclass(slots=True)
class MarketQuery:
    active: bool = True
    closed: bool = False
    order: str = "volume"
    ascending: bool = False
    limit: int = DEFAULT_LIST_LIMIT
    offset: int = 0

    def normalized(self) -> "MarketQuery":
        """Replace out-of-range pagination values with their defaults."""

        limit = self.limit if 0 < self.limit <= MAX_LIST_LIMIT else DEFAULT_LIST_LIMIT
        offset = self.offset if self.offset >= 0 else 0
        return replace(self, limit=limit, offset=offset)

    def to_client_kwargs(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "closed": self.closed,
            "order": self.order,
            "ascending": self.ascending,
            "limit": self.limit,
            "offset": self.offset,
        }


@dataclass(slots=True)
class SearchQuery:
    query: str
    limit: int = DEFAULT_SEARCH_LIMIT

    def normalized(self) -> "SearchQuery":
        text = (self.query or "").strip()
        if not text:
            raise ValueError("query parameter 'q' is required")
        limit = self.limit if 0 < self.limit <= MAX_SEARCH_LIMIT else DEFAULT_SEARCH_LIMIT
        return SearchQuery(query=text, limit=limit)


class MarketService:
    """Fetch, normalize, and analyse markets on behalf of callers.

    Catalog failures propagate as :class:`~app.core.errors.UpstreamError`;
    statistics never fail once the market itself has been fetched.
    """

    def __init__(
        self,
        catalog: CatalogSource,
        stats: StatsService,
        *,
        expiry_grace: timedelta = DEFAULT_EXPIRY_GRACE,
    ) -> None:
        self._catalog = catalog
        self._stats = stats
        self._expiry_grace = expiry_grace

    def list_markets(self, query: MarketQuery, *, now: datetime | None = None) -> list[Market]:
        resolved = query.normalized()
        raw_markets = self._catalog.fetch_markets(**resolved.to_client_kwargs())
        return self._normalize_markets(raw_markets, now=now)

    def search_markets(self, query: SearchQuery, *, now: datetime | None = None) -> list[Market]:
        resolved = query.normalized()
        raw_markets = self._catalog.search_markets(resolved.query, limit=resolved.limit)
        # The search endpoint has no status filter, so closed markets are dropped here.
        markets = self._normalize_markets(raw_markets, now=now)
        return [market for market in markets if market.active][: resolved.limit]

    def get_market(self, market_id: str) -> Market:
        return normalize_market(self._catalog.fetch_market(market_id))

    def get_market_stats(self, market_id: str) -> MarketStats:
        return self._stats.compute_stats(self.get_market(market_id))

    def _normalize_markets(
        self, raw_markets: Sequence[dict[str, Any]], *, now: datetime | None
    ) -> list[Market]:
        markets = [normalize_market(raw) for raw in raw_markets]
        return filter_expired(markets, now=now, grace=self._expiry_grace)

    def close(self) -> None:
        close_catalog = getattr(self._catalog, "close", None)
        if callable(close_catalog):
            close_catalog()
        self._stats.close()
