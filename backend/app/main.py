from __future__ import annotations

from datetime import timedelta
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from . import schemas
from .core.config import settings
from .core.errors import UpstreamError, UpstreamProtocolError
from .core.logging import configure_logging
from .services.market_service import (
    DEFAULT_LIST_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    MarketQuery,
    MarketService,
    SearchQuery,
)
from .services.stats_service import StatsService
from ingestion.gamma_client import GammaClient
from ingestion.subgraph_client import SubgraphClient

app = FastAPI(title="Polyfetch API", version="0.1.0", debug=settings.debug)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


def build_market_service() -> MarketService:
    """Wire the catalog and ledger clients from the active settings."""

    positions = SubgraphClient() if settings.ledger_enabled else None
    return MarketService(
        GammaClient(),
        StatsService(positions),
        expiry_grace=timedelta(hours=settings.expiry_grace_hours),
    )


@app.on_event("startup")
def on_startup() -> None:
    """Create the long-lived upstream clients when the API boots."""

    configure_logging(settings.log_level)
    app.state.market_service = build_market_service()
    logger.info("Polyfetch API ready (ledger_enabled={})", settings.ledger_enabled)


@app.on_event("shutdown")
def on_shutdown() -> None:
    service = getattr(app.state, "market_service", None)
    if service is not None:
        service.close()


def _market_service(request: Request) -> MarketService:
    """Provide the process-wide market service."""

    service = getattr(request.app.state, "market_service", None)
    if service is None:
        service = build_market_service()
        request.app.state.market_service = service
    return service


def _int_param(raw: str | None, default: int) -> int:
    """Read an integer query value; absent or non-numeric input yields ``default``."""

    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _respond(data: Any = None, *, status_code: int = 200, error: str | None = None) -> JSONResponse:
    envelope = schemas.APIResponse(success=error is None, data=data, error=error)
    return JSONResponse(status_code=status_code, content=envelope.to_payload())


def _upstream_failure(exc: UpstreamError, context: str) -> JSONResponse:
    logger.error("Error {}: {}", context, exc)
    if isinstance(exc, UpstreamProtocolError) and exc.status_code == 404:
        return _respond(status_code=404, error=str(exc))
    return _respond(status_code=502, error=str(exc))


@app.get("/api/health", tags=["system"])
def healthcheck() -> JSONResponse:
    """Basic readiness probe consumed by infrastructure monitors."""

    return _respond({"status": "healthy"})


@app.get("/api/markets", tags=["markets"])
def list_markets(
    *,
    limit: Annotated[str | None, Query(description="Page size; values outside 1-100 use the default")] = None,
    offset: Annotated[str | None, Query(description="Number of markets to skip")] = None,
    service: MarketService = Depends(_market_service),
) -> JSONResponse:
    """List active markets ordered by volume."""

    try:
        query = MarketQuery(
            limit=_int_param(limit, DEFAULT_LIST_LIMIT), offset=_int_param(offset, 0)
        )
        markets = service.list_markets(query)
    except UpstreamError as exc:
        return _upstream_failure(exc, "fetching markets")
    return _respond([schemas.Market.from_domain(market) for market in markets])


@app.get("/api/markets/search", tags=["markets"])
def search_markets(
    *,
    q: Annotated[str | None, Query(description="Free-text search query")] = None,
    limit: Annotated[str | None, Query(description="Result cap; values outside 1-50 use the default")] = None,
    service: MarketService = Depends(_market_service),
) -> JSONResponse:
    """Search markets through the catalog's own search index."""

    try:
        query = SearchQuery(query=q or "", limit=_int_param(limit, DEFAULT_SEARCH_LIMIT))
        markets = service.search_markets(query)
    except ValueError as exc:
        return _respond(status_code=400, error=str(exc))
    except UpstreamError as exc:
        return _upstream_failure(exc, "searching markets")
    return _respond([schemas.Market.from_domain(market) for market in markets])


@app.get("/api/market/{market_id}", tags=["markets"])
def get_market(market_id: str, service: MarketService = Depends(_market_service)) -> JSONResponse:
    """Retrieve a single market, even if it has already expired."""

    try:
        market = service.get_market(market_id)
    except UpstreamError as exc:
        return _upstream_failure(exc, f"fetching market {market_id}")
    return _respond(schemas.Market.from_domain(market))


@app.get("/api/market/{market_id}/stats", tags=["markets"])
def get_market_stats(
    market_id: str, service: MarketService = Depends(_market_service)
) -> JSONResponse:
    """Return the outcome distribution and popular outcome for a market."""

    try:
        stats = service.get_market_stats(market_id)
    except UpstreamError as exc:
        return _upstream_failure(exc, f"fetching market {market_id}")
    return _respond(schemas.MarketStats.from_domain(stats))
