import argparse
import json
import sys
from datetime import timedelta
from typing import Any

from loguru import logger

from app import schemas
from app.core.config import get_settings
from app.core.errors import UpstreamError
from app.core.logging import configure_logging
from app.services.market_service import MarketQuery, MarketService, SearchQuery
from app.services.stats_service import StatsService
from ingestion.gamma_client import GammaClient
from ingestion.subgraph_client import SubgraphClient


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect Polymarket markets and outcome statistics")
    parser.add_argument(
        "--no-ledger",
        action="store_true",
        help="Skip the position ledger and derive statistics from prices only.",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List active markets by volume")
    list_parser.add_argument("--limit", type=int, default=50, help="Page size (1-100)")
    list_parser.add_argument("--offset", type=int, default=0, help="Markets to skip")

    search_parser = subparsers.add_parser("search", help="Search markets by free text")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument("--limit", type=int, default=20, help="Result cap (1-50)")

    get_parser = subparsers.add_parser("get", help="Show one market")
    get_parser.add_argument("market_id")

    stats_parser = subparsers.add_parser("stats", help="Show outcome statistics for a market")
    stats_parser.add_argument("market_id")
    return parser.parse_args(argv)


def run(args: argparse.Namespace, service: MarketService) -> schemas.APIResponse:
    data: Any
    if args.command == "list":
        markets = service.list_markets(MarketQuery(limit=args.limit, offset=args.offset))
        data = [schemas.Market.from_domain(market) for market in markets]
    elif args.command == "search":
        markets = service.search_markets(SearchQuery(query=args.query, limit=args.limit))
        data = [schemas.Market.from_domain(market) for market in markets]
    elif args.command == "get":
        data = schemas.Market.from_domain(service.get_market(args.market_id))
    else:
        data = schemas.MarketStats.from_domain(service.get_market_stats(args.market_id))
    return schemas.APIResponse(success=True, data=data)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    positions = None
    if settings.ledger_enabled and not args.no_ledger:
        positions = SubgraphClient()
    service = MarketService(
        GammaClient(),
        StatsService(positions),
        expiry_grace=timedelta(hours=settings.expiry_grace_hours),
    )

    try:
        envelope = run(args, service)
        exit_code = 0
    except (UpstreamError, ValueError) as exc:
        logger.error("{} failed: {}", args.command, exc)
        envelope = schemas.APIResponse(success=False, error=str(exc))
        exit_code = 1
    finally:
        service.close()

    json.dump(envelope.to_payload(), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
