#!/usr/bin/env python3
"""Command-line entry point for the vinyl backend operations."""

import argparse
import asyncio
import json
import logging
import sys

# Configure logging before imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr),
        logging.FileHandler("vinyl_backend.log", encoding="utf-8"),
    ],
)
logger = logging.getLogger("vinyl_backend")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vinyl discovery on eBay")
    parser.add_argument("--country", default=None, help="Two-letter country code")
    sub = parser.add_subparsers(dest="command", required=True)

    trending = sub.add_parser("trending", help="Trending vinyl listings")
    trending.add_argument("--limit", type=int, default=40)

    search = sub.add_parser("search", help="Keyword search")
    search.add_argument("q")
    search.add_argument("--page", type=int, default=1)
    search.add_argument("--limit", type=int, default=20)
    search.add_argument(
        "--sort", default="best", choices=["best", "price_low", "price_high", "newest"]
    )

    lookup = sub.add_parser("lookup", help="Barcode lookup")
    lookup.add_argument("code")

    recommend = sub.add_parser("recommend", help="Similar listings")
    recommend.add_argument("--id", dest="item_id", default=None)
    recommend.add_argument("--q", default=None)
    recommend.add_argument("--limit", type=int, default=20)

    history = sub.add_parser("price-history", help="Sold-price statistics")
    history.add_argument("q")
    history.add_argument("--limit", type=int, default=30)

    chart = sub.add_parser("chart-data", help="30/60/90-day sold-price windows")
    chart.add_argument("q")

    return parser


async def dispatch(args: argparse.Namespace, country: str) -> dict:
    from vinyl_backend import EbayClient, VinylService

    async with EbayClient() as client:
        service = VinylService(client)
        if args.command == "trending":
            return await service.trending(country, args.limit)
        if args.command == "search":
            return await service.search(args.q, country, args.page, args.limit, args.sort)
        if args.command == "lookup":
            return await service.lookup(args.code, country)
        if args.command == "recommend":
            return await service.recommend(args.item_id, args.q, country, args.limit)
        if args.command == "price-history":
            return await service.price_history(args.q, args.limit)
        return await service.chart_data(args.q)


def main() -> int:
    """Main entry point."""
    args = build_parser().parse_args()

    # Validate configuration
    from vinyl_backend.config import config
    from vinyl_backend.errors import ValidationError, VinylBackendError

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Config error: {error}")
        logger.error("Please check your .env file")
        return 1

    country = args.country or config.default_country
    try:
        result = asyncio.run(dispatch(args, country))
    except ValidationError as e:
        print(json.dumps({"error": str(e)}))
        return 2
    except VinylBackendError as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps({"error": str(e)}))
        return 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        print(json.dumps({"error": "Internal error"}))
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
