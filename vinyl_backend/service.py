"""Vinyl discovery operations built on the eBay client.

Each public coroutine returns a JSON-serialisable dict and is what an HTTP
layer would expose as one endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Sequence

from vinyl_backend.analysis.filters import dedupe_by_title, filter_vinyl, normalize_item
from vinyl_backend.analysis.scorer import RecommendBase, RecommendScorer, rank_by_popularity
from vinyl_backend.analytics.price_history import (
    dedupe_sales,
    expand_query,
    parse_sold_items,
    summarize,
    window_summaries,
)
from vinyl_backend.data.ebay_client import EbayClient
from vinyl_backend.data.models import SoldItem, parse_price
from vinyl_backend.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

TRENDING_QUERIES = (
    "pink floyd vinyl",
    "queen vinyl",
    "nirvana vinyl",
    "metallica vinyl",
    "the beatles vinyl",
    "taylor swift vinyl",
    "radiohead vinyl",
    "fleetwood mac vinyl",
    "daft punk vinyl",
    "jazz vinyl",
    "hip hop vinyl",
    "rare cassette tape",
    "vintage cassette",
    "limited edition lp",
)
TRENDING_PARAMS = {"limit": 50, "sort": "BEST_MATCH"}
SEARCH_FETCH_LIMIT = 200
LOOKUP_LIMIT = 20
CHART_FETCH_LIMIT = 120
DEFAULT_RECOMMEND_QUERY = "vinyl record"


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Parameter '{name}' must be an integer") from exc
    if number < 1:
        raise ValidationError(f"Parameter '{name}' must be positive")
    return number


def _required(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"Parameter '{name}' is required")
    return str(value)


def _price_of(item: Mapping[str, Any]) -> float:
    return parse_price(item.get("price"))


async def _gather_all(coros: Iterable[Awaitable[Any]]) -> list[Any]:
    """Await every coroutine, then re-raise the first failure in input order."""
    results = await asyncio.gather(*coros, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def sort_listings(items: list[Mapping[str, Any]], sort: str) -> list[Mapping[str, Any]]:
    """Order raw listings; ``best`` and unknown keys keep upstream order."""
    if sort == "price_low":
        return sorted(items, key=_price_of)
    if sort == "price_high":
        return sorted(items, key=_price_of, reverse=True)
    if sort == "newest":
        # ISO-8601 timestamps sort lexically; missing dates go last.
        return sorted(items, key=lambda i: i.get("itemCreationDate") or "", reverse=True)
    return items


class VinylService:
    """The six vinyl discovery operations.

    Args:
        client: eBay client with its token manager and cache.
        rng: Randomness for ranking jitter. Seed it for reproducible order.
        now: Returns the current UTC time, used for chart windows.
    """

    def __init__(
        self,
        client: EbayClient,
        rng: Optional[random.Random] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.client = client
        self.rng = rng or random.Random()
        self._now = now

    async def _search_or_skip(
        self, query: str, country: str, params: Mapping[str, Any]
    ) -> list[Mapping[str, Any]]:
        try:
            payload = await self.client.search(query, country, params)
        except UpstreamError as exc:
            logger.warning(f"Skip query: {query} | {exc}")
            return []
        return filter_vinyl(payload.get("itemSummaries") or [])

    async def aggregate(
        self,
        queries: Sequence[str],
        country: str = "US",
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[Mapping[str, Any]]:
        """Run several searches concurrently and merge their vinyl results.

        A failing query contributes nothing; the rest still count. Results
        are merged in query order and deduplicated by exact title.
        """
        results = await _gather_all(
            self._search_or_skip(q, country, params or {}) for q in queries
        )
        merged = [item for batch in results for item in batch]
        return dedupe_by_title(merged)

    async def _sold_or_skip(self, keyword: str, limit: int) -> list[SoldItem]:
        try:
            records = await self.client.find_completed_items(keyword, limit)
        except UpstreamError as exc:
            logger.warning(f"Skip sold query: {keyword} | {exc}")
            return []
        return parse_sold_items(records)

    async def trending(self, country: str = "US", limit: Any = 40) -> dict[str, Any]:
        limit = _positive_int(limit, "limit")
        found = await self.aggregate(TRENDING_QUERIES, country, TRENDING_PARAMS)
        ranked = rank_by_popularity([normalize_item(it) for it in found], self.rng)
        return {
            "country": country,
            "total": len(ranked),
            "items": [s.as_dict("score") for s in ranked[:limit]],
        }

    async def search(
        self,
        q: str = "",
        country: str = "US",
        page: Any = 1,
        limit: Any = 20,
        sort: str = "best",
    ) -> dict[str, Any]:
        page = _positive_int(page, "page")
        limit = _positive_int(limit, "limit")

        payload = await self.client.search(q, country, {"limit": SEARCH_FETCH_LIMIT})
        items = sort_listings(filter_vinyl(payload.get("itemSummaries") or []), sort)

        start = (page - 1) * limit
        paged = items[start:start + limit]
        return {
            "country": country,
            "query": q,
            "total": len(items),
            "items": [normalize_item(it).as_dict() for it in paged],
        }

    async def lookup(self, code: Optional[str], country: str = "US") -> dict[str, Any]:
        """Barcode lookup with a keyword-search fallback."""
        code = _required(code, "code")

        try:
            payload = await self.client.search_gtin(code, country, LOOKUP_LIMIT)
            items = filter_vinyl(payload.get("itemSummaries") or [])
        except UpstreamError as exc:
            logger.warning(f"GTIN search failed for {code}, falling back: {exc}")
            items = []

        fallback = not items
        if fallback:
            payload = await self.client.search(code, country, {"limit": LOOKUP_LIMIT})
            items = filter_vinyl(payload.get("itemSummaries") or [])

        return {
            "code": code,
            "fallback": fallback,
            "total_items": len(items),
            "items": [normalize_item(it).as_dict() for it in items],
        }

    async def _recommend_base(self, item_id: Optional[str], country: str) -> RecommendBase:
        base = RecommendBase(item_id=item_id or None)
        if not item_id:
            return base
        try:
            detail = await self.client.get_item(item_id, country)
        except UpstreamError as exc:
            logger.warning(f"Item detail unavailable for {item_id}: {exc}")
            return base

        base.title = detail.get("title") or ""
        base.artist = detail.get("brand") or ""
        base.price = _price_of(detail)
        return base

    async def recommend(
        self,
        item_id: Optional[str] = None,
        q: Optional[str] = None,
        country: str = "US",
        limit: Any = 20,
    ) -> dict[str, Any]:
        limit = _positive_int(limit, "limit")
        base = await self._recommend_base(item_id, country)

        query = q or ""
        if not query and (base.title or base.artist):
            query = f"{base.artist} {base.title}".strip()
        if not query:
            query = DEFAULT_RECOMMEND_QUERY

        payload = await self.client.search(query, country, {"limit": SEARCH_FETCH_LIMIT})
        items = filter_vinyl(payload.get("itemSummaries") or [])
        if item_id:
            items = [it for it in items if it.get("itemId") != item_id]

        scorer = RecommendScorer(base, self.rng)
        ranked = scorer.rank([normalize_item(it) for it in items])
        return {
            "base": base.to_dict(),
            "total_items": len(ranked),
            "items": [s.as_dict("recommend_score") for s in ranked[:limit]],
        }

    async def price_history(self, q: Optional[str], limit: Any = 30) -> dict[str, Any]:
        """Sold-price statistics for a single keyword."""
        q = _required(q, "q")
        limit = _positive_int(limit, "limit")

        sold = parse_sold_items(await self.client.find_completed_items(q, limit))
        if not sold:
            return {"query": q, "total_sold": 0, "items": []}

        summary = summarize([s.price for s in sold], with_median=True)
        return {
            "query": q,
            "total_sold": len(sold),
            "average_price": summary.average,
            "lowest_price": summary.lowest,
            "highest_price": summary.highest,
            "median_price": summary.median,
            "items": [s.as_dict() for s in sold],
        }

    async def chart_data(self, q: Optional[str]) -> dict[str, Any]:
        """30/60/90-day sold-price summaries across query variants."""
        q = _required(q, "q")
        variants = expand_query(q)

        batches = await _gather_all(
            self._sold_or_skip(kw, CHART_FETCH_LIMIT) for kw in variants
        )
        combined = dedupe_sales(_flatten(batches))
        combined.sort(key=lambda r: r.end_date, reverse=True)

        return {
            "query": q,
            "expanded_queries": variants,
            "total_sold_combined": len(combined),
            "chart": window_summaries(combined, now=self._now()),
        }


def _flatten(batches: Iterable[list[SoldItem]]) -> list[SoldItem]:
    return [record for batch in batches for record in batch]
