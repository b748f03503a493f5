"""Sold-price statistics over completed eBay listings."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence

from vinyl_backend.data.models import SoldItem, StatSummary

logger = logging.getLogger(__name__)

SOLD_STATE = "EndedWithSales"
CHART_WINDOWS = (30, 60, 90)
FORMAT_SUFFIXES = ("vinyl", "lp", "record", "cassette")


def _first(value: Any, default: Any = None) -> Any:
    # Finding API JSON wraps scalars in single-element lists.
    if isinstance(value, list):
        return value[0] if value else default
    return default if value is None else value


def parse_end_time(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable endTime: {raw}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_sold_items(records: Iterable[Mapping[str, Any]]) -> list[SoldItem]:
    """Keep completed listings that ended with a sale."""
    sold: list[SoldItem] = []
    for record in records:
        status = _first(record.get("sellingStatus"), {}) or {}
        if _first(status.get("sellingState")) != SOLD_STATE:
            continue

        current_price = _first(status.get("currentPrice"), {}) or {}
        try:
            price = float(current_price.get("__value__") or 0)
        except (TypeError, ValueError):
            price = 0.0

        condition = _first(record.get("condition"), {}) or {}
        listing_info = _first(record.get("listingInfo"), {}) or {}
        sold.append(
            SoldItem(
                title=_first(record.get("title"), "") or "",
                price=price,
                url=_first(record.get("viewItemURL"), "") or "",
                image=_first(record.get("galleryURL")),
                condition=_first(condition.get("conditionDisplayName"), "Unknown") or "Unknown",
                end_date=parse_end_time(_first(listing_info.get("endTime"))),
            )
        )
    return sold


def median(prices: Sequence[float]) -> Optional[float]:
    """Middle value, or the mean of the two middle values for even counts."""
    if not prices:
        return None
    ordered = sorted(prices)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def summarize(prices: Sequence[float], with_median: bool = False) -> Optional[StatSummary]:
    """Count/average/min/max over a price series; None when it is empty."""
    if not prices:
        return None
    return StatSummary(
        count=len(prices),
        average=round(sum(prices) / len(prices), 2),
        lowest=min(prices),
        highest=max(prices),
        median=median(prices) if with_median else None,
    )


def expand_query(query: str) -> list[str]:
    """Spelling and format variants of a query, duplicates removed."""
    variants = [
        query,
        re.sub(r"\s+", "", query),
        query.replace(" ", "-", 1),
        query.replace("-", " ", 1),
        " ".join(reversed(query.split(" "))),
    ]
    variants.extend(f"{query} {suffix}" for suffix in FORMAT_SUFFIXES)
    return list(dict.fromkeys(variants))


def dedupe_sales(records: Iterable[SoldItem]) -> list[SoldItem]:
    """Drop repeats of the same (end time, price) sale; first one wins.

    Records without an end time cannot be placed on a chart and are dropped.
    """
    seen: dict[tuple[datetime, float], SoldItem] = {}
    for record in records:
        if record.end_date is None:
            continue
        key = (record.end_date, record.price)
        if key not in seen:
            seen[key] = record
    return list(seen.values())


def window_summaries(
    records: Sequence[SoldItem],
    now: Optional[datetime] = None,
    windows: Sequence[int] = CHART_WINDOWS,
) -> dict[str, Optional[dict]]:
    """Summaries for sales within the last N days, keyed ``"<N>d"``.

    Every window filters the full record set independently.
    """
    current = now or datetime.now(timezone.utc)
    chart: dict[str, Optional[dict]] = {}
    for days in windows:
        cutoff = current - timedelta(days=days)
        prices = [r.price for r in records if r.end_date and r.end_date >= cutoff]
        summary = summarize(prices)
        chart[f"{days}d"] = summary.to_dict() if summary else None
    return chart
