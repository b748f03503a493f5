"""Data models for the vinyl backend."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional


def parse_price(price: Optional[Mapping[str, Any]]) -> float:
    """Numeric value of an eBay price object, 0.0 when missing or invalid."""
    if not price:
        return 0.0
    try:
        return float(price.get("value") or 0)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class VinylItem:
    """A marketplace listing normalized to the vinyl catalogue shape."""

    item_id: Optional[str]
    title: Optional[str]
    artist: Optional[str] = None
    price: Optional[Mapping[str, Any]] = None  # {"value": "12.99", "currency": "USD"}
    image: Optional[str] = None
    url: Optional[str] = None
    condition: Optional[str] = None

    @property
    def price_value(self) -> float:
        """Numeric price, 0.0 when the listing carries none."""
        return parse_price(self.price)

    def as_dict(self) -> dict[str, Any]:
        """Return a serialisable view of the item."""
        return {
            "itemId": self.item_id,
            "title": self.title,
            "artist": self.artist,
            "price": dict(self.price) if self.price else None,
            "image": self.image,
            "url": self.url,
            "condition": self.condition,
        }


@dataclass
class SoldItem:
    """A completed listing that ended with a sale."""

    title: str
    price: float
    url: str = ""
    image: Optional[str] = None
    condition: str = "Unknown"
    end_date: Optional[datetime] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "price": self.price,
            "url": self.url,
            "image": self.image,
            "condition": self.condition,
            "endDate": self.end_date.isoformat() if self.end_date else None,
        }


@dataclass
class StatSummary:
    """Aggregate statistics over a price series."""

    count: int
    average: float
    lowest: float
    highest: float
    median: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "count": self.count,
            "average": self.average,
            "lowest": self.lowest,
            "highest": self.highest,
        }
        if self.median is not None:
            data["median"] = self.median
        return data
