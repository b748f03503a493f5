"""Vinyl record discovery backend on top of the eBay marketplace APIs."""

__all__ = [
    "EbayClient",
    "TTLCache",
    "TokenManager",
    "VinylService",
    "is_vinyl",
    "normalize_item",
    "resolve_marketplace",
]

from .analysis.filters import is_vinyl, normalize_item
from .data.auth import TokenManager
from .data.cache import TTLCache
from .data.ebay_client import EbayClient, resolve_marketplace
from .service import VinylService
