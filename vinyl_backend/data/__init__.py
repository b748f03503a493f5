"""Data layer - eBay client, credentials, cache and models."""

from vinyl_backend.data.auth import TokenManager
from vinyl_backend.data.cache import TTLCache
from vinyl_backend.data.ebay_client import EbayClient, resolve_marketplace
from vinyl_backend.data.models import SoldItem, StatSummary, VinylItem

__all__ = [
    "EbayClient",
    "SoldItem",
    "StatSummary",
    "TTLCache",
    "TokenManager",
    "VinylItem",
    "resolve_marketplace",
]
