"""eBay Browse and Finding API client."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote, urlencode

import httpx

from vinyl_backend.config import Config, config as default_config
from vinyl_backend.data.auth import TokenManager
from vinyl_backend.data.cache import TTLCache
from vinyl_backend.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_MARKETPLACE = "EBAY_US"

MARKET_MAP = {
    "US": "EBAY_US",
    "UK": "EBAY_GB",
    "GB": "EBAY_GB",
    "CA": "EBAY_CA",
    "AU": "EBAY_AU",
    "DE": "EBAY_DE",
    "FR": "EBAY_FR",
    "IT": "EBAY_IT",
    "ES": "EBAY_ES",
}


def resolve_marketplace(country: Optional[str] = "US") -> str:
    """Map a two-letter country code to an eBay marketplace id."""
    if not country:
        return DEFAULT_MARKETPLACE
    return MARKET_MAP.get(country.strip().upper(), DEFAULT_MARKETPLACE)


def _encode_params(params: Optional[Mapping[str, Any]]) -> str:
    if not params:
        return ""
    return urlencode(sorted((str(k), str(v)) for k, v in params.items()))


def _read_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class EbayClient:
    """Async client for the eBay marketplace.

    Browse API calls are authenticated with the shared ``TokenManager``;
    Finding API calls use the application id. Search and completed-listing
    responses are kept in a ``TTLCache`` so repeated queries within the TTL
    never reach the network.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        *,
        settings: Optional[Config] = None,
        cache: Optional[TTLCache] = None,
        token_manager: Optional[TokenManager] = None,
    ) -> None:
        self._settings = settings or default_config
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=self._settings.request_timeout_seconds
        )
        self.cache = cache if cache is not None else TTLCache()
        if token_manager is None:
            token_manager = TokenManager(self._http, settings=self._settings)
        self.tokens = token_manager

    async def aclose(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> EbayClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _browse_get(
        self,
        url: str,
        country: Optional[str],
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        token = await self.tokens.get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "X-EBAY-C-MARKETPLACE-ID": resolve_marketplace(country),
            "Content-Type": "application/json",
        }
        try:
            response = await self._http.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"eBay request failed: {exc}")
            raise UpstreamError(f"eBay request failed: {exc}") from exc

        body = _read_body(response)
        if response.status_code != 200 or not isinstance(body, dict):
            logger.error(f"eBay error {response.status_code}: {body}")
            raise UpstreamError(
                f"eBay returned {response.status_code}", status=response.status_code, body=body
            )
        return body

    async def _cached_search(
        self, cache_key: str, country: Optional[str], params: Mapping[str, Any]
    ) -> dict[str, Any]:
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit: {cache_key}")
            return cached

        url = f"{self._settings.browse_base_url}/item_summary/search"
        payload = await self._browse_get(url, country, params)
        self.cache.set(cache_key, payload, self._settings.cache_ttl_seconds)
        return payload

    async def search(
        self,
        query: str,
        country: Optional[str] = "US",
        params: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        """Keyword search against ``item_summary/search``.

        Args:
            query: Free-text keywords.
            country: Two-letter country code selecting the marketplace.
            params: Extra query parameters such as ``limit`` or ``sort``.

        Returns:
            The raw search response (``itemSummaries`` etc).
        """
        marketplace = resolve_marketplace(country)
        cache_key = f"V|{marketplace}|{query}|{_encode_params(params)}"
        return await self._cached_search(cache_key, country, {"q": query, **(params or {})})

    async def search_gtin(
        self, code: str, country: Optional[str] = "US", limit: int = 20
    ) -> dict[str, Any]:
        """Search listings by barcode (UPC/EAN/ISBN)."""
        marketplace = resolve_marketplace(country)
        params = {"limit": limit}
        cache_key = f"G|{marketplace}|{code}|{_encode_params(params)}"
        return await self._cached_search(cache_key, country, {"gtin": code, **params})

    async def get_item(self, item_id: str, country: Optional[str] = "US") -> dict[str, Any]:
        """Fetch a single item's details."""
        url = f"{self._settings.browse_base_url}/item/{quote(str(item_id), safe='|')}"
        return await self._browse_get(url, country)

    async def find_completed_items(self, keywords: str, limit: int = 30) -> list[dict[str, Any]]:
        """Fetch recently completed listings for a keyword.

        Returns the raw Finding API item records, most recently ended first.
        """
        cache_key = f"S|{keywords}|{limit}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit: {cache_key}")
            return cached

        params = {
            "OPERATION-NAME": "findCompletedItems",
            "SERVICE-VERSION": "1.13.0",
            "RESPONSE-DATA-FORMAT": "JSON",
            "SECURITY-APPNAME": self._settings.ebay_app_id,
            "keywords": keywords,
            "sortOrder": "EndTimeSoonest",
            "paginationInput.entriesPerPage": limit,
        }
        try:
            response = await self._http.get(self._settings.finding_url, params=params)
        except httpx.HTTPError as exc:
            logger.error(f"Finding API request failed: {exc}")
            raise UpstreamError(f"Finding API request failed: {exc}") from exc

        body = _read_body(response)
        if response.status_code != 200 or not isinstance(body, dict):
            logger.error(f"Finding API error {response.status_code}: {body}")
            raise UpstreamError(
                f"Finding API returned {response.status_code}",
                status=response.status_code,
                body=body,
            )

        items = _completed_items(body)
        self.cache.set(cache_key, items, self._settings.cache_ttl_seconds)
        return items


def _completed_items(body: Mapping[str, Any]) -> list[dict[str, Any]]:
    # Finding API wraps every field in a single-element list.
    try:
        return body["findCompletedItemsResponse"][0]["searchResult"][0].get("item", []) or []
    except (KeyError, IndexError, TypeError, AttributeError):
        return []
