from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest

from vinyl_backend.config import Config
from vinyl_backend.data.auth import TokenManager
from vinyl_backend.data.cache import TTLCache
from vinyl_backend.data.ebay_client import EbayClient
from vinyl_backend.service import VinylService

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ZeroRandom(random.Random):
    """Random source whose jitter is always the lower bound."""

    def uniform(self, a: float, b: float) -> float:
        return a


def listing(
    item_id: str,
    title: str,
    price: float | None = 10.0,
    brand: str | None = None,
    created: str | None = None,
) -> dict[str, Any]:
    item: dict[str, Any] = {
        "itemId": item_id,
        "title": title,
        "itemWebUrl": f"https://www.ebay.com/itm/{item_id}",
        "condition": "Used",
        "image": {"imageUrl": f"https://i.ebayimg.com/{item_id}.jpg"},
    }
    if price is not None:
        item["price"] = {"value": f"{price:.2f}", "currency": "USD"}
    if brand:
        item["brand"] = brand
    if created:
        item["itemCreationDate"] = created
    return item


def sold_record(
    price: float,
    end: datetime | None,
    state: str = "EndedWithSales",
    title: str = "Some Record LP",
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "title": [title],
        "viewItemURL": ["https://www.ebay.com/itm/1"],
        "galleryURL": ["https://thumbs.ebaystatic.com/1.jpg"],
        "sellingStatus": [
            {
                "sellingState": [state],
                "currentPrice": [{"@currencyId": "USD", "__value__": str(price)}],
            }
        ],
        "condition": [{"conditionDisplayName": ["Used"]}],
    }
    if end is not None:
        record["listingInfo"] = [{"endTime": [end.strftime("%Y-%m-%dT%H:%M:%S.000Z")]}]
    return record


def completed_payload(records: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "findCompletedItemsResponse": [
            {"ack": ["Success"], "searchResult": [{"@count": str(len(records)), "item": records}]}
        ]
    }


class FakeEbay:
    """In-memory stand-in for the eBay identity, Browse and Finding APIs."""

    def __init__(self) -> None:
        self.searches: dict[str, list[dict[str, Any]]] = {}
        self.gtin: dict[str, list[dict[str, Any]]] = {}
        self.items: dict[str, dict[str, Any]] = {}
        self.completed: dict[str, list[dict[str, Any]]] = {}
        self.default_completed: list[dict[str, Any]] = []
        self.failing_queries: set[str] = set()
        self.failing_gtin: set[str] = set()
        self.html_queries: set[str] = set()
        self.token_status = 200
        self.token_payload: dict[str, Any] = {"access_token": "tok-1", "expires_in": 7200}
        self.token_calls = 0
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if path.endswith("/oauth2/token"):
            self.token_calls += 1
            return httpx.Response(self.token_status, json=self.token_payload)

        if request.url.host == "svcs.ebay.com":
            keywords = params["keywords"]
            if keywords in self.failing_queries:
                return httpx.Response(500, json={"error": "boom"})
            records = self.completed.get(keywords, self.default_completed)
            return httpx.Response(200, json=completed_payload(records))

        assert request.headers["Authorization"].startswith("Bearer ")

        if path.endswith("/item_summary/search"):
            if "gtin" in params:
                code = params["gtin"]
                if code in self.failing_gtin:
                    return httpx.Response(400, json={"errors": [{"message": "bad gtin"}]})
                return httpx.Response(200, json={"itemSummaries": self.gtin.get(code, [])})
            query = params["q"]
            if query in self.failing_queries:
                return httpx.Response(500, json={"errors": [{"message": "boom"}]})
            if query in self.html_queries:
                return httpx.Response(200, text="<html>gateway</html>")
            return httpx.Response(200, json={"itemSummaries": self.searches.get(query, [])})

        if "/item/" in path:
            item_id = path.rsplit("/", 1)[-1]
            if item_id not in self.items:
                return httpx.Response(404, json={"errors": [{"message": "not found"}]})
            return httpx.Response(200, json=self.items[item_id])

        return httpx.Response(404, json={})

    def count(self, predicate) -> int:
        return sum(1 for r in self.requests if predicate(r))


@pytest.fixture
def settings() -> Config:
    return Config(
        ebay_client_id="client-id",
        ebay_client_secret="client-secret",
        ebay_refresh_token="refresh-token",
        ebay_app_id="app-id",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_ebay() -> FakeEbay:
    return FakeEbay()


@pytest.fixture
def http_client(fake_ebay: FakeEbay) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_ebay.handler))


@pytest.fixture
def ebay_client(http_client, settings, clock) -> EbayClient:
    return EbayClient(
        http_client,
        settings=settings,
        cache=TTLCache(clock=clock),
        token_manager=TokenManager(http_client, settings=settings, clock=clock),
    )


@pytest.fixture
def service(ebay_client) -> VinylService:
    return VinylService(ebay_client, rng=random.Random(7), now=lambda: NOW)
