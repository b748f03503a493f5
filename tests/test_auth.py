import asyncio
import base64

import pytest

from vinyl_backend.data.auth import TokenManager
from vinyl_backend.data.cache import TTLCache
from vinyl_backend.errors import AuthError

from conftest import FakeClock


def test_cache_returns_value_within_ttl() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("k", {"a": 1}, 300)
    clock.advance(299)
    assert cache.get("k") == {"a": 1}


def test_cache_expires_and_evicts_lazily() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("k", "v", 300)
    clock.advance(301)
    assert len(cache) == 1
    assert cache.get("k") is None
    assert len(cache) == 0


def test_cache_missing_key() -> None:
    assert TTLCache().get("nope") is None


@pytest.mark.asyncio
async def test_token_refresh_uses_refresh_grant(http_client, fake_ebay, settings, clock):
    manager = TokenManager(http_client, settings=settings, clock=clock)

    token = await manager.get_token()

    assert token == "tok-1"
    request = fake_ebay.requests[0]
    expected = base64.b64encode(b"client-id:client-secret").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"
    body = request.content.decode()
    assert "grant_type=refresh_token" in body
    assert "refresh_token=refresh-token" in body
    assert manager.expires_at == clock.now + 7200 - 60


@pytest.mark.asyncio
async def test_token_is_reused_until_expiry(http_client, fake_ebay, settings, clock):
    manager = TokenManager(http_client, settings=settings, clock=clock)

    await manager.get_token()
    clock.advance(7200 - 61)
    await manager.get_token()
    assert fake_ebay.token_calls == 1

    fake_ebay.token_payload = {"access_token": "tok-2", "expires_in": 7200}
    clock.advance(2)
    assert await manager.get_token() == "tok-2"
    assert fake_ebay.token_calls == 2


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_refresh(http_client, fake_ebay, settings, clock):
    manager = TokenManager(http_client, settings=settings, clock=clock)

    tokens = await asyncio.gather(*(manager.get_token() for _ in range(5)))

    assert set(tokens) == {"tok-1"}
    assert fake_ebay.token_calls == 1


@pytest.mark.asyncio
async def test_invalidate_forces_refresh(http_client, fake_ebay, settings, clock):
    manager = TokenManager(http_client, settings=settings, clock=clock)
    await manager.get_token()
    manager.invalidate()
    await manager.get_token()
    assert fake_ebay.token_calls == 2


@pytest.mark.asyncio
async def test_rejected_refresh_raises_auth_error(http_client, fake_ebay, settings, clock):
    fake_ebay.token_status = 400
    fake_ebay.token_payload = {"error": "invalid_grant"}
    manager = TokenManager(http_client, settings=settings, clock=clock)

    with pytest.raises(AuthError) as excinfo:
        await manager.get_token()
    assert excinfo.value.detail == {"error": "invalid_grant"}


@pytest.mark.asyncio
async def test_missing_access_token_raises_auth_error(http_client, fake_ebay, settings, clock):
    fake_ebay.token_payload = {"expires_in": 7200}
    manager = TokenManager(http_client, settings=settings, clock=clock)

    with pytest.raises(AuthError):
        await manager.get_token()


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_failure(http_client, fake_ebay, settings, clock):
    fake_ebay.token_status = 401
    fake_ebay.token_payload = {"error": "invalid_grant"}
    manager = TokenManager(http_client, settings=settings, clock=clock)

    results = await asyncio.gather(
        *(manager.get_token() for _ in range(5)), return_exceptions=True
    )

    assert all(isinstance(r, AuthError) for r in results)
    assert fake_ebay.token_calls == 1

    # The failed renewal is not reused by later callers.
    fake_ebay.token_status = 200
    fake_ebay.token_payload = {"access_token": "tok-2", "expires_in": 7200}
    assert await manager.get_token() == "tok-2"
    assert fake_ebay.token_calls == 2


@pytest.mark.asyncio
async def test_null_lifetime_is_treated_as_expired(http_client, fake_ebay, settings, clock):
    fake_ebay.token_payload = {"access_token": "tok-1", "expires_in": None}
    manager = TokenManager(http_client, settings=settings, clock=clock)

    assert await manager.get_token() == "tok-1"
    assert manager.expires_at == clock.now - 60


@pytest.mark.asyncio
async def test_malformed_lifetime_raises_auth_error(http_client, fake_ebay, settings, clock):
    fake_ebay.token_payload = {"access_token": "tok-1", "expires_in": "soon"}
    manager = TokenManager(http_client, settings=settings, clock=clock)

    with pytest.raises(AuthError) as excinfo:
        await manager.get_token()
    assert excinfo.value.detail == fake_ebay.token_payload
