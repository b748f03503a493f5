"""eBay OAuth access-token management."""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from typing import Callable, Optional

import httpx

from vinyl_backend.config import Config, config as default_config
from vinyl_backend.errors import AuthError

logger = logging.getLogger(__name__)


class TokenManager:
    """Owns the process-wide eBay user access token.

    The token is renewed with the long-lived refresh token whenever the
    stored one has expired. Concurrent callers share one in-flight renewal
    and all receive its token or its ``AuthError``.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Optional[Config] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the manager.

        Args:
            http_client: Client used for the identity exchange.
            settings: Credentials and URLs. Uses the global config if None.
            clock: Returns the current time in seconds.
        """
        self._http = http_client
        self._settings = settings or default_config
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self._renewal: Optional[asyncio.Future[str]] = None

    @property
    def expires_at(self) -> float:
        return self._expires_at

    def _current(self) -> Optional[str]:
        if self._token and self._clock() < self._expires_at:
            return self._token
        return None

    async def get_token(self) -> str:
        """Return a valid access token, refreshing it if needed."""
        token = self._current()
        if token:
            return token

        if self._renewal is None:
            self._renewal = asyncio.ensure_future(self._refresh())
            self._renewal.add_done_callback(self._renewal_done)
        return await asyncio.shield(self._renewal)

    def _renewal_done(self, future: asyncio.Future) -> None:
        self._renewal = None

    def invalidate(self) -> None:
        """Forget the stored token so the next call renews it."""
        self._token = None
        self._expires_at = 0.0

    async def _refresh(self) -> str:
        logger.info("Refreshing eBay access token")
        settings = self._settings
        now = self._clock()

        basic = base64.b64encode(
            f"{settings.ebay_client_id}:{settings.ebay_client_secret}".encode("utf-8")
        ).decode("utf-8")
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": f"Basic {basic}",
        }
        data = {
            "grant_type": "refresh_token",
            "refresh_token": settings.ebay_refresh_token,
            "scope": settings.oauth_scope,
        }

        try:
            response = await self._http.post(settings.identity_url, data=data, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"Token refresh request failed: {exc}")
            raise AuthError(f"Cannot refresh token: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {"raw": response.text}

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if response.status_code != 200 or not token:
            logger.error(f"Cannot refresh token: {payload}")
            raise AuthError(f"Cannot refresh token: {payload}", detail=payload)

        try:
            expires_in = int(payload.get("expires_in") or 0)
        except (TypeError, ValueError) as exc:
            logger.error(f"Malformed token lifetime: {payload}")
            raise AuthError(f"Malformed token lifetime: {payload}", detail=payload) from exc
        self._token = token
        self._expires_at = now + expires_in - settings.token_safety_margin_seconds
        logger.info("Token refreshed OK")
        return token
