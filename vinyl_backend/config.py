"""Configuration management for the vinyl backend."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Config:
    """Application configuration."""

    # eBay OAuth (Browse API)
    ebay_client_id: str = field(default_factory=lambda: os.getenv("EBAY_CLIENT_ID", ""))
    ebay_client_secret: str = field(
        default_factory=lambda: os.getenv("EBAY_CLIENT_SECRET", "")
    )
    ebay_refresh_token: str = field(
        default_factory=lambda: os.getenv("EBAY_REFRESH_TOKEN", "")
    )

    # eBay Finding API (completed listings)
    ebay_app_id: str = field(default_factory=lambda: os.getenv("EBAY_APP_ID", ""))

    # Caching / networking
    cache_ttl_seconds: int = field(
        default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "300"))
    )
    token_safety_margin_seconds: int = field(
        default_factory=lambda: int(os.getenv("TOKEN_SAFETY_MARGIN_SECONDS", "60"))
    )
    request_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))
    )
    default_country: str = field(
        default_factory=lambda: os.getenv("DEFAULT_COUNTRY", "US")
    )

    # API URLs
    identity_url: str = "https://api.ebay.com/identity/v1/oauth2/token"
    browse_base_url: str = "https://api.ebay.com/buy/browse/v1"
    finding_url: str = "https://svcs.ebay.com/services/search/FindingService/v1"
    oauth_scope: str = "https://api.ebay.com/oauth/api_scope"

    def validate(self) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []
        if not self.ebay_client_id:
            errors.append("EBAY_CLIENT_ID is required")
        if not self.ebay_client_secret:
            errors.append("EBAY_CLIENT_SECRET is required")
        if not self.ebay_refresh_token:
            errors.append("EBAY_REFRESH_TOKEN is required")
        if not self.ebay_app_id:
            errors.append("EBAY_APP_ID is required for price history")
        if self.cache_ttl_seconds < 0:
            errors.append("CACHE_TTL_SECONDS must be >= 0")
        if self.token_safety_margin_seconds < 0:
            errors.append("TOKEN_SAFETY_MARGIN_SECONDS must be >= 0")
        if self.request_timeout_seconds <= 0:
            errors.append("REQUEST_TIMEOUT_SECONDS must be positive")
        return errors


# Global config instance
config = Config()
