"""Harness configuration.

Loads settings from environment variables (prefix ``SHOPQA_``) or a
``.env`` file, with defaults matching a stock platform install seeded
with the demo fixtures.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shopqa.domain.policies import CartAccessContract, StockPolicy


class Settings(BaseSettings):
    """Harness settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SHOPQA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Platform
    base_url: str = "http://localhost:8080"
    api_prefix: str = "/api/v2"
    channel_code: str = "FASHION_WEB"
    locale_code: str = "en_US"

    # Authentication
    admin_email: str = "sylius@example.com"
    admin_password: str = "sylius"
    admin_token_endpoint: str = "/api/v2/admin/administrators/token"
    shop_token_endpoint: str = "/api/v2/shop/customers/token"
    default_password: str = "qauser1"

    # Checkout
    preferred_payment_method: str = "cash_on_delivery"
    cart_access_contract: CartAccessContract = CartAccessContract.OWNER_ONLY
    # None: accept whichever oversell policy the platform shows, then hold it to it
    oversell_policy: StockPolicy | None = None

    # Timeouts (seconds)
    request_timeout: float = Field(default=30.0, gt=0)
    smoke_timeout: float = Field(default=30.0, gt=0)
    checkout_timeout: float = Field(default=60.0, gt=0)
    teardown_timeout: float = Field(default=30.0, gt=0)

    # Eventual consistency windows
    settle_attempts: int = Field(default=5, ge=1)
    settle_delay: float = Field(default=0.5, ge=0)
    stock_settle_delay: float = Field(default=1.0, ge=0)

    # Runner
    max_concurrency: int = Field(default=4, ge=1)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    def admin_path(self, resource: str) -> str:
        """Build an admin endpoint path.

        Args:
            resource: Resource path relative to the admin root.

        Returns:
            Absolute endpoint path, e.g. ``/api/v2/admin/products``.
        """
        return f"{self.api_prefix}/admin/{resource.lstrip('/')}"

    def shop_path(self, resource: str) -> str:
        """Build a shop endpoint path.

        Args:
            resource: Resource path relative to the shop root.

        Returns:
            Absolute endpoint path, e.g. ``/api/v2/shop/orders``.
        """
        return f"{self.api_prefix}/shop/{resource.lstrip('/')}"


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance.

    Returns:
        Cached Settings loaded from the environment.
    """
    return Settings()
