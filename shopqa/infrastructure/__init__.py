"""Infrastructure layer: configuration, logging and HTTP clients."""

from shopqa.infrastructure.config import Settings, get_settings
from shopqa.infrastructure.http_client import (
    AdminClient,
    AuthenticatedClient,
    BearerSession,
    PublicClient,
    ShopClient,
)

__all__ = [
    "AdminClient",
    "AuthenticatedClient",
    "BearerSession",
    "PublicClient",
    "Settings",
    "ShopClient",
    "get_settings",
]
