"""Collision-free test data payloads.

Identifiers combine a millisecond timestamp with a random suffix so
scenarios running in parallel (in one process or across CI workers)
never create entities with the same email, code or slug.
"""

import copy
import random
import re
import string
import threading
import time
from collections.abc import Callable
from typing import Any

from shopqa.data.templates import (
    ADDRESSES,
    DEFAULT_CHANNEL,
    DEFAULT_LOCALE,
    DEFAULT_PASSWORD,
    USERS,
)
from shopqa.domain.exceptions import UnknownTemplateError

_ALPHABET = string.ascii_lowercase + string.digits


def _millis() -> int:
    return time.time_ns() // 1_000_000


class UniqueIdGenerator:
    """Timestamp plus random suffix identifier source.

    Timestamps handed out by one generator are strictly increasing: a
    second call within the same millisecond borrows the next one. The
    random suffix separates generators living in different processes.
    """

    def __init__(
        self,
        clock: Callable[[], int] = _millis,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            clock: Returns the current time in milliseconds.
            rng: Random source for suffixes.
        """
        self._clock = clock
        self._rng = rng or random.SystemRandom()
        self._lock = threading.Lock()
        self._last = 0

    def timestamp(self) -> int:
        """Get the next unique timestamp."""
        with self._lock:
            now = max(self._clock(), self._last + 1)
            self._last = now
            return now

    def suffix(self, length: int = 6) -> str:
        """Get a random lowercase alphanumeric suffix."""
        return "".join(self._rng.choice(_ALPHABET) for _ in range(length))

    def identifier(self, prefix: str, suffix_length: int = 6) -> str:
        """Build ``{prefix}_{timestamp}_{suffix}``."""
        return f"{prefix}_{self.timestamp()}_{self.suffix(suffix_length)}"


_default_generator = UniqueIdGenerator()


def generate_unique_identifier(
    prefix: str, generator: UniqueIdGenerator | None = None
) -> str:
    """Generate a collision-free identifier.

    Args:
        prefix: Human-readable prefix.
        generator: Identifier source (defaults to the process-wide one).

    Returns:
        Identifier like ``checkout_1718000000000_k3x9qa``.
    """
    return (generator or _default_generator).identifier(prefix)


def generate_email(prefix: str, generator: UniqueIdGenerator | None = None) -> str:
    """Generate a unique ``@example.com`` email address."""
    return f"{generate_unique_identifier(prefix, generator)}@example.com"


def generate_product_code(
    prefix: str, generator: UniqueIdGenerator | None = None
) -> str:
    """Generate a unique upper-case product code like ``SUMMER_HAT_1718000000000_AB12``."""
    gen = generator or _default_generator
    return gen.identifier(prefix, suffix_length=4).upper()


def generate_slug(name: str, generator: UniqueIdGenerator | None = None) -> str:
    """Generate a unique URL slug from a display name."""
    gen = generator or _default_generator
    base = re.sub(r"\s+", "-", name.strip().lower())
    return f"{base}-{gen.timestamp()}-{gen.suffix()}"


# ============================================================================
# Payload Builders
# ============================================================================


def build_customer_payload(
    email: str,
    template: str = "basic",
    password: str = DEFAULT_PASSWORD,
) -> dict[str, Any]:
    """Build a customer payload with attached shop-user credentials.

    Args:
        email: Customer email.
        template: Name of a profile template in ``USERS``.
        password: Plain password for the shop user.

    Returns:
        Admin customer creation payload.

    Raises:
        UnknownTemplateError: If the template does not exist.
    """
    if template not in USERS:
        raise UnknownTemplateError("user", template, sorted(USERS))
    return {
        "email": email,
        **copy.deepcopy(USERS[template]),
        "user": {
            "plainPassword": password,
            "enabled": True,
        },
    }


def build_address_payload(key: str = "us") -> dict[str, Any]:
    """Build shipping and billing addresses for checkout.

    Both addresses are independent copies of the same template.

    Raises:
        UnknownTemplateError: If the address key does not exist.
    """
    if key not in ADDRESSES:
        raise UnknownTemplateError("address", key, sorted(ADDRESSES))
    return {
        "shippingAddress": dict(ADDRESSES[key]),
        "billingAddress": dict(ADDRESSES[key]),
    }


def build_product_payload(
    code: str,
    name: str,
    channel_code: str = DEFAULT_CHANNEL,
    locale: str = DEFAULT_LOCALE,
    api_prefix: str = "/api/v2",
    generator: UniqueIdGenerator | None = None,
) -> dict[str, Any]:
    """Build a minimal valid product payload.

    Args:
        code: Unique product code.
        name: Display name.
        channel_code: Channel the product is sold in.
        locale: Translation locale.
        api_prefix: API root used for channel references.
        generator: Identifier source for the slug.

    Returns:
        Admin product creation payload.
    """
    return {
        "code": code,
        "enabled": True,
        "translations": {
            locale: {
                "name": name,
                "slug": generate_slug(name, generator),
                "description": f"Test product: {name}",
                "shortDescription": f"{name} for QA testing",
                "locale": locale,
            },
        },
        "channels": [f"{api_prefix}/admin/channels/{channel_code}"],
    }


def build_variant_payload(
    product_code: str,
    variant_code: str,
    price: int = 1999,
    stock: int = 100,
    channel_code: str = DEFAULT_CHANNEL,
    tracked: bool = True,
    api_prefix: str = "/api/v2",
) -> dict[str, Any]:
    """Build a product variant payload with price and stock.

    Args:
        product_code: Owning product code.
        variant_code: Unique variant code.
        price: Channel price in the smallest currency unit.
        stock: Units on hand.
        channel_code: Channel the price applies to.
        tracked: Whether stock is enforced against oversell.
        api_prefix: API root used for the product reference.

    Returns:
        Admin variant creation payload.
    """
    return {
        "code": variant_code,
        "product": f"{api_prefix}/admin/products/{product_code}",
        "channelPricings": {
            channel_code: {
                "price": price,
                "channelCode": channel_code,
            },
        },
        "onHand": stock,
        "tracked": tracked,
    }


def build_add_item_payload(
    variant_code: str, quantity: int, api_prefix: str = "/api/v2"
) -> dict[str, Any]:
    """Build a shop add-to-cart payload referencing a variant IRI."""
    return {
        "productVariant": f"{api_prefix}/shop/product-variants/{variant_code}",
        "quantity": quantity,
    }
