"""Prerequisite data for scenarios.

Creates customers and catalog entries through the admin API and
registers them for teardown. Every failure here is a ``SetupError``: a
scenario whose prerequisites cannot be created never enters its state
machine.
"""

import asyncio
from dataclasses import dataclass

from shopqa.application.assertions import require_ok
from shopqa.application.context import ScenarioContext
from shopqa.data.factory import (
    build_customer_payload,
    build_product_payload,
    build_variant_payload,
    generate_email,
    generate_product_code,
)
from shopqa.domain.exceptions import SetupError
from shopqa.domain.value_objects import HydraCollection, StockLevel
from shopqa.infrastructure.http_client import ShopClient

DEFAULT_PRICE = 1000


@dataclass(frozen=True)
class Customer:
    """A customer created for one scenario."""

    id: str
    email: str
    password: str


@dataclass(frozen=True)
class VariantRef:
    """A purchasable variant and its channel price."""

    code: str
    price: int


@dataclass(frozen=True)
class CatalogItem:
    """A product with a single variant created for one scenario."""

    product_code: str
    variant_code: str
    price: int
    stock: int


async def create_customer(
    ctx: ScenarioContext, prefix: str, template: str = "basic"
) -> Customer:
    """Create a customer with shop credentials.

    Args:
        ctx: Scenario context.
        prefix: Email prefix.
        template: Profile template name.

    Returns:
        The created customer.
    """
    admin = await ctx.admin()
    email = generate_email(prefix, ctx.ids)
    password = ctx.settings.default_password
    response = await admin.post(
        ctx.settings.admin_path("customers"),
        build_customer_payload(email, template, password),
    )
    body = require_ok(response, f"create customer {email}")
    customer = Customer(id=str(body["id"]), email=email, password=password)
    ctx.created.add_customer(customer.id)
    ctx.log.info("Customer created", customer_id=customer.id, email=email)
    return customer


async def login_customer(ctx: ScenarioContext, customer: Customer) -> ShopClient:
    """Open a shop client logged in as ``customer``."""
    return await ctx.shop(customer.email, customer.password)


async def find_variant(ctx: ScenarioContext) -> VariantRef:
    """Pick an existing variant from the seeded catalog.

    Returns:
        The first variant and its first channel price.

    Raises:
        SetupError: If the catalog has no variants.
    """
    admin = await ctx.lookup_admin()
    response = await admin.get(
        ctx.settings.admin_path("product-variants"), params={"itemsPerPage": 1}
    )
    collection = HydraCollection.from_body(require_ok(response, "list product variants"))
    variant = collection.first()
    if variant is None:
        raise SetupError(
            "list product variants",
            reason="No product variants found. Please seed the database.",
        )

    price = DEFAULT_PRICE
    pricings = variant.get("channelPricings") or {}
    if pricings:
        first = next(iter(pricings.values()))
        price = int(first.get("price", DEFAULT_PRICE))
    return VariantRef(code=variant["code"], price=price)


async def create_catalog_item(
    ctx: ScenarioContext,
    prefix: str,
    name: str,
    stock: int = 100,
    price: int = 1999,
    tracked: bool = True,
) -> CatalogItem:
    """Create a product with one priced, stocked variant.

    Args:
        ctx: Scenario context.
        prefix: Product code prefix.
        name: Product display name.
        stock: Units on hand.
        price: Channel price.
        tracked: Whether stock is enforced.

    Returns:
        The created catalog item.
    """
    admin = await ctx.admin()
    settings = ctx.settings
    product_code = generate_product_code(prefix, ctx.ids)
    variant_code = f"{product_code}_VAR"

    response = await admin.post(
        settings.admin_path("products"),
        build_product_payload(
            product_code,
            name,
            channel_code=settings.channel_code,
            locale=settings.locale_code,
            api_prefix=settings.api_prefix,
            generator=ctx.ids,
        ),
    )
    require_ok(response, f"create product {product_code}")
    ctx.created.add_product(product_code)

    response = await admin.post(
        settings.admin_path("product-variants"),
        build_variant_payload(
            product_code,
            variant_code,
            price=price,
            stock=stock,
            channel_code=settings.channel_code,
            tracked=tracked,
            api_prefix=settings.api_prefix,
        ),
    )
    require_ok(response, f"create variant {variant_code}")
    ctx.log.info(
        "Catalog item created",
        product_code=product_code,
        variant_code=variant_code,
        stock=stock,
        price=price,
    )
    return CatalogItem(product_code, variant_code, price, stock)


async def get_stock(ctx: ScenarioContext, variant_code: str) -> StockLevel:
    """Read a variant's stock fields through the admin API."""
    admin = await ctx.lookup_admin()
    response = await admin.get(ctx.settings.admin_path(f"product-variants/{variant_code}"))
    return StockLevel.from_body(require_ok(response, f"read variant {variant_code}"))


async def wait_until_purchasable(ctx: ScenarioContext, variant_code: str) -> None:
    """Wait until a new variant is visible through the shop API.

    Polls a bounded number of times; catalog changes may take a moment
    to propagate.

    Raises:
        SetupError: If the variant never becomes visible.
    """
    public = ctx.public()
    endpoint = ctx.settings.shop_path(f"product-variants/{variant_code}")
    for attempt in range(ctx.settings.settle_attempts):
        response = await public.get(endpoint)
        if response.is_success:
            return
        ctx.log.debug("Variant not visible yet", variant_code=variant_code, attempt=attempt)
        await asyncio.sleep(ctx.settings.settle_delay)
    raise SetupError(
        f"variant {variant_code} visible in shop",
        status_code=response.status_code,
        body=response.text,
    )
