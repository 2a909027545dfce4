"""Authorization boundary scenarios.

Each scenario probes one boundary with its own customers, so a broken
boundary is reported on its own.
"""

import asyncio

from shopqa.application.assertions import (
    AUTHENTICATION_FAILURE,
    check_cart_access,
    expect_not_status,
    expect_status,
    fail,
)
from shopqa.application.checkout import CheckoutFlow
from shopqa.application.context import ScenarioContext
from shopqa.application.provisioning import create_customer, find_variant, login_customer
from shopqa.application.registry import scenario
from shopqa.data.factory import build_add_item_payload
from shopqa.data.templates import HOSTILE_INPUTS
from shopqa.domain.policies import CartAccessContract
from shopqa.infrastructure.http_client import ShopClient

ADMIN_ENDPOINTS = ["products", "customers", "orders"]
PROTECTED_SHOP_ENDPOINTS = ["customers/me", "account/orders"]
FORGED_TOKEN = "Bearer fake.invalid.token.here"
MALFORMED_AUTHORIZATION = "NotBearer some.token"
BURST_SIZE = 20


async def _two_customers(ctx: ScenarioContext) -> tuple[ShopClient, ShopClient]:
    owner = await create_customer(ctx, "security_user_a")
    intruder = await create_customer(ctx, "security_user_b")
    return await login_customer(ctx, owner), await login_customer(ctx, intruder)


@scenario("security.foreign_cart_read", tags=["critical", "auth"])
async def foreign_cart_read(ctx: ScenarioContext) -> None:
    """A customer cannot read another customer's cart."""
    owner, intruder = await _two_customers(ctx)
    flow = CheckoutFlow(owner, ctx.settings, ctx.created)
    await flow.start()

    response = await intruder.get(flow.order_path())
    expect_status(
        response, CartAccessContract.OWNER_ONLY.denied_statuses(), "foreign identity reads cart"
    )


@scenario("security.foreign_cart_modify", tags=["critical", "auth"])
async def foreign_cart_modify(ctx: ScenarioContext) -> None:
    """Adding items to another customer's cart follows the cart access contract."""
    variant = await find_variant(ctx)
    owner, intruder = await _two_customers(ctx)
    flow = CheckoutFlow(owner, ctx.settings, ctx.created)
    await flow.start()

    response = await intruder.post(
        flow.order_path("items"),
        build_add_item_payload(variant.code, 1, ctx.settings.api_prefix),
    )
    contract = ctx.settings.cart_access_contract
    check_cart_access(response, contract, "foreign identity modifies cart")
    ctx.notes["cart_access_contract"] = contract.value


@scenario("security.shop_token_on_admin", tags=["critical", "auth"])
async def shop_token_on_admin(ctx: ScenarioContext) -> None:
    """A customer token is refused on admin endpoints."""
    customer = await create_customer(ctx, "security_shop_admin")
    shop = await login_customer(ctx, customer)

    for resource in ADMIN_ENDPOINTS:
        response = await shop.get(ctx.settings.admin_path(resource))
        expect_status(response, AUTHENTICATION_FAILURE, f"shop token on admin {resource}")


@scenario("security.anonymous_on_protected", tags=["critical", "auth"])
async def anonymous_on_protected(ctx: ScenarioContext) -> None:
    """Anonymous requests are refused on customer-only shop endpoints."""
    public = ctx.public()
    for resource in PROTECTED_SHOP_ENDPOINTS:
        response = await public.get(ctx.settings.shop_path(resource))
        expect_status(response, AUTHENTICATION_FAILURE, f"anonymous on {resource}")


@scenario("security.forged_token", tags=["auth"])
async def forged_token(ctx: ScenarioContext) -> None:
    """A forged bearer token is rejected with 401."""
    public = ctx.public({"Authorization": FORGED_TOKEN})
    response = await public.get(ctx.settings.shop_path("customers/me"))
    expect_status(response, {401}, "forged token")


@scenario("security.malformed_authorization", tags=["auth"])
async def malformed_authorization(ctx: ScenarioContext) -> None:
    """A malformed Authorization header is rejected."""
    public = ctx.public({"Authorization": MALFORMED_AUTHORIZATION})
    response = await public.get(ctx.settings.shop_path("customers/me"))
    expect_status(response, {400, 401, 403}, "malformed authorization header")


@scenario("security.hostile_query_strings", tags=["critical"])
async def hostile_query_strings(ctx: ScenarioContext) -> None:
    """Injection-like filter values never cause a server error."""
    customer = await create_customer(ctx, "security_injection")
    shop = await login_customer(ctx, customer)

    for value in HOSTILE_INPUTS:
        step = f"product filter {value!r}"
        response = await shop.get(ctx.settings.shop_path("products"), params={"name": value})
        expect_not_status(response, 500, step)
        if response.is_success:
            try:
                response.json()
            except ValueError:
                raise fail(step, "JSON body", response.headers.get("content-type"), response) from None


@scenario("security.admin_credentials_on_shop", tags=["auth", "report"])
async def admin_credentials_on_shop(ctx: ScenarioContext) -> None:
    """Report whether administrator credentials open a shop session."""
    public = ctx.public()
    response = await public.post(
        ctx.settings.shop_token_endpoint,
        {"email": ctx.settings.admin_email, "password": ctx.settings.admin_password},
    )
    ctx.notes["admin_credentials_on_shop"] = response.status_code
    if response.is_success:
        ctx.log.warning("Admin email has a customer account", status_code=response.status_code)
    else:
        ctx.log.info("Admin credentials rejected on shop API", status_code=response.status_code)


@scenario("security.request_burst", tags=["report"])
async def request_burst(ctx: ScenarioContext) -> None:
    """Report how the platform answers a burst of catalog requests."""
    customer = await create_customer(ctx, "security_burst")
    shop = await login_customer(ctx, customer)

    endpoint = ctx.settings.shop_path("products")
    responses = await asyncio.gather(*(shop.get(endpoint) for _ in range(BURST_SIZE)))
    successful = sum(1 for r in responses if r.is_success)
    rate_limited = sum(1 for r in responses if r.status_code == 429)

    ctx.notes["burst"] = {"successful": successful, "rate_limited": rate_limited}
    ctx.log.info("Request burst", successful=successful, rate_limited=rate_limited)
