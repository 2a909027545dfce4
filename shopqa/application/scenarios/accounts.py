"""Customer accounts and admin smoke scenarios."""

from shopqa.application.assertions import (
    expect_contains,
    expect_equal,
    expect_greater,
    expect_ok,
    expect_status,
)
from shopqa.application.context import ScenarioContext
from shopqa.application.provisioning import create_customer, login_customer
from shopqa.application.registry import scenario
from shopqa.data.factory import build_customer_payload, generate_email
from shopqa.domain.value_objects import HydraCollection


@scenario("accounts.admin_creates_customer", tags=["smoke", "admin"])
async def admin_creates_customer(ctx: ScenarioContext) -> None:
    """Admin creates a customer and the profile is echoed back."""
    admin = await ctx.admin()
    email = generate_email("qauser", ctx.ids)
    payload = build_customer_payload(email, "basic", ctx.settings.default_password)

    response = await admin.post(ctx.settings.admin_path("customers"), payload)
    expect_status(response, {201}, "create customer")
    body = response.json()
    ctx.created.add_customer(body["id"])

    expect_equal("create customer: email", email, body.get("email"), response)
    expect_equal("create customer: firstName", payload["firstName"], body.get("firstName"), response)


@scenario("accounts.customer_login", tags=["smoke", "auth"])
async def customer_login(ctx: ScenarioContext) -> None:
    """Admin creates a customer with credentials, the customer logs in and lists their orders."""
    customer = await create_customer(ctx, "e2e_login")
    shop = await login_customer(ctx, customer)

    response = await shop.get(ctx.settings.shop_path("orders"))
    orders = HydraCollection.from_body(expect_ok(response, "list own orders"))
    ctx.log.info("Customer logged in", email=customer.email, orders=orders.total_items)


@scenario("accounts.admin_smoke", tags=["smoke", "admin"], serial=True)
async def admin_smoke(ctx: ScenarioContext) -> None:
    """The configured channel exists and the catalog is not empty."""
    admin = await ctx.admin()

    response = await admin.get(ctx.settings.admin_path("channels"))
    expect_status(response, {200}, "list channels")
    channels = HydraCollection.from_body(response.json())
    expect_contains("list channels: codes", channels.codes(), ctx.settings.channel_code, response)

    # Fresh token for the second step
    await admin.login()

    response = await admin.get(ctx.settings.admin_path("products"))
    expect_status(response, {200}, "list products")
    products = HydraCollection.from_body(response.json())
    expect_greater("list products: hydra:totalItems", products.total_items, 0, response)
