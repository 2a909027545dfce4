"""Entity lifecycle scenarios: deletion is idempotent."""

import httpx

from shopqa.application.assertions import expect_ok, expect_status, fail
from shopqa.application.checkout import CheckoutFlow
from shopqa.application.context import ScenarioContext
from shopqa.application.provisioning import create_catalog_item, create_customer, login_customer
from shopqa.application.registry import scenario


def _no_server_error(response: httpx.Response, step: str) -> None:
    if response.status_code >= 500:
        raise fail(step, "status < 500", response.status_code, response)


@scenario("lifecycle.cart_deleted_twice", tags=["lifecycle"])
async def cart_deleted_twice(ctx: ScenarioContext) -> None:
    """Deleting a cart a second time answers 404."""
    customer = await create_customer(ctx, "lifecycle_cart")
    shop = await login_customer(ctx, customer)
    flow = CheckoutFlow(shop, ctx.settings, ctx.created)
    await flow.start()

    response = await flow.delete()
    _no_server_error(response, "first cart delete")
    expect_ok(response, "first cart delete")

    response = await flow.delete()
    _no_server_error(response, "second cart delete")
    expect_status(response, {404}, "second cart delete")


@scenario("lifecycle.product_deleted_twice", tags=["lifecycle", "admin"])
async def product_deleted_twice(ctx: ScenarioContext) -> None:
    """Deleting a product a second time answers 404."""
    item = await create_catalog_item(ctx, "LIFECYCLE", "Lifecycle Test Product")
    admin = await ctx.admin()
    endpoint = ctx.settings.admin_path(f"products/{item.product_code}")

    response = await admin.delete(endpoint)
    _no_server_error(response, "first product delete")
    expect_ok(response, "first product delete")

    response = await admin.delete(endpoint)
    _no_server_error(response, "second product delete")
    expect_status(response, {404}, "second product delete")
