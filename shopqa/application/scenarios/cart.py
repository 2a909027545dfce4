"""Shop cart scenarios: add, change quantity, remove."""

from shopqa.application.assertions import (
    expect_contains,
    expect_equal,
    expect_greater,
    expect_ok,
    expect_status,
    fail,
)
from shopqa.application.checkout import CheckoutFlow
from shopqa.application.context import ScenarioContext
from shopqa.application.provisioning import create_customer, find_variant, login_customer
from shopqa.application.registry import scenario
from shopqa.domain.checkout import CheckoutState
from shopqa.domain.value_objects import LineItem, find_line_item


async def _cart_with_one_item(ctx: ScenarioContext, prefix: str) -> tuple[CheckoutFlow, LineItem]:
    variant = await find_variant(ctx)
    customer = await create_customer(ctx, prefix, template="cart")
    shop = await login_customer(ctx, customer)

    flow = CheckoutFlow(shop, ctx.settings, ctx.created)
    await flow.start()
    order = await flow.add_item_or_fail(variant.code, 1)

    item = find_line_item(order, variant.code)
    if item is None:
        raise fail("add item: line item for variant", variant.code, order.get("items"), flow.last_response)
    return flow, item


@scenario("cart.add_product", tags=["smoke"])
async def add_product(ctx: ScenarioContext) -> None:
    """A registered customer creates a cart and adds one product."""
    flow, item = await _cart_with_one_item(ctx, "cart_add")

    order = await flow.refresh()
    response = flow.last_response
    expect_equal("read cart: item count", 1, len(order.get("items", [])), response)
    expect_equal(
        "read cart: state",
        CheckoutState.CART.value,
        order.get("state") or order.get("checkoutState"),
        response,
    )
    expect_greater("read cart: total", order.get("total"), 0, response)
    expect_contains("read cart: item variant", order["items"][0].get("variant"), item.variant_code, response)


@scenario("cart.modify_quantity", tags=["smoke"])
async def modify_quantity(ctx: ScenarioContext) -> None:
    """Changing a line item's quantity to 5 is reflected in the cart total."""
    flow, item = await _cart_with_one_item(ctx, "cart_qty")

    response = await flow.change_quantity(item.id, 5)
    order = expect_ok(response, "change quantity")
    updated = next((i for i in order.get("items", []) if str(i.get("id")) == item.id), None)
    expect_equal("change quantity: item quantity", 5, (updated or {}).get("quantity"), response)

    order = await flow.refresh()
    response = flow.last_response
    expect_equal("read cart: quantity", 5, order["items"][0].get("quantity"), response)
    expect_greater("read cart: item total", order["items"][0].get("total"), item.total, response)


@scenario("cart.remove_item", tags=["smoke"])
async def remove_item(ctx: ScenarioContext) -> None:
    """Removing the only line item leaves an empty cart with a zero total."""
    flow, item = await _cart_with_one_item(ctx, "cart_remove")

    response = await flow.remove_item(item.id)
    expect_status(response, {204}, "remove item")

    order = await flow.refresh()
    response = flow.last_response
    expect_equal("read cart: item count", 0, len(order.get("items", [])), response)
    expect_equal("read cart: total", 0, order.get("total"), response)
