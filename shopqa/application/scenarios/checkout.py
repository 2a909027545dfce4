"""End-to-end checkout scenarios."""

from shopqa.application.assertions import (
    expect_equal,
    expect_greater,
    expect_ok,
    expect_rejected,
)
from shopqa.application.checkout import CheckoutFlow
from shopqa.application.context import ScenarioContext
from shopqa.application.provisioning import create_customer, find_variant, login_customer
from shopqa.application.registry import Budget, scenario
from shopqa.domain.checkout import CheckoutState
from shopqa.domain.value_objects import HydraCollection, iri_of


async def _started_flow(ctx: ScenarioContext, prefix: str) -> CheckoutFlow:
    variant = await find_variant(ctx)
    customer = await create_customer(ctx, prefix, template="checkout")
    shop = await login_customer(ctx, customer)

    flow = CheckoutFlow(shop, ctx.settings, ctx.created)
    await flow.start()
    await flow.add_item_or_fail(variant.code, 1)
    return flow


@scenario("checkout.address_and_shipping", tags=["critical"], budget=Budget.CHECKOUT)
async def address_and_shipping(ctx: ScenarioContext) -> None:
    """A customer addresses the order and selects a shipping method."""
    flow = await _started_flow(ctx, "checkout")
    await flow.address("us")
    await flow.select_shipping()


@scenario("checkout.buy_now", tags=["critical"], budget=Budget.CHECKOUT)
async def buy_now(ctx: ScenarioContext) -> None:
    """A customer completes an order paying with the preferred method."""
    flow = await _started_flow(ctx, "buy_now")
    order = await flow.run_to(CheckoutState.COMPLETED)
    ctx.log.info("Order completed", token_value=flow.token_value, total=order.get("total"))


@scenario("checkout.out_of_order_rejected", tags=["critical"], budget=Budget.CHECKOUT)
async def out_of_order_rejected(ctx: ScenarioContext) -> None:
    """The platform refuses checkout steps whose prerequisites were skipped."""
    flow = await _started_flow(ctx, "out_of_order")
    shop = flow.client

    response = await shop.patch(flow.order_path("complete"), {})
    expect_rejected(response, "complete a cart that was never addressed")
    order = await flow.refresh()
    expect_equal(
        "checkoutState after refused completion",
        CheckoutState.CART.value,
        order.get("checkoutState"),
        flow.last_response,
    )

    await flow.address("us")
    step = "select payment before shipping"
    payment_id = flow.sub_resource_id("payments", step)
    response = await shop.get(flow.order_path(f"payments/{payment_id}/methods"))
    methods = HydraCollection.from_body(expect_ok(response, f"{step}: list methods"))
    expect_greater(f"{step}: available methods", len(methods), 0, response)

    response = await shop.patch(
        flow.order_path(f"payments/{payment_id}"), {"paymentMethod": iri_of(methods.first())}
    )
    expect_rejected(response, step)
    response = await shop.patch(flow.order_path("complete"), {})
    expect_rejected(response, "complete an order without shipping or payment")

    order = await flow.refresh()
    expect_equal(
        "checkoutState after refused steps",
        CheckoutState.ADDRESSED.value,
        order.get("checkoutState"),
        flow.last_response,
    )
