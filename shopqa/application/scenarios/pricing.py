"""Price integrity scenarios.

Monetary values are integers in the smallest currency unit.
"""

from shopqa.application.assertions import (
    check_order_totals,
    check_subtotal_identity,
    expect_equal,
    expect_ok,
    expect_present,
    expect_rejected,
    fail,
)
from shopqa.application.checkout import CheckoutFlow
from shopqa.application.context import ScenarioContext
from shopqa.application.provisioning import create_customer, find_variant, login_customer
from shopqa.application.registry import Budget, scenario
from shopqa.domain.checkout import CheckoutState
from shopqa.domain.value_objects import HydraCollection, OrderTotals, find_line_item


async def _new_cart(ctx: ScenarioContext, prefix: str, template: str = "basic") -> CheckoutFlow:
    customer = await create_customer(ctx, prefix, template=template)
    shop = await login_customer(ctx, customer)
    flow = CheckoutFlow(shop, ctx.settings, ctx.created)
    await flow.start()
    return flow


@scenario("pricing.subtotal_identity", tags=["critical"])
async def subtotal_identity(ctx: ScenarioContext) -> None:
    """Item subtotal equals unit price times quantity."""
    variant = await find_variant(ctx)
    flow = await _new_cart(ctx, "qauser", "checkout")
    await flow.add_item_or_fail(variant.code, 3)

    order = await flow.refresh()
    item = find_line_item(order, variant.code)
    if item is None:
        raise fail("read cart: line item", variant.code, order.get("items"), flow.last_response)
    expect_equal("read cart: quantity", 3, item.quantity, flow.last_response)
    check_subtotal_identity(item, "read cart", flow.last_response)


@scenario("pricing.order_totals", tags=["critical"], budget=Budget.CHECKOUT)
async def order_totals(ctx: ScenarioContext) -> None:
    """Order total adds up from items, shipping, taxes and promotions."""
    variant = await find_variant(ctx)
    customer = await create_customer(ctx, "price_total_test", template="checkout")
    shop = await login_customer(ctx, customer)
    flow = CheckoutFlow(shop, ctx.settings, ctx.created)
    await flow.start()
    await flow.add_item_or_fail(variant.code, 2)
    await flow.run_to(CheckoutState.SHIPPING_SELECTED, email=customer.email)

    order = await flow.refresh()
    expect_present("read order", order, "itemsTotal", flow.last_response)
    expect_present("read order", order, "total", flow.last_response)
    mode = check_order_totals(OrderTotals.from_body(order), "order totals", response=flow.last_response)
    ctx.notes["tax_mode"] = mode


@scenario("pricing.currency", tags=["smoke"])
async def currency(ctx: ScenarioContext) -> None:
    """A new cart carries a currency code."""
    admin = await ctx.admin()
    response = await admin.get(ctx.settings.admin_path("channels"))
    channels = HydraCollection.from_body(expect_ok(response, "list channels"))
    channel = channels.find_code(ctx.settings.channel_code) or channels.first()
    if channel is not None:
        ctx.log.info(
            "Channel currency",
            channel=channel.get("code"),
            base_currency=channel.get("baseCurrency"),
        )

    flow = await _new_cart(ctx, "price_currency_test")
    currency_code = expect_present("create cart", flow.latest, "currencyCode", flow.last_response)
    ctx.notes["currency"] = currency_code


@scenario("pricing.zero_quantity_rejected", tags=["validation"])
async def zero_quantity_rejected(ctx: ScenarioContext) -> None:
    """Adding zero units is rejected with a validation status."""
    variant = await find_variant(ctx)
    flow = await _new_cart(ctx, "price_zero_qty_test")
    response = await flow.add_item(variant.code, 0)
    expect_rejected(response, "add zero quantity")


@scenario("pricing.negative_quantity_rejected", tags=["validation"])
async def negative_quantity_rejected(ctx: ScenarioContext) -> None:
    """Adding a negative quantity is rejected with a validation status."""
    variant = await find_variant(ctx)
    flow = await _new_cart(ctx, "price_neg_qty_test")
    response = await flow.add_item(variant.code, -5)
    expect_rejected(response, "add negative quantity")
