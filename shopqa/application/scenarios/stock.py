"""Stock tracking scenarios: oversell prevention and decrement on order."""

import asyncio

from shopqa.application.assertions import (
    check_oversell_policy,
    check_stock_decrement,
    check_stock_non_negative,
    detect_oversell_policy,
    expect_equal,
)
from shopqa.application.checkout import CheckoutFlow
from shopqa.application.context import ScenarioContext
from shopqa.application.provisioning import (
    create_catalog_item,
    create_customer,
    get_stock,
    login_customer,
    wait_until_purchasable,
)
from shopqa.application.registry import Budget, scenario
from shopqa.domain.checkout import CheckoutState

LIMITED_STOCK = 3
OVERSELL_QUANTITY = 10
DECREMENT_STOCK = 5
TRACKED_STOCK = 7


@scenario("stock.oversell_prevented", tags=["critical"])
async def oversell_prevented(ctx: ScenarioContext) -> None:
    """Adding more units than on hand is rejected or capped, never granted."""
    item = await create_catalog_item(
        ctx, "LIMITED_ADD", "Limited Stock Test Product", stock=LIMITED_STOCK
    )
    stock = await get_stock(ctx, item.variant_code)
    expect_equal("created variant: onHand", LIMITED_STOCK, stock.on_hand)
    expect_equal("created variant: tracked", True, stock.tracked)
    await wait_until_purchasable(ctx, item.variant_code)

    customer = await create_customer(ctx, "stock_add_test")
    shop = await login_customer(ctx, customer)
    flow = CheckoutFlow(shop, ctx.settings, ctx.created)
    await flow.start()

    response = await flow.add_item(item.variant_code, OVERSELL_QUANTITY)
    order = await flow.refresh() if response.is_success else None
    policy = detect_oversell_policy(
        response, order, OVERSELL_QUANTITY, LIMITED_STOCK, "add beyond stock"
    )
    check_oversell_policy(policy, ctx.settings.oversell_policy, "add beyond stock")
    ctx.notes["oversell_policy"] = policy.value


@scenario("stock.decrement_after_order", tags=["critical"], budget=Budget.CHECKOUT)
async def decrement_after_order(ctx: ScenarioContext) -> None:
    """A completed order reduces on-hand stock or puts the units on hold."""
    item = await create_catalog_item(
        ctx, "STOCK_DEC", "Stock Decrement Test Product", stock=DECREMENT_STOCK
    )
    await wait_until_purchasable(ctx, item.variant_code)

    customer = await create_customer(ctx, "order_stock", template="checkout")
    shop = await login_customer(ctx, customer)
    flow = CheckoutFlow(shop, ctx.settings, ctx.created)
    await flow.start()
    await flow.add_item_or_fail(item.variant_code, 1)
    await flow.run_to(CheckoutState.COMPLETED, email=customer.email)

    # Stock processing may lag behind order completion
    settings = ctx.settings
    delay = settings.stock_settle_delay
    for attempt in range(settings.settle_attempts):
        await asyncio.sleep(delay)
        after = await get_stock(ctx, item.variant_code)
        if after.on_hand < DECREMENT_STOCK or after.on_hold > 0:
            break
        ctx.log.debug("Stock not settled yet", attempt=attempt, on_hand=after.on_hand)
        delay = settings.settle_delay

    check_stock_non_negative(after, "stock after order")
    mode = check_stock_decrement(DECREMENT_STOCK, after, 1, "stock after order")
    ctx.notes["stock_mode"] = mode
    ctx.log.info("Stock tracked", on_hand=after.on_hand, on_hold=after.on_hold, mode=mode)


@scenario("stock.tracked_variant", tags=["admin"])
async def tracked_variant(ctx: ScenarioContext) -> None:
    """A tracked variant reports exactly the stock it was created with."""
    item = await create_catalog_item(
        ctx, "TRACKED_VAR", "Tracked Variant Test Product", stock=TRACKED_STOCK, price=2999
    )
    stock = await get_stock(ctx, item.variant_code)
    expect_equal("variant tracked", True, stock.tracked)
    expect_equal("variant onHand", TRACKED_STOCK, stock.on_hand)
    check_stock_non_negative(stock, "variant onHand")
