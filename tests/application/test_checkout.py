"""Tests for the checkout flow against the fake platform."""

import pytest

from shopqa.application.checkout import CheckoutFlow
from shopqa.application.provisioning import (
    create_catalog_item,
    create_customer,
    find_variant,
    get_stock,
    login_customer,
    wait_until_purchasable,
)
from shopqa.domain.checkout import CheckoutState
from shopqa.domain.exceptions import (
    AuthenticationError,
    InvalidStateTransitionError,
    ScenarioAssertionError,
    SetupError,
)
from tests.fakeshop import Fault


async def started_flow(ctx) -> CheckoutFlow:
    customer = await create_customer(ctx, "flow", template="checkout")
    shop = await login_customer(ctx, customer)
    flow = CheckoutFlow(shop, ctx.settings, ctx.created)
    await flow.start()
    return flow


class TestProvisioning:
    """Tests for prerequisite creation."""

    @pytest.mark.asyncio
    async def test_create_customer_registers_for_teardown(self, ctx, store) -> None:
        """Created customers can log in and are registered for cleanup."""
        customer = await create_customer(ctx, "prov")
        shop = await login_customer(ctx, customer)

        assert shop.session.is_authenticated
        assert ctx.created.customers == [customer.id]
        assert store.customer_by_email(customer.email) is not None

    @pytest.mark.asyncio
    async def test_find_variant_reads_seeded_catalog(self, ctx) -> None:
        """The first seeded variant and its channel price are found."""
        variant = await find_variant(ctx)

        assert variant.code == "KNITTED_CAP_VAR"
        assert variant.price == 2500

    @pytest.mark.asyncio
    async def test_find_variant_on_empty_catalog(self, ctx, store) -> None:
        """An empty catalog is a setup failure."""
        store.variants.clear()

        with pytest.raises(SetupError):
            await find_variant(ctx)

    @pytest.mark.asyncio
    async def test_create_catalog_item(self, ctx, store) -> None:
        """A product with a tracked, priced variant is created."""
        item = await create_catalog_item(ctx, "HAT", "Hat", stock=4, price=1500)
        stock = await get_stock(ctx, item.variant_code)

        assert item.variant_code == f"{item.product_code}_VAR"
        assert (stock.on_hand, stock.tracked) == (4, True)
        assert store.variants[item.variant_code].price == 1500
        assert ctx.created.products == [item.product_code]

    @pytest.mark.asyncio
    async def test_wait_until_purchasable_with_lag(self, ctx, behaviour) -> None:
        """A variant hidden for a couple of reads becomes visible."""
        behaviour.visibility_lag = 2
        item = await create_catalog_item(ctx, "LAG", "Lagging")

        await wait_until_purchasable(ctx, item.variant_code)

    @pytest.mark.asyncio
    async def test_wait_until_purchasable_gives_up(self, ctx, behaviour) -> None:
        """Polling is bounded."""
        behaviour.visibility_lag = 10
        item = await create_catalog_item(ctx, "LAG", "Lagging")

        with pytest.raises(SetupError):
            await wait_until_purchasable(ctx, item.variant_code)

    @pytest.mark.asyncio
    async def test_wrong_password(self, ctx) -> None:
        """A rejected customer login is a setup failure."""
        customer = await create_customer(ctx, "prov")

        with pytest.raises(AuthenticationError):
            await ctx.shop(customer.email, "wrong")


class TestCheckoutFlow:
    """Tests for CheckoutFlow."""

    @pytest.mark.asyncio
    async def test_full_checkout(self, ctx) -> None:
        """The flow reaches COMPLETED through every state."""
        flow = await started_flow(ctx)
        await flow.add_item_or_fail("KNITTED_CAP_VAR", 2)

        order = await flow.run_to(CheckoutState.COMPLETED)

        assert flow.state is CheckoutState.COMPLETED
        assert flow.progress.history == [
            CheckoutState.CART,
            CheckoutState.ADDRESSED,
            CheckoutState.SHIPPING_SELECTED,
            CheckoutState.PAYMENT_SELECTED,
            CheckoutState.COMPLETED,
        ]
        assert order["state"] == "new"
        assert order["total"] == 2 * 2500 + 850

    @pytest.mark.asyncio
    async def test_preferred_payment_method(self, ctx) -> None:
        """The configured payment method is chosen when offered."""
        flow = await started_flow(ctx)
        await flow.add_item_or_fail("KNITTED_CAP_VAR")
        order = await flow.run_to(CheckoutState.PAYMENT_SELECTED)

        assert order["payments"][0]["method"].endswith("/cash_on_delivery")

    @pytest.mark.asyncio
    async def test_unknown_preferred_method_falls_back(self, ctx) -> None:
        """An unavailable preferred method falls back to the first one."""
        flow = await started_flow(ctx)
        await flow.add_item_or_fail("KNITTED_CAP_VAR")
        await flow.run_to(CheckoutState.SHIPPING_SELECTED)
        order = await flow.select_payment("paypal")

        assert order["payments"][0]["method"].endswith("/bank_transfer")

    @pytest.mark.asyncio
    async def test_steps_out_of_order_send_nothing(self, ctx) -> None:
        """A step whose prerequisite was not observed raises before any request."""
        flow = await started_flow(ctx)
        before = flow.last_response

        with pytest.raises(InvalidStateTransitionError):
            await flow.select_shipping()
        with pytest.raises(InvalidStateTransitionError):
            await flow.complete()
        assert flow.last_response is before

    def test_not_started(self, settings) -> None:
        """Using a flow before start is a setup failure."""
        flow = CheckoutFlow(None, settings)

        with pytest.raises(SetupError):
            flow.token
        with pytest.raises(SetupError):
            flow.state

    @pytest.mark.asyncio
    async def test_steps_before_start(self, settings) -> None:
        """Every step on a flow that never started is a setup failure."""
        flow = CheckoutFlow(None, settings)

        with pytest.raises(SetupError):
            await flow.add_item("KNITTED_CAP_VAR", 1)
        with pytest.raises(SetupError):
            await flow.address()
        with pytest.raises(SetupError):
            await flow.select_shipping()
        with pytest.raises(SetupError):
            await flow.select_payment()
        with pytest.raises(SetupError):
            await flow.complete()
        with pytest.raises(SetupError):
            await flow.refresh()

    @pytest.mark.asyncio
    async def test_regressed_state_on_refresh_fails(self, ctx, store) -> None:
        """A platform moving an order backwards fails with response diagnostics."""
        flow = await started_flow(ctx)
        await flow.add_item_or_fail("KNITTED_CAP_VAR")
        await flow.address()
        store.orders[flow.token].checkout_state = CheckoutState.CART.value

        with pytest.raises(ScenarioAssertionError) as exc_info:
            await flow.refresh()

        error = exc_info.value
        assert error.step == "read order: checkout progression"
        assert error.expected == "one of ['addressed', 'shipping_selected']"
        assert error.actual == "cart"
        assert error.status_code == 200
        assert flow.token in error.body

    @pytest.mark.asyncio
    async def test_skipped_state_on_refresh_fails(self, ctx, store) -> None:
        """A platform jumping ahead of the observed state fails the read."""
        flow = await started_flow(ctx)
        await flow.add_item_or_fail("KNITTED_CAP_VAR")
        store.orders[flow.token].checkout_state = CheckoutState.PAYMENT_SELECTED.value

        with pytest.raises(ScenarioAssertionError) as exc_info:
            await flow.refresh()

        assert exc_info.value.actual == "payment_selected"
        assert flow.state is CheckoutState.CART

    @pytest.mark.asyncio
    async def test_unknown_state_on_refresh_is_ignored(self, ctx, store) -> None:
        """States outside the checkout sequence are not tracked."""
        flow = await started_flow(ctx)
        store.orders[flow.token].checkout_state = "shipping_skipped"

        order = await flow.refresh()

        assert order["checkoutState"] == "shipping_skipped"
        assert flow.state is CheckoutState.CART

    @pytest.mark.asyncio
    async def test_platform_refuses_out_of_order_calls(self, ctx) -> None:
        """Raw out-of-order calls are refused and leave the state unchanged."""
        flow = await started_flow(ctx)
        await flow.add_item_or_fail("KNITTED_CAP_VAR")

        response = await flow.client.patch(flow.order_path("complete"), {})

        assert response.status_code == 422
        assert (await flow.refresh())["checkoutState"] == "cart"

    @pytest.mark.asyncio
    async def test_stale_checkout_state_fails(self, ctx, behaviour) -> None:
        """A platform that does not advance the state fails the step."""
        behaviour.enable(Fault.STALE_CHECKOUT_STATE)
        flow = await started_flow(ctx)
        await flow.add_item_or_fail("KNITTED_CAP_VAR")

        with pytest.raises(ScenarioAssertionError) as exc_info:
            await flow.address()

        assert exc_info.value.expected == "addressed"
        assert exc_info.value.actual == "cart"

    @pytest.mark.asyncio
    async def test_addressing_empty_cart_fails(self, ctx) -> None:
        """An empty cart cannot be addressed."""
        flow = await started_flow(ctx)

        with pytest.raises(ScenarioAssertionError) as exc_info:
            await flow.address()

        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_cart_registered_and_forgotten(self, ctx) -> None:
        """A deleted cart is no longer tracked for teardown."""
        flow = await started_flow(ctx)
        assert [t for t, _ in ctx.created.carts] == [flow.token]

        response = await flow.delete()

        assert response.status_code == 204
        assert ctx.created.carts == []

    @pytest.mark.asyncio
    async def test_change_quantity_and_remove(self, ctx) -> None:
        """Line items can be changed and removed."""
        flow = await started_flow(ctx)
        order = await flow.add_item_or_fail("KNITTED_CAP_VAR")
        item_id = str(order["items"][0]["id"])

        response = await flow.change_quantity(item_id, 4)
        assert response.status_code == 200
        assert flow.latest["items"][0]["quantity"] == 4

        response = await flow.remove_item(item_id)
        assert response.status_code == 204
        assert (await flow.refresh())["items"] == []
