"""Checkout flow orchestrator.

Drives one cart through the checkout sequence with dependent shop API
calls, asserting the expected state after every step:

    start -> add items -> address -> select shipping -> select payment -> complete

Rules the flow enforces:
- A step never runs unless the previous one was observed to succeed;
  out-of-order calls raise before any request is sent.
- Identifiers for the next call (shipment, payment, method IRIs) are
  always read from the most recent response body, because the platform
  may replace sub-resources as the order evolves.
"""

from typing import Any

import httpx
import structlog

from shopqa.application.assertions import (
    expect_checkout_state,
    expect_equal,
    expect_greater,
    expect_ok,
    fail,
    require_ok,
)
from shopqa.application.cleanup import CreatedEntities
from shopqa.data.factory import build_add_item_payload, build_address_payload
from shopqa.domain.checkout import CheckoutProgress, CheckoutState, OrderState
from shopqa.domain.exceptions import InvalidStateTransitionError, SetupError
from shopqa.domain.value_objects import HydraCollection, code_from_iri, iri_of
from shopqa.infrastructure.config import Settings
from shopqa.infrastructure.http_client import ShopClient

logger = structlog.get_logger()


class CheckoutFlow:
    """State-driven checkout of one cart by one customer.

    Example:
        flow = CheckoutFlow(shop, settings, ctx.created)
        await flow.start()
        await flow.add_item_or_fail("CAP_01", 1)
        order = await flow.run_to(CheckoutState.COMPLETED)
    """

    def __init__(
        self,
        client: ShopClient,
        settings: Settings,
        created: CreatedEntities | None = None,
    ) -> None:
        """Initialize the flow.

        Args:
            client: Logged-in shop client owning the cart.
            settings: Harness settings.
            created: Registry the new cart is recorded in for teardown.
        """
        self.client = client
        self.settings = settings
        self.created = created
        self.token_value: str | None = None
        self.progress: CheckoutProgress | None = None
        self.latest: dict[str, Any] = {}
        self.last_response: httpx.Response | None = None

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def token(self) -> str:
        """Cart token value.

        Raises:
            SetupError: If the cart has not been started.
        """
        if self.token_value is None:
            raise SetupError("checkout flow", reason="cart not started")
        return self.token_value

    @property
    def state(self) -> CheckoutState:
        """Last observed checkout state."""
        return self._progress().current

    def _progress(self) -> CheckoutProgress:
        if self.progress is None:
            raise SetupError("checkout flow", reason="cart not started")
        return self.progress

    def order_path(self, suffix: str = "") -> str:
        """Build a path under this cart's order resource."""
        path = self.settings.shop_path(f"orders/{self.token}")
        return f"{path}/{suffix.lstrip('/')}" if suffix else path

    def _accept(
        self,
        body: dict[str, Any],
        response: httpx.Response,
        state: CheckoutState,
        step: str,
    ) -> dict[str, Any]:
        """Verify and record the state reached by a step."""
        expect_checkout_state(body, state, step, response)
        self._progress().observe(state)
        self.latest = body
        logger.info("Checkout step completed", token_value=self.token, checkout_state=state.value)
        return body

    def sub_resource_id(self, kind: str, step: str) -> str:
        """Read the first shipment/payment id from the latest order body."""
        entries = self.latest.get(kind) or []
        if not entries:
            raise fail(f"{step}: order exposes {kind}", ">= 1", 0, self.last_response)
        entry = entries[0]
        if isinstance(entry, dict) and entry.get("id") is not None:
            return str(entry["id"])
        return code_from_iri(entry)

    async def _eligible_methods(self, endpoint: str, step: str) -> HydraCollection:
        response = await self.client.get(endpoint)
        self.last_response = response
        methods = HydraCollection.from_body(expect_ok(response, step))
        expect_greater(f"{step}: available methods", len(methods), 0, response)
        return methods

    # =========================================================================
    # Cart
    # =========================================================================

    async def start(self, locale: str | None = None) -> dict[str, Any]:
        """Create a cart.

        Raises:
            SetupError: If the cart cannot be created or has no token.
        """
        response = await self.client.post(
            self.settings.shop_path("orders"),
            {"localeCode": locale or self.settings.locale_code},
        )
        self.last_response = response
        body = require_ok(response, "create cart")
        token_value = (body or {}).get("tokenValue")
        if not token_value:
            raise SetupError("create cart", response.status_code, response.text)

        self.token_value = token_value
        self.progress = CheckoutProgress(token_value)
        self.latest = body
        if self.created is not None:
            self.created.add_cart(token_value, self.client)
        logger.info("Cart created", token_value=token_value)
        return body

    async def refresh(self) -> dict[str, Any]:
        """Re-read the order and record its checkout state.

        Raises:
            ScenarioAssertionError: If the platform skipped or regressed a
                checkout state since the last observation.
        """
        progress = self._progress()
        response = await self.client.get(self.order_path())
        self.last_response = response
        body = expect_ok(response, "read order")
        try:
            state = CheckoutState(body.get("checkoutState"))
        except ValueError:
            state = None
        if state is not None:
            try:
                progress.observe(state)
            except InvalidStateTransitionError as e:
                allowed = [progress.current.value, *e.details["allowed_transitions"]]
                raise fail(
                    "read order: checkout progression", f"one of {allowed}", state.value, response
                ) from e
        self.latest = body
        return body

    async def add_item(self, variant_code: str, quantity: int) -> httpx.Response:
        """Add a variant to the cart.

        The response is returned unasserted so scenarios can verify
        validation rejections; on success the latest order is updated.
        """
        self._progress().require(CheckoutState.CART, CheckoutState.CART)
        response = await self.client.post(
            self.order_path("items"),
            build_add_item_payload(variant_code, quantity, self.settings.api_prefix),
        )
        self.last_response = response
        if response.is_success:
            self.latest = response.json()
        return response

    async def add_item_or_fail(self, variant_code: str, quantity: int = 1) -> dict[str, Any]:
        """Add a variant to the cart and assert it was accepted."""
        response = await self.add_item(variant_code, quantity)
        expect_ok(response, f"add {quantity} x {variant_code}")
        return self.latest

    async def change_quantity(self, item_id: str, quantity: int) -> httpx.Response:
        """Change a line item's quantity."""
        response = await self.client.patch(self.order_path(f"items/{item_id}"), {"quantity": quantity})
        self.last_response = response
        if response.is_success:
            self.latest = response.json()
        return response

    async def remove_item(self, item_id: str) -> httpx.Response:
        """Remove a line item from the cart."""
        response = await self.client.delete(self.order_path(f"items/{item_id}"))
        self.last_response = response
        return response

    async def delete(self) -> httpx.Response:
        """Delete the cart and stop tracking it for teardown."""
        response = await self.client.delete(self.order_path())
        self.last_response = response
        if response.is_success and self.created is not None:
            self.created.forget_cart(self.token)
        return response

    # =========================================================================
    # Checkout Steps
    # =========================================================================

    async def address(self, address_key: str = "us", email: str | None = None) -> dict[str, Any]:
        """Attach shipping and billing addresses.

        Asserts the order is ``addressed``, echoes the street and exposes
        at least one shipment.
        """
        self._progress().require(CheckoutState.CART, CheckoutState.ADDRESSED)
        payload = build_address_payload(address_key)
        if email:
            payload["email"] = email

        response = await self.client.put(self.order_path(), payload)
        self.last_response = response
        step = "address order"
        body = self._accept(expect_ok(response, step), response, CheckoutState.ADDRESSED, step)

        street = payload["shippingAddress"]["street"]
        expect_equal(
            f"{step}: shipping street", street, (body.get("shippingAddress") or {}).get("street"), response
        )
        expect_equal(
            f"{step}: billing street", street, (body.get("billingAddress") or {}).get("street"), response
        )
        expect_greater(f"{step}: shipments", len(body.get("shipments") or []), 0, response)
        return body

    async def select_shipping(self) -> dict[str, Any]:
        """Select the first eligible shipping method for the shipment.

        Asserts ``shipping_selected`` and a positive shipping total.
        """
        self._progress().require(CheckoutState.ADDRESSED, CheckoutState.SHIPPING_SELECTED)
        step = "select shipping"
        shipment_id = self.sub_resource_id("shipments", step)
        methods = await self._eligible_methods(
            self.order_path(f"shipments/{shipment_id}/methods"), f"{step}: list methods"
        )
        method_iri = iri_of(methods.first())

        response = await self.client.patch(
            self.order_path(f"shipments/{shipment_id}"), {"shippingMethod": method_iri}
        )
        self.last_response = response
        body = self._accept(
            expect_ok(response, step), response, CheckoutState.SHIPPING_SELECTED, step
        )
        expect_greater(f"{step}: shippingTotal", body.get("shippingTotal"), 0, response)
        return body

    async def select_payment(self, preferred: str | None = None) -> dict[str, Any]:
        """Select a payment method for the payment.

        Prefers the configured method code when the platform offers it,
        otherwise takes the first eligible one.
        """
        self._progress().require(CheckoutState.SHIPPING_SELECTED, CheckoutState.PAYMENT_SELECTED)
        step = "select payment"
        payment_id = self.sub_resource_id("payments", step)
        methods = await self._eligible_methods(
            self.order_path(f"payments/{payment_id}/methods"), f"{step}: list methods"
        )
        code = preferred or self.settings.preferred_payment_method
        method = methods.find_code(code) or methods.first()

        response = await self.client.patch(
            self.order_path(f"payments/{payment_id}"), {"paymentMethod": iri_of(method)}
        )
        self.last_response = response
        return self._accept(
            expect_ok(response, step), response, CheckoutState.PAYMENT_SELECTED, step
        )

    async def complete(self) -> dict[str, Any]:
        """Complete the order.

        Asserts ``completed``, an order state of ``new`` and a positive
        total.
        """
        self._progress().require(CheckoutState.PAYMENT_SELECTED, CheckoutState.COMPLETED)
        step = "complete order"
        response = await self.client.patch(self.order_path("complete"), {})
        self.last_response = response
        body = self._accept(expect_ok(response, step), response, CheckoutState.COMPLETED, step)
        expect_equal(f"{step}: state", OrderState.NEW.value, body.get("state"), response)
        expect_greater(f"{step}: total", body.get("total"), 0, response)
        return body

    async def run_to(
        self,
        target: CheckoutState,
        email: str | None = None,
        address_key: str = "us",
    ) -> dict[str, Any]:
        """Run the remaining checkout steps up to ``target``.

        Args:
            target: State to stop at.
            email: Optional customer email sent with the address.
            address_key: Address template key.

        Returns:
            The latest order body.
        """
        steps = {
            CheckoutState.ADDRESSED: lambda: self.address(address_key, email),
            CheckoutState.SHIPPING_SELECTED: self.select_shipping,
            CheckoutState.PAYMENT_SELECTED: self.select_payment,
            CheckoutState.COMPLETED: self.complete,
        }
        while self.state.rank < target.rank:
            await steps[self.state.next_state()]()
        return self.latest
