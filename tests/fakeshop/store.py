"""In-memory state of the fake shop.

Models only what the scenarios observe: credentials and tokens,
products and variants with stock, carts moving through the checkout
states, shipments and payments. Operations raise ``ShopError`` with the
status code the platform would answer.
"""

import itertools
import secrets
from dataclasses import dataclass, field
from typing import Any

from shopqa.domain.checkout import CheckoutState, OrderState, ShipmentState
from shopqa.domain.policies import CartAccessContract, StockPolicy
from tests.fakeshop.behaviour import Fault, PlatformBehaviour, StockMode

API = "/api/v2"
CHANNEL_CODE = "FASHION_WEB"
CURRENCY_CODE = "USD"
ADMIN_EMAIL = "sylius@example.com"
ADMIN_PASSWORD = "sylius"

SHIPPING_METHODS = {"ups": ("UPS", 850), "dhl_express": ("DHL Express", 1500)}
PAYMENT_METHODS = {"bank_transfer": "Bank transfer", "cash_on_delivery": "Cash on delivery"}


class ShopError(Exception):
    """A request the platform refuses."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


# ============================================================================
# Entities
# ============================================================================


@dataclass
class Identity:
    role: str  # "admin" or "shop"
    customer_id: int | None = None


@dataclass
class Customer:
    id: int
    email: str
    profile: dict[str, Any]
    password: str | None = None


@dataclass
class Product:
    code: str
    name: str
    slug: str
    channels: list[str]
    enabled: bool = True


@dataclass
class Variant:
    code: str
    product_code: str
    price: int
    on_hand: int
    tracked: bool
    on_hold: int = 0
    hidden_reads: int = 0


@dataclass
class Item:
    id: int
    variant_code: str
    quantity: int
    unit_price: int


@dataclass
class Shipment:
    id: int
    order_token: str
    state: str = "cart"
    method: str | None = None


@dataclass
class Payment:
    id: int
    state: str = "cart"
    method: str | None = None


@dataclass
class Order:
    token: str
    owner_id: int | None
    locale: str
    checkout_state: str = CheckoutState.CART.value
    state: str = OrderState.CART.value
    email: str | None = None
    items: list[Item] = field(default_factory=list)
    shipping_address: dict[str, Any] | None = None
    billing_address: dict[str, Any] | None = None
    shipments: list[Shipment] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)
    shipping_total: int = 0
    shipping_state: str = "cart"


# ============================================================================
# Store
# ============================================================================


class ShopStore:
    """Whole platform state."""

    def __init__(self, behaviour: PlatformBehaviour | None = None) -> None:
        self.behaviour = behaviour or PlatformBehaviour()
        self.customers: dict[int, Customer] = {}
        self.products: dict[str, Product] = {}
        self.variants: dict[str, Variant] = {}
        self.orders: dict[str, Order] = {}
        self.shipments: dict[int, Shipment] = {}
        self.payments: dict[int, Payment] = {}
        self.tokens: dict[str, Identity] = {}
        self.catalog_reads = 0
        self._ids = itertools.count(1)
        self._seed()

    def _seed(self) -> None:
        self.add_product("KNITTED_CAP", "Knitted wool-blend cap")
        self.add_variant("KNITTED_CAP", "KNITTED_CAP_VAR", price=2500, on_hand=1000, tracked=False)
        self.add_product("SUMMER_DRESS", "Summer breeze dress")
        self.add_variant("SUMMER_DRESS", "SUMMER_DRESS_VAR", price=4999, on_hand=50, tracked=True)

    def next_id(self) -> int:
        return next(self._ids)

    # =========================================================================
    # Authentication
    # =========================================================================

    def issue_admin_token(self, email: str, password: str) -> str:
        if (email, password) != (ADMIN_EMAIL, ADMIN_PASSWORD):
            raise ShopError(401, "Invalid credentials.")
        return self._issue(Identity("admin"))

    def issue_shop_token(self, email: str, password: str) -> tuple[str, Customer | None]:
        if self.behaviour.admin_is_customer and (email, password) == (ADMIN_EMAIL, ADMIN_PASSWORD):
            return self._issue(Identity("shop")), None
        customer = self.customer_by_email(email)
        if customer is None or customer.password is None or customer.password != password:
            raise ShopError(401, "Invalid credentials.")
        return self._issue(Identity("shop", customer.id)), customer

    def _issue(self, identity: Identity) -> str:
        token = f"{identity.role}.{secrets.token_urlsafe(24)}"
        self.tokens[token] = identity
        return token

    def identify(self, authorization: str | None) -> Identity | None:
        """Resolve an Authorization header.

        No header means anonymous; anything but a known bearer token is
        refused.
        """
        if authorization is None:
            return None
        scheme, _, token = authorization.partition(" ")
        if scheme != "Bearer" or not token:
            raise ShopError(401, "Invalid authorization header.")
        identity = self.tokens.get(token)
        if identity is None:
            raise ShopError(401, "Invalid JWT Token")
        return identity

    # =========================================================================
    # Customers
    # =========================================================================

    def customer_by_email(self, email: str) -> Customer | None:
        return next((c for c in self.customers.values() if c.email == email), None)

    def create_customer(self, payload: dict[str, Any]) -> Customer:
        email = payload.get("email")
        if not email:
            raise ShopError(422, "email: This value should not be blank.")
        if self.customer_by_email(email) is not None:
            raise ShopError(422, "email: This email is already used.")
        user = payload.get("user") or {}
        profile = {k: v for k, v in payload.items() if k not in ("email", "user", "password")}
        customer = Customer(
            id=self.next_id(),
            email=email,
            profile=profile,
            password=user.get("plainPassword"),
        )
        self.customers[customer.id] = customer
        return customer

    def delete_customer_user(self, customer_id: int) -> None:
        customer = self.customers.get(customer_id)
        if customer is None or customer.password is None:
            raise ShopError(404, "Not Found")
        customer.password = None
        self.tokens = {
            t: i for t, i in self.tokens.items() if i.customer_id != customer_id
        }

    # =========================================================================
    # Catalog
    # =========================================================================

    def add_product(self, code: str, name: str, slug: str | None = None) -> Product:
        if code in self.products:
            raise ShopError(422, "code: The product with given code already exists.")
        product = Product(code, name, slug or code.lower(), channels=[CHANNEL_CODE])
        self.products[code] = product
        return product

    def add_variant(
        self, product_code: str, code: str, price: int, on_hand: int, tracked: bool
    ) -> Variant:
        if product_code not in self.products:
            raise ShopError(422, "product: Product not found.")
        if code in self.variants:
            raise ShopError(422, "code: The variant with given code already exists.")
        variant = Variant(
            code,
            product_code,
            price,
            on_hand,
            tracked,
            hidden_reads=self.behaviour.visibility_lag,
        )
        self.variants[code] = variant
        return variant

    def product(self, code: str) -> Product:
        if code not in self.products:
            raise ShopError(404, "Not Found")
        return self.products[code]

    def variant(self, code: str) -> Variant:
        if code not in self.variants:
            raise ShopError(404, "Not Found")
        return self.variants[code]

    def delete_product(self, code: str) -> None:
        self.product(code)
        del self.products[code]
        for variant_code in [v.code for v in self.variants.values() if v.product_code == code]:
            del self.variants[variant_code]

    def shop_variant(self, code: str) -> Variant:
        variant = self.variant(code)
        if variant.hidden_reads > 0:
            variant.hidden_reads -= 1
            raise ShopError(404, "Not Found")
        return variant

    def search_products(self, name: str | None) -> list[Product]:
        if name and "'" in name and self.behaviour.has(Fault.SERVER_ERROR_ON_FILTER):
            raise ShopError(500, "SQLSTATE[42000]: Syntax error")
        products = [p for p in self.products.values() if p.enabled]
        if name:
            products = [p for p in products if name.lower() in p.name.lower()]
        return products

    def count_catalog_read(self) -> None:
        self.catalog_reads += 1
        limit = self.behaviour.rate_limit
        if limit is not None and self.catalog_reads > limit:
            raise ShopError(429, "Too Many Requests")

    # =========================================================================
    # Carts
    # =========================================================================

    def create_cart(self, identity: Identity | None, locale: str) -> Order:
        owner = identity.customer_id if identity and identity.role == "shop" else None
        order = Order(token=secrets.token_urlsafe(16), owner_id=owner, locale=locale)
        if owner is not None:
            order.email = self.customers[owner].email
        self.orders[order.token] = order
        return order

    def order(self, token: str) -> Order:
        if token not in self.orders:
            raise ShopError(404, "Not Found")
        return self.orders[token]

    def shop_order(self, token: str, identity: Identity | None, write: bool = False) -> Order:
        """Get an order on behalf of a shop identity.

        Foreign identities get 404; token bearers may write to foreign
        carts when the platform follows the token-bearer contract.
        """
        order = self.order(token)
        if order.owner_id is None:
            return order
        if identity is not None and identity.customer_id == order.owner_id:
            return order
        if write and self.behaviour.cart_access is CartAccessContract.TOKEN_BEARER:
            return order
        if not write and self.behaviour.has(Fault.LEAK_FOREIGN_CARTS):
            return order
        raise ShopError(404, "Not Found")

    def delete_cart(self, order: Order) -> None:
        if order.state != OrderState.CART.value:
            raise ShopError(404, "Not Found")
        if not self.behaviour.has(Fault.KEEP_DELETED_CARTS):
            del self.orders[order.token]

    def _require_cart(self, order: Order) -> None:
        if order.state != OrderState.CART.value:
            raise ShopError(422, "Order is no longer a cart.")

    def _granted_quantity(self, variant: Variant, quantity: int, already: int) -> int:
        if quantity < 1 and not self.behaviour.has(Fault.ACCEPT_ZERO_QUANTITY):
            raise ShopError(422, "quantity: Quantity must be greater than 0.")
        if not variant.tracked:
            return quantity
        available = variant.on_hand - variant.on_hold - already
        if quantity <= available:
            return quantity
        if self.behaviour.oversell is StockPolicy.REJECT or available < 1:
            raise ShopError(
                422, f"productVariant: The product variant {variant.code} does not have sufficient stock."
            )
        return available

    def add_item(self, order: Order, variant_iri: str, quantity: int) -> None:
        self._require_cart(order)
        code = str(variant_iri).rstrip("/").rsplit("/", 1)[-1]
        if code not in self.variants:
            raise ShopError(422, "productVariant: Product variant not found.")
        variant = self.variants[code]

        existing = next((i for i in order.items if i.variant_code == code), None)
        already = existing.quantity if existing else 0
        granted = self._granted_quantity(variant, quantity, already)
        if granted < 1:
            return
        if existing:
            existing.quantity += granted
        else:
            order.items.append(Item(self.next_id(), code, granted, variant.price))

    def change_quantity(self, order: Order, item_id: int, quantity: int) -> None:
        self._require_cart(order)
        item = self._item(order, item_id)
        variant = self.variants[item.variant_code]
        item.quantity = self._granted_quantity(variant, quantity, 0)

    def remove_item(self, order: Order, item_id: int) -> None:
        self._require_cart(order)
        order.items.remove(self._item(order, item_id))

    def _item(self, order: Order, item_id: int) -> Item:
        item = next((i for i in order.items if i.id == item_id), None)
        if item is None:
            raise ShopError(404, "Not Found")
        return item

    # =========================================================================
    # Checkout
    # =========================================================================

    def address(self, order: Order, payload: dict[str, Any]) -> None:
        self._require_cart(order)
        if not order.items:
            raise ShopError(422, "An empty order cannot be processed.")
        shipping = payload.get("shippingAddress")
        if not shipping:
            raise ShopError(422, "shippingAddress: This value should not be blank.")
        order.shipping_address = dict(shipping)
        order.billing_address = dict(payload.get("billingAddress") or shipping)
        if payload.get("email"):
            order.email = payload["email"]
        if not order.shipments:
            shipment = Shipment(self.next_id(), order.token)
            payment = Payment(self.next_id())
            self.shipments[shipment.id] = shipment
            self.payments[payment.id] = payment
            order.shipments.append(shipment)
            order.payments.append(payment)
        if not self.behaviour.has(Fault.STALE_CHECKOUT_STATE):
            order.checkout_state = CheckoutState.ADDRESSED.value

    def shipment_of(self, order: Order, shipment_id: int) -> Shipment:
        shipment = next((s for s in order.shipments if s.id == shipment_id), None)
        if shipment is None:
            raise ShopError(404, "Not Found")
        return shipment

    def payment_of(self, order: Order, payment_id: int) -> Payment:
        payment = next((p for p in order.payments if p.id == payment_id), None)
        if payment is None:
            raise ShopError(404, "Not Found")
        return payment

    def shipping_methods(self) -> dict[str, tuple[str, int]]:
        if self.behaviour.has(Fault.NO_SHIPPING_METHODS):
            return {}
        return SHIPPING_METHODS

    def select_shipping(self, order: Order, shipment: Shipment, method_iri: str) -> None:
        self._require_state(order, CheckoutState.ADDRESSED, CheckoutState.SHIPPING_SELECTED)
        code = str(method_iri).rsplit("/", 1)[-1]
        if code not in self.shipping_methods():
            raise ShopError(422, "shippingMethod: Shipping method not available.")
        shipment.method = code
        fee = SHIPPING_METHODS[code][1]
        order.shipping_total = 0 if self.behaviour.has(Fault.FREE_SHIPPING) else fee
        order.checkout_state = CheckoutState.SHIPPING_SELECTED.value

    def select_payment(self, order: Order, payment: Payment, method_iri: str) -> None:
        self._require_state(
            order, CheckoutState.SHIPPING_SELECTED, CheckoutState.PAYMENT_SELECTED
        )
        code = str(method_iri).rsplit("/", 1)[-1]
        if code not in PAYMENT_METHODS:
            raise ShopError(422, "paymentMethod: Payment method not available.")
        payment.method = code
        order.checkout_state = CheckoutState.PAYMENT_SELECTED.value

    def complete(self, order: Order) -> None:
        self._require_state(order, CheckoutState.PAYMENT_SELECTED)
        order.checkout_state = CheckoutState.COMPLETED.value
        order.state = OrderState.NEW.value
        order.shipping_state = ShipmentState.READY.value
        for shipment in order.shipments:
            shipment.state = ShipmentState.READY.value
        for payment in order.payments:
            payment.state = "new"
        for item in order.items:
            variant = self.variants.get(item.variant_code)
            if variant is None or not variant.tracked:
                continue
            if self.behaviour.stock_mode is StockMode.ON_HAND:
                variant.on_hand -= item.quantity
            else:
                variant.on_hold += item.quantity
            if self.behaviour.has(Fault.NEGATIVE_STOCK):
                variant.on_hand = -1

    def _require_state(self, order: Order, *states: CheckoutState) -> None:
        if self.behaviour.has(Fault.SKIPPED_CHECKOUT_STEPS):
            return
        if order.checkout_state not in {s.value for s in states}:
            raise ShopError(
                422, f"Transition is not possible from '{order.checkout_state}'."
            )

    # =========================================================================
    # Fulfilment
    # =========================================================================

    def shipment(self, shipment_id: int) -> Shipment:
        if shipment_id not in self.shipments:
            raise ShopError(404, "Not Found")
        return self.shipments[shipment_id]

    def ship(self, shipment: Shipment) -> None:
        if shipment.state != ShipmentState.READY.value:
            raise ShopError(422, "Shipment cannot be shipped.")
        shipment.state = ShipmentState.SHIPPED.value
        order = self.orders.get(shipment.order_token)
        if order is not None and all(
            s.state == ShipmentState.SHIPPED.value for s in order.shipments
        ):
            order.shipping_state = ShipmentState.SHIPPED.value

    # =========================================================================
    # Totals
    # =========================================================================

    def item_amounts(self, item: Item) -> tuple[int, int, int]:
        """Get (subtotal, tax, total) of a line item."""
        subtotal = item.unit_price * item.quantity
        tax = round(subtotal * self.behaviour.tax_rate_percent / 100)
        total = subtotal + tax if self.behaviour.tax_included else subtotal
        if self.behaviour.has(Fault.WRONG_SUBTOTAL):
            subtotal += 1
        return subtotal, tax, total

    def totals(self, order: Order) -> dict[str, int]:
        items_total = 0
        tax_total = 0
        for item in order.items:
            _, tax, total = self.item_amounts(item)
            items_total += total
            tax_total += tax
        total = items_total + order.shipping_total
        if not self.behaviour.tax_included:
            total += tax_total
        return {
            "itemsTotal": items_total,
            "shippingTotal": order.shipping_total,
            "taxTotal": tax_total,
            "orderPromotionTotal": 0,
            "total": total,
        }
