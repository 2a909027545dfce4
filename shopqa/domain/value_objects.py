"""Read models for platform responses.

Small immutable views over JSON bodies returned by the API: resource
references (IRIs), hypermedia collection envelopes, line items, order
totals and stock levels. All entities are owned by the platform; these
objects only hold what a scenario reads from one response.
"""

from dataclasses import dataclass
from typing import Any, Self

from shopqa.domain.exceptions import IriParseError


# ============================================================================
# Resource References
# ============================================================================


def iri_of(reference: Any) -> str:
    """Get the IRI of an embedded resource.

    The platform embeds sub-resources either as a bare IRI string or as
    an object carrying ``@id``.

    Args:
        reference: IRI string or embedded object.

    Returns:
        The IRI string.

    Raises:
        IriParseError: If no IRI can be found.
    """
    if isinstance(reference, str) and reference:
        return reference
    if isinstance(reference, dict) and isinstance(reference.get("@id"), str):
        return reference["@id"]
    raise IriParseError(reference, "expected an IRI string or an object with '@id'")


def code_from_iri(reference: Any) -> str:
    """Extract the trailing identifier from a resource reference.

    Assumes the identifier of interest is the last path segment, e.g.
    ``/api/v2/shop/product-variants/CAP_01`` gives ``CAP_01``. A single
    trailing slash is tolerated; query strings are not expected.

    Args:
        reference: IRI string or embedded object with ``@id``.

    Returns:
        The trailing path segment.

    Raises:
        IriParseError: If the reference is empty or has no segment.
    """
    iri = iri_of(reference)
    if "?" in iri or "#" in iri:
        raise IriParseError(reference, "query strings and fragments are not supported")
    segment = iri.removesuffix("/").rsplit("/", 1)[-1]
    if not segment:
        raise IriParseError(reference, "no trailing path segment")
    return segment


# ============================================================================
# Collections
# ============================================================================


@dataclass(frozen=True)
class HydraCollection:
    """Paged collection envelope.

    Members are read from ``hydra:member`` (or ``member`` on newer API
    versions); a bare JSON array is not a valid collection response.
    """

    members: list[dict[str, Any]]
    total_items: int

    @classmethod
    def from_body(cls, body: Any) -> Self:
        """Parse a collection response body.

        Args:
            body: Decoded JSON body.

        Returns:
            HydraCollection instance.

        Raises:
            IriParseError: If the body is not a collection envelope.
        """
        if not isinstance(body, dict):
            raise IriParseError(body, "collection body is not a JSON object")
        members = body.get("hydra:member", body.get("member"))
        if not isinstance(members, list):
            raise IriParseError(body.get("@id", "<collection>"), "missing member list")
        total = body.get("hydra:totalItems", body.get("totalItems", len(members)))
        return cls(members=members, total_items=int(total))

    def first(self) -> dict[str, Any] | None:
        """Get the first member, if any."""
        return self.members[0] if self.members else None

    def codes(self) -> list[str]:
        """Get the ``code`` of every member that has one."""
        return [m["code"] for m in self.members if "code" in m]

    def find_code(self, code: str) -> dict[str, Any] | None:
        """Find a member by its ``code``."""
        return next((m for m in self.members if m.get("code") == code), None)

    def __len__(self) -> int:
        return len(self.members)


# ============================================================================
# Order Read Models
# ============================================================================


@dataclass(frozen=True)
class LineItem:
    """Line item as embedded in an order body.

    Monetary values are integers in the smallest currency unit.
    """

    id: str
    variant: str
    quantity: int
    unit_price: int
    subtotal: int | None
    total: int

    @classmethod
    def from_body(cls, data: dict[str, Any]) -> Self:
        """Create from an order ``items[]`` entry."""
        return cls(
            id=str(data.get("id")),
            variant=iri_of(data.get("variant", "")) if data.get("variant") else "",
            quantity=int(data.get("quantity", 0)),
            unit_price=int(data.get("unitPrice", 0)),
            subtotal=data.get("subtotal"),
            total=int(data.get("total", 0)),
        )

    @property
    def expected_subtotal(self) -> int:
        """Unit price multiplied by quantity."""
        return self.unit_price * self.quantity

    @property
    def variant_code(self) -> str:
        """Variant code parsed from the variant reference."""
        return code_from_iri(self.variant)


@dataclass(frozen=True)
class OrderTotals:
    """Order-level totals."""

    items_total: int
    shipping_total: int
    tax_total: int
    promotion_total: int
    total: int

    @classmethod
    def from_body(cls, data: dict[str, Any]) -> Self:
        """Create from an order body, treating missing totals as zero."""
        return cls(
            items_total=int(data.get("itemsTotal") or 0),
            shipping_total=int(data.get("shippingTotal") or 0),
            tax_total=int(data.get("taxTotal") or 0),
            promotion_total=int(data.get("orderPromotionTotal") or 0),
            total=int(data.get("total") or 0),
        )

    @property
    def with_separate_tax(self) -> int:
        """Total when taxes are added on top of items and shipping."""
        return self.items_total + self.shipping_total + self.tax_total + self.promotion_total

    @property
    def with_included_tax(self) -> int:
        """Total when taxes are already included in items and shipping."""
        return self.items_total + self.shipping_total + self.promotion_total


def line_items(order: dict[str, Any]) -> list[LineItem]:
    """Parse every line item of an order body."""
    return [LineItem.from_body(item) for item in order.get("items", [])]


def find_line_item(order: dict[str, Any], variant_code: str) -> LineItem | None:
    """Find the line item referencing a variant code.

    Args:
        order: Order body.
        variant_code: Variant code to look for.

    Returns:
        Matching line item, or None.
    """
    for item in line_items(order):
        if item.variant and item.variant_code == variant_code:
            return item
    return None


# ============================================================================
# Stock
# ============================================================================


@dataclass(frozen=True)
class StockLevel:
    """Stock fields of a product variant."""

    code: str
    on_hand: int
    on_hold: int
    tracked: bool

    @classmethod
    def from_body(cls, data: dict[str, Any]) -> Self:
        """Create from an admin product-variant body."""
        return cls(
            code=str(data.get("code", "")),
            on_hand=int(data.get("onHand") or 0),
            on_hold=int(data.get("onHold") or 0),
            tracked=bool(data.get("tracked", False)),
        )

    @property
    def available(self) -> int:
        """Units that can still be reserved."""
        return max(self.on_hand - self.on_hold, 0)
