"""Invariant checks for scenario steps.

Every check raises ``ScenarioAssertionError`` with the expected value,
the observed value and, when a response is involved, its status code and
body text. Setup checks raise ``SetupError`` instead, so the runner can
tell a broken prerequisite from a broken invariant.
"""

from collections.abc import Iterable
from typing import Any

import httpx
import structlog

from shopqa.domain.checkout import CheckoutState
from shopqa.domain.exceptions import ScenarioAssertionError, SetupError
from shopqa.domain.policies import CartAccessContract, StockPolicy
from shopqa.domain.value_objects import LineItem, OrderTotals, StockLevel, line_items

logger = structlog.get_logger()

VALIDATION_REJECTION = frozenset({400, 422})
AUTHENTICATION_FAILURE = frozenset({401, 403})
MAX_BODY_CHARS = 2000


def body_text(response: httpx.Response | None) -> str | None:
    """Get a response body for diagnostics, truncated."""
    if response is None:
        return None
    text = response.text
    if len(text) > MAX_BODY_CHARS:
        return text[:MAX_BODY_CHARS] + "...[truncated]"
    return text


def _json_or_none(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    return response.json()


def fail(
    step: str,
    expected: Any,
    actual: Any,
    response: httpx.Response | None = None,
) -> ScenarioAssertionError:
    """Build an assertion error carrying response diagnostics."""
    return ScenarioAssertionError(
        step,
        expected=expected,
        actual=actual,
        status_code=response.status_code if response is not None else None,
        body=body_text(response),
    )


# ============================================================================
# Response Status
# ============================================================================


def require_ok(response: httpx.Response, step: str) -> Any:
    """Check a setup call succeeded.

    Args:
        response: Response of the prerequisite call.
        step: Setup step name.

    Returns:
        Decoded JSON body, or None for an empty body.

    Raises:
        SetupError: If the response is not 2xx.
    """
    if not response.is_success:
        raise SetupError(step, status_code=response.status_code, body=body_text(response))
    return _json_or_none(response)


def expect_ok(response: httpx.Response, step: str) -> Any:
    """Check a scenario call succeeded.

    Returns:
        Decoded JSON body, or None for an empty body.

    Raises:
        ScenarioAssertionError: If the response is not 2xx.
    """
    if not response.is_success:
        raise fail(step, "2xx", response.status_code, response)
    return _json_or_none(response)


def expect_status(
    response: httpx.Response, allowed: Iterable[int], step: str
) -> int:
    """Check a response status is one of the allowed codes.

    Returns:
        The observed status code.

    Raises:
        ScenarioAssertionError: If the status is not allowed.
    """
    allowed = sorted(set(allowed))
    if response.status_code not in allowed:
        raise fail(step, f"status in {allowed}", response.status_code, response)
    return response.status_code


def expect_not_status(response: httpx.Response, forbidden: int, step: str) -> int:
    """Check a response status is anything but ``forbidden``."""
    if response.status_code == forbidden:
        raise fail(step, f"status != {forbidden}", response.status_code, response)
    return response.status_code


def expect_rejected(response: httpx.Response, step: str) -> int:
    """Check invalid input was rejected with a validation status (400/422)."""
    if response.is_success:
        raise fail(step, "validation rejection", response.status_code, response)
    return expect_status(response, VALIDATION_REJECTION, step)


# ============================================================================
# Values
# ============================================================================


def expect_equal(
    step: str, expected: Any, actual: Any, response: httpx.Response | None = None
) -> None:
    """Check two values are equal."""
    if expected != actual:
        raise fail(step, expected, actual, response)


def expect_greater(
    step: str, actual: Any, threshold: Any, response: httpx.Response | None = None
) -> None:
    """Check ``actual > threshold``."""
    if actual is None or not actual > threshold:
        raise fail(step, f"> {threshold}", actual, response)


def expect_at_least(
    step: str, actual: Any, threshold: Any, response: httpx.Response | None = None
) -> None:
    """Check ``actual >= threshold``."""
    if actual is None or not actual >= threshold:
        raise fail(step, f">= {threshold}", actual, response)


def expect_at_most(
    step: str, actual: Any, threshold: Any, response: httpx.Response | None = None
) -> None:
    """Check ``actual <= threshold``."""
    if actual is None or not actual <= threshold:
        raise fail(step, f"<= {threshold}", actual, response)


def expect_contains(
    step: str, container: Any, member: Any, response: httpx.Response | None = None
) -> None:
    """Check ``member in container``."""
    if container is None or member not in container:
        raise fail(step, f"contains {member!r}", container, response)


def expect_present(
    step: str, body: dict[str, Any], key: str, response: httpx.Response | None = None
) -> Any:
    """Check a key exists in a body and return its value."""
    if key not in body or body[key] is None:
        raise fail(step, f"field '{key}' present", sorted(body), response)
    return body[key]


# ============================================================================
# Checkout Invariants
# ============================================================================


def expect_checkout_state(
    order: dict[str, Any],
    state: CheckoutState,
    step: str,
    response: httpx.Response | None = None,
) -> None:
    """Check the order's ``checkoutState`` field."""
    expect_equal(f"{step}: checkoutState", state.value, order.get("checkoutState"), response)


def check_subtotal_identity(
    item: LineItem, step: str, response: httpx.Response | None = None
) -> int:
    """Check ``subtotal == unitPrice * quantity`` and ``total >= subtotal``.

    Platforms that omit the ``subtotal`` field are checked against the
    computed value.

    Returns:
        The verified subtotal.
    """
    subtotal = item.subtotal if item.subtotal is not None else item.expected_subtotal
    expect_equal(
        f"{step}: subtotal == unitPrice x quantity",
        item.expected_subtotal,
        subtotal,
        response,
    )
    expect_at_least(f"{step}: total >= subtotal", item.total, subtotal, response)
    logger.info(
        "Line item arithmetic verified",
        unit_price=item.unit_price,
        quantity=item.quantity,
        subtotal=subtotal,
        total=item.total,
        adjustments=item.total - subtotal,
    )
    return subtotal


def check_order_totals(
    totals: OrderTotals,
    step: str,
    tolerance: int = 1,
    response: httpx.Response | None = None,
) -> str:
    """Check order totals add up.

    The platform either adds taxes on top of items and shipping or
    includes them in both; the total must match one of the two within
    ``tolerance`` (rounding).

    Returns:
        ``"included"`` or ``"separate"``, the tax mode that matched.
    """
    expect_greater(f"{step}: total > 0", totals.total, 0, response)
    expect_at_least(f"{step}: total >= itemsTotal", totals.total, totals.items_total, response)

    if abs(totals.total - totals.with_included_tax) <= tolerance:
        mode = "included"
    elif abs(totals.total - totals.with_separate_tax) <= tolerance:
        mode = "separate"
    else:
        raise fail(
            f"{step}: total matches its components",
            {"included": totals.with_included_tax, "separate": totals.with_separate_tax},
            totals.total,
            response,
        )
    logger.info(
        "Order totals verified",
        items_total=totals.items_total,
        shipping_total=totals.shipping_total,
        tax_total=totals.tax_total,
        promotion_total=totals.promotion_total,
        total=totals.total,
        tax_mode=mode,
    )
    return mode


# ============================================================================
# Stock Invariants
# ============================================================================


def check_stock_non_negative(stock: StockLevel, step: str) -> None:
    """Check a tracked variant never reports negative stock."""
    if stock.tracked:
        expect_at_least(f"{step}: onHand >= 0", stock.on_hand, 0)


def detect_oversell_policy(
    response: httpx.Response,
    order: dict[str, Any] | None,
    requested: int,
    on_hand: int,
    step: str,
) -> StockPolicy:
    """Determine and verify the platform's oversell policy.

    A rejection must use a validation status. An accepted request must
    have capped every line item at the stock on hand. Either way no line
    item may exceed ``on_hand``.

    Args:
        response: Response of the add-to-cart call.
        order: Order body read after the call (ignored when rejected).
        requested: Quantity requested.
        on_hand: Tracked stock on hand.
        step: Step name.

    Returns:
        The observed policy.
    """
    if not response.is_success:
        expect_status(response, VALIDATION_REJECTION, f"{step}: oversell rejected")
        logger.info("Oversell rejected", status_code=response.status_code, requested=requested)
        return StockPolicy.REJECT

    items = line_items(order or {})
    for item in items:
        expect_at_most(f"{step}: line item quantity <= onHand", item.quantity, on_hand, response)
    logger.info(
        "Oversell capped",
        requested=requested,
        granted=[item.quantity for item in items],
        on_hand=on_hand,
    )
    return StockPolicy.CAP


def check_stock_decrement(
    initial_on_hand: int, after: StockLevel, quantity: int, step: str
) -> str:
    """Check a completed order reduced stock or put it on hold.

    Returns:
        ``"on_hand"`` if on-hand stock dropped by ``quantity``,
        ``"on_hold"`` if the units are held instead.
    """
    if after.on_hand == initial_on_hand - quantity:
        return "on_hand"
    if after.on_hand == initial_on_hand and after.on_hold >= quantity:
        return "on_hold"
    raise fail(
        step,
        f"onHand == {initial_on_hand - quantity} or onHold >= {quantity}",
        {"onHand": after.on_hand, "onHold": after.on_hold},
    )


def check_oversell_policy(
    observed: StockPolicy, expected: StockPolicy | None, step: str
) -> None:
    """Hold the platform to a configured oversell policy, if one is set."""
    if expected is not None and observed is not expected:
        raise fail(f"{step}: oversell policy", expected.value, observed.value)


# ============================================================================
# Authorization Invariants
# ============================================================================


def check_cart_access(
    response: httpx.Response, contract: CartAccessContract, step: str
) -> None:
    """Check how the platform answered a foreign identity using a cart token.

    Under ``OWNER_ONLY`` the request must be refused with 403 or 404.
    Under ``TOKEN_BEARER`` it must succeed. A platform behaving according
    to the other contract fails the check loudly in both directions.
    """
    if contract is CartAccessContract.OWNER_ONLY:
        if response.is_success:
            raise fail(
                f"{step}: foreign cart access refused (contract {contract.value})",
                f"status in {sorted(contract.denied_statuses())}",
                response.status_code,
                response,
            )
        expect_status(response, contract.denied_statuses(), step)
        return

    if not response.is_success:
        raise fail(
            f"{step}: token bearer may use cart (contract {contract.value})",
            "2xx",
            response.status_code,
            response,
        )
