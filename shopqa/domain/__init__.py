"""Domain layer: checkout states, behaviour contracts, read models, errors."""

from shopqa.domain.checkout import (
    CheckoutProgress,
    CheckoutState,
    OrderState,
    ShipmentState,
    validate_checkout_transition,
)
from shopqa.domain.exceptions import (
    AuthenticationError,
    HarnessError,
    InvalidStateTransitionError,
    IriParseError,
    NotAuthenticatedError,
    ScenarioAssertionError,
    ScenarioTimeoutError,
    SetupError,
    UnknownScenarioError,
    UnknownTemplateError,
)
from shopqa.domain.policies import CartAccessContract, StockPolicy
from shopqa.domain.value_objects import (
    HydraCollection,
    LineItem,
    OrderTotals,
    StockLevel,
    code_from_iri,
    find_line_item,
    iri_of,
    line_items,
)

__all__ = [
    "AuthenticationError",
    "CartAccessContract",
    "CheckoutProgress",
    "CheckoutState",
    "HarnessError",
    "HydraCollection",
    "InvalidStateTransitionError",
    "IriParseError",
    "LineItem",
    "NotAuthenticatedError",
    "OrderState",
    "OrderTotals",
    "ScenarioAssertionError",
    "ScenarioTimeoutError",
    "SetupError",
    "ShipmentState",
    "StockLevel",
    "StockPolicy",
    "UnknownScenarioError",
    "UnknownTemplateError",
    "code_from_iri",
    "find_line_item",
    "iri_of",
    "line_items",
    "validate_checkout_transition",
]
