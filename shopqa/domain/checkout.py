"""Checkout state machine as observed through the shop API.

The platform moves an order through a fixed sequence of checkout
states. The harness mirrors that sequence so it can refuse to attempt a
step whose prerequisite has not been observed, and so it can detect a
platform that skips or regresses a state.
"""

from dataclasses import dataclass, field
from enum import Enum

from shopqa.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Checkout State Machine
# ============================================================================


class CheckoutState(str, Enum):
    """Order checkout progress.

    State diagram:
        CART
          │ address
          ▼
        ADDRESSED
          │ select shipping
          ▼
        SHIPPING_SELECTED
          │ select payment
          ▼
        PAYMENT_SELECTED
          │ complete
          ▼
        COMPLETED
    """

    CART = "cart"
    ADDRESSED = "addressed"
    SHIPPING_SELECTED = "shipping_selected"
    PAYMENT_SELECTED = "payment_selected"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        """Position of the state in the checkout sequence."""
        return _CHECKOUT_SEQUENCE.index(self)

    def can_transition_to(self, target: "CheckoutState") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _CHECKOUT_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["CheckoutState"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return sorted(_CHECKOUT_TRANSITIONS.get(self, set()), key=lambda s: s.rank)

    def next_state(self) -> "CheckoutState | None":
        """Get the state that follows this one.

        Returns:
            The next state, or None for the terminal state.
        """
        if self.is_terminal():
            return None
        return _CHECKOUT_SEQUENCE[self.rank + 1]

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state.

        Returns:
            True if no further transitions are possible.
        """
        return len(_CHECKOUT_TRANSITIONS.get(self, set())) == 0


_CHECKOUT_SEQUENCE: list[CheckoutState] = [
    CheckoutState.CART,
    CheckoutState.ADDRESSED,
    CheckoutState.SHIPPING_SELECTED,
    CheckoutState.PAYMENT_SELECTED,
    CheckoutState.COMPLETED,
]

# Strictly forward, one step at a time
_CHECKOUT_TRANSITIONS: dict[CheckoutState, set[CheckoutState]] = {
    CheckoutState.CART: {CheckoutState.ADDRESSED},
    CheckoutState.ADDRESSED: {CheckoutState.SHIPPING_SELECTED},
    CheckoutState.SHIPPING_SELECTED: {CheckoutState.PAYMENT_SELECTED},
    CheckoutState.PAYMENT_SELECTED: {CheckoutState.COMPLETED},
    CheckoutState.COMPLETED: set(),  # Terminal state
}


def validate_checkout_transition(
    token_value: str,
    current_state: CheckoutState,
    target_state: CheckoutState,
) -> None:
    """Validate and raise if a checkout transition is invalid.

    Args:
        token_value: Cart token for the error message.
        current_state: Current checkout state.
        target_state: Target checkout state.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_state.can_transition_to(target_state):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=token_value,
            current_state=current_state.value,
            target_state=target_state.value,
            allowed_transitions=[s.value for s in current_state.allowed_transitions()],
        )


# ============================================================================
# Post-checkout States
# ============================================================================


class OrderState(str, Enum):
    """Order state values the scenarios assert on."""

    CART = "cart"
    NEW = "new"


class ShipmentState(str, Enum):
    """Shipment state values the scenarios assert on."""

    READY = "ready"
    SHIPPED = "shipped"


# ============================================================================
# Observed Progress
# ============================================================================


@dataclass
class CheckoutProgress:
    """Checkout states observed for one cart, in order.

    Enforces monotonic progression: every observation must be the
    current state (idempotent re-read) or its single successor.
    """

    token_value: str
    history: list[CheckoutState] = field(default_factory=lambda: [CheckoutState.CART])

    @property
    def current(self) -> CheckoutState:
        """Most recently observed state."""
        return self.history[-1]

    def require(self, prerequisite: CheckoutState, target: CheckoutState) -> None:
        """Check a step may run before issuing any request for it.

        Args:
            prerequisite: State the order must be in.
            target: State the step will move the order to.

        Raises:
            InvalidStateTransitionError: If the order is not in the prerequisite state.
        """
        if self.current is not prerequisite:
            raise InvalidStateTransitionError(
                entity_type="Order",
                entity_id=self.token_value,
                current_state=self.current.value,
                target_state=target.value,
                allowed_transitions=[s.value for s in self.current.allowed_transitions()],
            )

    def observe(self, state: CheckoutState) -> None:
        """Record a state read from the latest response.

        Args:
            state: Observed checkout state.

        Raises:
            InvalidStateTransitionError: If the observation skips or regresses.
        """
        if state is self.current:
            return
        validate_checkout_transition(self.token_value, self.current, state)
        self.history.append(state)
