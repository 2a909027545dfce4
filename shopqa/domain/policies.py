"""Platform behaviour contracts the harness asserts against.

Some behaviours legitimately differ between platform configurations.
Each one is modelled as an explicit enum so a scenario asserts exactly
one contract and never accepts both silently.
"""

from enum import Enum


class StockPolicy(str, Enum):
    """How the platform handles a cart request exceeding tracked stock."""

    REJECT = "reject"  # 400/422, no line item created
    CAP = "cap"  # accepted, quantity lowered to what is on hand


class CartAccessContract(str, Enum):
    """Who may read or modify a cart identified by its token."""

    OWNER_ONLY = "owner_only"  # foreign identity gets 403/404
    TOKEN_BEARER = "token_bearer"  # anyone holding the token may use the cart

    def denied_statuses(self) -> frozenset[int]:
        """Statuses acceptable when a foreign identity is refused.

        Returns:
            Allowed status codes for a refusal.
        """
        return frozenset({403, 404})
