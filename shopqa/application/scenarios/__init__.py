"""Scenario families.

Importing this package registers every scenario with the default
registry.
"""

from shopqa.application.scenarios import (
    accounts,
    cart,
    catalog,
    checkout,
    lifecycle,
    pricing,
    security,
    stock,
)

__all__ = [
    "accounts",
    "cart",
    "catalog",
    "checkout",
    "lifecycle",
    "pricing",
    "security",
    "stock",
]
