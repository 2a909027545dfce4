"""Best-effort teardown of entities created by a scenario.

Teardown runs after every scenario whatever its outcome. Each deletion
is attempted independently; a 404 means the entity is already gone and
counts as success. Any other failure is logged and reported, never
raised: cleanup is not a correctness assertion.
"""

from dataclasses import dataclass, field
from enum import Enum

import httpx
import structlog

from shopqa.domain.exceptions import HarnessError
from shopqa.infrastructure.config import Settings
from shopqa.infrastructure.http_client import AuthenticatedClient

logger = structlog.get_logger()


class DeletionOutcome(str, Enum):
    """Result of one deletion attempt."""

    DELETED = "deleted"
    MISSING = "missing"  # 404, already gone
    FAILED = "failed"


@dataclass
class CreatedEntities:
    """References to platform entities a scenario created.

    Carts remember the client that owns them, because only the owning
    customer may delete a cart.
    """

    carts: list[tuple[str, AuthenticatedClient]] = field(default_factory=list)
    products: list[str] = field(default_factory=list)
    customers: list[str] = field(default_factory=list)

    def add_cart(self, token_value: str, owner: AuthenticatedClient) -> None:
        self.carts.append((token_value, owner))

    def add_product(self, code: str) -> None:
        self.products.append(code)

    def add_customer(self, customer_id: str) -> None:
        self.customers.append(str(customer_id))

    def forget_cart(self, token_value: str) -> None:
        """Stop tracking a cart (it has been deleted by the scenario)."""
        self.carts = [(t, c) for t, c in self.carts if t != token_value]

    def __len__(self) -> int:
        return len(self.carts) + len(self.products) + len(self.customers)


@dataclass
class TeardownReport:
    """What teardown managed to remove."""

    deleted: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def record(self, label: str, outcome: DeletionOutcome) -> None:
        {
            DeletionOutcome.DELETED: self.deleted,
            DeletionOutcome.MISSING: self.missing,
            DeletionOutcome.FAILED: self.failed,
        }[outcome].append(label)

    @property
    def clean(self) -> bool:
        """Whether nothing was left behind."""
        return not self.failed


async def delete_idempotently(
    client: AuthenticatedClient | None, endpoint: str, label: str
) -> DeletionOutcome:
    """Delete one entity, treating not-found as success.

    Args:
        client: Client allowed to delete the entity.
        endpoint: DELETE endpoint.
        label: Entity label for logs.

    Returns:
        Deletion outcome. Never raises.
    """
    if client is None:
        logger.warning("Cleanup skipped, no client available", entity=label)
        return DeletionOutcome.FAILED
    try:
        response = await client.delete(endpoint)
    except (httpx.HTTPError, HarnessError) as e:
        logger.warning("Cleanup request failed", entity=label, error=str(e))
        return DeletionOutcome.FAILED

    if response.is_success:
        return DeletionOutcome.DELETED
    if response.status_code == 404:
        return DeletionOutcome.MISSING
    logger.warning(
        "Cleanup warning",
        entity=label,
        status_code=response.status_code,
        body=response.text[:500],
    )
    return DeletionOutcome.FAILED


async def teardown(
    created: CreatedEntities,
    admin: AuthenticatedClient | None,
    settings: Settings,
) -> TeardownReport:
    """Delete everything a scenario created.

    Carts go first (they reference variants and customers), then
    products, then customer credentials. Customer profiles stay on the
    platform for order history; only their shop users are removed.

    Args:
        created: Entities to delete.
        admin: Authenticated admin client, if the scenario had one.
        settings: Harness settings.

    Returns:
        Report of deleted, missing and failed entities.
    """
    report = TeardownReport()

    for token_value, owner in created.carts:
        label = f"cart:{token_value}"
        report.record(
            label,
            await delete_idempotently(owner, settings.shop_path(f"orders/{token_value}"), label),
        )

    for code in created.products:
        label = f"product:{code}"
        report.record(
            label,
            await delete_idempotently(admin, settings.admin_path(f"products/{code}"), label),
        )

    for customer_id in created.customers:
        label = f"customer-user:{customer_id}"
        report.record(
            label,
            await delete_idempotently(
                admin, settings.admin_path(f"customers/{customer_id}/user"), label
            ),
        )

    if report.deleted or report.missing or report.failed:
        logger.info(
            "Teardown complete",
            deleted=len(report.deleted),
            missing=len(report.missing),
            failed=len(report.failed),
        )
    return report
