"""Per-scenario execution context.

A ``ScenarioContext`` is built fresh for every scenario run and passed
to each step. It owns the clients the scenario opens and the registry of
entities it creates, so nothing leaks between scenarios. Sharing an
admin session across scenarios (read-only lookups) is opt-in and
explicit through ``shared_admin``.
"""

from typing import Any

import httpx
import structlog

from shopqa.application.cleanup import CreatedEntities, TeardownReport, teardown
from shopqa.data.factory import UniqueIdGenerator
from shopqa.domain.exceptions import HarnessError
from shopqa.infrastructure.config import Settings
from shopqa.infrastructure.http_client import AdminClient, PublicClient, ShopClient

logger = structlog.get_logger()


class ScenarioContext:
    """State owned by one scenario execution."""

    def __init__(
        self,
        name: str,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        shared_admin: AdminClient | None = None,
        ids: UniqueIdGenerator | None = None,
    ) -> None:
        """Initialize the context.

        Args:
            name: Scenario name, bound to every log line.
            settings: Harness settings.
            transport: Transport for every client (tests inject an in-process app).
            shared_admin: Logged-in admin session shared for read-only lookups.
            ids: Identifier source for generated data.
        """
        self.name = name
        self.settings = settings
        self.transport = transport
        self.shared_admin = shared_admin
        self.ids = ids
        self.created = CreatedEntities()
        self.log = logger.bind(scenario=name)
        self.notes: dict[str, Any] = {}
        self._admin: AdminClient | None = None
        self._clients: list[AdminClient | ShopClient | PublicClient] = []

    # =========================================================================
    # Clients
    # =========================================================================

    async def admin(self) -> AdminClient:
        """Get this scenario's own admin client, logging in on first use."""
        if self._admin is None:
            self._admin = await self.new_admin()
        return self._admin

    async def new_admin(self) -> AdminClient:
        """Open and log in a fresh admin client."""
        client = AdminClient(self.settings, transport=self.transport)
        self._clients.append(client)
        await client.login()
        return client

    async def lookup_admin(self) -> AdminClient:
        """Get an admin client for read-only lookups.

        Uses the injected shared session when there is one, otherwise the
        scenario's own admin client.
        """
        if self.shared_admin is not None:
            return self.shared_admin
        return await self.admin()

    async def shop(self, email: str, password: str | None = None) -> ShopClient:
        """Open a shop client and log in as a customer.

        Args:
            email: Customer email.
            password: Customer password (defaults to the configured one).

        Returns:
            Logged-in ShopClient owned by this scenario.
        """
        client = ShopClient(self.settings, transport=self.transport)
        self._clients.append(client)
        await client.login(email, password or self.settings.default_password)
        return client

    def public(self, headers: dict[str, str] | None = None) -> PublicClient:
        """Open an unauthenticated client with optional raw headers."""
        client = PublicClient(self.settings, transport=self.transport, headers=headers)
        self._clients.append(client)
        return client

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def teardown(self) -> TeardownReport:
        """Delete every entity this scenario created. Never raises."""
        admin = self._admin
        if admin is None and (self.created.products or self.created.customers):
            try:
                admin = await self.admin()
            except (httpx.HTTPError, HarnessError) as e:
                self.log.warning("Cleanup admin login failed", error=str(e))
        return await teardown(self.created, admin, self.settings)

    async def close(self) -> None:
        """Close every client this scenario opened."""
        for client in self._clients:
            try:
                await client.close()
            except httpx.HTTPError as e:
                self.log.warning("Client close failed", error=str(e))
        self._clients.clear()
        self._admin = None
