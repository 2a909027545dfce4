"""Bearer-token HTTP clients for the platform API.

Thin pass-through clients: they attach the bearer token and the
content-negotiation headers, and return the raw ``httpx.Response`` so
scenarios can assert on status codes and bodies themselves. There is no
retry and no caching.

The admin and shop roles share their request contract through a
``BearerSession`` they each own, rather than through a base class.
"""

import time
from types import TracebackType
from typing import Any, Protocol, Self

import httpx
import structlog

from shopqa.domain.exceptions import AuthenticationError, NotAuthenticatedError
from shopqa.infrastructure.config import Settings

logger = structlog.get_logger()

LD_JSON = "application/ld+json"
MERGE_PATCH_JSON = "application/merge-patch+json"


def build_http_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Create an HTTP client bound to the platform base URL.

    Args:
        settings: Harness settings.
        transport: Optional transport (in-process app, mock transport).
        headers: Default headers sent with every request.

    Returns:
        New AsyncClient. The caller owns it and must close it.
    """
    return httpx.AsyncClient(
        base_url=settings.base_url.rstrip("/"),
        timeout=settings.request_timeout,
        transport=transport,
        headers=headers,
    )


async def _send(
    http: httpx.AsyncClient,
    method: str,
    endpoint: str,
    *,
    headers: dict[str, str],
    json: Any = None,
    params: dict[str, Any] | None = None,
) -> httpx.Response:
    """Send one request and log its outcome."""
    start = time.perf_counter()
    response = await http.request(
        method,
        endpoint,
        headers=headers,
        json=json,
        params=params,
    )
    logger.debug(
        "API request",
        method=method,
        path=endpoint,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return response


# ============================================================================
# Shared Capability
# ============================================================================


class AuthenticatedClient(Protocol):
    """Request contract shared by every authenticated role client."""

    async def get(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> httpx.Response: ...

    async def post(self, endpoint: str, body: Any = None) -> httpx.Response: ...

    async def put(self, endpoint: str, body: Any = None) -> httpx.Response: ...

    async def patch(self, endpoint: str, body: Any = None) -> httpx.Response: ...

    async def delete(self, endpoint: str) -> httpx.Response: ...

    async def close(self) -> None: ...


class BearerSession:
    """Holds one bearer token and decorates requests with it.

    A session belongs to exactly one client instance. It is never shared
    between concurrently running scenarios.
    """

    def __init__(self, http: httpx.AsyncClient, role: str) -> None:
        """Initialize the session.

        Args:
            http: HTTP client the session sends through.
            role: Role label used in errors and logs.
        """
        self._http = http
        self.role = role
        self.token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """Whether a token has been acquired."""
        return self.token is not None

    async def authenticate(self, endpoint: str, email: str, password: str) -> str:
        """Exchange credentials for a token.

        Args:
            endpoint: Token endpoint path.
            email: Account email.
            password: Account password.

        Returns:
            The acquired token.

        Raises:
            AuthenticationError: If the platform does not answer 2xx with a token.
        """
        response = await _send(
            self._http,
            "POST",
            endpoint,
            headers={"Accept": "application/json"},
            json={"email": email, "password": password},
        )
        if not response.is_success:
            raise AuthenticationError(self.role, response.status_code, response.text)

        token = response.json().get("token")
        if not token:
            raise AuthenticationError(
                self.role, response.status_code, "Token missing from login response"
            )
        self.token = token
        logger.debug("Authenticated", role=self.role, email=email)
        return token

    def validate_token(self) -> None:
        """Raise if no token has been acquired yet.

        Raises:
            NotAuthenticatedError: If ``authenticate`` has not succeeded.
        """
        if self.token is None:
            raise NotAuthenticatedError(self.role)

    def headers(self, content_type: str | None = None) -> dict[str, str]:
        """Build request headers.

        Args:
            content_type: Body content type, if the request carries one.

        Returns:
            Header mapping with the bearer token.
        """
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": LD_JSON,
        }
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        content_type: str | None = None,
    ) -> httpx.Response:
        """Send an authenticated request.

        Raises:
            NotAuthenticatedError: If called before ``authenticate``.
        """
        self.validate_token()
        return await _send(
            self._http,
            method,
            endpoint,
            headers=self.headers(content_type),
            json=body,
            params=params,
        )

    async def get(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await self.request(
            "POST", endpoint, body=body if body is not None else {}, content_type=LD_JSON
        )

    async def put(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await self.request(
            "PUT", endpoint, body=body if body is not None else {}, content_type=LD_JSON
        )

    async def patch(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await self.request(
            "PATCH", endpoint, body=body if body is not None else {}, content_type=MERGE_PATCH_JSON
        )

    async def delete(self, endpoint: str) -> httpx.Response:
        return await self.request("DELETE", endpoint)


# ============================================================================
# Role Clients
# ============================================================================


class AdminClient:
    """Admin API client.

    Authenticates with the administrator credentials from settings.
    """

    role = "admin"

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the admin client.

        Args:
            settings: Harness settings.
            transport: Optional transport override.
        """
        self.settings = settings
        self._http = build_http_client(settings, transport)
        self.session = BearerSession(self._http, role=self.role)

    async def login(self) -> None:
        """Acquire (or re-acquire) an admin token.

        Raises:
            AuthenticationError: If the credentials are rejected.
        """
        await self.session.authenticate(
            self.settings.admin_token_endpoint,
            self.settings.admin_email,
            self.settings.admin_password,
        )

    async def get(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        return await self.session.get(endpoint, params=params)

    async def post(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await self.session.post(endpoint, body)

    async def put(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await self.session.put(endpoint, body)

    async def patch(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await self.session.patch(endpoint, body)

    async def delete(self, endpoint: str) -> httpx.Response:
        return await self.session.delete(endpoint)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


class ShopClient:
    """Shop (customer) API client.

    Authenticates with a customer's email and password.
    """

    role = "shop"

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the shop client.

        Args:
            settings: Harness settings.
            transport: Optional transport override.
        """
        self.settings = settings
        self.email: str | None = None
        self._http = build_http_client(settings, transport)
        self.session = BearerSession(self._http, role=self.role)

    async def login(self, email: str, password: str) -> None:
        """Acquire a customer token.

        Args:
            email: Customer email.
            password: Customer password.

        Raises:
            AuthenticationError: If the credentials are rejected.
        """
        await self.session.authenticate(self.settings.shop_token_endpoint, email, password)
        self.email = email

    async def get(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        return await self.session.get(endpoint, params=params)

    async def post(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await self.session.post(endpoint, body)

    async def put(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await self.session.put(endpoint, body)

    async def patch(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await self.session.patch(endpoint, body)

    async def delete(self, endpoint: str) -> httpx.Response:
        return await self.session.delete(endpoint)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


class PublicClient:
    """Unauthenticated client.

    Used for anonymous catalog reads and for probing the platform with
    missing, forged or malformed credentials.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the public client.

        Args:
            settings: Harness settings.
            transport: Optional transport override.
            headers: Extra headers sent with every request, verbatim.
        """
        self.settings = settings
        self.extra_headers = dict(headers or {})
        self._http = build_http_client(settings, transport)

    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        headers = {"Accept": LD_JSON, **self.extra_headers}
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    async def get(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        return await _send(
            self._http, "GET", endpoint, headers=self._headers(), params=params
        )

    async def post(self, endpoint: str, body: Any = None) -> httpx.Response:
        return await _send(
            self._http,
            "POST",
            endpoint,
            headers=self._headers("application/json"),
            json=body if body is not None else {},
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
