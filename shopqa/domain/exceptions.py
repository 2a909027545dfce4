"""Harness exceptions.

Every failure the harness raises derives from ``HarnessError`` so the
runner can classify outcomes: setup failures abort a scenario before its
state machine starts, assertion failures carry the observed response,
and timeouts are reported separately from both.
"""

from typing import Any


class HarnessError(Exception):
    """Base class for all harness exceptions."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize harness error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Setup Errors
# ============================================================================


class SetupError(HarnessError):
    """A prerequisite call (login, fixture creation) did not succeed."""

    def __init__(
        self,
        step: str,
        status_code: int | None = None,
        body: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Initialize setup error.

        Args:
            step: Name of the setup step that failed.
            status_code: HTTP status of the failing response, if any.
            body: Response body text, if any.
            reason: Extra explanation when there is no response.
        """
        message = f"Setup step '{step}' failed"
        if status_code is not None:
            message += f": {status_code} {body or ''}".rstrip()
        elif reason:
            message += f": {reason}"
        super().__init__(
            message,
            details={
                "step": step,
                "status_code": status_code,
                "body": body,
                "reason": reason,
            },
        )
        self.step = step
        self.status_code = status_code
        self.body = body


class AuthenticationError(SetupError):
    """Raised when a login call is rejected."""

    def __init__(self, role: str, status_code: int, body: str) -> None:
        """Initialize authentication error.

        Args:
            role: Role that attempted to log in ("admin" or "shop").
            status_code: HTTP status returned by the token endpoint.
            body: Response body text.
        """
        super().__init__(f"{role} login", status_code=status_code, body=body)
        self.role = role


class NotAuthenticatedError(HarnessError):
    """Raised when a client is used before a successful login."""

    def __init__(self, role: str) -> None:
        super().__init__(
            "Not authenticated. Please login first.",
            details={"role": role},
        )
        self.role = role


class UnknownTemplateError(HarnessError, KeyError):
    """Raised when a test data template name is not defined."""

    def __init__(self, kind: str, name: str, available: list[str]) -> None:
        super().__init__(
            f"Unknown {kind} template '{name}'. Available: {available}",
            details={"kind": kind, "name": name, "available": available},
        )

    def __str__(self) -> str:
        return self.message


class UnknownScenarioError(HarnessError, KeyError):
    """Raised when a scenario name is not registered."""

    def __init__(self, name: str, available: list[str]) -> None:
        super().__init__(
            f"Unknown scenario '{name}'. Available: {available}",
            details={"name": name, "available": available},
        )

    def __str__(self) -> str:
        return self.message


# ============================================================================
# Assertion Errors
# ============================================================================


class ScenarioAssertionError(HarnessError, AssertionError):
    """An observed response does not satisfy an expected invariant.

    Carries both expected and actual values plus the response status and
    body text, so a CI failure is diagnosable from the report alone.
    """

    def __init__(
        self,
        step: str,
        expected: Any,
        actual: Any,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        """Initialize assertion error.

        Args:
            step: Scenario step being verified.
            expected: Expected value or condition.
            actual: Observed value.
            status_code: HTTP status of the response under test.
            body: Response body text.
        """
        message = f"{step}: expected {expected!r}, got {actual!r}"
        if status_code is not None:
            message += f" (status {status_code})"
        if body:
            message += f"\n{body}"
        super().__init__(
            message,
            details={
                "step": step,
                "expected": expected,
                "actual": actual,
                "status_code": status_code,
                "body": body,
            },
        )
        self.step = step
        self.expected = expected
        self.actual = actual
        self.status_code = status_code
        self.body = body


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(HarnessError):
    """Raised when a checkout step is attempted out of order."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Order").
            entity_id: Identifier of the entity (cart token value).
            current_state: Current checkout state.
            target_state: Attempted target state.
            allowed_transitions: States reachable from the current one.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Reference Errors
# ============================================================================


class IriParseError(HarnessError, ValueError):
    """Raised when a resource reference cannot be parsed."""

    def __init__(self, reference: Any, reason: str) -> None:
        super().__init__(
            f"Cannot parse resource reference {reference!r}: {reason}",
            details={"reference": reference, "reason": reason},
        )


# ============================================================================
# Runner Errors
# ============================================================================


class ScenarioTimeoutError(HarnessError):
    """Raised when a scenario exceeds its timeout budget."""

    def __init__(self, scenario: str, budget: float) -> None:
        super().__init__(
            f"Scenario '{scenario}' exceeded its {budget:g}s budget",
            details={"scenario": scenario, "budget": budget},
        )
        self.scenario = scenario
        self.budget = budget
