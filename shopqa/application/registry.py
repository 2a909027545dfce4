"""Scenario registration.

Scenarios are plain coroutine functions taking a ``ScenarioContext``.
The ``scenario`` decorator records them with their name, tags, timeout
budget and serial flag; the runner and the CLI select from the registry.
"""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from shopqa.domain.exceptions import UnknownScenarioError
from shopqa.infrastructure.config import Settings

if TYPE_CHECKING:
    from shopqa.application.context import ScenarioContext

ScenarioFunc = Callable[["ScenarioContext"], Awaitable[None]]


class Budget(str, Enum):
    """Timeout budget class of a scenario."""

    SMOKE = "smoke"
    CHECKOUT = "checkout"

    def seconds(self, settings: Settings) -> float:
        """Get the configured timeout for this budget."""
        if self is Budget.CHECKOUT:
            return settings.checkout_timeout
        return settings.smoke_timeout


@dataclass(frozen=True)
class Scenario:
    """A registered scenario."""

    name: str
    func: ScenarioFunc
    family: str
    tags: frozenset[str] = field(default_factory=frozenset)
    budget: Budget = Budget.SMOKE
    serial: bool = False
    description: str = ""

    def matches(self, tags: Iterable[str] = (), names: Iterable[str] = ()) -> bool:
        """Check whether the scenario is selected by tags or names.

        No filter selects everything; otherwise a scenario matches if
        any tag (its family counts as a tag) or its exact name is listed.
        """
        tags, names = set(tags), set(names)
        if not tags and not names:
            return True
        return self.name in names or bool(tags & (self.tags | {self.family}))


class ScenarioRegistry:
    """Ordered collection of scenarios."""

    def __init__(self) -> None:
        self._scenarios: dict[str, Scenario] = {}

    def register(self, scenario: Scenario) -> Scenario:
        """Add a scenario.

        Raises:
            ValueError: If the name is already registered.
        """
        if scenario.name in self._scenarios:
            raise ValueError(f"Scenario already registered: {scenario.name}")
        self._scenarios[scenario.name] = scenario
        return scenario

    def get(self, name: str) -> Scenario:
        """Get a scenario by name.

        Raises:
            UnknownScenarioError: If no scenario has this name.
        """
        if name not in self._scenarios:
            raise UnknownScenarioError(name, sorted(self._scenarios))
        return self._scenarios[name]

    def all(self) -> list[Scenario]:
        """Get every scenario in registration order."""
        return list(self._scenarios.values())

    def select(
        self, tags: Iterable[str] = (), names: Iterable[str] = ()
    ) -> list[Scenario]:
        """Get the scenarios matching tags or names, in registration order."""
        tags, names = list(tags), list(names)
        for name in names:
            self.get(name)
        return [s for s in self._scenarios.values() if s.matches(tags, names)]

    def __len__(self) -> int:
        return len(self._scenarios)

    def __contains__(self, name: object) -> bool:
        return name in self._scenarios


registry = ScenarioRegistry()


def scenario(
    name: str,
    *,
    tags: Iterable[str] = (),
    budget: Budget = Budget.SMOKE,
    serial: bool = False,
    target: ScenarioRegistry | None = None,
) -> Callable[[ScenarioFunc], ScenarioFunc]:
    """Register a coroutine function as a scenario.

    The family is the name of the module defining the function, e.g.
    ``checkout`` for ``shopqa.application.scenarios.checkout``.

    Example:
        @scenario("cart.add_product", tags=["smoke"])
        async def add_product(ctx: ScenarioContext) -> None:
            ...
    """

    def decorator(func: ScenarioFunc) -> ScenarioFunc:
        (target if target is not None else registry).register(
            Scenario(
                name=name,
                func=func,
                family=func.__module__.rsplit(".", 1)[-1],
                tags=frozenset(tags),
                budget=budget,
                serial=serial,
                description=next(iter((func.__doc__ or "").strip().splitlines()), ""),
            )
        )
        return func

    return decorator
