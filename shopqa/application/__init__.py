"""Application layer: checkout orchestration, scenarios, runner."""

from shopqa.application.checkout import CheckoutFlow
from shopqa.application.cleanup import CreatedEntities, DeletionOutcome, TeardownReport, teardown
from shopqa.application.context import ScenarioContext
from shopqa.application.registry import Budget, Scenario, ScenarioRegistry, registry, scenario
from shopqa.application.runner import RunSummary, ScenarioResult, ScenarioRunner, ScenarioStatus

__all__ = [
    "Budget",
    "CheckoutFlow",
    "CreatedEntities",
    "DeletionOutcome",
    "RunSummary",
    "Scenario",
    "ScenarioContext",
    "ScenarioRegistry",
    "ScenarioResult",
    "ScenarioRunner",
    "ScenarioStatus",
    "TeardownReport",
    "registry",
    "scenario",
    "teardown",
]
