"""Scenario runner.

Runs scenarios concurrently under a concurrency limit, then runs the
scenarios flagged serial one by one in registration order. Every
scenario gets a fresh ``ScenarioContext``, its own timeout budget and a
teardown that runs whatever the outcome.
"""

import asyncio
import time
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
import structlog

from shopqa.application.cleanup import TeardownReport
from shopqa.application.context import ScenarioContext
from shopqa.application.registry import Scenario
from shopqa.data.factory import UniqueIdGenerator
from shopqa.domain.exceptions import ScenarioAssertionError, ScenarioTimeoutError, SetupError
from shopqa.infrastructure.config import Settings
from shopqa.infrastructure.http_client import AdminClient

logger = structlog.get_logger()


class ScenarioStatus(str, Enum):
    """Outcome of one scenario."""

    PASSED = "passed"
    FAILED = "failed"  # an invariant did not hold
    SETUP_FAILED = "setup_failed"  # prerequisites could not be created
    ERROR = "error"  # unexpected exception
    TIMEOUT = "timeout"


@dataclass
class ScenarioResult:
    """Result of one scenario run."""

    name: str
    status: ScenarioStatus
    duration_ms: float
    message: str = ""
    diagnostics: dict[str, Any] = field(default_factory=dict)
    teardown: TeardownReport | None = None

    @property
    def passed(self) -> bool:
        return self.status is ScenarioStatus.PASSED


@dataclass
class RunSummary:
    """Results of a whole run."""

    results: list[ScenarioResult]
    duration_ms: float

    @property
    def passed(self) -> bool:
        """Whether every scenario passed."""
        return all(r.passed for r in self.results)

    @property
    def failures(self) -> list[ScenarioResult]:
        """Results that did not pass."""
        return [r for r in self.results if not r.passed]

    def counts(self) -> dict[ScenarioStatus, int]:
        """Count results per status."""
        counter = Counter(r.status for r in self.results)
        return {status: counter.get(status, 0) for status in ScenarioStatus}

    def get(self, name: str) -> ScenarioResult:
        """Get the result of a scenario by name.

        Raises:
            KeyError: If the scenario was not part of the run.
        """
        for result in self.results:
            if result.name == name:
                return result
        raise KeyError(name)


class ScenarioRunner:
    """Executes scenarios with isolation, timeouts and teardown."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        max_concurrency: int | None = None,
        serial: bool = False,
        shared_admin: AdminClient | None = None,
        ids: UniqueIdGenerator | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            settings: Harness settings.
            transport: Transport for every client (tests inject an in-process app).
            max_concurrency: Parallel scenario limit (defaults to settings).
            serial: Run every scenario one by one.
            shared_admin: Logged-in admin session for read-only lookups.
            ids: Identifier source for generated data.
        """
        self.settings = settings
        self.transport = transport
        self.max_concurrency = max_concurrency or settings.max_concurrency
        self.serial = serial
        self.shared_admin = shared_admin
        self.ids = ids

    async def run(self, scenarios: Iterable[Scenario]) -> RunSummary:
        """Run scenarios.

        Args:
            scenarios: Scenarios to run.

        Returns:
            Summary with one result per scenario.
        """
        scenarios = list(scenarios)
        parallel = [] if self.serial else [s for s in scenarios if not s.serial]
        serial = [s for s in scenarios if s not in parallel]
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def guarded(scenario: Scenario) -> ScenarioResult:
            async with semaphore:
                return await self.run_one(scenario)

        logger.info(
            "Run started",
            scenarios=len(scenarios),
            parallel=len(parallel),
            serial=len(serial),
            max_concurrency=self.max_concurrency,
        )
        started = time.perf_counter()
        results = list(await asyncio.gather(*(guarded(s) for s in parallel)))
        for scenario in serial:
            results.append(await self.run_one(scenario))

        summary = RunSummary(results=results, duration_ms=(time.perf_counter() - started) * 1000)
        logger.info(
            "Run finished",
            all_passed=summary.passed,
            duration_ms=round(summary.duration_ms, 2),
            counts={status.value: count for status, count in summary.counts().items()},
        )
        return summary

    async def run_one(self, scenario: Scenario) -> ScenarioResult:
        """Run one scenario in a fresh context.

        Never raises for scenario failures; the outcome is classified in
        the returned result.
        """
        ctx = ScenarioContext(
            scenario.name,
            self.settings,
            transport=self.transport,
            shared_admin=self.shared_admin,
            ids=self.ids,
        )
        budget = scenario.budget.seconds(self.settings)
        message = ""
        diagnostics: dict[str, Any] = {}
        report: TeardownReport | None = None

        with structlog.contextvars.bound_contextvars(scenario=scenario.name):
            started = time.perf_counter()
            deadline = asyncio.timeout(budget)
            try:
                async with deadline:
                    await scenario.func(ctx)
                status = ScenarioStatus.PASSED
            except TimeoutError as e:
                if not deadline.expired():
                    status = ScenarioStatus.ERROR
                    message = f"{type(e).__name__}: {e}"
                else:
                    error = ScenarioTimeoutError(scenario.name, budget)
                    status = ScenarioStatus.TIMEOUT
                    message = error.message
                    diagnostics = dict(error.details)
            except ScenarioAssertionError as e:
                status = ScenarioStatus.FAILED
                message = e.message
                diagnostics = dict(e.details)
            except SetupError as e:
                status = ScenarioStatus.SETUP_FAILED
                message = e.message
                diagnostics = dict(e.details)
            except Exception as e:
                logger.exception("Scenario raised unexpectedly")
                status = ScenarioStatus.ERROR
                message = f"{type(e).__name__}: {e}"
            finally:
                report = await self._teardown(ctx)
                await ctx.close()

            duration_ms = (time.perf_counter() - started) * 1000
            if ctx.notes:
                diagnostics["notes"] = dict(ctx.notes)
            log = logger.info if status is ScenarioStatus.PASSED else logger.warning
            log(
                "Scenario finished",
                status=status.value,
                duration_ms=round(duration_ms, 2),
                message=message or None,
            )

        return ScenarioResult(
            name=scenario.name,
            status=status,
            duration_ms=duration_ms,
            message=message,
            diagnostics=diagnostics,
            teardown=report,
        )

    async def _teardown(self, ctx: ScenarioContext) -> TeardownReport | None:
        try:
            async with asyncio.timeout(self.settings.teardown_timeout):
                return await ctx.teardown()
        except TimeoutError:
            ctx.log.warning("Teardown timed out", budget=self.settings.teardown_timeout)
            return None
