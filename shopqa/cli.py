"""Command line entry point.

Usage:
    shopqa list
    shopqa run
    shopqa run --tag critical --max-concurrency 8
    shopqa run --name checkout.buy_now --base-url http://localhost:8080
"""

import argparse
import asyncio
import sys

from shopqa.application.registry import Scenario, registry
from shopqa.application.runner import RunSummary, ScenarioRunner, ScenarioStatus
from shopqa.domain.exceptions import UnknownScenarioError
from shopqa.infrastructure.config import Settings, get_settings
from shopqa.infrastructure.logs import configure_logging

STATUS_MARKS = {
    ScenarioStatus.PASSED: "PASS",
    ScenarioStatus.FAILED: "FAIL",
    ScenarioStatus.SETUP_FAILED: "SETUP",
    ScenarioStatus.ERROR: "ERROR",
    ScenarioStatus.TIMEOUT: "TIMEOUT",
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="shopqa",
        description="Run checkout, cart and catalog QA scenarios against the shop API",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("run", "Run scenarios"), ("list", "List registered scenarios")):
        command = commands.add_parser(name, help=help_text)
        command.add_argument(
            "--tag",
            action="append",
            default=[],
            help="Select scenarios by tag or family (repeatable)",
        )
        command.add_argument(
            "--name",
            action="append",
            default=[],
            help="Select a scenario by exact name (repeatable)",
        )

    run = commands.choices["run"]
    run.add_argument(
        "--serial",
        action="store_true",
        help="Run every scenario one by one",
    )
    run.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        help="Maximum scenarios running at once (default: from settings)",
    )
    run.add_argument(
        "--base-url",
        default=None,
        help="Platform base URL (default: SHOPQA_BASE_URL or http://localhost:8080)",
    )
    run.add_argument(
        "--list",
        action="store_true",
        help="Print the selected scenarios and exit",
    )
    return parser


def format_scenarios(scenarios: list[Scenario]) -> str:
    """Render scenarios as a table."""
    lines = []
    for s in scenarios:
        flags = ", ".join(sorted(s.tags))
        mode = "serial" if s.serial else "parallel"
        lines.append(f"{s.name:<42} {s.budget.value:<9} {mode:<9} {flags}")
    return "\n".join(lines)


def format_summary(summary: RunSummary) -> str:
    """Render a run summary with diagnostics for every non-pass."""
    lines = ["=" * 72]
    for result in summary.results:
        mark = STATUS_MARKS[result.status]
        lines.append(f"{mark:<8} {result.name:<46} {result.duration_ms:>9.0f} ms")
    lines.append("=" * 72)

    for result in summary.failures:
        lines.append(f"{STATUS_MARKS[result.status]} {result.name}")
        lines.append(f"  {result.message}")
        status_code = result.diagnostics.get("status_code")
        if status_code is not None:
            lines.append(f"  status: {status_code}")
        lines.append("")

    counts = ", ".join(
        f"{count} {status.value}" for status, count in summary.counts().items() if count
    )
    lines.append(f"{len(summary.results)} scenarios: {counts or 'none'}")
    return "\n".join(lines)


async def run_scenarios(args: argparse.Namespace, settings: Settings) -> RunSummary:
    """Run the selected scenarios."""
    scenarios = registry.select(args.tag, args.name)
    runner = ScenarioRunner(
        settings,
        max_concurrency=args.max_concurrency,
        serial=args.serial,
    )
    return await runner.run(scenarios)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    # Registers every scenario
    import shopqa.application.scenarios  # noqa: F401

    args = build_parser().parse_args(argv)
    settings = get_settings()
    if getattr(args, "base_url", None):
        settings = settings.model_copy(update={"base_url": args.base_url})
    configure_logging(settings.log_level, json=settings.log_json)

    try:
        scenarios = registry.select(args.tag, args.name)
    except UnknownScenarioError as e:
        print(e, file=sys.stderr)
        sys.exit(2)

    if args.command == "list" or args.list:
        print(format_scenarios(scenarios))
        return

    summary = asyncio.run(run_scenarios(args, settings))
    print(format_summary(summary))
    sys.exit(0 if summary.passed else 1)


if __name__ == "__main__":
    main()
