"""Tests for the command line entry point."""

from unittest.mock import AsyncMock, patch

import pytest

from shopqa import cli
from shopqa.application.registry import registry
from shopqa.application.runner import RunSummary, ScenarioResult, ScenarioStatus


def summary(*statuses: ScenarioStatus) -> RunSummary:
    return RunSummary(
        results=[
            ScenarioResult(name=f"demo.s{i}", status=s, duration_ms=12.5, message=f"msg {i}")
            for i, s in enumerate(statuses)
        ],
        duration_ms=30.0,
    )


class TestCli:
    """Tests for shopqa list/run."""

    def test_list(self, capsys) -> None:
        """list prints every registered scenario."""
        cli.main(["list"])

        out = capsys.readouterr().out
        assert "checkout.buy_now" in out
        assert len(out.strip().splitlines()) == len(registry)

    def test_list_by_tag(self, capsys) -> None:
        """Tags filter the listing."""
        cli.main(["list", "--tag", "lifecycle"])

        lines = capsys.readouterr().out.strip().splitlines()
        assert [line.split()[0] for line in lines] == [
            "lifecycle.cart_deleted_twice",
            "lifecycle.product_deleted_twice",
        ]

    def test_unknown_name_exits_2(self, capsys) -> None:
        """An unknown scenario name exits with status 2."""
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["run", "--name", "nope.nothing"])

        assert exc_info.value.code == 2
        assert "Unknown scenario 'nope.nothing'" in capsys.readouterr().err

    def test_run_exit_codes(self, capsys) -> None:
        """run exits 0 when everything passed and 1 otherwise."""
        with patch.object(cli, "run_scenarios", new=AsyncMock(return_value=summary(ScenarioStatus.PASSED))):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["run", "--tag", "smoke"])
        assert exc_info.value.code == 0

        failing = summary(ScenarioStatus.PASSED, ScenarioStatus.TIMEOUT)
        with patch.object(cli, "run_scenarios", new=AsyncMock(return_value=failing)):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["run"])
        assert exc_info.value.code == 1
        assert "TIMEOUT  demo.s1" in capsys.readouterr().out

    def test_format_summary(self) -> None:
        """The summary lists every result, then details for non-passes."""
        text = cli.format_summary(summary(ScenarioStatus.PASSED, ScenarioStatus.FAILED))

        assert "PASS     demo.s0" in text
        assert "FAIL demo.s1\n  msg 1" in text
        assert text.endswith("2 scenarios: 1 passed, 1 failed")
