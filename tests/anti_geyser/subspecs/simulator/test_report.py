"""Tests for the terminal report."""

from __future__ import annotations

from pathlib import Path

import pytest

from anti_geyser.subspecs.simulator import (
    AntiFarmScore,
    Grade,
    Scenario,
    SimulationResult,
    anti_farm_score,
    render_comparison,
    render_report,
    run_scenario,
)
from anti_geyser.subspecs.simulator.report import BAR_WIDTH, _percent, bar_chart
from anti_geyser.types import Uint256

SCENARIOS = Path(__file__).parents[4] / "scenarios"


@pytest.fixture(scope="module")
def sample() -> SimulationResult:
    """The shipped demo scenario, run once."""
    return run_scenario(Scenario.from_file(SCENARIOS / "sample.yaml"))


@pytest.fixture(scope="module")
def serial() -> SimulationResult:
    """The shipped serial-farmers scenario, run once."""
    return run_scenario(Scenario.from_file(SCENARIOS / "serial_farmers.yaml"))


class TestGrade:
    """Tests for grading the long-term share."""

    @pytest.mark.parametrize(
        ("share_bps", "grade"),
        [
            (10_000, Grade.EXCELLENT),
            (9_001, Grade.EXCELLENT),
            (9_000, Grade.GOOD),
            (7_001, Grade.GOOD),
            (7_000, Grade.MODERATE),
            (5_001, Grade.MODERATE),
            (5_000, Grade.WEAK),
            (0, Grade.WEAK),
        ],
    )
    def test_thresholds(self, share_bps: int, grade: Grade) -> None:
        """Grades start strictly above 50%, 70% and 90%."""
        assert Grade.for_share(share_bps) is grade


class TestAntiFarmScore:
    """Tests for the long-term versus churner split."""

    def test_nothing_paid(self) -> None:
        """A run that paid nothing scores zero."""
        score = AntiFarmScore([], [], Uint256(0), Uint256(0))

        assert score.share_bps == 0
        assert score.grade is Grade.WEAK

    def test_split_by_churn(self, sample: SimulationResult) -> None:
        """Actors that never withdrew count as long-term."""
        score = anti_farm_score(sample)

        assert score.long_term == ["Long-Term LP", "Moderate LP"]
        assert score.churners == ["Farmer"]
        assert score.total == sum(int(r) for r in sample.rewards().values())
        assert score.grade is Grade.EXCELLENT


class TestFormatting:
    """Tests for the formatting helpers."""

    def test_percent_truncates(self) -> None:
        """Percentages are truncated, never rounded up."""
        assert _percent(1, 3) == "33.33"
        assert _percent(2, 3) == "66.66"
        assert _percent(1, 8, 1) == "12.5"
        assert _percent(5, 0) == "0.00"

    def test_bar_chart_scales_to_largest(self) -> None:
        """The largest value fills the bar width."""
        lines = bar_chart([("big", 10), ("half", 5), ("none", 0)])

        assert lines[0].count("█") == BAR_WIDTH
        assert lines[1].count("█") == BAR_WIDTH // 2
        assert lines[2].count("█") == 0
        assert lines[0].endswith("100.0%")

    def test_bar_chart_all_zero(self) -> None:
        """An all-zero chart draws no bars."""
        assert all("█" not in line for line in bar_chart([("a", 0), ("b", 0)]))


class TestRenderReport:
    """Tests for the single-run report."""

    def test_sections(self, sample: SimulationResult) -> None:
        """The report carries every section and ends with the grade."""
        report = render_report(sample)

        for heading in (
            "ANTI-GEYSER SIMULATION: Anti-Farm Demo",
            "REWARD DISTRIBUTION",
            "DETAILED METRICS",
            "EPOCH PROGRESSION (pending rewards)",
            "ANTI-FARM EFFECTIVENESS SCORE",
        ):
            assert heading in report
        assert "EXCELLENT: System strongly discourages farming behavior" in report

    def test_ranked_best_first(self, sample: SimulationResult) -> None:
        """Detailed metrics list the best-rewarded actor first."""
        report = render_report(sample)

        assert report.index("Long-Term LP:") < report.index("Moderate LP:")
        assert report.index("Moderate LP:") < report.index("Farmer:")
        assert "  └─ Churn Count: 1" in report


class TestRenderComparison:
    """Tests for the multi-run comparison."""

    def test_one_row_per_run(self, sample: SimulationResult, serial: SimulationResult) -> None:
        """Every run gets a row with its grade and extreme actors."""
        table = render_comparison([sample, serial])

        assert "ANTI-GEYSER SCENARIO COMPARISON" in table
        rows = [line for line in table.splitlines() if line.startswith(("Anti-Farm", "Serial"))]
        assert len(rows) == 2
        assert "EXCELLENT" in rows[0]
        assert "Long-Term LP" in rows[0]
        assert "Farmer" in rows[0]
        assert anti_farm_score(serial).grade.name in rows[1]
