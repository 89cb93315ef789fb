"""
Scenario simulator.

Runs scripted deposit and withdrawal schedules against an in-memory engine
on a simulated clock, and renders the resulting reward distribution.
"""

from .report import AntiFarmScore, Grade, anti_farm_score, render_comparison, render_report
from .runner import (
    ActorStats,
    EpochStats,
    SimulatedTime,
    SimulationResult,
    run_scenario,
)
from .scenario import Actor, Deposit, Scenario, Withdrawal

__all__ = [
    # Scenario files
    "Actor",
    "Deposit",
    "Scenario",
    "Withdrawal",
    # Running
    "ActorStats",
    "EpochStats",
    "SimulatedTime",
    "SimulationResult",
    "run_scenario",
    # Reporting
    "AntiFarmScore",
    "Grade",
    "anti_farm_score",
    "render_comparison",
    "render_report",
]
