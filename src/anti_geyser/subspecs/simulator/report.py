"""
Terminal report of a simulation.

Sections:

- Reward distribution: one bar per actor, scaled to the best-rewarded actor.
- Detailed metrics: each actor's rewards, share of the total and final position.
- Epoch progression: pending rewards of every actor over the first epochs.
- Anti-farm effectiveness: the share of rewards earned by actors that never
  withdrew, with a grade.

All arithmetic stays in integer base units; only the rendered strings are
decimals.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from anti_geyser.types import BASIS_POINTS, Uint256, format_wad

from .runner import SimulationResult

WIDTH = 80
"""Width of section rules."""

BAR_WIDTH = 50
"""Width of the longest reward bar."""

PROGRESSION_EPOCHS = 10
"""Epochs shown in the progression table."""


class Grade(Enum):
    """How strongly a run discourages farming."""

    EXCELLENT = "System strongly discourages farming behavior"
    GOOD = "System effectively discourages farming"
    MODERATE = "Some farming resistance"
    WEAK = "Low farming resistance"

    @classmethod
    def for_share(cls, share_bps: int) -> Grade:
        """Grade a long-term share given in basis points."""
        if share_bps > 9_000:
            return cls.EXCELLENT
        if share_bps > 7_000:
            return cls.GOOD
        if share_bps > 5_000:
            return cls.MODERATE
        return cls.WEAK


@dataclass(frozen=True, slots=True)
class AntiFarmScore:
    """Split of the rewards between long-term actors and churners."""

    long_term: list[str]
    """Actors that never withdrew."""

    churners: list[str]
    """Actors that withdrew at least once."""

    long_term_rewards: Uint256
    churner_rewards: Uint256

    @property
    def total(self) -> int:
        return int(self.long_term_rewards) + int(self.churner_rewards)

    @property
    def share_bps(self) -> int:
        """Long-term share of all rewards, in basis points. Zero when nothing was paid."""
        if self.total == 0:
            return 0
        return int(self.long_term_rewards) * BASIS_POINTS // self.total

    @property
    def grade(self) -> Grade:
        return Grade.for_share(self.share_bps)


def anti_farm_score(result: SimulationResult) -> AntiFarmScore:
    """Split a run's rewards by whether the actor ever withdrew."""
    long_term: list[str] = []
    churners: list[str] = []
    long_term_rewards = 0
    churner_rewards = 0

    for name, stats in result.final.actors.items():
        if stats.churn_count == 0:
            long_term.append(name)
            long_term_rewards += int(stats.pending_rewards)
        else:
            churners.append(name)
            churner_rewards += int(stats.pending_rewards)

    return AntiFarmScore(
        long_term=long_term,
        churners=churners,
        long_term_rewards=Uint256(long_term_rewards),
        churner_rewards=Uint256(churner_rewards),
    )


def _percent(part: int, whole: int, places: int = 2) -> str:
    """`part / whole` as a percentage string, truncated."""
    if whole == 0:
        return f"{0:.{places}f}"
    scale = 10**places
    value = part * 100 * scale // whole
    return f"{value // scale}.{value % scale:0{places}d}"


def _rule(char: str = "=") -> str:
    return char * WIDTH


def _ranked(result: SimulationResult) -> list[tuple[str, int]]:
    """Actors and rewards, best-rewarded first."""
    rewards = [(name, int(amount)) for name, amount in result.rewards().items()]
    return sorted(rewards, key=lambda item: item[1], reverse=True)


def bar_chart(rows: list[tuple[str, int]], width: int = BAR_WIDTH) -> list[str]:
    """Horizontal bars scaled to the largest value."""
    top = max((value for _, value in rows), default=0)
    label_width = max([15, *(len(label) for label, _ in rows)])

    lines = []
    for label, value in rows:
        length = 0 if top == 0 else (value * width + top // 2) // top
        lines.append(f"{label:<{label_width}} {'█' * length} {_percent(value, top, 1)}%")
    return lines


def render_report(result: SimulationResult) -> str:
    """Render the full report of one run."""
    ranked = _ranked(result)
    total = sum(value for _, value in ranked)
    final = result.final.actors

    lines = [
        _rule(),
        f"ANTI-GEYSER SIMULATION: {result.scenario.name}",
        _rule(),
    ]
    if result.scenario.description:
        lines.append(result.scenario.description)
    lines += [
        f"{int(result.config.total_epochs)} epochs, "
        f"{format_wad(result.config.reward_per_epoch)} reward tokens per epoch",
        "",
        "REWARD DISTRIBUTION",
        "",
        *bar_chart(ranked),
        "",
        "DETAILED METRICS",
        "",
    ]

    for name, rewards in ranked:
        stats = final[name]
        lines += [
            f"{name}:",
            f"  └─ Rewards: {format_wad(rewards, 2)} tokens ({_percent(rewards, total)}%)",
            f"  └─ Staked: {format_wad(stats.staked)} tokens",
            f"  └─ Effective Stake: {format_wad(stats.effective_stake, 4)} tokens",
            f"  └─ Join Epoch: {stats.join_epoch}",
            f"  └─ Tenure: {stats.tenure_epochs} epochs",
            f"  └─ Churn Count: {stats.churn_count}",
            "",
        ]

    names = list(final)
    lines += [
        "EPOCH PROGRESSION (pending rewards)",
        "",
        "Epoch | " + " | ".join(f"{name:<12}" for name in names),
        _rule("─"),
    ]
    for epoch in result.epochs[:PROGRESSION_EPOCHS]:
        cells = [f"{epoch.epoch:<5}"]
        cells += [f"{format_wad(epoch.actors[name].pending_rewards, 0):<12}" for name in names]
        lines.append(" | ".join(cells))

    score = anti_farm_score(result)
    share = _percent(score.share_bps, BASIS_POINTS)
    churn_share = _percent(BASIS_POINTS - score.share_bps, BASIS_POINTS) if score.total else share
    lines += [
        "",
        _rule(),
        "ANTI-FARM EFFECTIVENESS SCORE",
        _rule(),
        "",
        f"{share}% of rewards went to long-term LPs (no churning)",
        f"{churn_share}% of rewards went to churners",
        "",
        f"Long-term LPs: {len(score.long_term)} actors, "
        f"{format_wad(score.long_term_rewards, 2)} tokens",
        f"Churners: {len(score.churners)} actors, {format_wad(score.churner_rewards, 2)} tokens",
        "",
        f"{score.grade.name}: {score.grade.value}",
        _rule(),
    ]
    return "\n".join(lines)


def render_comparison(results: list[SimulationResult]) -> str:
    """Tabulate several runs side by side."""
    header = (
        f"{'Scenario':<28} {'Rewards':>14} {'Long-term':>10}  "
        f"{'Grade':<10} {'Top actor':<16} {'Bottom actor':<16}"
    )
    lines = [_rule(), "ANTI-GEYSER SCENARIO COMPARISON", _rule(), "", header, _rule("─")]

    for result in results:
        ranked = _ranked(result)
        score = anti_farm_score(result)
        top = ranked[0][0] if ranked[0][1] > 0 else "-"
        bottom = ranked[-1][0]
        lines.append(
            f"{result.scenario.name[:28]:<28} "
            f"{format_wad(score.total, 2):>14} "
            f"{_percent(score.share_bps, BASIS_POINTS):>9}%  "
            f"{score.grade.name:<10} "
            f"{top[:16]:<16} "
            f"{bottom[:16]:<16}"
        )

    lines += ["", _rule()]
    return "\n".join(lines)
