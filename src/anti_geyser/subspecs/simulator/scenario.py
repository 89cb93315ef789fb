"""
Scenario files for the simulator.

A scenario describes a program and a cast of actors, each with deposits and
withdrawals scheduled by epoch. Files are JSON or YAML:

    name: Anti-Farm Demo
    description: A long-term LP against a deposit/withdraw farmer
    program:
      epochs: 10
      epochLength: 86400
      rewardPerEpoch: "1000"
    actors:
      - name: Long-Term LP
        deposits: [{epoch: 0, amount: 1000}]
      - name: Farmer
        deposits: [{epoch: 4, amount: 1000}]
        withdraws: [{epoch: 5}]

Actor amounts are token units. A withdrawal without an amount withdraws the
whole position.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, field_validator, model_validator

from anti_geyser.subspecs.program import ProgramConfig
from anti_geyser.types import CamelModel, Uint256, to_wad


def _token_units(value: Any) -> Any:
    """Parse a token-unit amount (int, float, decimal string) into base units."""
    if value is None or isinstance(value, Uint256):
        return value
    if isinstance(value, bool):
        raise ValueError("Booleans are not amounts")
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, (int, str, Decimal)):
        return to_wad(value)
    return value


class Deposit(CamelModel):
    """A stake scheduled at an epoch."""

    epoch: int = Field(ge=0)
    amount: Uint256

    _parse_amount = field_validator("amount", mode="before")(_token_units)

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: Uint256) -> Uint256:
        if int(v) == 0:
            raise ValueError("Deposit amount must be positive")
        return v


class Withdrawal(CamelModel):
    """A withdrawal scheduled at an epoch. No amount means everything."""

    epoch: int = Field(ge=0)
    amount: Uint256 | None = None

    _parse_amount = field_validator("amount", mode="before")(_token_units)


class Actor(CamelModel):
    """A simulated participant."""

    name: str = Field(min_length=1)
    deposits: list[Deposit] = []
    withdrawals: list[Withdrawal] = Field(
        default=[], validation_alias=AliasChoices("withdrawals", "withdraws")
    )

    @property
    def funding(self) -> Uint256:
        """Stake tokens the actor needs: the sum of every deposit."""
        return Uint256(sum(int(d.amount) for d in self.deposits))


class Scenario(CamelModel):
    """A simulated program run."""

    name: str = "Unnamed"
    description: str = ""
    program: dict[str, Any] = {}
    """
    Overrides of the program parameters, under their camelCase names.

    `epochs` is accepted as a shorthand for `totalEpochs`.
    """
    actors: list[Actor] = Field(min_length=1)

    @model_validator(mode="after")
    def validate_schedule(self) -> Scenario:
        """Reject duplicate actors and events outside the program."""
        names = [actor.name for actor in self.actors]
        if len(set(names)) != len(names):
            raise ValueError("Actor names must be unique")

        total = int(self.program_config().total_epochs)
        for actor in self.actors:
            for event in [*actor.deposits, *actor.withdrawals]:
                if event.epoch >= total:
                    raise ValueError(
                        f"{actor.name} has an event at epoch {event.epoch}, "
                        f"but the program has {total} epochs"
                    )
        return self

    def program_config(self, start_time: int = 0) -> ProgramConfig:
        """The program parameters with this scenario's overrides applied."""
        overrides = dict(self.program)
        if "epochs" in overrides:
            overrides["totalEpochs"] = overrides.pop("epochs")
        overrides["startTime"] = start_time
        return ProgramConfig.model_validate(overrides)

    @classmethod
    def from_file(cls, path: Path | str) -> Scenario:
        """
        Load a scenario from a JSON or YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            json.JSONDecodeError / yaml.YAMLError: If the file cannot be parsed.
            pydantic.ValidationError: If the data fails validation.
        """
        path = Path(path)
        with path.open(encoding="utf-8") as f:
            data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
        return cls.model_validate(data)
