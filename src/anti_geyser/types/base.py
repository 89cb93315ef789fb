"""Reusable, strict base models for the staking engine."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    A base model that converts field names to camel case when serializing.

    For example, the field name `reward_per_epoch` in a Python model will be
    represented as `rewardPerEpoch` when it is serialized to JSON.

    This keeps every dump aligned with the field names of the reference ABI
    (`epochLength`, `tMax`, `totalEffectiveStake`, ...).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
        arbitrary_types_allowed=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """
        Dump the model as a JSON-ready dict keyed by camelCase aliases.

        Integers wider than 53 bits lose precision in JavaScript clients, so
        every integer is rendered as a decimal string.
        """
        return _stringify_ints(self.model_dump(mode="json", by_alias=True))


class StrictBaseModel(CamelModel):
    """A strict, immutable pydantic base model."""

    model_config = CamelModel.model_config | {
        "extra": "forbid",
        "frozen": True,
        "strict": True,
    }


def _stringify_ints(value: Any) -> Any:
    """Recursively render ints (but not bools) as decimal strings."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, dict):
        return {key: _stringify_ints(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_stringify_ints(item) for item in value]
    return value
