"""
Unsigned integer types.

Counters and epoch indices are `Uint64`; token amounts are `Uint256` in base
units. Both are `int` subclasses, so they index, format and hash like ints,
but arithmetic and comparison only accept the same type. Mixing an amount
with an epoch, or with a bare `int`, is a `TypeError`; leaving the range is an
`OverflowError`. Nothing ever wraps around.
"""

from __future__ import annotations

import operator
from collections.abc import Callable
from typing import Any, ClassVar, SupportsInt

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import core_schema
from typing_extensions import Self


def _checked(symbol: str, op: Callable[[int, int], int], reflected: bool = False) -> Any:
    """Build an arithmetic operator that only accepts operands of the same type."""

    def method(self: BaseUint, other: Any) -> BaseUint:
        if not isinstance(other, type(self)):
            self._raise_type_error(other, symbol)
        left, right = (int(other), int(self)) if reflected else (int(self), int(other))
        return type(self)(op(left, right))

    method.__name__ = f"__{'r' if reflected else ''}{op.__name__.strip('_')}__"
    method.__doc__ = f"Handle the {'reverse ' if reflected else ''}`{symbol}` operator."
    return method


def _compared(symbol: str, op: Callable[[int, int], bool]) -> Any:
    """Build a comparison that refuses operands of another type."""

    def method(self: BaseUint, other: Any) -> bool:
        if not isinstance(other, type(self)):
            self._raise_type_error(other, symbol)
        return op(int(self), int(other))

    method.__doc__ = f"Handle the `{symbol}` operator."
    return method


class BaseUint(int):
    """An unsigned integer of a fixed width."""

    BITS: ClassVar[int]
    """Width in bits (set by subclasses)."""

    def __new__(cls, value: SupportsInt) -> Self:
        """
        Create a value, checking its range.

        Raises:
            OverflowError: If `value` is outside `[0, 2**BITS - 1]`.
        """
        int_value = int(value)
        if not (0 <= int_value < (2**cls.BITS)):
            raise OverflowError(f"{int_value} is out of range for {cls.__name__}")
        return super().__new__(cls, int_value)

    @classmethod
    def max_value(cls) -> Self:
        """The largest value representable by this type."""
        return cls(2**cls.BITS - 1)

    @classmethod
    def parse(cls, text: str) -> Self:
        """
        Parse the wire form: a decimal string with no sign, point or spaces.

        Raises:
            ValueError: If `text` is not a plain decimal string.
            OverflowError: If the value does not fit.
        """
        if not (text.isascii() and text.isdigit()):
            raise ValueError(f"{cls.__name__} expects a decimal string, got {text!r}")
        return cls(int(text))

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Validate genuine ints only and serialize as a plain int."""

        def validate(value: Any) -> BaseUint:
            # int() would coerce bools, floats and numeric strings; none of them is accepted.
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{cls.__name__} requires an int, got {type(value).__name__}")
            try:
                return cls(value)
            except OverflowError as e:
                raise ValueError(str(e)) from e

        return core_schema.no_info_plain_validator_function(
            validate,
            serialization=core_schema.plain_serializer_function_ser_schema(int),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, core_schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        return {
            "type": "integer",
            "minimum": 0,
            "maximum": 2**cls.BITS - 1,
            "format": f"uint{cls.BITS}",
        }

    def _raise_type_error(self, other: Any, op_symbol: str) -> None:
        raise TypeError(
            f"Unsupported operand type(s) for {op_symbol}: "
            f"'{type(self).__name__}' and '{type(other).__name__}'"
        )

    __add__ = _checked("+", operator.add)
    __radd__ = _checked("+", operator.add, reflected=True)
    __sub__ = _checked("-", operator.sub)
    __rsub__ = _checked("-", operator.sub, reflected=True)
    __mul__ = _checked("*", operator.mul)
    __rmul__ = _checked("*", operator.mul, reflected=True)
    __floordiv__ = _checked("//", operator.floordiv)
    __rfloordiv__ = _checked("//", operator.floordiv, reflected=True)
    __mod__ = _checked("%", operator.mod)

    __eq__ = _compared("==", operator.eq)
    __ne__ = _compared("!=", operator.ne)
    __lt__ = _compared("<", operator.lt)
    __le__ = _compared("<=", operator.le)
    __gt__ = _compared(">", operator.gt)
    __ge__ = _compared(">=", operator.ge)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"

    def __str__(self) -> str:
        return str(int(self))

    def __hash__(self) -> int:
        # Equal values of different widths stay distinct keys.
        return hash((type(self), int(self)))


class Uint64(BaseUint):
    """A 64-bit unsigned integer: epochs, counters, timestamps."""

    BITS = 64


class Uint256(BaseUint):
    """
    A 256-bit unsigned integer.

    All token amounts are Uint256 values in base units (18 decimals).
    """

    BITS = 256
