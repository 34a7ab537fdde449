"""Operator table: per-representation reducers for the four algebra operators."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Sequence

import numpy as np

from rasteralgebra.algebra.errors import InvalidOperatorError, UnsupportedRepresentationError
from rasteralgebra.algebra.types import SampleType

Bounds = tuple[int, int]
Step = Callable[[np.ndarray, np.ndarray, Bounds], np.ndarray]

# Running integer products are held inside +/-2**31 so int64 never wraps.
PRODUCT_LIMIT = 2**31

_NARROW_ACCUMULATOR_BOUNDS: Bounds = (-(2**31), 2**31 - 1)
_WIDE_ACCUMULATOR_BOUNDS: Bounds = (-(2**63 - 1), 2**63 - 1)


class Operator(Enum):
    """Algebra operators folded across N sources."""

    SUM = ("sum", 0.0)
    SUBTRACT = ("subtract", 0.0)
    MULTIPLY = ("multiply", 1.0)
    DIVIDE = ("divide", 1.0)

    def __init__(self, label: str, null_value: float) -> None:
        self.label = label
        self.null_value = null_value

    @classmethod
    def parse(cls, value: "str | Operator | None") -> "Operator":
        """Resolve an operator from a member or a name/alias."""
        if isinstance(value, Operator):
            return value
        if value is None:
            raise InvalidOperatorError("Operation not defined.")
        if not isinstance(value, str):
            raise InvalidOperatorError(f"Unknown operator: {value!r}")
        key = value.strip().lower()
        try:
            return _ALIASES[key]
        except KeyError as exc:
            raise InvalidOperatorError(f"Unknown operator: {value}") from exc

    def reduce2(self, sample_type: SampleType, a: Any, b: Any) -> int | float:
        """Apply the operator to two samples of ``sample_type``."""
        return reduce_n(self, sample_type, (a, b))

    def reduce_n(self, sample_type: SampleType, values: Sequence[Any]) -> int | float:
        """Fold the operator across ``values`` left to right."""
        return reduce_n(self, sample_type, values)


_ALIASES: dict[str, Operator] = {
    "sum": Operator.SUM,
    "add": Operator.SUM,
    "+": Operator.SUM,
    "subtract": Operator.SUBTRACT,
    "sub": Operator.SUBTRACT,
    "difference": Operator.SUBTRACT,
    "-": Operator.SUBTRACT,
    "multiply": Operator.MULTIPLY,
    "mul": Operator.MULTIPLY,
    "product": Operator.MULTIPLY,
    "*": Operator.MULTIPLY,
    "divide": Operator.DIVIDE,
    "div": Operator.DIVIDE,
    "quotient": Operator.DIVIDE,
    "/": Operator.DIVIDE,
}


def _add(acc: np.ndarray, operand: np.ndarray, bounds: Bounds) -> np.ndarray:
    return acc + operand


def _subtract(acc: np.ndarray, operand: np.ndarray, bounds: Bounds) -> np.ndarray:
    return acc - operand


def _multiply_int(acc: np.ndarray, operand: np.ndarray, bounds: Bounds) -> np.ndarray:
    return np.clip(acc * operand, -PRODUCT_LIMIT, PRODUCT_LIMIT)


def _multiply_float(acc: np.ndarray, operand: np.ndarray, bounds: Bounds) -> np.ndarray:
    return acc * operand


def _divide_int(acc: np.ndarray, operand: np.ndarray, bounds: Bounds) -> np.ndarray:
    """Truncating integer division; division by zero seeks the dividend's sign bound."""
    low, high = bounds
    zero = operand == 0
    divisor = np.where(zero, 1, operand)
    quotient = np.abs(acc) // np.abs(divisor)
    quotient = np.where((acc < 0) != (divisor < 0), -quotient, quotient)
    saturated = np.where(acc >= 0, high, low)
    return np.where(zero, saturated, quotient).astype(np.int64)


def _divide_float(acc: np.ndarray, operand: np.ndarray, bounds: Bounds) -> np.ndarray:
    return acc / operand


def _stored_kind(data: np.ndarray, default: SampleType) -> SampleType:
    for kind in SampleType:
        if kind.dtype == data.dtype:
            return kind
    return default


@dataclass(frozen=True)
class OperatorFuncs:
    """Reducer bundle for one (operator, sample type) pair."""

    operator: Operator
    sample_type: SampleType
    accumulator: np.dtype
    step: Step
    bounds: Bounds
    clamp: bool = True

    def prepare(self, samples: Any) -> np.ndarray:
        """Promote raw samples into the accumulator.

        Unsigned kinds are masked by the kind the samples are stored in; bare
        scalars are taken as samples of this bundle's own kind.
        """
        data = np.asarray(samples)
        kind = self.sample_type
        if kind.is_integer:
            if data.dtype.kind == "f":
                data = kind.clamp_round_array(data)
            source = _stored_kind(data, kind)
            data = data.astype(np.int64)
            if source.mask is not None:
                data = data & source.mask
            return data
        return data.astype(self.accumulator)

    def fold(self, operands: Iterable[Any]) -> np.ndarray:
        """Fold prepared operands left to right without intermediate clamping."""
        acc: np.ndarray | None = None
        for operand in operands:
            value = self.prepare(operand)
            if acc is None:
                acc = value
            else:
                acc = self.step(acc, value, self.bounds)
        if acc is None:
            raise ValueError("At least one operand is required.")
        return acc

    def finish(self, acc: np.ndarray, target: SampleType | None = None) -> np.ndarray:
        """Clamp the folded accumulator into ``target`` exactly once."""
        data = np.asarray(acc)
        if target is not None and target is not self.sample_type:
            return target.clamp_round_array(data)
        if not self.clamp:
            return data.astype(self.sample_type.dtype)
        return self.sample_type.saturate(data)

    def reduce(self, operands: Iterable[Any], target: SampleType | None = None) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            return self.finish(self.fold(operands), target)


def _build_table() -> dict[tuple[Operator, SampleType], OperatorFuncs]:
    table: dict[tuple[Operator, SampleType], OperatorFuncs] = {}
    for kind in SampleType:
        if kind is SampleType.INT:
            bounds = _WIDE_ACCUMULATOR_BOUNDS
        else:
            bounds = _NARROW_ACCUMULATOR_BOUNDS
        integer = kind.is_integer
        table[(Operator.SUM, kind)] = OperatorFuncs(
            Operator.SUM, kind, kind.accumulator, _add, bounds
        )
        table[(Operator.SUBTRACT, kind)] = OperatorFuncs(
            Operator.SUBTRACT, kind, kind.accumulator, _subtract, bounds
        )
        table[(Operator.MULTIPLY, kind)] = OperatorFuncs(
            Operator.MULTIPLY,
            kind,
            kind.accumulator,
            _multiply_int if integer else _multiply_float,
            bounds,
        )
        if integer:
            divide = OperatorFuncs(Operator.DIVIDE, kind, kind.accumulator, _divide_int, bounds)
        else:
            # IEEE division in the representation itself, never clamped.
            divide = OperatorFuncs(
                Operator.DIVIDE, kind, kind.dtype, _divide_float, bounds, clamp=False
            )
        table[(Operator.DIVIDE, kind)] = divide
    return table


OPERATOR_TABLE: Mapping[tuple[Operator, SampleType], OperatorFuncs] = MappingProxyType(
    _build_table()
)


def lookup(operator: Operator, sample_type: SampleType) -> OperatorFuncs:
    """Return the reducer bundle for an operator and sample type."""
    try:
        return OPERATOR_TABLE[(operator, sample_type)]
    except KeyError as exc:
        raise UnsupportedRepresentationError(
            f"Operator {operator} does not support sample type {sample_type}"
        ) from exc


def reduce_n(operator: Operator, sample_type: SampleType, values: Sequence[Any]) -> int | float:
    """Fold ``operator`` across scalar ``values`` and return a Python scalar."""
    if not values:
        raise ValueError("At least one operand is required.")
    result = lookup(operator, sample_type).reduce(values)
    return result.item()


def reduce2(operator: Operator, sample_type: SampleType, a: Any, b: Any) -> int | float:
    """Apply ``operator`` to two scalars."""
    return reduce_n(operator, sample_type, (a, b))
