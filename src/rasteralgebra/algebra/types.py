"""Sample representations supported by the algebra engines."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

import numpy as np

from rasteralgebra.algebra.errors import UnsupportedRepresentationError

FLOAT32_MAX = float(np.finfo(np.float32).max)


class SampleType(Enum):
    """Closed set of numeric sample kinds, ordered from narrowest to widest."""

    BYTE = ("uint8", "int64", 0, 255)
    USHORT = ("uint16", "int64", 0, 65535)
    SHORT = ("int16", "int64", -32768, 32767)
    INT = ("int32", "int64", -(2**31), 2**31 - 1)
    FLOAT = ("float32", "float64", -FLOAT32_MAX, FLOAT32_MAX)
    DOUBLE = ("float64", "float64", -math.inf, math.inf)

    def __init__(self, dtype: str, accumulator: str, minimum: float, maximum: float) -> None:
        self.dtype = np.dtype(dtype)
        self.accumulator = np.dtype(accumulator)
        self.minimum = minimum
        self.maximum = maximum

    @property
    def is_integer(self) -> bool:
        return self.dtype.kind in "ui"

    @property
    def is_unsigned(self) -> bool:
        return self.dtype.kind == "u"

    @property
    def rank(self) -> int:
        return list(SampleType).index(self)

    @property
    def mask(self) -> int | None:
        """Bit mask applied before arithmetic on unsigned kinds."""
        if self is SampleType.BYTE:
            return 0xFF
        if self is SampleType.USHORT:
            return 0xFFFF
        return None

    @classmethod
    def from_dtype(cls, dtype: Any) -> "SampleType":
        """Return the sample type stored as ``dtype``."""
        try:
            resolved = np.dtype(dtype)
        except TypeError as exc:
            raise UnsupportedRepresentationError(f"Unsupported sample type: {dtype!r}") from exc
        for member in cls:
            if member.dtype == resolved:
                return member
        raise UnsupportedRepresentationError(f"Unsupported sample type: {resolved}")

    @classmethod
    def parse(cls, value: "str | SampleType | np.dtype") -> "SampleType":
        """Resolve a sample type from a member, a member name or a dtype name."""
        if isinstance(value, SampleType):
            return value
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
        return cls.from_dtype(value)

    @classmethod
    def widest(cls, types: "list[SampleType] | tuple[SampleType, ...]") -> "SampleType":
        if not types:
            raise UnsupportedRepresentationError("At least one sample type is required.")
        return max(types, key=lambda item: item.rank)

    @classmethod
    def compatible(cls, types: "list[SampleType] | tuple[SampleType, ...]") -> "SampleType":
        """Return the type able to hold every sample of ``types`` without loss.

        Signed kinds too narrow for an unsigned member widen to INT, so mixed
        USHORT and SHORT samples are handled as INT.
        """
        widest = cls.widest(types)
        if widest.is_integer and any(
            kind.is_unsigned and kind.maximum > widest.maximum for kind in types
        ):
            return SampleType.INT
        return widest

    def clamp_round(self, value: float) -> int | float:
        """Round and clamp a scalar into this representation's domain."""
        value = float(value)
        if self is SampleType.DOUBLE:
            return value
        if self is SampleType.FLOAT:
            if math.isnan(value):
                return value
            return float(np.float32(min(max(value, self.minimum), self.maximum)))
        if math.isnan(value):
            return 0
        if value >= self.maximum:
            return int(self.maximum)
        if value <= self.minimum:
            return int(self.minimum)
        return int(math.floor(value + 0.5))

    def clamp_round_array(self, values: np.ndarray) -> np.ndarray:
        """Vectorized ``clamp_round`` returning an array of this dtype."""
        if self is SampleType.DOUBLE:
            return np.asarray(values, dtype=np.float64)
        if self is SampleType.FLOAT:
            data = np.asarray(values, dtype=np.float64)
            return np.clip(data, self.minimum, self.maximum).astype(np.float32)
        data = np.asarray(values, dtype=np.float64)
        rounded = np.floor(np.nan_to_num(data, nan=0.0) + 0.5)
        return np.clip(rounded, self.minimum, self.maximum).astype(self.dtype)

    def saturate(self, accumulated: np.ndarray) -> np.ndarray:
        """Clamp an accumulator array back into this kind."""
        if self is SampleType.DOUBLE:
            return accumulated.astype(np.float64, copy=False)
        if self is SampleType.FLOAT:
            return np.clip(accumulated, self.minimum, self.maximum).astype(np.float32)
        return np.clip(accumulated, self.minimum, self.maximum).astype(self.dtype)
