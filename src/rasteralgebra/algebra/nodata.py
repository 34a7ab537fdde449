"""No-data ranges and the per-sample no-data mask."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from rasteralgebra.algebra.types import SampleType


@dataclass(frozen=True)
class NoDataRange:
    """Interval of sample values treated as absent.

    Bounds are swapped when given in reverse. A single-point range always
    includes its bound. ``nan_included`` makes NaN samples count as no-data for
    floating point rasters; a NaN point range matches NaN only.
    """

    minimum: float
    maximum: float
    min_included: bool = True
    max_included: bool = True
    nan_included: bool = False

    def __post_init__(self) -> None:
        low, high = float(self.minimum), float(self.maximum)
        if math.isnan(low) != math.isnan(high):
            raise ValueError("NaN values can only be set inside a single-point range.")
        if low > high:
            low, high = high, low
            min_inc, max_inc = self.max_included, self.min_included
            object.__setattr__(self, "min_included", min_inc)
            object.__setattr__(self, "max_included", max_inc)
        object.__setattr__(self, "minimum", low)
        object.__setattr__(self, "maximum", high)
        if self.is_point or self.is_nan:
            if not self.min_included and not self.max_included:
                raise ValueError(
                    "Cannot create a single-point range without minimum and maximum "
                    "bounds included."
                )
            object.__setattr__(self, "min_included", True)
            object.__setattr__(self, "max_included", True)
            object.__setattr__(self, "nan_included", False)

    @property
    def is_nan(self) -> bool:
        return math.isnan(self.minimum)

    @property
    def is_point(self) -> bool:
        return self.minimum == self.maximum or self.is_nan

    @classmethod
    def point(cls, value: float) -> "NoDataRange":
        """Return a range matching exactly ``value`` (NaN matches NaN)."""
        return cls(value, value)

    @classmethod
    def closed(
        cls,
        minimum: float,
        maximum: float,
        *,
        nan_included: bool = False,
    ) -> "NoDataRange":
        return cls(minimum, maximum, True, True, nan_included)

    @classmethod
    def from_nodata(cls, value: Any) -> "NoDataRange | None":
        """Build a range from a scalar nodata value, a mapping, or ``None``."""
        if value is None or isinstance(value, NoDataRange):
            return value
        if isinstance(value, Mapping):
            minimum = value.get("min", value.get("minimum"))
            maximum = value.get("max", value.get("maximum", minimum))
            if minimum is None:
                raise ValueError("No-data range requires a minimum value.")
            return cls(
                float(minimum),
                float(maximum),
                bool(value.get("min_included", True)),
                bool(value.get("max_included", True)),
                bool(value.get("nan_included", False)),
            )
        return cls.point(float(value))

    def contains(self, value: float) -> bool:
        """Return True if a single sample falls inside the range."""
        return bool(self.contains_array(np.asarray(value)))

    def contains_array(self, samples: np.ndarray) -> np.ndarray:
        """Vectorized containment test over an array of samples."""
        data = np.asarray(samples)
        if self.is_nan:
            if data.dtype.kind != "f":
                return np.zeros(data.shape, dtype=bool)
            return np.isnan(data)
        if self.is_point:
            return data == self.minimum
        if self.min_included:
            below = data < self.minimum
        else:
            below = data <= self.minimum
        if self.max_included:
            above = data > self.maximum
        else:
            above = data >= self.maximum
        if self.nan_included:
            # NaN compares false on both sides and lands inside the range.
            return ~below & ~above
        return ~below & ~above & ~_isnan(data)

    def as_dict(self) -> dict[str, Any]:
        return {
            "min": self.minimum,
            "max": self.maximum,
            "min_included": self.min_included,
            "max_included": self.max_included,
            "nan_included": self.nan_included,
        }


def _isnan(data: np.ndarray) -> np.ndarray:
    if data.dtype.kind != "f":
        return np.zeros(data.shape, dtype=bool)
    return np.isnan(data)


class NoDataMask:
    """Per-sample no-data test and operator-null substitution for one sample type.

    Byte samples go through two 256-entry tables built once here; wider types
    test the range directly.
    """

    def __init__(self, nodata: NoDataRange, sample_type: SampleType, null_value: float) -> None:
        self.nodata = nodata
        self.sample_type = sample_type
        self.null_value = sample_type.clamp_round(null_value)
        self.valid_at: np.ndarray | None = None
        self.substitute_at: np.ndarray | None = None
        if sample_type is SampleType.BYTE:
            codes = np.arange(256, dtype=np.uint8)
            self.valid_at = ~nodata.contains_array(codes)
            self.valid_at.setflags(write=False)
            substitute = np.where(self.valid_at, codes, np.uint8(self.null_value))
            self.substitute_at = substitute.astype(np.uint8)
            self.substitute_at.setflags(write=False)

    def is_nodata(self, samples: np.ndarray) -> np.ndarray:
        """Return a boolean array flagging no-data samples."""
        if self.valid_at is not None:
            return ~self.valid_at[samples]
        return self.nodata.contains_array(samples)

    def is_valid(self, samples: np.ndarray) -> np.ndarray:
        if self.valid_at is not None:
            return self.valid_at[samples]
        return ~self.nodata.contains_array(samples)

    def substitute(self, samples: np.ndarray, valid: np.ndarray | None = None) -> np.ndarray:
        """Replace no-data samples with the operator null value."""
        if self.substitute_at is not None:
            return self.substitute_at[samples]
        if valid is None:
            valid = self.is_valid(samples)
        null = np.asarray(self.null_value, dtype=samples.dtype)
        return np.where(valid, samples, null)
