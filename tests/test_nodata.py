from __future__ import annotations

import math

import numpy as np
import pytest

from rasteralgebra.algebra.nodata import NoDataMask, NoDataRange
from rasteralgebra.algebra.types import SampleType


def test_reversed_bounds_are_swapped() -> None:
    nodata = NoDataRange(5, 1, min_included=False, max_included=True)
    assert (nodata.minimum, nodata.maximum) == (1.0, 5.0)
    assert nodata.min_included is True
    assert nodata.max_included is False


def test_point_range() -> None:
    nodata = NoDataRange.point(3)
    assert nodata.is_point
    assert nodata.contains(3)
    assert not nodata.contains(4)


def test_exclusive_bounds() -> None:
    nodata = NoDataRange(0, 10, min_included=False, max_included=False)
    assert not nodata.contains(0)
    assert nodata.contains(5)
    assert not nodata.contains(10)


def test_nan_point_matches_nan_only() -> None:
    nodata = NoDataRange.point(float("nan"))
    assert nodata.is_nan
    assert nodata.contains(float("nan"))
    assert not nodata.contains(1.0)
    assert not nodata.contains_array(np.array([0, 1], dtype=np.int16)).any()


def test_nan_included_flag() -> None:
    samples = np.array([np.nan, 5.0, 11.0])
    assert NoDataRange.closed(0, 10, nan_included=True).contains_array(samples).tolist() == [
        True,
        True,
        False,
    ]
    assert NoDataRange.closed(0, 10).contains_array(samples).tolist() == [False, True, False]


def test_invalid_ranges() -> None:
    with pytest.raises(ValueError, match="single-point"):
        NoDataRange(float("nan"), 1.0)
    with pytest.raises(ValueError, match="single-point"):
        NoDataRange(3, 3, min_included=False, max_included=False)


def test_point_range_forces_inclusive_bounds() -> None:
    nodata = NoDataRange(3, 3, min_included=False, max_included=True)
    assert nodata.min_included and nodata.max_included
    assert nodata.contains(3)


def test_from_nodata_variants() -> None:
    assert NoDataRange.from_nodata(None) is None
    assert NoDataRange.from_nodata(-9999) == NoDataRange.point(-9999)
    ranged = NoDataRange.from_nodata({"min": 1, "max": 3, "max_included": False})
    assert ranged == NoDataRange(1, 3, True, False)
    assert ranged.as_dict()["max_included"] is False
    existing = NoDataRange.point(2)
    assert NoDataRange.from_nodata(existing) is existing
    with pytest.raises(ValueError, match="minimum"):
        NoDataRange.from_nodata({"max": 3})


def test_byte_mask_uses_lookup_tables() -> None:
    mask = NoDataMask(NoDataRange.closed(10, 20), SampleType.BYTE, null_value=0)
    assert mask.valid_at is not None and mask.substitute_at is not None
    assert mask.valid_at.shape == (256,)
    assert not mask.valid_at[15]
    assert mask.valid_at[9]
    assert not mask.valid_at.flags.writeable
    assert not mask.substitute_at.flags.writeable

    samples = np.array([5, 15, 20, 21], dtype=np.uint8)
    assert mask.substitute(samples).tolist() == [5, 0, 0, 21]
    assert mask.is_nodata(samples).tolist() == [False, True, True, False]


def test_wide_mask_substitutes_null_value() -> None:
    mask = NoDataMask(NoDataRange.point(-5), SampleType.SHORT, null_value=1)
    assert mask.valid_at is None
    samples = np.array([-5, 7], dtype=np.int16)
    assert mask.is_valid(samples).tolist() == [False, True]
    substituted = mask.substitute(samples)
    assert substituted.dtype == np.int16
    assert substituted.tolist() == [1, 7]


def test_float_mask_with_nan() -> None:
    mask = NoDataMask(NoDataRange.point(float("nan")), SampleType.DOUBLE, null_value=0)
    samples = np.array([np.nan, 2.5])
    out = mask.substitute(samples)
    assert out.tolist() == [0.0, 2.5]
    assert not math.isnan(out[0])
