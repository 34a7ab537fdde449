from __future__ import annotations

import logging

import pytest

from rasteralgebra.algebra.errors import (
    GeometryMismatchError,
    InvalidOperatorError,
    UnsupportedRepresentationError,
)
from rasteralgebra.algebra.models import ExecutionPath, LayoutHint, SourceInfo
from rasteralgebra.algebra.nodata import NoDataRange
from rasteralgebra.algebra.operators import Operator
from rasteralgebra.algebra.reconcile import resolve_band_count, resolve_sample_type, resolve_state
from rasteralgebra.algebra.types import SampleType

BYTE_1 = SourceInfo(1, SampleType.BYTE)
BYTE_3 = SourceInfo(3, SampleType.BYTE)


def test_band_count_defaults_to_minimum(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="rasteralgebra.algebra.reconcile"):
        assert resolve_band_count([BYTE_1, BYTE_3], None) == 1
    record = caplog.records[-1]
    assert "disagree" in record.getMessage()
    assert record.band_counts == [1, 3]


def test_matching_band_counts_do_not_warn(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        assert resolve_band_count([BYTE_3, BYTE_3], None) == 3
    assert not caplog.records


def test_band_count_hint() -> None:
    assert resolve_band_count([BYTE_1, BYTE_3], LayoutHint(band_count=3)) == 3
    assert resolve_band_count([BYTE_1, BYTE_1], LayoutHint(band_count=3)) == 3
    assert resolve_band_count([BYTE_3, BYTE_3], LayoutHint(band_count=5)) == 3
    assert resolve_band_count([BYTE_3], LayoutHint(band_count=2)) == 2
    with pytest.raises(GeometryMismatchError, match="positive"):
        resolve_band_count([BYTE_3], LayoutHint(band_count=0))


def test_sample_type_resolution() -> None:
    sources = [BYTE_1, SourceInfo(1, SampleType.SHORT)]
    assert resolve_sample_type(sources, None) is SampleType.SHORT
    assert resolve_sample_type(sources, LayoutHint(sample_type=SampleType.FLOAT)) is SampleType.FLOAT


def test_state_rejects_bad_inputs() -> None:
    with pytest.raises(InvalidOperatorError, match="not defined"):
        resolve_state(None, [BYTE_1])
    with pytest.raises(InvalidOperatorError):
        resolve_state("power", [BYTE_1])
    with pytest.raises(ValueError, match="At least one source"):
        resolve_state(Operator.SUM, [])
    with pytest.raises(UnsupportedRepresentationError):
        resolve_state(Operator.SUM, [SourceInfo(1, "uint8")])  # type: ignore[arg-type]
    with pytest.raises(GeometryMismatchError, match="at least one band"):
        resolve_state(Operator.SUM, [SourceInfo(0, SampleType.BYTE)])


def test_state_clamps_sentinels_into_output_type() -> None:
    state = resolve_state(Operator.MULTIPLY, [BYTE_1], destination_nodata=-5)
    assert state.destination_nodata == 0
    assert state.null_value == 1
    state = resolve_state(Operator.SUM, [BYTE_1], destination_nodata=300)
    assert state.destination_nodata == 255
    assert state.destination_nodata_vector == (255,)


@pytest.mark.parametrize(
    ("has_roi", "nodata", "path"),
    [
        (False, None, ExecutionPath.NONE),
        (True, None, ExecutionPath.ROI_ONLY),
        (False, NoDataRange.point(0), ExecutionPath.NODATA_ONLY),
        (True, NoDataRange.point(0), ExecutionPath.BOTH),
    ],
)
def test_state_selects_execution_path(
    has_roi: bool, nodata: NoDataRange | None, path: ExecutionPath
) -> None:
    state = resolve_state(Operator.SUM, [BYTE_1], nodata=nodata, has_roi=has_roi)
    assert state.path is path
    assert bool(state.nodata_masks) == path.uses_nodata
    assert path.uses_roi == has_roi


def test_single_band_sources_are_broadcast() -> None:
    state = resolve_state(Operator.SUM, [BYTE_1, BYTE_3], layout=LayoutHint(band_count=3))
    assert state.band_count == 3
    assert [state.source_band(0, band) for band in range(3)] == [0, 0, 0]
    assert [state.source_band(1, band) for band in range(3)] == [0, 1, 2]


def test_state_computes_in_a_type_holding_every_source() -> None:
    ushort = SourceInfo(1, SampleType.USHORT)
    short = SourceInfo(1, SampleType.SHORT)
    state = resolve_state(Operator.SUBTRACT, [ushort, short])
    assert state.sample_type is SampleType.SHORT
    assert state.compute_type is SampleType.INT

    narrowed = resolve_state(
        Operator.SUM, [short, short], layout=LayoutHint(sample_type=SampleType.BYTE)
    )
    assert narrowed.sample_type is SampleType.BYTE
    assert narrowed.compute_type is SampleType.SHORT


def test_state_builds_one_nodata_mask_per_source_kind() -> None:
    short = SourceInfo(1, SampleType.SHORT)
    state = resolve_state(
        Operator.SUM,
        [BYTE_1, short, BYTE_1],
        nodata=NoDataRange.point(0),
        layout=LayoutHint(sample_type=SampleType.FLOAT),
    )
    kinds = [mask.sample_type for mask in state.nodata_masks]
    assert kinds == [SampleType.BYTE, SampleType.SHORT, SampleType.BYTE]
    assert state.nodata_masks[0] is state.nodata_masks[2]
