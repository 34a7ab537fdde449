"""Single-source algebra against a per-band constant vector."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from rasteralgebra.algebra.buffers import SampleBuffer
from rasteralgebra.algebra.errors import GeometryMismatchError, UnsupportedRepresentationError
from rasteralgebra.algebra.models import ExecutionPath, LayoutHint, Rect, SourceInfo
from rasteralgebra.algebra.nodata import NoDataRange
from rasteralgebra.algebra.operators import Operator, lookup
from rasteralgebra.algebra.reconcile import resolve_sample_type
from rasteralgebra.algebra.roi import ROI, roi_mask
from rasteralgebra.algebra.types import SampleType

LOGGER = logging.getLogger(__name__)


def _apply(operator: Operator, values: np.ndarray, constant: float) -> np.ndarray:
    """Evaluate ``values op constant`` in float64 with IEEE semantics."""
    data = values.astype(np.float64)
    if operator is Operator.SUM:
        return data + constant
    if operator is Operator.SUBTRACT:
        return data - constant
    if operator is Operator.MULTIPLY:
        return data * constant
    return data / constant


class ConstantEngine:
    """Compute ``dst[b] = op(src[b], constants[b])`` for one source.

    Raw source samples are evaluated in float64 and clamp-rounded into the
    output type once, so an integer division by zero saturates to the type's
    bounds. No-data is tested on the raw samples; no-data samples and pixels
    outside the ROI become destination no-data.
    """

    def __init__(
        self,
        operator: Operator | str | None,
        constants: Sequence[float],
        source: SourceInfo,
        *,
        roi: ROI | None = None,
        nodata: NoDataRange | None = None,
        destination_nodata: float = 0.0,
        layout: LayoutHint | None = None,
    ) -> None:
        self.operator = Operator.parse(operator)
        if not constants:
            raise GeometryMismatchError("Constants not defined.")
        self.sample_type = resolve_sample_type([source], layout)
        self.source_type = source.sample_type
        lookup(self.operator, self.sample_type)
        self.band_count = source.band_count
        if layout is not None and layout.band_count is not None:
            self.band_count = min(int(layout.band_count), source.band_count)
        if len(constants) < self.band_count:
            self.constants = tuple(float(constants[0]) for _ in range(self.band_count))
        else:
            self.constants = tuple(float(value) for value in constants[: self.band_count])
        self.roi = roi
        self.nodata = nodata
        self.destination_nodata = self.sample_type.clamp_round(destination_nodata)
        self.path = ExecutionPath.select(has_roi=roi is not None, has_nodata=nodata is not None)
        self._tables: tuple[np.ndarray, ...] | None = None
        if self.source_type is SampleType.BYTE:
            self._tables = self._build_byte_tables()
        LOGGER.debug(
            "Resolved constant %s engine: %s band(s), %s, path=%s",
            self.operator.label,
            self.band_count,
            self.sample_type.name,
            self.path.value,
        )

    def _build_byte_tables(self) -> tuple[np.ndarray, ...]:
        codes = np.arange(256, dtype=np.uint8)
        excluded = (
            self.nodata.contains_array(codes)
            if self.nodata is not None
            else np.zeros(256, dtype=bool)
        )
        tables = []
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            for constant in self.constants:
                table = self.sample_type.clamp_round_array(_apply(self.operator, codes, constant))
                table[excluded] = self.destination_nodata
                table.setflags(write=False)
                tables.append(table)
        return tuple(tables)

    def _compute_band(self, band: int, samples: np.ndarray, inside: np.ndarray | None) -> np.ndarray:
        if self._tables is not None:
            out = self._tables[band][samples]
        else:
            out = self.sample_type.clamp_round_array(
                _apply(self.operator, samples, self.constants[band])
            )
            if self.path.uses_nodata and self.nodata is not None:
                out[self.nodata.contains_array(samples)] = self.destination_nodata
        if inside is not None:
            out = np.where(inside, out, np.asarray(self.destination_nodata, dtype=out.dtype))
        return out

    def compute_region(self, sources: Sequence[SampleBuffer], dest: SampleBuffer, rect: Rect) -> None:
        """Compute ``rect`` of the single source into ``dest``."""
        if len(sources) != 1:
            raise GeometryMismatchError(f"Expected 1 source buffer, got {len(sources)}")
        if sources[0].sample_type is not self.source_type:
            raise UnsupportedRepresentationError(
                f"Source holds {sources[0].sample_type.name}; expected {self.source_type.name}"
            )
        if SampleType.from_dtype(dest.data.dtype) is not self.sample_type:
            raise UnsupportedRepresentationError(
                f"Destination must hold {self.sample_type.name} samples"
            )
        if rect.is_empty():
            return
        if self.roi is not None and not self.roi.bounds.intersects(rect):
            dest.fill(rect, [self.destination_nodata] * self.band_count)
            return
        inside = roi_mask(self.roi, rect) if self.roi is not None else None
        source = sources[0]
        block = np.empty((self.band_count, *rect.shape), dtype=self.sample_type.dtype)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            for band in range(self.band_count):
                block[band] = self._compute_band(band, source.band_window(band, rect), inside)
        dest.write(rect, block)

    def compute(self, array: np.ndarray, *, x: int = 0, y: int = 0) -> np.ndarray:
        """Compute a whole banded array."""
        buffer = SampleBuffer.banded(array, x=x, y=y)
        dest = SampleBuffer.allocate(buffer.rect, self.band_count, self.sample_type)
        self.compute_region([buffer], dest, buffer.rect)
        return dest.to_array()
