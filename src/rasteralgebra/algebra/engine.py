"""Multi-source raster algebra engine and its region dispatcher."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from rasteralgebra.algebra.buffers import SampleBuffer
from rasteralgebra.algebra.errors import GeometryMismatchError, UnsupportedRepresentationError
from rasteralgebra.algebra.kernel import kernel_for, run_kernel
from rasteralgebra.algebra.models import ExecutionPath, LayoutHint, Rect, SourceInfo
from rasteralgebra.algebra.nodata import NoDataRange
from rasteralgebra.algebra.operators import Operator
from rasteralgebra.algebra.reconcile import EngineState, resolve_state
from rasteralgebra.algebra.roi import ROI, roi_mask
from rasteralgebra.algebra.types import SampleType

LOGGER = logging.getLogger(__name__)


class AlgebraEngine:
    """Fold one operator across N sources, one rectangle at a time.

    All validation happens here; ``compute_region`` never mutates the engine
    and may run concurrently for disjoint rectangles.
    """

    def __init__(
        self,
        operator: Operator | str | None,
        sources: Sequence[SourceInfo],
        *,
        roi: ROI | None = None,
        nodata: NoDataRange | None = None,
        destination_nodata: float = 0.0,
        layout: LayoutHint | None = None,
    ) -> None:
        self.roi = roi
        self.nodata = nodata
        self.state: EngineState = resolve_state(
            operator,
            sources,
            layout=layout,
            nodata=nodata,
            destination_nodata=destination_nodata,
            has_roi=roi is not None,
        )
        self._kernel = kernel_for(self.state.path)

    @classmethod
    def for_buffers(
        cls,
        operator: Operator | str | None,
        buffers: Sequence[SampleBuffer],
        **kwargs: object,
    ) -> "AlgebraEngine":
        """Build an engine whose source descriptors come from ``buffers``."""
        infos = [SourceInfo(buffer.band_count, buffer.sample_type) for buffer in buffers]
        return cls(operator, infos, **kwargs)  # type: ignore[arg-type]

    @property
    def operator(self) -> Operator:
        return self.state.operator

    @property
    def band_count(self) -> int:
        return self.state.band_count

    @property
    def sample_type(self) -> SampleType:
        return self.state.sample_type

    @property
    def path(self) -> ExecutionPath:
        return self.state.path

    @property
    def destination_nodata(self) -> int | float:
        return self.state.destination_nodata

    def _check_destination(self, dest: SampleBuffer) -> None:
        dest_type = SampleType.from_dtype(dest.data.dtype)
        if dest_type is not self.state.sample_type:
            raise UnsupportedRepresentationError(
                f"Destination holds {dest_type.name}; engine produces {self.state.sample_type.name}"
            )
        if dest.band_count < self.state.band_count:
            raise GeometryMismatchError(
                f"Destination has {dest.band_count} bands; engine produces {self.state.band_count}"
            )

    def compute_region(
        self,
        sources: Sequence[SampleBuffer],
        dest: SampleBuffer,
        rect: Rect,
    ) -> None:
        """Compute ``rect`` from ``sources`` into ``dest``."""
        state = self.state
        self._check_destination(dest)
        if len(sources) != state.source_count:
            raise GeometryMismatchError(
                f"Expected {state.source_count} source buffer(s), got {len(sources)}"
            )
        for index, (source, expected) in enumerate(zip(sources, state.source_types)):
            if source.sample_type is not expected:
                raise UnsupportedRepresentationError(
                    f"Source {index} holds {source.sample_type.name}; expected {expected.name}"
                )
        if rect.is_empty():
            return
        if self.roi is not None and not self.roi.bounds.intersects(rect):
            LOGGER.debug("Region %s lies outside the ROI; writing no-data.", rect.as_tuple())
            dest.fill(rect, state.destination_nodata_vector)
            return

        windows = [
            [
                source.band_window(state.source_band(index, band), rect)
                for index, source in enumerate(sources)
            ]
            for band in range(state.band_count)
        ]
        inside = roi_mask(self.roi, rect) if self.roi is not None and state.path.uses_roi else None
        block = run_kernel(state, self._kernel, windows, inside, rect.shape)
        dest.write(rect, block)

    def compute(self, arrays: Sequence[np.ndarray], *, x: int = 0, y: int = 0) -> np.ndarray:
        """Compute a whole image from banded arrays sharing one extent."""
        buffers = [SampleBuffer.banded(array, x=x, y=y) for array in arrays]
        extents = {buffer.rect for buffer in buffers}
        if len(extents) != 1:
            raise GeometryMismatchError("All source arrays must share the same extent.")
        rect = buffers[0].rect
        dest = SampleBuffer.allocate(rect, self.state.band_count, self.state.sample_type)
        self.compute_region(buffers, dest, rect)
        return dest.to_array()
