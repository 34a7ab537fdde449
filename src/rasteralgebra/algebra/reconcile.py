"""Construction-time band and sample type reconciliation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from rasteralgebra.algebra.errors import (
    GeometryMismatchError,
    InvalidOperatorError,
    UnsupportedRepresentationError,
)
from rasteralgebra.algebra.models import ExecutionPath, LayoutHint, SourceInfo
from rasteralgebra.algebra.nodata import NoDataMask, NoDataRange
from rasteralgebra.algebra.operators import Operator, OperatorFuncs, lookup
from rasteralgebra.algebra.types import SampleType

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineState:
    """Immutable state resolved once per engine and shared by every region."""

    operator: Operator
    funcs: OperatorFuncs
    compute_type: SampleType
    source_count: int
    source_bands: tuple[int, ...]
    source_types: tuple[SampleType, ...]
    band_count: int
    sample_type: SampleType
    destination_nodata: int | float
    null_value: int | float
    path: ExecutionPath
    nodata_masks: tuple[NoDataMask, ...]

    def source_band(self, source: int, band: int) -> int:
        """Map an output band to the band read from ``source``."""
        if self.source_bands[source] == 1:
            return 0
        return band

    def reduce(self, operands: Sequence[np.ndarray]) -> np.ndarray:
        """Fold raw operands in ``compute_type`` and clamp once into ``sample_type``."""
        return self.funcs.reduce(operands, self.sample_type)

    @property
    def destination_nodata_vector(self) -> tuple[int | float, ...]:
        return tuple(self.destination_nodata for _ in range(self.band_count))


def resolve_band_count(sources: Sequence[SourceInfo], hint: LayoutHint | None) -> int:
    """Return the output band count for ``sources``.

    Without a hint the smallest source band count wins. A hinted count is kept
    when every source is single-banded or has at least that many bands, and is
    otherwise capped to the smallest multi-band source.
    """
    counts = [source.band_count for source in sources]
    minimum = min(counts)
    if len(set(counts)) > 1:
        LOGGER.warning(
            "Sources disagree in band count; output limited accordingly.",
            extra={"band_counts": counts},
        )
    if hint is None or hint.band_count is None:
        return minimum
    requested = int(hint.band_count)
    if requested <= 0:
        raise GeometryMismatchError("Layout band count must be positive.")
    multi = [count for count in counts if count > 1]
    if not multi:
        return requested
    return min(requested, min(multi))


def resolve_sample_type(sources: Sequence[SourceInfo], hint: LayoutHint | None) -> SampleType:
    if hint is not None and hint.sample_type is not None:
        return SampleType.parse(hint.sample_type)
    return SampleType.widest([source.sample_type for source in sources])


def resolve_state(
    operator: Operator | str | None,
    sources: Sequence[SourceInfo],
    *,
    layout: LayoutHint | None = None,
    nodata: NoDataRange | None = None,
    destination_nodata: float = 0.0,
    has_roi: bool = False,
) -> EngineState:
    """Validate construction inputs and precompute the engine state."""
    if operator is None:
        raise InvalidOperatorError("Operation not defined.")
    resolved_op = Operator.parse(operator)
    if not sources:
        raise ValueError("At least one source is required.")
    for source in sources:
        if not isinstance(source.sample_type, SampleType):
            raise UnsupportedRepresentationError(
                f"Unsupported source sample type: {source.sample_type!r}"
            )
        if source.band_count <= 0:
            raise GeometryMismatchError("Sources must have at least one band.")
    sample_type = resolve_sample_type(sources, layout)
    for source in sources:
        lookup(resolved_op, source.sample_type)
    compute_type = SampleType.compatible(
        [source.sample_type for source in sources] + [sample_type]
    )
    funcs = lookup(resolved_op, compute_type)
    band_count = resolve_band_count(sources, layout)
    dest_value = sample_type.clamp_round(destination_nodata)
    null_value = sample_type.clamp_round(resolved_op.null_value)
    masks: tuple[NoDataMask, ...] = ()
    if nodata is not None:
        # One mask per source kind; samples are tested before any conversion.
        by_kind = {
            kind: NoDataMask(nodata, kind, resolved_op.null_value)
            for kind in {source.sample_type for source in sources}
        }
        masks = tuple(by_kind[source.sample_type] for source in sources)
    path = ExecutionPath.select(has_roi=has_roi, has_nodata=nodata is not None)
    state = EngineState(
        operator=resolved_op,
        funcs=funcs,
        compute_type=compute_type,
        source_count=len(sources),
        source_bands=tuple(source.band_count for source in sources),
        source_types=tuple(source.sample_type for source in sources),
        band_count=band_count,
        sample_type=sample_type,
        destination_nodata=dest_value,
        null_value=null_value,
        path=path,
        nodata_masks=masks,
    )
    LOGGER.debug(
        "Resolved %s engine: %s source(s), %s band(s), %s computed as %s, path=%s",
        resolved_op.label,
        state.source_count,
        band_count,
        sample_type.name,
        compute_type.name,
        path.value,
    )
    return state
