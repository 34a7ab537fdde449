"""Per-band raster kernels for the four ROI/no-data execution paths.

Each path is a separate function picked once per engine from ``KERNELS``, so
the per-pixel work never branches on whether a ROI or a no-data range is set.
Every function receives the raw operand windows of one band, in source order
and in their stored sample types, and returns that band of the destination
block in the output sample type.
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from rasteralgebra.algebra.errors import AlgebraError
from rasteralgebra.algebra.models import ExecutionPath
from rasteralgebra.algebra.reconcile import EngineState

BandKernel = Callable[[EngineState, Sequence[np.ndarray], "np.ndarray | None"], np.ndarray]


def _nodata_fill(state: EngineState, shape: tuple[int, ...]) -> np.ndarray:
    return np.full(shape, state.destination_nodata, dtype=state.sample_type.dtype)


def _require_inside(inside: np.ndarray | None) -> np.ndarray:
    if inside is None:
        raise AlgebraError("ROI kernels need the inside mask of the region.")
    return inside


def _fold_valid(state: EngineState, operands: Sequence[np.ndarray]) -> np.ndarray:
    """Substitute no-data operands, fold, and flag pixels with no valid operand."""
    masks = state.nodata_masks
    if len(masks) != len(operands):
        raise AlgebraError("No-data kernels need one mask per source.")
    valid = [mask.is_valid(operand) for mask, operand in zip(masks, operands)]
    substituted = [
        mask.substitute(operand, flags) for mask, operand, flags in zip(masks, operands, valid)
    ]
    result = state.reduce(substituted)
    any_valid = np.logical_or.reduce(valid)
    nodata = np.asarray(state.destination_nodata, dtype=state.sample_type.dtype)
    return np.where(any_valid, result, nodata).astype(state.sample_type.dtype, copy=False)


def band_none(
    state: EngineState,
    operands: Sequence[np.ndarray],
    inside: np.ndarray | None = None,
) -> np.ndarray:
    return state.reduce(operands)


def band_roi_only(
    state: EngineState,
    operands: Sequence[np.ndarray],
    inside: np.ndarray | None = None,
) -> np.ndarray:
    inside = _require_inside(inside)
    out = _nodata_fill(state, inside.shape)
    if inside.any():
        out[inside] = state.reduce([operand[inside] for operand in operands])
    return out


def band_nodata_only(
    state: EngineState,
    operands: Sequence[np.ndarray],
    inside: np.ndarray | None = None,
) -> np.ndarray:
    return _fold_valid(state, operands)


def band_both(
    state: EngineState,
    operands: Sequence[np.ndarray],
    inside: np.ndarray | None = None,
) -> np.ndarray:
    inside = _require_inside(inside)
    out = _nodata_fill(state, inside.shape)
    if inside.any():
        out[inside] = _fold_valid(state, [operand[inside] for operand in operands])
    return out


KERNELS: dict[ExecutionPath, BandKernel] = {
    ExecutionPath.NONE: band_none,
    ExecutionPath.ROI_ONLY: band_roi_only,
    ExecutionPath.NODATA_ONLY: band_nodata_only,
    ExecutionPath.BOTH: band_both,
}


def kernel_for(path: ExecutionPath) -> BandKernel:
    return KERNELS[path]


def run_kernel(
    state: EngineState,
    kernel: BandKernel,
    windows: Sequence[Sequence[np.ndarray]],
    inside: np.ndarray | None,
    shape: tuple[int, int],
) -> np.ndarray:
    """Compute a ``(bands, height, width)`` block from per-band source windows.

    ``windows[band][source]`` holds the strided view of ``source`` for ``band``.
    """
    block = np.empty((state.band_count, *shape), dtype=state.sample_type.dtype)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for band, sources in enumerate(windows):
            block[band] = kernel(state, list(sources), inside)
    return block
