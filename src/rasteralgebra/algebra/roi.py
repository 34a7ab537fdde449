"""Region-of-interest predicates consumed by the algebra kernels."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from rasteralgebra.algebra.models import Rect


class ROI(ABC):
    """Membership test over absolute pixel coordinates.

    Subclasses provide ``bounds`` and ``contains``; ``mask`` evaluates a whole
    rectangle at once and should be overridden when a faster form exists.
    """

    @property
    @abstractmethod
    def bounds(self) -> Rect:
        ...

    @abstractmethod
    def contains(self, x: int, y: int) -> bool:
        ...

    def intersects(self, rect: Rect) -> bool:
        """Fast rejection test against the ROI bounding rectangle."""
        return self.bounds.intersects(rect)

    def mask(self, rect: Rect) -> np.ndarray:
        """Return a ``(height, width)`` boolean array of pixels inside the ROI."""
        out = np.zeros(rect.shape, dtype=bool)
        window = rect.intersection(self.bounds)
        for y in range(window.y, window.y_end):
            for x in range(window.x, window.x_end):
                out[y - rect.y, x - rect.x] = self.contains(x, y)
        return out


class RectROI(ROI):
    """Axis-aligned rectangular ROI."""

    def __init__(self, rect: Rect) -> None:
        self._rect = rect

    @property
    def bounds(self) -> Rect:
        return self._rect

    def contains(self, x: int, y: int) -> bool:
        rect = self._rect
        return rect.x <= x < rect.x_end and rect.y <= y < rect.y_end

    def mask(self, rect: Rect) -> np.ndarray:
        out = np.zeros(rect.shape, dtype=bool)
        window = rect.intersection(self._rect)
        if not window.is_empty():
            out[
                window.y - rect.y : window.y_end - rect.y,
                window.x - rect.x : window.x_end - rect.x,
            ] = True
        return out


class MaskROI(ROI):
    """ROI backed by a boolean raster anchored at ``(x, y)``."""

    def __init__(self, mask: np.ndarray, *, x: int = 0, y: int = 0) -> None:
        data = np.asarray(mask, dtype=bool)
        if data.ndim != 2:
            raise ValueError("ROI mask must be two-dimensional.")
        self._mask = data.copy()
        self._mask.setflags(write=False)
        self._origin = Rect(x, y, data.shape[1], data.shape[0])
        self._bounds = self._compute_bounds()

    def _compute_bounds(self) -> Rect:
        rows = np.flatnonzero(self._mask.any(axis=1))
        cols = np.flatnonzero(self._mask.any(axis=0))
        if rows.size == 0:
            return Rect(self._origin.x, self._origin.y, 0, 0)
        return Rect(
            self._origin.x + int(cols[0]),
            self._origin.y + int(rows[0]),
            int(cols[-1] - cols[0]) + 1,
            int(rows[-1] - rows[0]) + 1,
        )

    @property
    def bounds(self) -> Rect:
        return self._bounds

    @property
    def coverage(self) -> float:
        """Fraction of the backing raster inside the ROI."""
        if self._mask.size == 0:
            return 0.0
        return float(self._mask.mean())

    def contains(self, x: int, y: int) -> bool:
        origin = self._origin
        if not (origin.x <= x < origin.x_end and origin.y <= y < origin.y_end):
            return False
        return bool(self._mask[y - origin.y, x - origin.x])

    def mask(self, rect: Rect) -> np.ndarray:
        out = np.zeros(rect.shape, dtype=bool)
        window = rect.intersection(self._origin)
        if window.is_empty():
            return out
        origin = self._origin
        out[
            window.y - rect.y : window.y_end - rect.y,
            window.x - rect.x : window.x_end - rect.x,
        ] = self._mask[
            window.y - origin.y : window.y_end - origin.y,
            window.x - origin.x : window.x_end - origin.x,
        ]
        return out


def roi_mask(roi: ROI, rect: Rect) -> np.ndarray:
    """Evaluate any ROI over ``rect``; duck-typed ROIs without ``mask`` fall back to ``contains`` per pixel."""
    mask = getattr(roi, "mask", None)
    if callable(mask):
        return np.asarray(mask(rect), dtype=bool)
    out = np.zeros(rect.shape, dtype=bool)
    for row in range(rect.height):
        for col in range(rect.width):
            out[row, col] = roi.contains(rect.x + col, rect.y + row)
    return out
