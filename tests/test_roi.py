from __future__ import annotations

import numpy as np
import pytest

from rasteralgebra.algebra.models import Rect
from rasteralgebra.algebra.roi import ROI, MaskROI, RectROI, roi_mask


class DiamondROI(ROI):
    """Pixels within a Manhattan distance of a center."""

    def __init__(self, cx: int, cy: int, radius: int) -> None:
        self.cx, self.cy, self.radius = cx, cy, radius

    @property
    def bounds(self) -> Rect:
        size = 2 * self.radius + 1
        return Rect(self.cx - self.radius, self.cy - self.radius, size, size)

    def contains(self, x: int, y: int) -> bool:
        return abs(x - self.cx) + abs(y - self.cy) <= self.radius


class ContainsOnly:
    bounds = Rect(0, 0, 2, 2)

    def contains(self, x: int, y: int) -> bool:
        return x == y


def test_rect_roi_contains_and_mask() -> None:
    roi = RectROI(Rect(2, 2, 3, 3))
    assert roi.contains(2, 2)
    assert not roi.contains(5, 5)
    mask = roi.mask(Rect(0, 0, 6, 6))
    assert mask.sum() == 9
    assert mask[2:5, 2:5].all()
    assert roi.intersects(Rect(4, 4, 10, 10))
    assert not roi.intersects(Rect(5, 0, 2, 2))


def test_mask_roi_bounds_and_coverage() -> None:
    data = np.zeros((4, 5), dtype=bool)
    data[1, 2] = True
    data[2, 3] = True
    roi = MaskROI(data, x=10, y=20)
    assert roi.bounds == Rect(12, 21, 2, 2)
    assert roi.coverage == pytest.approx(2 / 20)
    assert roi.contains(12, 21)
    assert not roi.contains(2, 1)
    assert not roi.contains(100, 100)


def test_mask_roi_window_outside_backing_raster() -> None:
    roi = MaskROI(np.ones((2, 2), dtype=bool))
    mask = roi.mask(Rect(1, 1, 3, 3))
    assert mask.tolist() == [
        [True, False, False],
        [False, False, False],
        [False, False, False],
    ]


def test_mask_roi_copies_input() -> None:
    data = np.ones((2, 2), dtype=bool)
    roi = MaskROI(data)
    data[:] = False
    assert roi.contains(0, 0)


def test_empty_mask_roi_has_empty_bounds() -> None:
    roi = MaskROI(np.zeros((3, 3), dtype=bool))
    assert roi.bounds.is_empty()
    assert not roi.intersects(Rect(0, 0, 3, 3))


def test_default_mask_falls_back_to_contains() -> None:
    roi = DiamondROI(2, 2, 1)
    rect = Rect(0, 0, 5, 5)
    mask = roi.mask(rect)
    expected = np.array(
        [[roi.contains(x, y) for x in range(5)] for y in range(5)], dtype=bool
    )
    assert np.array_equal(mask, expected)
    assert mask.sum() == 5


def test_roi_mask_supports_duck_typed_rois() -> None:
    mask = roi_mask(ContainsOnly(), Rect(0, 0, 3, 3))  # type: ignore[arg-type]
    assert mask.tolist() == [
        [True, False, False],
        [False, True, False],
        [False, False, True],
    ]


def test_mask_roi_requires_two_dimensions() -> None:
    with pytest.raises(ValueError, match="two-dimensional"):
        MaskROI(np.ones(3, dtype=bool))
