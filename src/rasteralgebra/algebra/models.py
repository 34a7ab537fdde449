"""Data models shared by the algebra engines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from rasteralgebra.algebra.types import SampleType


@dataclass(frozen=True)
class Rect:
    """Pixel rectangle in absolute image coordinates."""

    x: int
    y: int
    width: int
    height: int

    @property
    def x_end(self) -> int:
        return self.x + self.width

    @property
    def y_end(self) -> int:
        return self.y + self.height

    @property
    def shape(self) -> tuple[int, int]:
        return (self.height, self.width)

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersects(self, other: "Rect") -> bool:
        """Return True if the two rectangles share at least one pixel."""
        if self.is_empty() or other.is_empty():
            return False
        return (
            self.x < other.x_end
            and other.x < self.x_end
            and self.y < other.y_end
            and other.y < self.y_end
        )

    def intersection(self, other: "Rect") -> "Rect":
        x = max(self.x, other.x)
        y = max(self.y, other.y)
        width = max(0, min(self.x_end, other.x_end) - x)
        height = max(0, min(self.y_end, other.y_end) - y)
        return Rect(x, y, width, height)

    def contains_rect(self, other: "Rect") -> bool:
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.x_end <= self.x_end
            and other.y_end <= self.y_end
        )

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class LayoutHint:
    """Optional destination layout requested by the caller."""

    band_count: int | None = None
    sample_type: SampleType | None = None


@dataclass(frozen=True)
class SourceInfo:
    """Band count and sample type of one source raster."""

    band_count: int
    sample_type: SampleType


class ExecutionPath(Enum):
    """Kernel variant selected from the presence of a ROI and a no-data range."""

    NONE = "none"
    ROI_ONLY = "roi_only"
    NODATA_ONLY = "nodata_only"
    BOTH = "both"

    @classmethod
    def select(cls, *, has_roi: bool, has_nodata: bool) -> "ExecutionPath":
        if has_roi and has_nodata:
            return cls.BOTH
        if has_roi:
            return cls.ROI_ONLY
        if has_nodata:
            return cls.NODATA_ONLY
        return cls.NONE

    @property
    def uses_roi(self) -> bool:
        return self in (ExecutionPath.ROI_ONLY, ExecutionPath.BOTH)

    @property
    def uses_nodata(self) -> bool:
        return self in (ExecutionPath.NODATA_ONLY, ExecutionPath.BOTH)
