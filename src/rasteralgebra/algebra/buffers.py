"""Strided sample buffers addressed by scanline, pixel and band offsets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import as_strided

from rasteralgebra.algebra.errors import GeometryMismatchError
from rasteralgebra.algebra.models import Rect
from rasteralgebra.algebra.types import SampleType


@dataclass(frozen=True)
class SampleBuffer:
    """Flat sample storage covering ``rect`` with explicit stride metadata.

    The sample for band ``b`` at absolute pixel ``(col, row)`` lives at
    ``offset + (row - rect.y) * scanline_stride + (col - rect.x) * pixel_stride
    + band_offsets[b]``. Banded, pixel-interleaved and custom layouts all map
    onto this form.
    """

    data: np.ndarray
    rect: Rect
    scanline_stride: int
    pixel_stride: int
    band_offsets: tuple[int, ...]
    offset: int = 0

    def __post_init__(self) -> None:
        if self.data.ndim != 1:
            raise ValueError("Sample buffer data must be a flat array.")
        if not self.band_offsets:
            raise ValueError("Sample buffer requires at least one band.")
        if not self.rect.is_empty():
            last = (
                self.offset
                + (self.rect.height - 1) * self.scanline_stride
                + (self.rect.width - 1) * self.pixel_stride
                + max(self.band_offsets)
            )
            if last >= self.data.size or self.offset + min(self.band_offsets) < 0:
                raise ValueError("Sample buffer strides address samples outside the data array.")

    @classmethod
    def banded(cls, array: np.ndarray, *, x: int = 0, y: int = 0) -> "SampleBuffer":
        """Wrap a ``(bands, height, width)`` or ``(height, width)`` array."""
        data = np.asarray(array)
        if data.ndim == 2:
            data = data[np.newaxis, ...]
        if data.ndim != 3:
            raise ValueError("Banded arrays must have shape (bands, height, width).")
        data = np.ascontiguousarray(data)
        bands, height, width = data.shape
        return cls(
            data=data.reshape(-1),
            rect=Rect(x, y, width, height),
            scanline_stride=width,
            pixel_stride=1,
            band_offsets=tuple(band * height * width for band in range(bands)),
        )

    @classmethod
    def interleaved(cls, array: np.ndarray, *, x: int = 0, y: int = 0) -> "SampleBuffer":
        """Wrap a pixel-interleaved ``(height, width, bands)`` array."""
        data = np.asarray(array)
        if data.ndim == 2:
            data = data[..., np.newaxis]
        if data.ndim != 3:
            raise ValueError("Interleaved arrays must have shape (height, width, bands).")
        data = np.ascontiguousarray(data)
        height, width, bands = data.shape
        return cls(
            data=data.reshape(-1),
            rect=Rect(x, y, width, height),
            scanline_stride=width * bands,
            pixel_stride=bands,
            band_offsets=tuple(range(bands)),
        )

    @classmethod
    def allocate(
        cls,
        rect: Rect,
        band_count: int,
        sample_type: SampleType,
        *,
        fill: float | None = None,
    ) -> "SampleBuffer":
        """Allocate a banded buffer for ``rect``."""
        shape = (band_count, rect.height, rect.width)
        if fill is None:
            array = np.zeros(shape, dtype=sample_type.dtype)
        else:
            array = np.full(shape, fill, dtype=sample_type.dtype)
        return cls.banded(array, x=rect.x, y=rect.y)

    @property
    def band_count(self) -> int:
        return len(self.band_offsets)

    @property
    def sample_type(self) -> SampleType:
        return SampleType.from_dtype(self.data.dtype)

    def band_window(self, band: int, rect: Rect) -> np.ndarray:
        """Return a strided ``(height, width)`` view of one band over ``rect``."""
        if not self.rect.contains_rect(rect):
            raise GeometryMismatchError(
                f"Buffer {self.rect.as_tuple()} does not cover region {rect.as_tuple()}"
            )
        if band < 0 or band >= self.band_count:
            raise GeometryMismatchError(f"Band {band} outside buffer with {self.band_count} bands")
        start = (
            self.offset
            + (rect.y - self.rect.y) * self.scanline_stride
            + (rect.x - self.rect.x) * self.pixel_stride
            + self.band_offsets[band]
        )
        itemsize = self.data.itemsize
        base = self.data[start:]
        return as_strided(
            base,
            shape=rect.shape,
            strides=(self.scanline_stride * itemsize, self.pixel_stride * itemsize),
            writeable=self.data.flags.writeable,
        )

    def read(self, rect: Rect, bands: Sequence[int] | None = None) -> np.ndarray:
        """Copy the requested bands over ``rect`` into a ``(bands, h, w)`` array."""
        selected = range(self.band_count) if bands is None else bands
        return np.stack([self.band_window(band, rect).copy() for band in selected])

    def write(self, rect: Rect, block: np.ndarray) -> None:
        """Copy a ``(bands, h, w)`` block back into the buffer layout."""
        if block.shape[0] > self.band_count:
            raise GeometryMismatchError(
                f"Block has {block.shape[0]} bands; buffer holds {self.band_count}"
            )
        for band in range(block.shape[0]):
            window = self.band_window(band, rect)
            window[...] = block[band]

    def fill(self, rect: Rect, values: Sequence[float]) -> None:
        """Fill ``rect`` with one constant per band."""
        for band in range(min(len(values), self.band_count)):
            window = self.band_window(band, rect)
            window[...] = values[band]

    def to_array(self) -> np.ndarray:
        """Return a banded copy of the whole buffer."""
        return self.read(self.rect)
