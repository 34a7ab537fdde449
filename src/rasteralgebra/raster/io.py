"""Raster reading and writing through rasterio."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

import numpy as np
import rasterio

from rasteralgebra.algebra.buffers import SampleBuffer
from rasteralgebra.algebra.errors import GeometryMismatchError
from rasteralgebra.algebra.models import SourceInfo

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RasterData:
    """A raster held in memory as a banded sample buffer plus its rasterio profile."""

    path: Path
    buffer: SampleBuffer
    profile: Mapping[str, Any]

    @property
    def width(self) -> int:
        return self.buffer.rect.width

    @property
    def height(self) -> int:
        return self.buffer.rect.height

    @property
    def nodata(self) -> float | None:
        return self.profile.get("nodata")

    @property
    def transform(self) -> Any:
        return self.profile.get("transform")

    @property
    def crs(self) -> Any:
        return self.profile.get("crs")

    def info(self) -> SourceInfo:
        return SourceInfo(self.buffer.band_count, self.buffer.sample_type)


def read_raster(path: Path) -> RasterData:
    """Read every band of ``path`` into memory."""
    with rasterio.open(path) as dataset:
        data = dataset.read()
        profile = dict(dataset.profile)
    buffer = SampleBuffer.banded(data)
    LOGGER.debug(
        "Read %s: %sx%s, %s band(s), %s",
        path,
        buffer.rect.width,
        buffer.rect.height,
        buffer.band_count,
        buffer.sample_type.name,
    )
    return RasterData(path=Path(path), buffer=buffer, profile=profile)


def check_alignment(rasters: Sequence[RasterData]) -> None:
    """Require a shared pixel grid size; warn when georeferencing differs."""
    if not rasters:
        raise ValueError("At least one raster is required.")
    first = rasters[0]
    for other in rasters[1:]:
        if (other.width, other.height) != (first.width, first.height):
            raise GeometryMismatchError(
                f"{other.path} is {other.width}x{other.height}; "
                f"expected {first.width}x{first.height}"
            )
        if other.crs != first.crs or other.transform != first.transform:
            LOGGER.warning(
                "Georeferencing of %s differs from %s; pixels are combined by position.",
                other.path,
                first.path,
            )


def write_raster(
    path: Path,
    buffer: SampleBuffer,
    profile: Mapping[str, Any],
    *,
    nodata: float | None = None,
    compression: str | None = None,
) -> Path:
    """Write a sample buffer as a GeoTIFF reusing georeferencing from ``profile``."""
    data = buffer.to_array()
    meta = dict(profile)
    meta.update(
        {
            "driver": "GTiff",
            "count": data.shape[0],
            "height": data.shape[1],
            "width": data.shape[2],
            "dtype": data.dtype.name,
            "nodata": nodata,
        }
    )
    for key in ("blockxsize", "blockysize", "tiled", "interleave", "photometric"):
        meta.pop(key, None)
    if compression and compression.lower() != "none":
        meta["compress"] = compression
    else:
        meta.pop("compress", None)
    if nodata is not None and not np.isnan(nodata):
        meta["nodata"] = buffer.sample_type.clamp_round(nodata)
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(path, "w", **meta) as dest:
        dest.write(data)
    LOGGER.info("Wrote %s", path)
    return path
