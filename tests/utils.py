from __future__ import annotations

import json
from pathlib import Path
from typing import Tuple

import numpy as np
import rasterio
from rasterio.transform import from_bounds


def write_raster(
    path: Path,
    data: np.ndarray,
    *,
    bounds: Tuple[float, float, float, float] = (0.0, 0.0, 1.0, 1.0),
    crs: str = "EPSG:4326",
    nodata: float | None = None,
) -> Path:
    """Write a (height, width) or (bands, height, width) array as a GeoTIFF."""
    stack = data[np.newaxis, ...] if data.ndim == 2 else data
    count, height, width = stack.shape
    transform = from_bounds(*bounds, width=width, height=height)
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=count,
        dtype=stack.dtype,
        crs=crs,
        transform=transform,
        nodata=nodata,
    ) as dataset:
        dataset.write(stack)
    return path


def write_polygon_geojson(
    path: Path,
    bounds: Tuple[float, float, float, float],
    *,
    crs: str | None = None,
) -> Path:
    """Write a single rectangular polygon as a GeoJSON FeatureCollection."""
    minx, miny, maxx, maxy = bounds
    payload: dict[str, object] = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [
                        [[minx, miny], [maxx, miny], [maxx, maxy], [minx, maxy], [minx, miny]]
                    ],
                },
            }
        ],
    }
    if crs:
        payload["crs"] = {"type": "name", "properties": {"name": crs}}
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path
