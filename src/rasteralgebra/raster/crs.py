"""CRS helpers used when aligning ROI geometries with rasters."""

from __future__ import annotations

from typing import Tuple

import numpy as np
from pyproj import CRS, Transformer

Bounds = Tuple[float, float, float, float]


def normalize_crs(value: str | CRS) -> CRS:
    return CRS.from_user_input(value)


def crs_equal(left: str | CRS, right: str | CRS) -> bool:
    return normalize_crs(left) == normalize_crs(right)


def transformer(src: str | CRS, dst: str | CRS) -> Transformer:
    """Return a transformer that keeps x/y (lon/lat) axis order."""
    return Transformer.from_crs(normalize_crs(src), normalize_crs(dst), always_xy=True)


def transform_bounds(
    bounds: Bounds,
    src: str | CRS,
    dst: str | CRS,
    *,
    densify_pts: int = 0,
) -> Bounds:
    """Transform a bounding box, sampling ``densify_pts`` extra points per edge."""
    minx, miny, maxx, maxy = bounds
    steps = max(2, densify_pts + 2)
    edge_x = np.linspace(minx, maxx, steps)
    edge_y = np.linspace(miny, maxy, steps)
    xs = np.concatenate([edge_x, edge_x, np.full(steps, minx), np.full(steps, maxx)])
    ys = np.concatenate([np.full(steps, miny), np.full(steps, maxy), edge_y, edge_y])
    out_xs, out_ys = transformer(src, dst).transform(xs, ys)
    return (
        float(np.min(out_xs)),
        float(np.min(out_ys)),
        float(np.max(out_xs)),
        float(np.max(out_ys)),
    )
