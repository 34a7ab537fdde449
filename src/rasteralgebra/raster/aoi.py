"""ROI loading from GeoJSON or shapefile polygons."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from pyproj import CRS
from rasterio.features import geometry_mask
from rasterio.transform import Affine, array_bounds

from rasteralgebra.algebra.roi import MaskROI
from rasteralgebra.raster.crs import Bounds, crs_equal, transform_bounds, transformer

LOGGER = logging.getLogger(__name__)

DEFAULT_AOI_CRS = "EPSG:4326"
_POLYGON_TYPES = {"Polygon", "MultiPolygon"}


@dataclass(frozen=True)
class AoiData:
    """Polygons read from an AOI file and the CRS they are expressed in."""

    path: Path
    shapes: list[dict[str, Any]]
    crs: str
    crs_source: str
    warnings: tuple[str, ...] = field(default_factory=tuple)


def _geometries(data: dict[str, Any]) -> list[dict[str, Any]]:
    kind = data.get("type")
    if kind == "FeatureCollection":
        candidates = [feature.get("geometry") for feature in data.get("features", [])]
    elif kind == "Feature":
        candidates = [data.get("geometry")]
    elif kind == "GeometryCollection":
        candidates = list(data.get("geometries", []))
    else:
        candidates = [data]
    return [
        geometry
        for geometry in candidates
        if isinstance(geometry, dict) and geometry.get("type") in _POLYGON_TYPES
    ]


def _embedded_crs(data: dict[str, Any]) -> str | None:
    crs = data.get("crs")
    if isinstance(crs, str):
        return crs
    if isinstance(crs, dict):
        name = (crs.get("properties") or {}).get("name")
        if isinstance(name, str):
            return name
    return None


def _read_geojson(path: Path) -> tuple[list[dict[str, Any]], str | None]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("AOI file must be a GeoJSON object.")
    return _geometries(data), _embedded_crs(data)


def _read_shapefile(path: Path) -> tuple[list[dict[str, Any]], str | None]:
    try:
        import fiona  # type: ignore[import-not-found]
    except ImportError as exc:
        raise ValueError("Shapefile AOI requires the optional 'fiona' dependency.") from exc
    shapes: list[dict[str, Any]] = []
    with fiona.open(path) as dataset:
        crs_value = dataset.crs_wkt or None
        if crs_value is None and dataset.crs:
            crs_value = CRS.from_user_input(dataset.crs).to_string()
        for feature in dataset:
            geometry = feature.get("geometry")
            if geometry and geometry.get("type") in _POLYGON_TYPES:
                shapes.append(dict(geometry))
    return shapes, crs_value


def _resolve_crs(embedded: str | None, explicit: str | None) -> tuple[str, str, tuple[str, ...]]:
    if explicit:
        if embedded and not crs_equal(explicit, embedded):
            return (
                explicit,
                "explicit",
                (f"AOI CRS mismatch: embedded {embedded} differs from requested {explicit}.",),
            )
        return explicit, "explicit", ()
    if embedded:
        return embedded, "embedded", ()
    return DEFAULT_AOI_CRS, "default", (f"AOI CRS missing; assuming {DEFAULT_AOI_CRS}.",)


def load_aoi(path: Path, *, crs: str | None = None) -> AoiData:
    """Load polygons and their CRS from a GeoJSON or shapefile."""
    suffix = path.suffix.lower()
    if suffix in {".json", ".geojson"}:
        shapes, embedded = _read_geojson(path)
    elif suffix == ".shp":
        shapes, embedded = _read_shapefile(path)
    else:
        raise ValueError(f"Unsupported AOI format: {path.suffix}")
    if not shapes:
        raise ValueError(f"No polygon geometries found in {path}")
    resolved, source, warnings = _resolve_crs(embedded, crs)
    return AoiData(path=path, shapes=shapes, crs=resolved, crs_source=source, warnings=warnings)


def bounds_from_shapes(shapes: Iterable[dict[str, Any]]) -> Bounds:
    """Compute the bounding box of GeoJSON-like shapes."""
    xs: list[float] = []
    ys: list[float] = []

    def collect(coords: Any) -> None:
        if not coords:
            return
        if isinstance(coords[0], (int, float)):
            xs.append(float(coords[0]))
            ys.append(float(coords[1]))
            return
        for part in coords:
            collect(part)

    for shape in shapes:
        collect(shape.get("coordinates"))
    if not xs:
        raise ValueError("AOI bounds could not be determined.")
    return (min(xs), min(ys), max(xs), max(ys))


def reproject_shapes(
    shapes: Iterable[dict[str, Any]],
    src_crs: str,
    dst_crs: str,
) -> list[dict[str, Any]]:
    """Reproject GeoJSON-like polygons between CRSs."""
    if crs_equal(src_crs, dst_crs):
        return [dict(shape) for shape in shapes]
    tx = transformer(src_crs, dst_crs)

    def convert(coords: Any) -> Any:
        if coords and isinstance(coords[0], (int, float)):
            out_x, out_y = tx.transform(coords[0], coords[1])
            return [out_x, out_y, *coords[2:]]
        return [convert(part) for part in coords]

    return [dict(shape, coordinates=convert(shape["coordinates"])) for shape in shapes]


def _overlaps(left: Bounds, right: Bounds) -> bool:
    return left[0] < right[2] and right[0] < left[2] and left[1] < right[3] and right[1] < left[3]


def roi_from_aoi(
    path: Path,
    transform: Affine,
    width: int,
    height: int,
    raster_crs: str | CRS | None,
    *,
    crs: str | None = None,
) -> MaskROI:
    """Rasterize AOI polygons onto a raster grid as a pixel ROI."""
    aoi = load_aoi(path, crs=crs)
    for warning in aoi.warnings:
        LOGGER.warning(warning, extra={"aoi": str(path)})
    shapes = aoi.shapes
    if raster_crs is not None:
        target = CRS.from_user_input(raster_crs).to_string()
        aoi_bounds = transform_bounds(
            bounds_from_shapes(shapes), aoi.crs, target, densify_pts=21
        )
        shapes = reproject_shapes(shapes, aoi.crs, target)
    else:
        aoi_bounds = bounds_from_shapes(shapes)
    west, south, east, north = array_bounds(height, width, transform)
    if not _overlaps(aoi_bounds, (west, south, east, north)):
        LOGGER.warning("AOI does not overlap the raster extent; output will be no-data.")
    outside = geometry_mask(shapes, out_shape=(height, width), transform=transform, invert=False)
    roi = MaskROI(~outside)
    LOGGER.info("ROI covers %.1f%% of the raster.", roi.coverage * 100.0)
    return roi
