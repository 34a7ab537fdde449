"""Raster I/O, ROI loading and tile scheduling around the algebra engines."""

from rasteralgebra.raster.aoi import AoiData, load_aoi, roi_from_aoi
from rasteralgebra.raster.crs import normalize_crs, transform_bounds, transformer
from rasteralgebra.raster.io import RasterData, check_alignment, read_raster, write_raster
from rasteralgebra.raster.pipeline import AlgebraRun, TileWorkResult, compute_tiles, execute_job
from rasteralgebra.raster.tiling import tile_count, tile_grid

__all__ = [
    "AlgebraRun",
    "AoiData",
    "RasterData",
    "TileWorkResult",
    "check_alignment",
    "compute_tiles",
    "execute_job",
    "load_aoi",
    "normalize_crs",
    "read_raster",
    "roi_from_aoi",
    "tile_count",
    "tile_grid",
    "transform_bounds",
    "transformer",
    "write_raster",
]
