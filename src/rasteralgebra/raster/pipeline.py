"""Tile scheduling around the algebra engines and the end-to-end job runner."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, Protocol, Sequence

from rasteralgebra.algebra.buffers import SampleBuffer
from rasteralgebra.algebra.constant import ConstantEngine
from rasteralgebra.algebra.engine import AlgebraEngine
from rasteralgebra.algebra.errors import GeometryMismatchError
from rasteralgebra.algebra.models import Rect, SourceInfo
from rasteralgebra.algebra.roi import ROI
from rasteralgebra.algebra.types import SampleType
from rasteralgebra.job import AlgebraJob
from rasteralgebra.perf import PerfTracker
from rasteralgebra.raster.aoi import roi_from_aoi
from rasteralgebra.raster.io import check_alignment, read_raster, write_raster
from rasteralgebra.raster.tiling import tile_grid

LOGGER = logging.getLogger(__name__)


class RegionEngine(Protocol):
    band_count: int
    sample_type: SampleType
    destination_nodata: int | float

    def compute_region(
        self, sources: Sequence[SampleBuffer], dest: SampleBuffer, rect: Rect
    ) -> None:
        ...


@dataclass(frozen=True)
class TileWorkResult:
    """Per-tile outcome."""

    tile: Rect
    seconds: float
    error: str | None = None


@dataclass(frozen=True)
class AlgebraRun:
    """Outputs of a job run."""

    output: Path
    band_count: int
    sample_type: SampleType
    tiles: tuple[TileWorkResult, ...]
    errors: dict[tuple[int, int, int, int], str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def _coerce_tile_jobs(tile_jobs: int, tile_count: int) -> int:
    """Normalize the requested worker count; 0 means one per CPU."""
    jobs = int(tile_jobs)
    if tile_count <= 0:
        return 1
    if jobs < 0:
        raise ValueError("tile_jobs must be >= 0")
    if jobs == 0:
        cpu_count = os.cpu_count() or 1
        return max(1, min(cpu_count, tile_count))
    return min(jobs, tile_count)


def _run_tile_jobs(
    tiles: list[Rect],
    tile_jobs: int,
    worker: Callable[[Rect], float],
    *,
    continue_on_error: bool,
) -> list[TileWorkResult]:
    """Run per-tile workers serially or on a thread pool, preserving tile order."""
    results: dict[Rect, TileWorkResult] = {}

    def record_failure(tile: Rect, exc: Exception) -> None:
        LOGGER.error("Tile failed: %s", exc, extra={"tile": (tile.x, tile.y)})
        results[tile] = TileWorkResult(tile, 0.0, str(exc))

    if tile_jobs == 1 or len(tiles) <= 1:
        for tile in tiles:
            try:
                results[tile] = TileWorkResult(tile, worker(tile))
            except Exception as exc:
                if not continue_on_error:
                    raise
                record_failure(tile, exc)
        return [results[tile] for tile in tiles]
    with ThreadPoolExecutor(max_workers=tile_jobs) as executor:
        future_map = {executor.submit(worker, tile): tile for tile in tiles}
        for future, tile in future_map.items():
            try:
                results[tile] = TileWorkResult(tile, future.result())
            except Exception as exc:
                if not continue_on_error:
                    raise
                record_failure(tile, exc)
    return [results[tile] for tile in tiles]


def compute_tiles(
    engine: RegionEngine,
    sources: Sequence[SampleBuffer],
    dest: SampleBuffer,
    *,
    tile_size: int = 256,
    tile_jobs: int = 1,
    continue_on_error: bool = False,
    perf: PerfTracker | None = None,
) -> list[TileWorkResult]:
    """Compute ``dest`` tile by tile from ``sources``."""
    rect = dest.rect
    tiles = tile_grid(rect.width, rect.height, tile_size, rect.x, rect.y)
    jobs = _coerce_tile_jobs(tile_jobs, len(tiles))
    tracker = perf or PerfTracker(enabled=False)
    LOGGER.debug("Computing %s tile(s) with %s worker(s).", len(tiles), jobs)

    def process_tile(tile: Rect) -> float:
        start = perf_counter()
        with tracker.span("compute_region"):
            engine.compute_region(sources, dest, tile)
        elapsed = perf_counter() - start
        LOGGER.debug("Tile done in %.4fs", elapsed, extra={"tile": (tile.x, tile.y)})
        return elapsed

    return _run_tile_jobs(tiles, jobs, process_tile, continue_on_error=continue_on_error)


def _load_roi(job: AlgebraJob, width: int, height: int, transform: Any, crs: Any) -> ROI | None:
    if not job.roi:
        return None
    if transform is None:
        raise ValueError("ROI requires georeferenced inputs.")
    raster_crs = crs.to_wkt() if crs is not None else None
    return roi_from_aoi(
        Path(job.roi["path"]),
        transform,
        width,
        height,
        raster_crs,
        crs=job.roi.get("crs"),
    )


def build_engine(job: AlgebraJob, infos: Sequence[SourceInfo], roi: ROI | None) -> RegionEngine:
    """Build the engine a job asks for."""
    nodata = job.nodata_range()
    if job.is_constant:
        if len(infos) != 1:
            raise GeometryMismatchError("The constant operation takes exactly one input.")
        return ConstantEngine(
            job.operator,
            job.constants or (),
            infos[0],
            roi=roi,
            nodata=nodata,
            destination_nodata=job.destination_nodata,
            layout=job.layout(),
        )
    return AlgebraEngine(
        job.operator,
        infos,
        roi=roi,
        nodata=nodata,
        destination_nodata=job.destination_nodata,
        layout=job.layout(),
    )


def execute_job(job: AlgebraJob, *, perf: PerfTracker | None = None) -> AlgebraRun:
    """Read inputs, compute every tile and write the output raster."""
    tracker = perf or PerfTracker(enabled=False)
    with tracker.span("read"):
        rasters = [read_raster(Path(path)) for path in job.inputs]
    check_alignment(rasters)
    first = rasters[0]
    with tracker.span("roi"):
        roi = _load_roi(job, first.width, first.height, first.transform, first.crs)
    engine = build_engine(job, [raster.info() for raster in rasters], roi)
    destination_nodata = engine.destination_nodata
    dest = SampleBuffer.allocate(
        first.buffer.rect, engine.band_count, engine.sample_type, fill=destination_nodata
    )
    LOGGER.info(
        "Running %s over %s input(s): %sx%s, %s band(s), %s.",
        job.operation,
        len(rasters),
        first.width,
        first.height,
        engine.band_count,
        engine.sample_type.name,
    )
    tiles = compute_tiles(
        engine,
        [raster.buffer for raster in rasters],
        dest,
        tile_size=job.tile_size,
        tile_jobs=job.tile_jobs,
        continue_on_error=job.continue_on_error,
        perf=tracker,
    )
    errors = {work.tile.as_tuple(): work.error for work in tiles if work.error}
    output_nodata = destination_nodata if (job.nodata is not None or job.roi) else None
    with tracker.span("write"):
        output = write_raster(
            Path(job.output),
            dest,
            first.profile,
            nodata=output_nodata,
            compression=job.compression,
        )
    return AlgebraRun(
        output=output,
        band_count=engine.band_count,
        sample_type=engine.sample_type,
        tiles=tuple(tiles),
        errors=errors,
    )
