from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import rasterio

from rasteralgebra.algebra.buffers import SampleBuffer
from rasteralgebra.algebra.engine import AlgebraEngine
from rasteralgebra.algebra.errors import GeometryMismatchError
from rasteralgebra.algebra.models import Rect
from rasteralgebra.algebra.nodata import NoDataRange
from rasteralgebra.algebra.types import SampleType
from rasteralgebra.job import job_from_mapping
from rasteralgebra.perf import PerfTracker
from rasteralgebra.raster import pipeline
from tests.utils import write_polygon_geojson, write_raster


class FailingEngine:
    band_count = 1
    sample_type = SampleType.BYTE
    destination_nodata = 0

    def compute_region(self, sources, dest, rect: Rect) -> None:
        if rect.x == 0 and rect.y == 0:
            raise RuntimeError("boom")
        dest.fill(rect, [1])


def test_coerce_tile_jobs() -> None:
    assert pipeline._coerce_tile_jobs(4, 0) == 1
    assert pipeline._coerce_tile_jobs(4, 2) == 2
    assert pipeline._coerce_tile_jobs(1, 10) == 1
    assert 1 <= pipeline._coerce_tile_jobs(0, 3) <= 3
    with pytest.raises(ValueError, match="tile_jobs"):
        pipeline._coerce_tile_jobs(-1, 3)


@pytest.mark.parametrize("tile_jobs", [1, 4])
def test_compute_tiles_matches_single_region(tile_jobs: int) -> None:
    rng = np.random.default_rng(3)
    a = rng.integers(0, 256, size=(2, 7, 10), dtype=np.uint8)
    b = rng.integers(0, 256, size=(2, 7, 10), dtype=np.uint8)
    sources = [SampleBuffer.banded(a), SampleBuffer.banded(b)]
    engine = AlgebraEngine.for_buffers(
        "sum", sources, nodata=NoDataRange.closed(0, 10), destination_nodata=3
    )
    dest = SampleBuffer.allocate(sources[0].rect, engine.band_count, engine.sample_type)
    perf = PerfTracker(enabled=True)

    results = pipeline.compute_tiles(
        engine, sources, dest, tile_size=3, tile_jobs=tile_jobs, perf=perf
    )

    assert len(results) == 12
    assert [work.tile for work in results] == sorted(
        (work.tile for work in results), key=lambda rect: (rect.y, rect.x)
    )
    assert all(work.error is None for work in results)
    assert np.array_equal(dest.to_array(), engine.compute([a, b]))
    assert perf.summary()["spans"]["compute_region"]["count"] == 12


@pytest.mark.parametrize("tile_jobs", [1, 2])
def test_compute_tiles_continue_on_error(tile_jobs: int) -> None:
    source = SampleBuffer.banded(np.zeros((1, 4, 4), dtype=np.uint8))
    dest = SampleBuffer.allocate(source.rect, 1, SampleType.BYTE)

    results = pipeline.compute_tiles(
        FailingEngine(),
        [source],
        dest,
        tile_size=2,
        tile_jobs=tile_jobs,
        continue_on_error=True,
    )

    errors = [work for work in results if work.error]
    assert [work.tile for work in errors] == [Rect(0, 0, 2, 2)]
    assert errors[0].error == "boom"
    assert dest.to_array()[0, 2:, 2:].tolist() == [[1, 1], [1, 1]]


def test_compute_tiles_raises_without_continue() -> None:
    source = SampleBuffer.banded(np.zeros((1, 4, 4), dtype=np.uint8))
    dest = SampleBuffer.allocate(source.rect, 1, SampleType.BYTE)
    with pytest.raises(RuntimeError, match="boom"):
        pipeline.compute_tiles(FailingEngine(), [source], dest, tile_size=2)


def test_execute_job_sum(tmp_path: Path) -> None:
    a = write_raster(tmp_path / "a.tif", np.full((4, 4), 50, dtype=np.uint8))
    b = write_raster(tmp_path / "b.tif", np.full((4, 4), 100, dtype=np.uint8))
    job = job_from_mapping(
        {"inputs": [str(a), str(b)], "operation": "add", "output": str(tmp_path / "out.tif")}
    )

    result = pipeline.execute_job(job)

    assert result.ok
    assert result.sample_type is SampleType.BYTE
    with rasterio.open(result.output) as dataset:
        assert (dataset.read(1) == 150).all()
        assert dataset.nodata is None


def test_execute_job_with_roi_and_tiles(tmp_path: Path) -> None:
    bounds = (0.0, 0.0, 4.0, 4.0)
    a = write_raster(tmp_path / "a.tif", np.full((4, 4), 50, dtype=np.uint8), bounds=bounds)
    b = write_raster(tmp_path / "b.tif", np.full((4, 4), 100, dtype=np.uint8), bounds=bounds)
    roi = write_polygon_geojson(tmp_path / "roi.geojson", (0.0, 0.0, 2.0, 4.0), crs="EPSG:4326")
    job = job_from_mapping(
        {
            "inputs": [str(a), str(b)],
            "operation": "sum",
            "output": str(tmp_path / "out.tif"),
            "roi": str(roi),
            "destination_nodata": 7,
            "tile_size": 2,
            "tile_jobs": 2,
        }
    )
    perf = PerfTracker(enabled=True)

    result = pipeline.execute_job(job, perf=perf)

    assert len(result.tiles) == 4
    with rasterio.open(result.output) as dataset:
        data = dataset.read(1)
        assert dataset.nodata == 7
    assert (data[:, :2] == 150).all()
    assert (data[:, 2:] == 7).all()
    assert {"read", "roi", "write", "compute_region"} <= set(perf.summary()["spans"])


def test_execute_job_constant(tmp_path: Path) -> None:
    source = write_raster(tmp_path / "in.tif", np.full((2, 2, 2), 10, dtype=np.int16))
    job = job_from_mapping(
        {
            "inputs": [str(source)],
            "operation": "multiply",
            "constants": [2, 3],
            "output": str(tmp_path / "out.tif"),
        }
    )

    pipeline.execute_job(job)

    with rasterio.open(tmp_path / "out.tif") as dataset:
        assert dataset.count == 2
        assert (dataset.read(1) == 20).all()
        assert (dataset.read(2) == 30).all()


def test_execute_job_rejects_mismatched_inputs(tmp_path: Path) -> None:
    a = write_raster(tmp_path / "a.tif", np.zeros((2, 2), dtype=np.uint8))
    b = write_raster(tmp_path / "b.tif", np.zeros((3, 3), dtype=np.uint8))
    job = job_from_mapping(
        {"inputs": [str(a), str(b)], "operation": "sum", "output": str(tmp_path / "o.tif")}
    )
    with pytest.raises(GeometryMismatchError):
        pipeline.execute_job(job)


def test_constant_job_requires_one_input(tmp_path: Path) -> None:
    a = write_raster(tmp_path / "a.tif", np.zeros((2, 2), dtype=np.uint8))
    job = job_from_mapping(
        {
            "inputs": [str(a), str(a)],
            "operation": "sum",
            "constants": [1],
            "output": str(tmp_path / "o.tif"),
        }
    )
    with pytest.raises(GeometryMismatchError, match="exactly one input"):
        pipeline.execute_job(job)
