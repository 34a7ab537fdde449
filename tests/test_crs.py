from __future__ import annotations

import pytest

from rasteralgebra.raster.crs import crs_equal, normalize_crs, transform_bounds, transformer


def test_normalize_crs_accepts_strings() -> None:
    assert normalize_crs("EPSG:4326").to_epsg() == 4326


def test_crs_equal() -> None:
    assert crs_equal("EPSG:4326", normalize_crs("epsg:4326"))
    assert not crs_equal("EPSG:4326", "EPSG:3857")


def test_transformer_uses_xy_order() -> None:
    x, y = transformer("EPSG:4326", "EPSG:3857").transform(1.0, 0.0)
    assert x == pytest.approx(111319.49, rel=1e-4)
    assert y == pytest.approx(0.0, abs=1e-6)


def test_transform_bounds_identity_and_projection() -> None:
    bounds = (0.0, 0.0, 1.0, 1.0)
    assert transform_bounds(bounds, "EPSG:4326", "EPSG:4326") == pytest.approx(bounds)
    minx, miny, maxx, maxy = transform_bounds(bounds, "EPSG:4326", "EPSG:3857", densify_pts=5)
    assert minx == pytest.approx(0.0, abs=1e-6)
    assert maxx == pytest.approx(111319.49, rel=1e-4)
    assert maxy > miny
