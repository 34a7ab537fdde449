"""Tile grids over raster extents."""

from __future__ import annotations

import math

from rasteralgebra.algebra.models import Rect


def tile_count(width: int, height: int, tile_size: int) -> int:
    if width <= 0 or height <= 0:
        return 0
    return math.ceil(width / tile_size) * math.ceil(height / tile_size)


def tile_grid(
    width: int,
    height: int,
    tile_size: int,
    x: int = 0,
    y: int = 0,
) -> list[Rect]:
    """Return row-major tiles covering a ``width`` x ``height`` image at ``(x, y)``.

    Edge tiles are clipped to the image extent.
    """
    if tile_size <= 0:
        raise ValueError("tile_size must be > 0")
    tiles: list[Rect] = []
    for row in range(0, max(height, 0), tile_size):
        for col in range(0, max(width, 0), tile_size):
            tiles.append(
                Rect(
                    x + col,
                    y + row,
                    min(tile_size, width - col),
                    min(tile_size, height - row),
                )
            )
    return tiles
