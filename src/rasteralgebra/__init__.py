"""Multi-source raster algebra engine and command line tools."""

from __future__ import annotations

__version__ = "0.1.0"
