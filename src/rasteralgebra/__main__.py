"""Module entrypoint for `python -m rasteralgebra`."""

from __future__ import annotations

from rasteralgebra.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
