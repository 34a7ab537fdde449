"""Algebra job file loading and normalization."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from rasteralgebra.algebra.models import LayoutHint
from rasteralgebra.algebra.nodata import NoDataRange
from rasteralgebra.algebra.operators import Operator
from rasteralgebra.algebra.types import SampleType
from rasteralgebra.contracts import SCHEMA_VERSION, validate_job

DEFAULT_TILE_SIZE = 256

_ALIASES = {
    "op": "operation",
    "operator": "operation",
    "input": "inputs",
    "sources": "inputs",
    "dest_nodata": "destination_nodata",
    "bands": "band_count",
    "compress": "compression",
    "type": "output_type",
}
_HANDLED = frozenset(
    {
        "inputs",
        "operation",
        "output",
        "nodata",
        "roi",
        "roi_crs",
        "output_type",
        "band_count",
        "constants",
        "constant",
        "compression",
    }
)


@dataclass(frozen=True)
class AlgebraJob:
    """Normalized algebra job."""

    inputs: tuple[str, ...]
    operation: str
    output: str
    nodata: float | dict[str, Any] | None = None
    destination_nodata: float = 0.0
    roi: dict[str, Any] | None = None
    output_type: str | None = None
    band_count: int | None = None
    tile_size: int = DEFAULT_TILE_SIZE
    tile_jobs: int = 1
    continue_on_error: bool = False
    constants: tuple[float, ...] | None = None
    compression: str | None = None

    @property
    def operator(self) -> Operator:
        return Operator.parse(self.operation)

    @property
    def is_constant(self) -> bool:
        return self.constants is not None

    def nodata_range(self) -> NoDataRange | None:
        return NoDataRange.from_nodata(self.nodata)

    def layout(self) -> LayoutHint | None:
        if self.band_count is None and self.output_type is None:
            return None
        sample_type = SampleType.parse(self.output_type) if self.output_type else None
        return LayoutHint(band_count=self.band_count, sample_type=sample_type)

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "schema_version": SCHEMA_VERSION,
            "inputs": list(self.inputs),
            "operation": self.operation,
            "output": self.output,
            "destination_nodata": self.destination_nodata,
            "tile_size": self.tile_size,
            "tile_jobs": self.tile_jobs,
            "continue_on_error": self.continue_on_error,
        }
        optional = {
            "nodata": self.nodata,
            "roi": self.roi,
            "output_type": self.output_type,
            "band_count": self.band_count,
            "constants": list(self.constants) if self.constants is not None else None,
            "compression": self.compression,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload


def _normalize_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if str(item)]
    if isinstance(value, str):
        return [value]
    raise TypeError("Expected string or list of strings.")


def _normalize_constants(value: object) -> tuple[float, ...] | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (float(value),)
    if isinstance(value, (list, tuple)):
        return tuple(float(item) for item in value)
    raise TypeError("Constants must be a number or a list of numbers.")


def _normalize_roi(value: object, crs: object) -> dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, (str, Path)):
        roi: dict[str, Any] = {"path": str(value)}
    elif isinstance(value, Mapping):
        roi = {key: value[key] for key in ("path", "crs") if key in value}
    else:
        raise TypeError("ROI must be a path or an object with a path.")
    if crs is not None and roi.get("crs") is None:
        roi["crs"] = str(crs)
    return roi


def normalize_job(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Map aliases and shorthand values onto the canonical job keys."""
    raw: dict[str, Any] = {}
    for key, value in payload.items():
        raw[_ALIASES.get(key, key)] = value

    # Unknown keys pass through so schema validation can reject them.
    normalized: dict[str, Any] = {
        key: value
        for key, value in raw.items()
        if key not in _HANDLED and value is not None
    }
    if "inputs" in raw:
        normalized["inputs"] = _normalize_list(raw["inputs"])
    if raw.get("operation") is not None:
        normalized["operation"] = Operator.parse(str(raw["operation"])).label
    if raw.get("output") is not None:
        normalized["output"] = str(raw["output"])
    if raw.get("nodata") is not None:
        nodata = raw["nodata"]
        normalized["nodata"] = dict(nodata) if isinstance(nodata, Mapping) else nodata
    roi = _normalize_roi(raw.get("roi"), raw.get("roi_crs"))
    if roi is not None:
        normalized["roi"] = roi
    if raw.get("output_type") is not None:
        normalized["output_type"] = SampleType.parse(str(raw["output_type"])).name.lower()
    if raw.get("band_count") is not None:
        normalized["band_count"] = raw["band_count"]
    constants = _normalize_constants(raw.get("constants", raw.get("constant")))
    if constants is not None:
        normalized["constants"] = list(constants)
    if raw.get("compression") is not None:
        normalized["compression"] = str(raw["compression"])
    return normalized


def _resolve_path(value: str, base_dir: Path | None) -> str:
    path = Path(value)
    if base_dir is None or path.is_absolute():
        return str(path)
    return str(base_dir / path)


def job_from_mapping(payload: Mapping[str, Any], *, base_dir: Path | None = None) -> AlgebraJob:
    """Normalize, validate and build a job; relative paths resolve against ``base_dir``."""
    normalized = normalize_job(payload)
    validate_job(normalized)
    version = normalized.get("schema_version", SCHEMA_VERSION)
    if version != SCHEMA_VERSION:
        raise ValueError(
            f"Unsupported job schema_version {version!r}; expected {SCHEMA_VERSION!r}."
        )
    roi = normalized.get("roi")
    if roi is not None:
        roi = dict(roi, path=_resolve_path(roi["path"], base_dir))
    constants = normalized.get("constants")
    return AlgebraJob(
        inputs=tuple(_resolve_path(item, base_dir) for item in normalized["inputs"]),
        operation=normalized["operation"],
        output=_resolve_path(normalized["output"], base_dir),
        nodata=normalized.get("nodata"),
        destination_nodata=float(normalized.get("destination_nodata", 0.0)),
        roi=roi,
        output_type=normalized.get("output_type"),
        band_count=normalized.get("band_count"),
        tile_size=int(normalized.get("tile_size", DEFAULT_TILE_SIZE)),
        tile_jobs=int(normalized.get("tile_jobs", 1)),
        continue_on_error=bool(normalized.get("continue_on_error", False)),
        constants=tuple(constants) if constants is not None else None,
        compression=normalized.get("compression"),
    )


def load_job(path: Path) -> AlgebraJob:
    """Load and validate a job file from disk."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, Mapping):
        raise TypeError("Job file must be a JSON object.")
    return job_from_mapping(payload, base_dir=path.parent)
