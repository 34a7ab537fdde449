"""Schema validation helpers for algebra job files."""

from __future__ import annotations

import json
from importlib import resources
from typing import Any, Mapping

import jsonschema

SCHEMA_VERSION = "1"


def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    with resources.files("rasteralgebra.schemas").joinpath(name).open(
        "r", encoding="utf-8"
    ) as handle:
        return json.load(handle)


def validate_job(job: Mapping[str, Any]) -> None:
    """Validate a normalized job payload against the schema."""
    schema = _load_schema("algebra_job.schema.json")
    jsonschema.validate(job, schema)
