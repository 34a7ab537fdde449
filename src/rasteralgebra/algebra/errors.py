"""Error types raised while building or running algebra engines."""

from __future__ import annotations


class AlgebraError(ValueError):
    """Base class for algebra engine validation failures."""


class InvalidOperatorError(AlgebraError):
    """Raised when the requested operator is unset or unknown."""


class UnsupportedRepresentationError(AlgebraError):
    """Raised for sample types outside the supported set."""


class GeometryMismatchError(AlgebraError):
    """Raised when per-source inputs or buffers do not line up."""
