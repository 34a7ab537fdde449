"""Raster algebra engines, operator table and supporting types."""

from rasteralgebra.algebra.buffers import SampleBuffer
from rasteralgebra.algebra.constant import ConstantEngine
from rasteralgebra.algebra.engine import AlgebraEngine
from rasteralgebra.algebra.errors import (
    AlgebraError,
    GeometryMismatchError,
    InvalidOperatorError,
    UnsupportedRepresentationError,
)
from rasteralgebra.algebra.models import ExecutionPath, LayoutHint, Rect, SourceInfo
from rasteralgebra.algebra.nodata import NoDataMask, NoDataRange
from rasteralgebra.algebra.operators import OPERATOR_TABLE, Operator, lookup, reduce2, reduce_n
from rasteralgebra.algebra.roi import ROI, MaskROI, RectROI
from rasteralgebra.algebra.types import SampleType

__all__ = [
    "AlgebraEngine",
    "AlgebraError",
    "ConstantEngine",
    "ExecutionPath",
    "GeometryMismatchError",
    "InvalidOperatorError",
    "LayoutHint",
    "MaskROI",
    "NoDataMask",
    "NoDataRange",
    "OPERATOR_TABLE",
    "Operator",
    "ROI",
    "Rect",
    "RectROI",
    "SampleBuffer",
    "SampleType",
    "SourceInfo",
    "UnsupportedRepresentationError",
    "lookup",
    "reduce2",
    "reduce_n",
]
