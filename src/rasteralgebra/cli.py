"""Command-line interface for rasteralgebra."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

import jsonschema

from rasteralgebra import __version__
from rasteralgebra.algebra.operators import Operator
from rasteralgebra.algebra.types import SampleType
from rasteralgebra.job import DEFAULT_TILE_SIZE, AlgebraJob, job_from_mapping, load_job
from rasteralgebra.logging_utils import LogOptions, configure_logging
from rasteralgebra.perf import PerfTracker, resolve_metrics_path
from rasteralgebra.raster.pipeline import execute_job

OPERATION_CHOICES = tuple(operator.label for operator in Operator)
TYPE_CHOICES = tuple(kind.name.lower() for kind in SampleType)
LOGGER = logging.getLogger("rasteralgebra.cli")

_CONFIG_ERRORS = (ValueError, TypeError, KeyError, jsonschema.ValidationError)


def _add_common_options(command: argparse.ArgumentParser) -> None:
    """Options shared by the calc and const commands."""
    command.add_argument(
        "--op",
        required=True,
        help=f"Operator ({', '.join(OPERATION_CHOICES)} or an alias such as add, sub, mul, div).",
    )
    command.add_argument("--output", required=True, help="Output GeoTIFF path.")
    nodata = command.add_mutually_exclusive_group()
    nodata.add_argument("--nodata", type=float, help="Single input no-data value (nan allowed).")
    nodata.add_argument("--nodata-min", type=float, help="Lower bound of the no-data range.")
    command.add_argument("--nodata-max", type=float, help="Upper bound of the no-data range.")
    command.add_argument(
        "--nodata-exclusive",
        action="store_true",
        help="Exclude both bounds of the no-data range.",
    )
    command.add_argument(
        "--nodata-nan",
        action="store_true",
        help="Also treat NaN samples as no-data within a range.",
    )
    command.add_argument(
        "--dest-nodata",
        type=float,
        default=0.0,
        help="Value written where no result is available (default: 0).",
    )
    command.add_argument("--roi", help="GeoJSON or shapefile polygon ROI.")
    command.add_argument("--roi-crs", help="CRS of the ROI when the file does not declare one.")
    command.add_argument("--output-type", choices=TYPE_CHOICES, help="Output sample type.")
    command.add_argument("--bands", type=int, help="Requested output band count.")
    command.add_argument(
        "--tile-size",
        type=int,
        default=DEFAULT_TILE_SIZE,
        help=f"Tile edge length in pixels (default: {DEFAULT_TILE_SIZE}).",
    )
    command.add_argument(
        "--tile-jobs",
        type=int,
        default=1,
        help="Worker threads for tiles (0 = one per CPU).",
    )
    command.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Keep computing remaining tiles when one fails.",
    )
    command.add_argument("--compress", help="GeoTIFF compression (e.g. deflate, lzw).")
    command.add_argument("--metrics-json", help="Write timing metrics to this JSON path.")


def _add_calc_parser(subparsers: argparse._SubParsersAction) -> None:
    calc = subparsers.add_parser("calc", help="Fold an operator across input rasters.")
    calc.add_argument(
        "--input",
        action="append",
        required=True,
        help="Input raster path (repeatable, order matters for subtract/divide).",
    )
    _add_common_options(calc)


def _add_const_parser(subparsers: argparse._SubParsersAction) -> None:
    const = subparsers.add_parser("const", help="Apply an operator between a raster and constants.")
    const.add_argument("--input", required=True, help="Input raster path.")
    const.add_argument(
        "--constant",
        type=float,
        action="append",
        required=True,
        help="Constant per band (repeatable; a single value applies to every band).",
    )
    _add_common_options(const)


def _add_run_parser(subparsers: argparse._SubParsersAction) -> None:
    run = subparsers.add_parser("run", help="Execute a JSON job file.")
    run.add_argument("job", help="Path to the job JSON file.")
    run.add_argument("--metrics-json", help="Write timing metrics to this JSON path.")


def _add_ops_parser(subparsers: argparse._SubParsersAction) -> None:
    subparsers.add_parser("ops", help="List operators and sample types.")


def _nodata_from_args(args: argparse.Namespace) -> Any:
    if args.nodata is not None:
        return args.nodata
    if args.nodata_min is None and args.nodata_max is None:
        return None
    if args.nodata_min is None:
        raise ValueError("--nodata-max requires --nodata-min")
    inclusive = not args.nodata_exclusive
    return {
        "min": args.nodata_min,
        "max": args.nodata_max if args.nodata_max is not None else args.nodata_min,
        "min_included": inclusive,
        "max_included": inclusive,
        "nan_included": bool(args.nodata_nan),
    }


def _job_from_args(args: argparse.Namespace) -> AlgebraJob:
    """Translate calc/const arguments into a validated job."""
    payload: dict[str, Any] = {
        "inputs": args.input,
        "operation": args.op,
        "output": args.output,
        "nodata": _nodata_from_args(args),
        "destination_nodata": args.dest_nodata,
        "roi": args.roi,
        "roi_crs": args.roi_crs,
        "output_type": args.output_type,
        "band_count": args.bands,
        "tile_size": args.tile_size,
        "tile_jobs": args.tile_jobs,
        "continue_on_error": args.continue_on_error,
        "compression": args.compress,
    }
    if args.command == "const":
        payload["constants"] = args.constant
    return job_from_mapping(payload)


def _format_ops() -> list[str]:
    lines = ["Operators:"]
    for operator in Operator:
        lines.append(f"  {operator.label:<10} null={operator.null_value:g}")
    lines.append("Sample types:")
    for kind in SampleType:
        bounds = f"[{kind.minimum:g}, {kind.maximum:g}]"
        lines.append(f"  {kind.name.lower():<7} {kind.dtype.name:<8} {bounds}")
    return lines


def _run(job: AlgebraJob, metrics_json: str | None) -> int:
    LOGGER.debug("Resolved job.", extra={"job": job.as_dict()})
    metrics_path = resolve_metrics_path(metrics_json)
    perf = PerfTracker(enabled=metrics_path is not None)
    perf.start()
    try:
        result = execute_job(job, perf=perf)
    except _CONFIG_ERRORS as exc:
        LOGGER.error("Invalid job: %s", exc)
        return 2
    except OSError as exc:
        LOGGER.error("Raster I/O failed: %s", exc)
        return 1
    finally:
        perf.stop()
        if metrics_path is not None:
            perf.write(metrics_path)
            LOGGER.info("Metrics written to %s", metrics_path)
    if result.errors:
        LOGGER.error("Computed with %s failed tile(s).", len(result.errors))
        for tile, error in result.errors.items():
            LOGGER.error("Tile %s: %s", tile, error)
        return 1
    LOGGER.info(
        "Wrote %s (%s band(s), %s).",
        result.output,
        result.band_count,
        result.sample_type.name.lower(),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint and return an exit code."""
    parser = argparse.ArgumentParser(
        prog="rasteralgebra",
        description="Per-pixel algebra across rasters",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce log output to warnings and errors.",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON on stderr.")
    parser.add_argument("--log-file", help="Optional path for JSON log output.")

    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_calc_parser(subparsers)
    _add_const_parser(subparsers)
    _add_run_parser(subparsers)
    _add_ops_parser(subparsers)

    args = parser.parse_args(argv)
    log_file_value = getattr(args, "log_file", None)
    configure_logging(
        LogOptions(
            verbose=args.verbose or 0,
            quiet=bool(args.quiet),
            log_file=Path(log_file_value) if log_file_value else None,
            json_console=bool(args.log_json),
        )
    )

    if args.command == "ops":
        for line in _format_ops():
            print(line)
        return 0
    if args.command == "run":
        try:
            job = load_job(Path(args.job))
        except OSError as exc:
            LOGGER.error("Failed to read job file: %s", exc)
            return 2
        except _CONFIG_ERRORS as exc:
            LOGGER.error("Invalid job file: %s", exc)
            return 2
        return _run(job, args.metrics_json)
    if args.command in {"calc", "const"}:
        try:
            job = _job_from_args(args)
        except _CONFIG_ERRORS as exc:
            LOGGER.error("Invalid arguments: %s", exc)
            return 2
        return _run(job, args.metrics_json)

    parser.error("Unknown command")
    return 2
