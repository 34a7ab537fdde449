"""Timing spans for tile computation runs."""

from __future__ import annotations

import json
import os
import threading
import tracemalloc
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Any, Iterator

PROFILE_DIR_ENV = "RASTERALGEBRA_PROFILE_DIR"
METRICS_FILENAME = "algebra_metrics.json"


@dataclass(frozen=True)
class PerfSpan:
    """One timed span."""

    name: str
    seconds: float


class PerfTracker:
    """Collect named timing spans and an optional memory peak.

    Spans may be recorded from worker threads; the totals are guarded by a lock.
    """

    def __init__(self, *, enabled: bool, track_memory: bool = False) -> None:
        self.enabled = enabled
        self.track_memory = track_memory
        self._lock = threading.Lock()
        self._spans: list[PerfSpan] = []
        self._totals: dict[str, float] = {}
        self._counts: dict[str, int] = {}
        self._start_time: float | None = None
        self._end_time: float | None = None
        self._peak_memory: float | None = None
        self._mem_started = False

    def start(self) -> None:
        if not self.enabled:
            return
        self._start_time = perf_counter()
        if self.track_memory and not tracemalloc.is_tracing():
            tracemalloc.start()
            self._mem_started = True

    def stop(self) -> None:
        if not self.enabled or self._end_time is not None:
            return
        self._end_time = perf_counter()
        if self.track_memory and tracemalloc.is_tracing():
            _, peak = tracemalloc.get_traced_memory()
            self._peak_memory = peak / (1024 * 1024)
            if self._mem_started:
                tracemalloc.stop()

    @contextmanager
    def span(self, name: str) -> Iterator[None]:
        """Measure a named span of work."""
        if not self.enabled:
            yield
            return
        start = perf_counter()
        try:
            yield
        finally:
            elapsed = perf_counter() - start
            with self._lock:
                self._spans.append(PerfSpan(name=name, seconds=elapsed))
                self._totals[name] = self._totals.get(name, 0.0) + elapsed
                self._counts[name] = self._counts.get(name, 0) + 1

    def summary(self) -> dict[str, Any]:
        """Return a JSON-serializable summary of captured spans."""
        if not self.enabled:
            return {}
        total_seconds = 0.0
        if self._start_time is not None and self._end_time is not None:
            total_seconds = max(0.0, self._end_time - self._start_time)
        with self._lock:
            spans = {
                name: {"seconds": round(total, 6), "count": self._counts.get(name, 0)}
                for name, total in sorted(self._totals.items())
            }
            events = [
                {"name": span.name, "seconds": round(span.seconds, 6)} for span in self._spans
            ]
        summary: dict[str, Any] = {
            "total_seconds": round(total_seconds, 6),
            "spans": spans,
            "events": events,
        }
        if self._peak_memory is not None:
            summary["peak_memory_mb"] = round(self._peak_memory, 3)
        return summary

    def write(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.summary(), indent=2), encoding="utf-8")


def resolve_metrics_path(metrics_json: str | None) -> Path | None:
    """Resolve the metrics output path from the CLI flag or the profile directory."""
    if metrics_json:
        return Path(metrics_json)
    profile_dir = os.environ.get(PROFILE_DIR_ENV)
    if profile_dir:
        return Path(profile_dir) / METRICS_FILENAME
    return None
