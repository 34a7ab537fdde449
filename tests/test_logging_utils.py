from __future__ import annotations

import json
import logging
from pathlib import Path

from rasteralgebra.logging_utils import (
    HumanFormatter,
    JsonFormatter,
    LogOptions,
    configure_logging,
)


def _record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("rasteralgebra.test", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_configure_logging_writes_json(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "rasteralgebra.jsonl"
    configure_logging(LogOptions(log_file=log_path))
    logger = logging.getLogger("rasteralgebra.test")
    logger.info("tile done", extra={"tile": [256, 512]})
    logging.shutdown()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert lines
    payload = json.loads(lines[-1])
    assert payload["message"] == "tile done"
    assert payload["level"] == "info"
    assert payload["extra"]["tile"] == [256, 512]


def test_console_level_follows_options() -> None:
    root = configure_logging(LogOptions(quiet=True))
    assert root.handlers[0].level == logging.WARNING
    root = configure_logging(LogOptions(verbose=1))
    assert root.handlers[0].level == logging.DEBUG
    assert len(root.handlers) == 1
    root = configure_logging(LogOptions(json_console=True))
    assert isinstance(root.handlers[0].formatter, JsonFormatter)


def test_human_formatter_prefixes_tile() -> None:
    formatter = HumanFormatter("%(levelname)s: %(message)s")
    assert formatter.format(_record("done", tile=(3, 4))) == "[3,4] INFO: done"
    assert formatter.format(_record("plain")) == "INFO: plain"


def test_json_formatter_serializes_unknown_values() -> None:
    payload = json.loads(JsonFormatter().format(_record("path", target=Path("a.tif"))))
    assert payload["extra"]["target"] == "a.tif"
    assert payload["logger"] == "rasteralgebra.test"
