"""Operational logging for scaffold runs."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts True/False, 0/1 and the strings true/false/1/0/yes/no
    (case-insensitive, surrounding whitespace ignored).
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"Invalid boolean for {path}: {value!r}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
    raise ValueError(f"Invalid boolean for {path}: {value!r}")


@dataclass(frozen=True)
class LoggingConfig:
    level: int = logging.INFO
    enable_file: bool = True
    log_dir: str = "logs"


def load_logging_config(environ: Mapping[str, str] | None = None) -> LoggingConfig:
    env = os.environ if environ is None else environ

    level = logging.INFO
    raw_level = env.get("POLYSCAFFOLD_LOG_LEVEL", "").strip().lower()
    if raw_level:
        if raw_level not in _LEVELS:
            raise ValueError(
                f"Invalid POLYSCAFFOLD_LOG_LEVEL: {raw_level!r} (expected one of: {', '.join(_LEVELS)})"
            )
        level = _LEVELS[raw_level]

    enable_file = True
    raw_file = env.get("POLYSCAFFOLD_LOG_FILE")
    if raw_file is not None and raw_file.strip():
        enable_file = parse_bool(raw_file, "POLYSCAFFOLD_LOG_FILE")

    log_dir = env.get("POLYSCAFFOLD_LOG_DIR", "").strip() or "logs"
    return LoggingConfig(level=level, enable_file=enable_file, log_dir=log_dir)


def generate_run_id() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def configure_stdio_utf8() -> None:
    """Force stdout/stderr to UTF-8 so script output never crashes Windows consoles."""
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if callable(reconfigure):
            reconfigure(encoding="utf-8", errors="replace")


def setup_operational_logger(
    log_dir: str | None,
    run_id: str,
    *,
    level: int = logging.INFO,
) -> tuple[logging.Logger, str | None]:
    """
    Configure a logger that writes an operational log for traceability.

    Logs go to stdout at `level` and, when `log_dir` is given, to a UTF-8 file
    under it at DEBUG (script output and activation debugging land there only).
    """

    logger_name = f"polyscaffold.{run_id}"
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    log_file: str | None = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{run_id}_oplog.log")
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    logger.propagate = False

    logger.info("Operational logging initialized for run %s", run_id)
    if log_file:
        logger.debug("Operational log file: %s", log_file)

    return logger, log_file


def open_run_logger(
    run_id: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[logging.Logger, str | None]:
    """Operational logger configured from the POLYSCAFFOLD_LOG_* environment."""

    config = load_logging_config(environ)
    return setup_operational_logger(
        config.log_dir if config.enable_file else None,
        run_id or generate_run_id(),
        level=config.level,
    )


def close_logger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.flush()
        handler.close()
    logger.handlers.clear()
