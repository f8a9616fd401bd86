from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

import structlog
from structlog.typing import EventDict, Processor

from watchplan.app.config import AppSettings
from watchplan.app.telemetry import TELEMETRY_LOGGER_NAME

LOGGER_NAME = "watchplan"
LOG_FILE_NAME = "watchplan.log"
TELEMETRY_LOG_FILE_NAME = "watchplan-telemetry.log"


def configure_application_logging(settings: AppSettings) -> Path:
    """Route `watchplan.*` records to stdout and to JSON files under `log_dir`.

    Telemetry events get their own file and never reach the console.
    """
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = settings.log_dir / LOG_FILE_NAME
    telemetry_log_file = settings.log_dir / TELEMETRY_LOG_FILE_NAME

    logger = _claim_logger(LOGGER_NAME, level=logging.DEBUG)
    logger.addHandler(_stream_handler(sys.stdout, _level_from_name(settings.log_level)))
    logger.addHandler(_file_handler(log_file, logging.DEBUG))

    telemetry_logger = _claim_logger(TELEMETRY_LOGGER_NAME, level=logging.INFO)
    telemetry_logger.addHandler(_file_handler(telemetry_log_file, logging.INFO))

    logger.info(
        "logging configured console_level=%s path=%s telemetry_path=%s",
        settings.log_level.upper(),
        log_file,
        telemetry_log_file,
    )
    return log_file


def configure_cli_logging(settings: AppSettings, *, verbose: bool = False) -> None:
    # stderr only, so stdout stays parseable for `--json`.
    level = logging.DEBUG if verbose else _level_from_name(settings.log_level)
    logger = _claim_logger(LOGGER_NAME, level=logging.DEBUG)
    logger.addHandler(_stream_handler(sys.stderr, level))

    telemetry_logger = _claim_logger(TELEMETRY_LOGGER_NAME, level=logging.INFO)
    telemetry_logger.addHandler(logging.NullHandler())


def _claim_logger(name: str, *, level: int) -> logging.Logger:
    """Configure structlog and return `name` with its old handlers closed."""
    _configure_structlog()
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    return logger


def _stream_handler(stream: TextIO, level: int) -> logging.Handler:
    isatty = getattr(stream, "isatty", None)
    colors = bool(callable(isatty) and isatty())
    handler = logging.StreamHandler(stream=stream)
    handler.setLevel(level)
    handler.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=colors)))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(
        _formatter(
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
            source_location=True,
        )
    )
    return handler


def _level_from_name(raw_level: str) -> int:
    return logging.getLevelNamesMapping().get(raw_level.strip().upper(), logging.INFO)


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _formatter(
    *renderers: Processor,
    source_location: bool = False,
) -> structlog.stdlib.ProcessorFormatter:
    processors: list[Processor] = []
    if source_location:
        processors.append(_add_source_location)
    processors.append(structlog.stdlib.ProcessorFormatter.remove_processors_meta)
    processors.extend(renderers)
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        ],
        processors=processors,
    )


def _add_source_location(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        event_dict.update(
            pathname=record.pathname,
            lineno=record.lineno,
            func_name=record.funcName,
        )
    return event_dict
