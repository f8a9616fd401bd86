from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Literal, Protocol

import structlog

TelemetryValue = bool | int | float | str | None

REDACTED = "[redacted]"
TELEMETRY_LOGGER_NAME = "watchplan.telemetry"

# Matched as substrings of lower-cased attribute names; `*cache_key` names are exempt.
_CREDENTIAL_MARKERS: tuple[str, ...] = (
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "key",
    "secret",
    "token",
)
_EXEMPT_SUFFIXES: tuple[str, ...] = ("cache_key",)
_MAX_TEXT_LENGTH = 160


class TelemetrySink(Protocol):
    def emit(self, *, event_name: str, attributes: Mapping[str, TelemetryValue]) -> None:
        ...


class NoOpTelemetrySink:
    def emit(self, *, event_name: str, attributes: Mapping[str, TelemetryValue]) -> None:
        _ = (event_name, attributes)


@dataclass
class StructuredLogTelemetrySink:
    """Writes every event as one structlog record on the telemetry logger."""

    logger_name: str = TELEMETRY_LOGGER_NAME
    _logger: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = structlog.get_logger(self.logger_name)

    def emit(self, *, event_name: str, attributes: Mapping[str, TelemetryValue]) -> None:
        self._logger.info("telemetry", telemetry_event=event_name, **attributes)


@dataclass(frozen=True)
class TelemetryClient:
    enabled: bool
    sink: TelemetrySink

    @classmethod
    def disabled(cls) -> TelemetryClient:
        return cls(enabled=False, sink=NoOpTelemetrySink())

    def emit(self, event_name: str, **attributes: Any) -> None:
        if self.enabled:
            self.sink.emit(event_name=event_name, attributes=sanitize_attributes(attributes))

    @contextmanager
    def span(self, event_prefix: str, **attributes: Any) -> Iterator[dict[str, Any]]:
        """Bracket a unit of work with `<prefix>.start` and `<prefix>.finish`.

        The yielded dict collects extra attributes for the finish event. If the body
        raises, `<prefix>.error` is emitted with the exception type and the exception
        propagates.
        """
        started_at = perf_counter()
        closing: dict[str, Any] = {}
        self.emit(f"{event_prefix}.start", **attributes)
        try:
            yield closing
        except Exception as exc:
            self.emit(
                f"{event_prefix}.error",
                **attributes,
                duration_ms=_elapsed_ms(started_at),
                error_type=type(exc).__name__,
            )
            raise
        self.emit(
            f"{event_prefix}.finish",
            **{**attributes, **closing, "duration_ms": _elapsed_ms(started_at)},
        )


def build_telemetry_client(*, enabled: bool, sink: Literal["none", "log"]) -> TelemetryClient:
    if enabled and sink == "log":
        return TelemetryClient(enabled=True, sink=StructuredLogTelemetrySink())
    if enabled and sink != "none":
        logging.getLogger(TELEMETRY_LOGGER_NAME).warning(
            "telemetry disabled reason=unsupported_sink sink=%s",
            sink,
        )
    return TelemetryClient.disabled()


def sanitize_attributes(attributes: Mapping[str, Any]) -> dict[str, TelemetryValue]:
    sanitized: dict[str, TelemetryValue] = {}
    for raw_name, raw_value in attributes.items():
        name = str(raw_name).strip().lower()
        if name:
            sanitized[name] = REDACTED if is_credential_name(name) else _coerce(raw_value)
    return sanitized


def is_credential_name(name: str) -> bool:
    if name.endswith(_EXEMPT_SUFFIXES):
        return False
    return any(marker in name for marker in _CREDENTIAL_MARKERS)


def _coerce(value: Any) -> TelemetryValue:
    if value is None or isinstance(value, bool | int | float):
        return value
    if not isinstance(value, str):
        return type(value).__name__
    text = " ".join(value.split())
    if len(text) > _MAX_TEXT_LENGTH:
        return text[:_MAX_TEXT_LENGTH] + "..."
    return text


def _elapsed_ms(started_at: float) -> int:
    return int((perf_counter() - started_at) * 1000)
