"""Structured logging and tracing for the App Services SDK.

Logs go through structlog and spans through the OpenTelemetry API. Until
``configure_telemetry`` runs, the SDK logs with structlog's defaults and
traces with whatever provider the application installed.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .config import SDK_NAME, SDK_VERSION
from .errors import AppServicesError

if TYPE_CHECKING:
    from collections.abc import Generator

    from .config import TelemetryConfig

_tracer: trace.Tracer | None = None
_logger: structlog.BoundLogger | None = None


def get_tracer() -> trace.Tracer:
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(SDK_NAME, SDK_VERSION)
    return _tracer


def get_logger() -> structlog.BoundLogger:
    """Logger shared by every SDK component, tagged with the SDK version."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(SDK_NAME).bind(sdk_version=SDK_VERSION)
    return _logger


def _processors(config: TelemetryConfig) -> list[Any]:
    renderer = (
        structlog.processors.JSONRenderer()
        if config.json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_telemetry(config: TelemetryConfig) -> None:
    """Apply ``config`` to the SDK's logger and tracer.

    A disabled config only silences tracing; logging keeps its current
    structlog configuration so the host application stays in control.
    """
    global _tracer, _logger

    if not config.enabled:
        _tracer = trace.NoOpTracer()
        return

    level = logging.getLevelNamesMapping().get(config.log_level, logging.INFO)
    structlog.configure(
        processors=_processors(config),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _tracer = trace.get_tracer(config.service_name, config.service_version)
    _logger = structlog.get_logger(config.service_name).bind(
        sdk_version=config.service_version
    )


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Run the enclosed block inside a span named ``name``.

    Attributes whose value is ``None`` are not recorded. SDK errors also tag
    the span with their ``error.code``.
    """
    with get_tracer().start_as_current_span(
        name,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            if isinstance(e, AppServicesError):
                span.set_attribute("error.code", e.code)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
