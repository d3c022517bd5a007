"""Logging and tracing setup for the ticket API."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from apps.api.core.config import Settings

# Third party loggers that are noisy at the application level.
_QUIET_LOGGERS = ("aiosqlite", "asyncpg", "urllib3")


def parse_otlp_headers(header_string: str | None) -> dict[str, str]:
    """Parse ``key=value,key2=value2`` exporter headers, skipping malformed items."""

    headers: dict[str, str] = {}
    for item in (header_string or "").split(","):
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            continue
        headers[key.strip()] = value.strip()
    return headers


def build_logging_config(settings: Settings) -> dict[str, Any]:
    """Return the ``dictConfig`` payload for the service.

    SQL statements are only logged when ``database_echo`` is set, so the
    engine logger follows that flag instead of the root level.
    """

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    loggers: dict[str, dict[str, Any]] = {
        "sqlalchemy.engine": {"level": logging.INFO if settings.database_echo else logging.WARNING},
        "apps.api.tickets": {"level": level},
    }
    for name in _QUIET_LOGGERS:
        loggers[name] = {"level": logging.WARNING}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": settings.log_format}},
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "plain"},
        },
        "loggers": loggers,
        "root": {"handlers": ["console"], "level": level},
    }


def configure_logging(settings: Settings) -> logging.Logger:
    """Apply the logging config and return the application logger."""

    config = build_logging_config(settings)
    dictConfig(config)
    logger = logging.getLogger(settings.app_name)
    logger.setLevel(config["root"]["level"])
    return logger


def build_tracer_provider(settings: Settings) -> TracerProvider:
    """Create a provider that batches ticket spans to the OTLP/HTTP exporter."""

    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint or None,
        headers=parse_otlp_headers(settings.otel_exporter_otlp_headers) or None,
    )
    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name,
                "deployment.environment": settings.environment,
            }
        )
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install the OTLP provider when tracing is enabled.

    OpenTelemetry accepts only one global provider per process. When an SDK
    provider is already installed (a second app in the same process) it is
    left alone and ``None`` is returned, so only the owner shuts it down.
    """

    if not settings.otel_enabled:
        return None
    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return None

    provider = build_tracer_provider(settings)
    trace.set_tracer_provider(provider)
    logging.getLogger(__name__).info(
        "Tracing enabled for %s", settings.otel_service_name
    )
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    """Flush pending ticket spans and stop the exporter."""

    if provider is None:
        return
    provider.force_flush()
    provider.shutdown()
