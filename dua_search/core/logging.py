"""
Dua Search Service - Structured Logging Module

Every log line carries the service identity and, inside a search request,
the request context bound by the search endpoint (request id, edition,
filter toggle). Caller query text is personal: unless explicitly enabled,
it is replaced by its length before rendering.

Patterns Applied:
- One-time configure_logging() at startup
- structlog BoundLogger with JSON output
- Request-scoped context via structlog.contextvars

Anti-Patterns Avoided:
- structlog.configure() called per get_logger() - prevented via _configured flag
"""

import logging
import sys
from typing import Any, Final

import structlog
from structlog.typing import EventDict

SERVICE_NAME: Final[str] = "dua-search-service"

# Event keys holding caller-supplied or derived query text
QUERY_TEXT_FIELDS: Final[tuple[str, ...]] = ("query", "enriched_query")

# Module-level flag for one-time configuration
_configured: bool = False

_service_info: dict[str, str] = {"service": SERVICE_NAME}
_log_query_text: bool = False


def add_service_info(
    logger: logging.Logger,  # noqa: ARG001 - Required by structlog interface
    method_name: str,  # noqa: ARG001 - Required by structlog interface
    event_dict: EventDict,
) -> EventDict:
    """Stamp service name, version and environment on every entry."""
    for key, value in _service_info.items():
        event_dict.setdefault(key, value)
    return event_dict


def mask_query_text(
    logger: logging.Logger,  # noqa: ARG001 - Required by structlog interface
    method_name: str,  # noqa: ARG001 - Required by structlog interface
    event_dict: EventDict,
) -> EventDict:
    """Replace query text fields with `<field>_chars` unless enabled.

    Example:
        {"event": "x", "query": "ease my grief"}
        -> {"event": "x", "query_chars": 13}
    """
    if _log_query_text:
        return event_dict
    for field in QUERY_TEXT_FIELDS:
        if field in event_dict:
            value = event_dict.pop(field)
            event_dict[f"{field}_chars"] = len(value) if isinstance(value, str) else 0
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    service_version: str | None = None,
    environment: str | None = None,
    log_query_text: bool = False,
) -> None:
    """Configure structlog for the application.

    This function must be called exactly ONCE at application startup.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to use JSON renderer (True for production)
        service_version: Version stamped on every entry
        environment: Deployment environment stamped on every entry
        log_query_text: Keep raw query text in log entries
    """
    global _configured, _log_query_text

    if _configured:
        return

    _service_info.clear()
    _service_info["service"] = SERVICE_NAME
    if service_version:
        _service_info["version"] = service_version
    if environment:
        _service_info["environment"] = environment
    _log_query_text = log_query_text

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            mask_query_text,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_info,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def bind_request_context(request_id: str, **fields: Any) -> None:
    """Start a fresh request context for the current task.

    Clears anything left over from a previous request on the same
    context, then binds request_id plus any extra fields.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **fields)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        structlog BoundLogger instance
    """
    return structlog.get_logger(name)


def reset_logging() -> None:
    """Reset logging configuration for testing."""
    global _configured, _log_query_text
    _configured = False
    _log_query_text = False
    _service_info.clear()
    _service_info["service"] = SERVICE_NAME
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
