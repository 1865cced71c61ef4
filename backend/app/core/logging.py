"""structlog setup for the questionnaire backend.

Every entry, whether from our own loggers or bridged in from uvicorn, httpx or
SQLAlchemy through the stdlib, runs through one processor chain. That chain
stamps the request's correlation ID and authenticated user, and masks
user-authored moral answers and prompts before anything is rendered. Output is
one JSON object per line in production and ConsoleRenderer output in debug.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")

# Event keys that may carry a participant's own words
REDACTED_KEYS = frozenset({"answer", "new_answer", "prompt", "question_text", "statements"})
REDACTED = "[redacted]"


def add_correlation_id(logger, method, event_dict):
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def redact_user_text(logger, method, event_dict):
    """Replace free-text answer and prompt fields with their length."""
    for key in REDACTED_KEYS.intersection(event_dict):
        value = event_dict[key]
        size = len(value) if isinstance(value, (str, list, tuple)) else 0
        event_dict[key] = f"{REDACTED} ({size})"
    return event_dict


def bind_user_id(user_id: str) -> None:
    """Attach the authenticated user to all log entries for the current request."""
    structlog.contextvars.bind_contextvars(user_id=user_id)


def resolve_log_level(log_level: str, debug: bool) -> str:
    """LOG_LEVEL when set, otherwise DEBUG in debug mode and INFO elsewhere."""
    if log_level:
        return log_level.upper()
    return "DEBUG" if debug else "INFO"


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Install the shared processor chain for structlog and stdlib logging.

    Call once, before any module logs: loggers cache their processors on first use.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        redact_user_text,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["default"], "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
    })

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
