# src/mapflow/core/logging.py
"""Structured logging configuration for mapflow.

structlog and stdlib logging share one processor chain: stdlib records
(httpx, dynaconf, anything using ``logging.getLogger``) pass through a
ProcessorFormatter, so every line comes out in the same console or JSON
shape. Bearer credentials are masked before rendering.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter
from structlog.typing import EventDict, Processor

# Libraries that log every request at DEBUG
QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")

# Event keys whose values are credentials
SECRET_KEYS = frozenset({"token", "credential", "authorization", "bearer_token"})

MASK = "***"


def mask_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace credential values with a fixed mask."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def _drop_formatter_keys(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    # ProcessorFormatter adds both keys to every record it formats
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        mask_secrets,
    ]


def _render_chain(json_output: bool) -> list[Processor]:
    if json_output:
        return [
            _drop_formatter_keys,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    return [_drop_formatter_keys, structlog.dev.ConsoleRenderer(colors=False)]


def configure_logging(*, json_output: bool = False, level: str = "INFO", stream: TextIO | None = None) -> None:
    """Route structlog and stdlib logging to one handler.

    Args:
        json_output: One JSON object per line instead of console text
        level: Root level name, any case
        stream: Destination; stderr by default so stdout stays free for
            command output
    """
    level = level.upper()
    root_level = logging.getLevelName(level)
    if not isinstance(root_level, int):
        raise ValueError(f"Unknown log level: {level}")

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests reconfigure repeatedly; cached loggers would keep the old chain
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(ProcessorFormatter(processors=_render_chain(json_output), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(root_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Bound structlog logger for ``name``."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
