# src/flowstitch/core/logging.py
"""Structured logging for flowstitch.

structlog and stdlib logging share one handler: stdlib records are routed
through structlog's ProcessorFormatter, so a third-party library logging via
logging.getLogger() renders exactly like our own structlog events.

All log output goes to stderr. stdout belongs to the merged artifact, the
diagram and the JSON diagnostics report, and must stay parseable.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

# Libraries whose DEBUG chatter drowns out merge/validation events.
_NOISY_LOGGERS: tuple[str, ...] = (
    "dynaconf",
    "networkx",
    "markdown_it",
)


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Strip the _record/_from_structlog keys ProcessorFormatter injects."""
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def _pre_chain() -> list[Any]:
    """Processors applied to every event before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]


def _render_chain(json_output: bool, stream: TextIO) -> list[Any]:
    if json_output:
        return [
            _drop_formatter_bookkeeping,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        _drop_formatter_bookkeeping,
        structlog.dev.ConsoleRenderer(colors=stream.isatty()),
    ]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Install the flowstitch logging pipeline on the root logger.

    Safe to call repeatedly; the CLI reconfigures once settings are loaded.

    Args:
        json_output: One JSON object per line instead of console rendering
        level: DEBUG, INFO, WARNING or ERROR
        stream: Destination (defaults to the current sys.stderr)
    """
    log_level = getattr(logging, level.upper())
    target = stream if stream is not None else sys.stderr
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must take effect for loggers already handed out
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(target)
    handler.setFormatter(ProcessorFormatter(processors=_render_chain(json_output, target), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module logger; pass __name__."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
