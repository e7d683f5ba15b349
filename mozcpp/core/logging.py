"""Structured logging configuration: structlog + stdlib logging."""

from __future__ import annotations

import logging
import logging.config
import os

import structlog

DEFAULT_LOG_LEVEL = "WARNING"


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Route structlog events through a stdlib handler on stderr.

    Explicit arguments win over MOZCPP_LOG_LEVEL and MOZCPP_LOG_FORMAT
    (``console`` or ``json``). Command output on stdout stays machine readable.
    """
    log_level = (level or os.environ.get("MOZCPP_LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    log_format = (log_format or os.environ.get("MOZCPP_LOG_FORMAT", "console")).lower()

    pre_chain: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if log_format == "json":
        # The console renderer formats tracebacks itself.
        pre_chain.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "mozcpp": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": pre_chain,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "mozcpp",
                },
            },
            "loggers": {
                "mozcpp": {"handlers": ["stderr"], "level": log_level, "propagate": False},
            },
        }
    )
