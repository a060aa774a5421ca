"""Configuración de logging estructurado para VoteChain.

Structured logging setup for VoteChain.
"""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Optional

import structlog

from .timeutils import shorten_identifier


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    *,
    json_output: bool = True,
) -> structlog.BoundLogger:
    """Configura structlog y handlers de consola/archivo.

    English: Configure structlog and console/file handlers. The file handler
    is only installed when ``log_dir`` is given.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                log_dir / "votechain.log",
                when="midnight",
                backupCount=30,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=log_level.upper(),
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def bind_context(
    logger: structlog.BoundLogger,
    voting: Optional[str] = None,
    identity: Optional[str] = None,
    *,
    redact: bool = False,
) -> structlog.BoundLogger:
    """Adjunta contexto estándar al logger.

    English: Bind standard context to the logger. With ``redact`` the
    identifiers are shortened before binding.
    """
    context: dict[str, Any] = {}
    if voting:
        context["voting"] = shorten_identifier(voting) if redact else voting
    if identity:
        context["identity"] = shorten_identifier(identity) if redact else identity
    return logger.bind(**context)
