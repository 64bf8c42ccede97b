"""
Logging configuration utilities.

Engine modules log through ``structlog.get_logger()`` with keyword-argument
events; this module decides where those events end up.
"""
import logging
import logging.handlers
import structlog
from pathlib import Path
from typing import Any, List, Optional

from mixplanner.config.settings import settings

LOG_FILE_NAME = "mixplanner.log"

# Third-party loggers that are too chatty at DEBUG
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "asyncio")


def _processors(use_json: bool) -> List[Any]:
    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def _handlers(log_to_file: bool) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_to_file:
        log_dir = Path(settings.logging.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_dir / LOG_FILE_NAME,
                maxBytes=settings.logging.max_file_size_mb * 1024 * 1024,
                backupCount=settings.logging.backup_count
            )
        )
    return handlers


def setup_logging(level: Optional[str] = None,
                  use_json: Optional[bool] = None,
                  log_to_file: bool = True):
    """
    Configure structlog on top of the standard library logging module.

    Args:
        level: Log level name, settings.logging.level when None
        use_json: JSON lines instead of console output, settings when None
        log_to_file: Also write to the rotating file under settings.logging.log_dir
    """
    level_name = (level or settings.logging.level).upper()
    if use_json is None:
        use_json = settings.logging.use_json

    structlog.configure(
        processors=_processors(use_json),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # force=True so a second call (CLI after import-time setup) takes effect
    logging.basicConfig(
        format=settings.logging.format,
        level=getattr(logging, level_name),
        handlers=_handlers(log_to_file),
        force=True
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))


def get_logger(name: str = None) -> Any:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
