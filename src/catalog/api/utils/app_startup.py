"""Process-wide loguru setup shared by the API and the media worker."""

import logging
import sys
from pathlib import Path

from loguru import logger

from src.catalog.runtime.config.config_data import LoggingConfig
from src.catalog.runtime.context import get_config

# request_id is bound by the HTTP middleware, product_id by catalog operations
_DEFAULT_EXTRA = {"request_id": "-", "product_id": "-", "component": "api"}

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[component]}</magenta> "
    "[<cyan>{extra[request_id]}</cyan>] | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "temporalio.activity": logging.INFO,
    "temporalio.worker": logging.INFO,
    "PIL": logging.INFO,
    "uvicorn.access": logging.CRITICAL,
}


class InterceptHandler(logging.Handler):
    """Forward stdlib ``logging`` records (uvicorn, temporalio, sqlalchemy) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Access lines are written by the request middleware
        if record.name == "uvicorn.access":
            return

        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(depth=2, exception=record.exc_info).bind(
            logger_name=record.name
        ).log(level, record.getMessage())


def _add_file_sink(cfg: LoggingConfig, level: str, debug_traces: bool) -> None:
    path = Path(cfg.file)
    path.parent.mkdir(parents=True, exist_ok=True)
    as_json = cfg.format == "json"
    logger.add(
        str(path),
        level=level,
        format="{message}" if as_json else CONSOLE_FORMAT,
        serialize=as_json,
        rotation=f"{cfg.max_size_mb} MB",
        retention=cfg.backup_count,
        compression="zip",
        enqueue=True,
        backtrace=debug_traces,
        diagnose=debug_traces,
    )


def _route_stdlib_logging() -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict):
        existing = logging.getLogger(name)
        existing.handlers = []
        existing.propagate = True

    for name, level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def configure_logging(level: str | None = None, component: str = "api") -> None:
    """Route all logging through loguru.

    Args:
        level: Overrides ``logging.level`` from the configuration.
        component: Tag written on every record, ``api`` or ``worker``.
    """
    config = get_config()
    cfg = config.logging
    level = (level or cfg.level).upper()
    # diagnose renders local variables, upload bytes included
    debug_traces = config.app.environment != "production"

    logger.remove()
    logger.configure(extra={**_DEFAULT_EXTRA, "component": component})

    logger.add(
        sys.stderr,
        level=level,
        format=CONSOLE_FORMAT,
        colorize=True,
        backtrace=debug_traces,
        diagnose=debug_traces,
    )
    if cfg.file:
        _add_file_sink(cfg, level, debug_traces)

    _route_stdlib_logging()

    logger.info(
        "Logging configured",
        level=level,
        format=cfg.format,
        file=cfg.file or None,
        environment=config.app.environment,
    )
