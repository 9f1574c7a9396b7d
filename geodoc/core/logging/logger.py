import logging
import os
from collections import OrderedDict
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

from geodoc.core.config import CoreSettings
from geodoc.core.utils import ifnone

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s: %(name)s: %(message)s"


def default_formatter(fmt: Optional[str] = None) -> logging.Formatter:
    """Returns a logging formatter with a default format if none is specified."""
    return logging.Formatter(fmt or DEFAULT_FORMAT)


def setup_logger(
    name: str = "geodoc",
    *,
    log_dir: Optional[Path] = None,
    logger_level: int = logging.DEBUG,
    stream_level: int = logging.ERROR,
    add_stream_handler: bool = True,
    file_level: int = logging.DEBUG,
    file_mode: str = "a",
    add_file_handler: bool = True,
    propagate: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    use_structlog: Optional[bool] = None,
    structlog_json: bool = True,
    structlog_bind: Optional[dict] = None,
) -> Logger | structlog.stdlib.BoundLogger:
    """Configure and initialize logging for geodoc components.

    Sets up a rotating file handler and a console handler on the given logger. The log file defaults to
    ``{GEODOC_DIR_PATHS.LOGGER_DIR}/{name}.log`` for the root ``geodoc`` logger and
    ``{GEODOC_DIR_PATHS.LOGGER_DIR}/modules/{name}.log`` for every other logger.

    Args:
        name: Logger name, defaults to "geodoc".
        log_dir: Custom directory for the log file.
        logger_level: Overall logger level.
        stream_level: StreamHandler level (e.g., ERROR).
        add_stream_handler: Whether to add a stream handler.
        file_level: FileHandler level (e.g., DEBUG).
        file_mode: Mode for file handler, default is 'a' (append).
        add_file_handler: Whether to add a file handler.
        propagate: Whether the logger should propagate messages to ancestor loggers.
        max_bytes: Maximum size in bytes before rotating the log file.
        backup_count: Number of backup files to retain.
        use_structlog: If True, configure and return a structlog BoundLogger. Defaults to
            ``GEODOC_LOGGER.USE_STRUCTLOG``.
        structlog_json: If True, render JSON; otherwise use the structlog console renderer.
        structlog_bind: Fields bound to the returned structlog logger.

    Returns:
        Logger | structlog.stdlib.BoundLogger: Configured logger instance.
    """
    settings = CoreSettings()
    use_structlog = ifnone(use_structlog, settings.GEODOC_LOGGER.USE_STRUCTLOG)

    child_log_path = f"{name}.log" if name == "geodoc" else os.path.join("modules", f"{name}.log")
    if log_dir is not None:
        log_file_path = os.path.join(log_dir, child_log_path)
    elif use_structlog:
        log_file_path = os.path.join(settings.GEODOC_DIR_PATHS.STRUCT_LOGGER_DIR, child_log_path)
    else:
        log_file_path = os.path.join(settings.GEODOC_DIR_PATHS.LOGGER_DIR, child_log_path)
    os.makedirs(Path(log_file_path).parent, exist_ok=True)

    # structlog renders the full line itself, so its handlers only print the message
    formatter = logging.Formatter("%(message)s") if use_structlog else default_formatter()

    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.setLevel(logger_level)
    logger.propagate = propagate

    if add_stream_handler:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(stream_level)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    if add_file_handler:
        file_handler = RotatingFileHandler(
            filename=str(log_file_path), maxBytes=max_bytes, backupCount=backup_count, mode=file_mode
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if not use_structlog:
        return logger

    renderer = structlog.processors.JSONRenderer() if structlog_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _enforce_key_order_processor(["timestamp", "event", "level", "logger", "duration_ms"]),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    bound_logger = structlog.get_logger(name)
    if structlog_bind:
        bound_logger = bound_logger.bind(**structlog_bind)
    return bound_logger


def _enforce_key_order_processor(key_order: list[str]):
    def _processor(_logger, _method_name, event_dict):
        ordered = OrderedDict()
        for key in key_order:
            if key in event_dict:
                ordered[key] = event_dict.pop(key)
        for key in sorted(event_dict):
            ordered[key] = event_dict[key]
        return ordered

    return _processor


def get_logger(
    name: str | None = "geodoc", use_structlog: bool | None = None, **kwargs
) -> Logger | structlog.stdlib.BoundLogger:
    """
    Create or retrieve a named logger instance.

    Names are placed under the ``geodoc`` hierarchy, so ``get_logger("database.geo")`` configures
    ``geodoc.database.geo``. Loggers propagate to their parents by default; parents that already have handlers are
    reconfigured without a stream handler so messages are not printed twice.

    Args:
        name (str): The name of the logger. Defaults to "geodoc".
        use_structlog (bool): Whether to use structured logging. If None, uses the config default.
        **kwargs: Additional keyword arguments to be passed to `setup_logger`.

    Returns:
        logging.Logger | structlog.stdlib.BoundLogger: A configured logger instance.

    Example:
        .. code-block:: python

            from geodoc.core.logging.logger import get_logger

            logger = get_logger("database.geo")
            logger.info("Codec ready.")

            slogger = get_logger("database.geo", use_structlog=True, structlog_bind={"service": "parcels"})
            slogger.info("Structured log", geometry="Polygon")
    """
    if not name:
        name = "geodoc"

    full_name = name if name.startswith("geodoc") else f"geodoc.{name}"
    kwargs.setdefault("propagate", True)

    if kwargs.get("propagate"):
        parts = full_name.split(".")
        parent_name = parts[0]
        for part in [None] + parts[1:-1]:
            if part is not None:
                parent_name = f"{parent_name}.{part}"
            if parent_name != full_name and logging.getLogger(parent_name).handlers:
                setup_logger(parent_name, add_stream_handler=False, use_structlog=use_structlog, **kwargs)
    return setup_logger(full_name, use_structlog=use_structlog, **kwargs)
