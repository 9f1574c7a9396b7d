"""GeoDoc base class. Provides unified configuration, logging and context management."""

import inspect
import logging
import time
import traceback
from functools import wraps
from typing import Callable, Optional

from geodoc.core.config import CoreConfig, SettingsLike
from geodoc.core.logging.logger import get_logger
from geodoc.core.utils import ifnone

LOGGER_KWARGS = {
    "log_dir",
    "logger_level",
    "stream_level",
    "file_level",
    "file_mode",
    "propagate",
    "max_bytes",
    "backup_count",
    "use_structlog",
    "structlog_json",
    "structlog_bind",
}


class GeoDocMeta(type):
    """Metaclass for the GeoDoc class.

    Gives classes deriving from GeoDoc the same default logger in class methods as in instance methods::

        from geodoc.core import GeoDoc

        class MyClass(GeoDoc):
            def instance_method(self):
                self.logger.info(f"Using logger: {self.logger.name}")  # Using logger: geodoc.my_module.MyClass

            @classmethod
            def class_method(cls):
                cls.logger.info(f"Using logger: {cls.logger.name}")  # Using logger: geodoc.my_module.MyClass
    """

    def __init__(cls, name, bases, attr_dict):
        super().__init__(name, bases, attr_dict)
        cls._logger = None
        cls._config = None
        cls._logger_kwargs = None

    @property
    def logger(cls):
        if cls._logger is None:
            cls._logger = get_logger(cls.unique_name, **(cls._logger_kwargs or {}))
        return cls._logger

    @logger.setter
    def logger(cls, new_logger):
        cls._logger = new_logger

    @property
    def unique_name(cls) -> str:
        return cls.__module__ + "." + cls.__name__

    @property
    def config(cls):
        if cls._config is None:
            cls._config = CoreConfig()
        return cls._config

    @config.setter
    def config(cls, new_config):
        cls._config = new_config


class GeoDoc(metaclass=GeoDocMeta):
    """Base class for all geodoc core classes.

    Adds a configuration object, a logger named after the concrete class, and context manager support that logs any
    exception raised inside the ``with`` block.

    .. code-block:: python

        from geodoc.core import GeoDoc

        class MyClass(GeoDoc):
            def instance_method(self):
                self.logger.info(f"Using logger: {self.logger.name}")  # Using logger: geodoc.my_module.MyClass
    """

    def __init__(self, suppress: bool = False, *, config_overrides: SettingsLike | None = None, **kwargs):
        """
        Initialize the GeoDoc object.

        Args:
            suppress: Whether to suppress exceptions in context manager use.
            config_overrides: Additional settings to override the default config.
            **kwargs: Additional keyword arguments. Logger-related kwargs (see ``LOGGER_KWARGS``) are passed to
                `get_logger`; the rest go to the next class in the MRO.
        """
        self.config = CoreConfig(config_overrides)
        remaining_kwargs = {k: v for k, v in kwargs.items() if k not in LOGGER_KWARGS}
        try:
            super().__init__(**remaining_kwargs)
        except TypeError:
            # The next class in the MRO does not take keyword arguments
            super().__init__()

        self.suppress = suppress

        logger_kwargs = {k: v for k, v in kwargs.items() if k in LOGGER_KWARGS}
        type(self)._logger_kwargs = logger_kwargs
        self.logger = get_logger(self.unique_name, **logger_kwargs)

    @property
    def unique_name(self) -> str:
        return self.__module__ + "." + type(self).__name__

    @property
    def name(self) -> str:
        return type(self).__name__

    def __enter__(self):
        self.logger.debug(f"Initializing {self.name} as a context manager.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.debug(f"Exiting context manager for {self.name}.")
        if exc_type is not None:
            self.logger.exception("Exception occurred", exc_info=(exc_type, exc_val, exc_tb))
            return self.suppress
        return False

    @classmethod
    def autolog(
        cls,
        log_level=logging.DEBUG,
        prefix_formatter: Optional[Callable] = None,
        suffix_formatter: Optional[Callable] = None,
        exception_formatter: Optional[Callable] = None,
        self: Optional["GeoDoc"] = None,
        include_duration: bool = True,
    ):
        """Decorator that logs before and after the decorated method is called.

        By default the method name, arguments and keyword arguments are logged before the call, and the method name
        and result after it. Any exception is logged with its stack trace and re-raised. Works for both regular and
        ``async`` methods.

        The decorator expects a logger at ``self.logger``, so it can only be used by GeoDoc subclasses or classes
        that have a logger attribute. If the wrapped function does not take ``self`` as its first argument, pass the
        owning object in as ``self``.

        Args:
            log_level: Level used for the start and completion messages.
            prefix_formatter: ``(function, args, kwargs) -> str`` for the start message.
            suffix_formatter: ``(function, result) -> str`` for the completion message.
            exception_formatter: ``(function, exception, stack_trace) -> str`` for the failure message.
            self: Object whose logger is used, for functions that are not methods.
            include_duration: Whether to append the elapsed time to the completion message.

        Example:
            .. code-block:: python

                class Loader(GeoDoc):
                    @GeoDoc.autolog()
                    async def initialize(self):
                        ...

        The resulting log file contains something similar to:

        .. code-block:: text

            [...] DEBUG: geodoc.my_module.Loader: Operation initialize started with args: () and kwargs: {}
            [...] DEBUG: geodoc.my_module.Loader: Operation initialize completed with result: None | duration_ms=1.02
        """
        prefix_formatter = ifnone(
            prefix_formatter,
            default=lambda function, args, kwargs: f"Operation {function.__name__} started with args: {args} and kwargs: {kwargs}",
        )
        suffix_formatter = ifnone(
            suffix_formatter,
            default=lambda function, result: f"Operation {function.__name__} completed with result: {result}",
        )
        exception_formatter = ifnone(
            exception_formatter,
            default=lambda function, e, stack_trace: f"Operation {function.__name__} failed with the following error: {e}\n{stack_trace}",
        )
        bound_self = self

        def decorator(function):
            def _completed(logger, started_at, result):
                message = suffix_formatter(function, result)
                if include_duration:
                    message = f"{message} | duration_ms={(time.perf_counter() - started_at) * 1000.0:.2f}"
                logger.log(log_level, message)

            def _failed(logger, e):
                logger.error(exception_formatter(function, e, traceback.format_exc()))

            if bound_self is None:
                if inspect.iscoroutinefunction(function):

                    @wraps(function)
                    async def wrapper(self, *args, **kwargs):
                        self.logger.log(log_level, prefix_formatter(function, args, kwargs))
                        started_at = time.perf_counter()
                        try:
                            result = await function(self, *args, **kwargs)
                        except Exception as e:
                            _failed(self.logger, e)
                            raise
                        _completed(self.logger, started_at, result)
                        return result

                else:

                    @wraps(function)
                    def wrapper(self, *args, **kwargs):
                        self.logger.log(log_level, prefix_formatter(function, args, kwargs))
                        started_at = time.perf_counter()
                        try:
                            result = function(self, *args, **kwargs)
                        except Exception as e:
                            _failed(self.logger, e)
                            raise
                        _completed(self.logger, started_at, result)
                        return result

            else:
                logger = bound_self.logger
                if inspect.iscoroutinefunction(function):

                    @wraps(function)
                    async def wrapper(*args, **kwargs):
                        logger.log(log_level, prefix_formatter(function, args, kwargs))
                        started_at = time.perf_counter()
                        try:
                            result = await function(*args, **kwargs)
                        except Exception as e:
                            _failed(logger, e)
                            raise
                        _completed(logger, started_at, result)
                        return result

                else:

                    @wraps(function)
                    def wrapper(*args, **kwargs):
                        logger.log(log_level, prefix_formatter(function, args, kwargs))
                        started_at = time.perf_counter()
                        try:
                            result = function(*args, **kwargs)
                        except Exception as e:
                            _failed(logger, e)
                            raise
                        _completed(logger, started_at, result)
                        return result

            return wrapper

        return decorator
