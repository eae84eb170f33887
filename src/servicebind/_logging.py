"""Logging services backed by the standard `logging` module.

`add_logging` registers three singletons:

- `LoggerOptions`: minimum level and the global logger name. Only meant for
  building the other logging services.
- `LoggerFactory`: creates `logging.Logger` objects. Scopes use it, when
  registered, to trace their own lifecycle at DEBUG level. The default one is a
  `ConsoleLoggerFactory`, which prints to stderr.
- `logging.Logger`: the global logger.

Loggers created through the factory are not disposed by the container; the
factory itself is, and flushes the handlers of the loggers it created
(a `ConsoleLoggerFactory` also detaches its console handlers).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ._descriptor import ServiceDescriptor
from ._environment import Environment
from ._errors import ServiceNotFoundError


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._collection import ServiceCollection
    from ._descriptor import ServiceFactory
    from ._interfaces import ServiceResolver

DEFAULT_LOGGER_NAME = "Global"
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class LoggerOptions:
    min_level: int
    default_logger_name: str = DEFAULT_LOGGER_NAME


class LoggerFactory:
    def __init__(self, min_level: int = logging.DEBUG) -> None:
        self.min_level = min_level
        self._loggers: dict[str, logging.Logger] = {}

    def create(self, name: str) -> logging.Logger:
        log = logging.getLogger(name)
        log.setLevel(self.min_level)
        self._loggers[name] = log
        return log

    def create_logger(self, owner: type) -> logging.Logger:
        """Create the logger named after `owner`'s module and qualified name."""
        return self.create(f"{owner.__module__}.{owner.__qualname__}")

    def dispose(self) -> None:
        for log in self._loggers.values():
            for handler in log.handlers:
                handler.flush()
        self._loggers.clear()


class ConsoleHandler(logging.StreamHandler):
    """Writes to stderr, one line per record, prefixed with the logger name."""

    def __init__(self, level: int) -> None:
        super().__init__()
        self.setLevel(level)
        self.setFormatter(logging.Formatter(CONSOLE_FORMAT))


class ConsoleLoggerFactory(LoggerFactory):
    """`LoggerFactory` whose loggers print to the console.

    Each logger gets at most one `ConsoleHandler`; the handlers this factory
    attached are flushed and detached again on `dispose`.
    """

    def __init__(self, min_level: int = logging.DEBUG) -> None:
        super().__init__(min_level)
        self._handlers: list[tuple[logging.Logger, ConsoleHandler]] = []

    def create(self, name: str) -> logging.Logger:
        log = super().create(name)
        if not any(isinstance(h, ConsoleHandler) for h in log.handlers):
            handler = ConsoleHandler(self.min_level)
            log.addHandler(handler)
            self._handlers.append((log, handler))
        return log

    def dispose(self) -> None:
        super().dispose()
        for log, handler in self._handlers:
            log.removeHandler(handler)
            handler.close()
        self._handlers.clear()


class LoggingBuilder:
    """Customizes the logging registrations made by `add_logging`."""

    def __init__(self, services: ServiceCollection) -> None:
        self.services = services

    def try_use_console_logging(self) -> None:
        """Register console logging services unless already registered.

        The default level is INFO in the production environment, DEBUG otherwise.
        """
        self.try_add_options(_default_options)
        self.try_add_logger_factory(
            lambda p: ConsoleLoggerFactory(min_level=p.get_required_service(LoggerOptions).min_level),
            ConsoleLoggerFactory,
        )
        self.try_add_global_logger(
            lambda p: p.get_required_service(LoggerFactory).create(
                p.get_required_service(LoggerOptions).default_logger_name,
            ),
        )

    def try_add_options(self, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.services.try_add_singleton(LoggerOptions, factory, implementation_type)

    def try_add_logger_factory(self, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.services.try_add_singleton(LoggerFactory, factory, implementation_type)

    def try_add_global_logger(self, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.services.try_add_singleton(logging.Logger, factory, implementation_type)

    def replace_options(self, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.services.replace(LoggerOptions, ServiceDescriptor.singleton(LoggerOptions, factory, implementation_type))

    def replace_logger_factory(self, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.services.replace(LoggerFactory, ServiceDescriptor.singleton(LoggerFactory, factory, implementation_type))

    def replace_global_logger(self, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.services.replace(
            logging.Logger,
            ServiceDescriptor.singleton(logging.Logger, factory, implementation_type),
        )

    def remove_options(self) -> None:
        """Remove `LoggerOptions`.

        Only safe when the registered `LoggerFactory` and global logger do not
        depend on it; the default ones do.
        """
        self.services.remove_all(LoggerOptions)


def add_logging(
    services: ServiceCollection,
    config: Callable[[LoggingBuilder], None] | None = None,
) -> LoggingBuilder:
    """Add logging services to `services`.

    `config` runs first, so registrations it makes win over the defaults.
    """
    builder = LoggingBuilder(services)
    if config is not None:
        config(builder)
    builder.try_use_console_logging()
    return builder


def get_logger_factory(resolver: ServiceResolver) -> LoggerFactory | None:
    return resolver.get_service(LoggerFactory)


def get_required_logger_factory(resolver: ServiceResolver) -> LoggerFactory:
    factory = get_logger_factory(resolver)
    if factory is None:
        msg = "LoggerFactory service does not exist, call `add_logging` on the ServiceCollection to enable logging."
        raise ServiceNotFoundError(msg, LoggerFactory)
    return factory


def get_logger(resolver: ServiceResolver, owner: type) -> logging.Logger | None:
    factory = get_logger_factory(resolver)
    if factory is None:
        return None
    return factory.create_logger(owner)


def get_required_logger(resolver: ServiceResolver, owner: type) -> logging.Logger:
    return get_required_logger_factory(resolver).create_logger(owner)


def _default_options(resolver: ServiceResolver) -> LoggerOptions:
    environment = resolver.get_service(Environment)
    production = environment is not None and environment.is_production()
    return LoggerOptions(min_level=logging.INFO if production else logging.DEBUG)
