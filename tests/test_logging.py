import logging
import unittest

import pytest

from servicebind import (
    ConsoleLoggerFactory,
    Environment,
    Environments,
    LoggerFactory,
    LoggerOptions,
    ServiceCollection,
    ServiceNotFoundError,
    ServiceProvider,
    add_environment,
    add_logging,
    get_logger,
    get_logger_factory,
    get_required_logger,
    get_required_logger_factory,
)


SCOPE_LOGGER = "servicebind._provider.ServiceProvider"


class Worker: ...


class RecordingFactory(LoggerFactory):
    def __init__(self):
        super().__init__(logging.WARNING)
        self.disposed = False

    def dispose(self):
        self.disposed = True
        super().dispose()


class TestAddLogging(unittest.TestCase):
    services: ServiceCollection

    def setUp(self):
        self.services = ServiceCollection()
        add_logging(self.services)

    def test_registers_options_factory_and_global_logger(self):
        assert [d.service_type for d in self.services] == [LoggerOptions, LoggerFactory, logging.Logger]

    def test_add_logging_twice_keeps_one_registration_each(self):
        add_logging(self.services)

        assert len(self.services) == 3

    def test_global_logger_uses_the_default_name(self):
        with self.services.build_service_provider() as provider:
            log = provider.get_required_service(logging.Logger)

        assert log.name == "Global"
        assert log.level == logging.DEBUG

    def test_logger_helpers(self):
        with self.services.build_service_provider() as provider:
            factory = get_required_logger_factory(provider)

            assert get_logger_factory(provider) is factory
            assert get_logger(provider, Worker).name == f"{__name__}.Worker"
            assert get_required_logger(provider, Worker) is logging.getLogger(f"{__name__}.Worker")


def test_helpers_without_logging_services():
    provider = ServiceCollection().build_service_provider()

    assert get_logger_factory(provider) is None
    assert get_logger(provider, Worker) is None
    with pytest.raises(ServiceNotFoundError) as exc_info:
        get_required_logger_factory(provider)
    assert exc_info.value.service_type is LoggerFactory
    with pytest.raises(ServiceNotFoundError):
        get_required_logger(provider, Worker)
    provider.dispose()


def test_scopes_trace_their_lifecycle(caplog):
    caplog.set_level(logging.DEBUG)
    services = ServiceCollection()
    add_logging(services)
    services.add_scoped(Worker, lambda _: Worker())
    provider = services.build_service_provider()

    with provider.create_scope() as scope:
        scope.provider.get_required_service(Worker)
    provider.dispose()

    messages = [r.getMessage() for r in caplog.records if r.name == SCOPE_LOGGER]
    assert any("constructing, root: True" in m for m in messages)
    assert any("constructing, root: False" in m for m in messages)
    assert any(m.startswith("Creating ServiceDescriptor") and "Worker" in m for m in messages)
    assert any("disposing, root: False" in m for m in messages)
    assert any("disposing, root: True" in m for m in messages)


def test_no_lifecycle_records_without_logging_services(caplog):
    caplog.set_level(logging.DEBUG)
    services = ServiceCollection()
    services.add_scoped(Worker, lambda _: Worker())
    provider = services.build_service_provider()

    with provider.create_scope() as scope:
        scope.provider.get_required_service(Worker)
    provider.dispose()

    assert not [r for r in caplog.records if r.name == SCOPE_LOGGER]


def test_production_environment_defaults_to_info():
    services = ServiceCollection()
    add_environment(services, Environment(Environments.PRODUCTION))
    add_logging(services)
    provider = services.build_service_provider()

    assert provider.get_required_service(LoggerOptions).min_level == logging.INFO
    assert provider.get_required_service(LoggerFactory).min_level == logging.INFO
    provider.dispose()


def test_other_environments_default_to_debug():
    services = ServiceCollection()
    add_environment(services, Environment(Environments.STAGING))
    add_logging(services)
    provider = services.build_service_provider()

    assert provider.get_required_service(LoggerOptions).min_level == logging.DEBUG
    provider.dispose()


def test_config_callback_wins_over_defaults():
    services = ServiceCollection()
    add_logging(
        services,
        lambda builder: builder.try_add_options(lambda _: LoggerOptions(logging.ERROR, "app")),
    )
    provider = services.build_service_provider()

    log = provider.get_required_service(logging.Logger)
    assert log.name == "app"
    assert log.level == logging.ERROR
    provider.dispose()


def test_replace_logger_factory_and_dispose_with_root():
    factory = RecordingFactory()
    services = ServiceCollection()
    builder = add_logging(services)
    builder.replace_logger_factory(lambda _: factory, RecordingFactory)
    provider = services.build_service_provider()

    assert provider.get_required_service(LoggerFactory) is factory
    assert [d.service_type for d in services] == [LoggerOptions, logging.Logger, LoggerFactory]

    provider.dispose()

    assert factory.disposed


def test_replace_global_logger_and_remove_options():
    custom = logging.getLogger("custom-global")
    services = ServiceCollection()
    builder = add_logging(services)
    builder.replace_global_logger(lambda _: custom)
    builder.replace_logger_factory(lambda _: LoggerFactory())
    builder.remove_options()
    provider = services.build_service_provider()

    assert provider.get_service(LoggerOptions) is None
    assert provider.get_required_service(logging.Logger) is custom
    provider.dispose()


def test_logger_names_follow_module_and_qualified_name():
    factory = LoggerFactory(logging.INFO)

    log = factory.create_logger(ServiceProvider)

    assert log.name == SCOPE_LOGGER
    assert log.level == logging.INFO
    factory.dispose()


def test_default_logging_prints_to_stderr(capsys):
    services = ServiceCollection()
    add_logging(services, lambda builder: builder.try_add_options(lambda _: LoggerOptions(logging.DEBUG, "console")))
    provider = services.build_service_provider()

    assert isinstance(provider.get_required_service(LoggerFactory), ConsoleLoggerFactory)
    provider.get_required_service(logging.Logger).info("hello-console")
    provider.create_scope().dispose()
    provider.dispose()

    err = capsys.readouterr().err
    assert "INFO console: hello-console" in err
    assert f"DEBUG {SCOPE_LOGGER}: Service scope" in err


def test_console_factory_attaches_one_handler_per_logger_and_detaches_on_dispose():
    first = ConsoleLoggerFactory(logging.INFO)
    second = ConsoleLoggerFactory(logging.INFO)

    log = first.create("console-handlers")
    first.create("console-handlers")
    second.create("console-handlers")

    assert len(log.handlers) == 1
    assert log.handlers[0].level == logging.INFO

    second.dispose()
    assert len(log.handlers) == 1

    first.dispose()
    assert log.handlers == []


def test_production_console_logging_skips_debug_records(capsys):
    services = ServiceCollection()
    add_environment(services, Environment(Environments.PRODUCTION))
    add_logging(services)
    provider = services.build_service_provider()

    provider.create_scope().dispose()
    provider.get_required_service(logging.Logger).info("visible")
    provider.dispose()

    err = capsys.readouterr().err
    assert "visible" in err
    assert "Service scope" not in err
