"""Service container with singleton, scoped and transient lifetimes.

Register how to build each service on a `ServiceCollection`, freeze it into a
`ServiceProvider`, then resolve services from the provider or from scopes
created with `create_scope()`. Disposing a scope (or the provider) disposes the
instances the container created for it, in creation order.

Exports:
- `ServiceCollection`: ordered registrations with add/try_add/decorate/replace
  and configure hooks.
- `ServiceDescriptor`, `Lifetime`: the registration record and its lifetime.
- `ServiceProvider`: the root provider; `ServiceScope`: a child scope.
- `ServiceResolver`, `ServiceChecker`, `ScopeFactory`: built-in services that
  every provider and scope can resolve without registration.
- `Disposable`, `AsyncDisposable`, `Configurable`: capabilities a service can
  implement to be disposed or configured by the container.
- `add_logging`, `add_environment`: optional logging and environment services.
"""

from ._collection import ServiceCollection
from ._configure import ConfigureKey, Configurable, PostConfigureKey, ServiceConfigure, ServicePostConfigure
from ._descriptor import Lifetime, ServiceDescriptor
from ._environment import Environment, Environments, add_environment, try_add_environment
from ._errors import (
    ContractViolationError,
    InvalidScopeError,
    ObjectDisposedError,
    ServiceNotFoundError,
    ServiceProviderError,
)
from ._interfaces import AsyncDisposable, Disposable, ScopeFactory, ServiceChecker, ServiceResolver, ServiceScope
from ._logging import (
    ConsoleLoggerFactory,
    LoggerFactory,
    LoggerOptions,
    LoggingBuilder,
    add_logging,
    get_logger,
    get_logger_factory,
    get_required_logger,
    get_required_logger_factory,
)
from ._provider import ServiceProvider


__all__ = [
    "AsyncDisposable",
    "Configurable",
    "ConfigureKey",
    "ConsoleLoggerFactory",
    "ContractViolationError",
    "Disposable",
    "Environment",
    "Environments",
    "InvalidScopeError",
    "Lifetime",
    "LoggerFactory",
    "LoggerOptions",
    "LoggingBuilder",
    "ObjectDisposedError",
    "PostConfigureKey",
    "ScopeFactory",
    "ServiceChecker",
    "ServiceCollection",
    "ServiceConfigure",
    "ServiceDescriptor",
    "ServiceNotFoundError",
    "ServicePostConfigure",
    "ServiceProvider",
    "ServiceProviderError",
    "ServiceResolver",
    "ServiceScope",
    "add_environment",
    "add_logging",
    "get_logger",
    "get_logger_factory",
    "get_required_logger",
    "get_required_logger_factory",
    "try_add_environment",
]
