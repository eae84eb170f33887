from __future__ import annotations

from typing import Any


class ServiceProviderError(RuntimeError):
    pass


class ObjectDisposedError(ServiceProviderError):
    """The scope or provider has been disposed and can no longer be used."""


class InvalidScopeError(ServiceProviderError):
    """A scoped service was requested from the root scope.

    Scoped services are never available at the root; create a scope first.
    """


class ServiceNotFoundError(ServiceProviderError, LookupError):
    def __init__(self, msg: str, service_type: Any) -> None:
        super().__init__(msg)
        self.service_type = service_type


class ContractViolationError(ServiceProviderError, ValueError):
    """A registry edit tried to change the service type of a descriptor."""
