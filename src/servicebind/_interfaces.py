from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, overload, runtime_checkable

from ._configure import _name_of
from ._errors import ServiceNotFoundError


if TYPE_CHECKING:
    from collections.abc import Hashable
    from types import TracebackType

    from typing_extensions import Self

T = TypeVar("T")


@runtime_checkable
class Disposable(Protocol):
    """Releases resources synchronously.

    Implementations should not raise from `dispose`. When one does while its
    scope is disposed, the error is logged as a warning and not re-raised; the
    remaining instances are still disposed.
    """

    def dispose(self) -> None: ...


@runtime_checkable
class AsyncDisposable(Protocol):
    """Releases resources asynchronously.

    Failures during scope disposal are logged and not re-raised, as for
    `Disposable`.
    """

    async def dispose_async(self) -> None: ...


class ServiceResolver(ABC):
    """Resolves services by key.

    Also a built-in service: resolving `ServiceResolver` yields the resolver of
    the scope that asked for it (the root scope when asked from the provider).
    """

    @overload
    def get_service(self, service_type: type[T]) -> T | None: ...

    @overload
    def get_service(self, service_type: Hashable) -> Any: ...

    @abstractmethod
    def get_service(self, service_type: Any) -> Any:
        """Return the last registered service for `service_type`, or None."""

    @overload
    def get_services(self, service_type: type[T]) -> list[T]: ...

    @overload
    def get_services(self, service_type: Hashable) -> list[Any]: ...

    @abstractmethod
    def get_services(self, service_type: Any) -> list[Any]:
        """Return every registered service for `service_type`, in registration order."""

    @overload
    def get_required_service(self, service_type: type[T]) -> T: ...

    @overload
    def get_required_service(self, service_type: Hashable) -> Any: ...

    def get_required_service(self, service_type: Any) -> Any:
        instance = self.get_service(service_type)
        if instance is None:
            msg = f"Service {_name_of(service_type)} can not be found."
            raise ServiceNotFoundError(msg, service_type)
        return instance

    @overload
    def get_required_services(self, service_type: type[T]) -> list[T]: ...

    @overload
    def get_required_services(self, service_type: Hashable) -> list[Any]: ...

    def get_required_services(self, service_type: Any) -> list[Any]:
        instances = self.get_services(service_type)
        if not instances:
            msg = f"Service {_name_of(service_type)} can not be found."
            raise ServiceNotFoundError(msg, service_type)
        return instances

    def create_scope(self) -> ServiceScope:
        """Create a new scope through the built-in `ScopeFactory`."""
        return self.get_required_service(ScopeFactory).create_scope()


class ServiceChecker(ABC):
    """Answers whether a key is registered, without constructing anything.

    Built-in service bound to the root provider.
    """

    @abstractmethod
    def is_service(self, service_type: Any) -> bool: ...


class ScopeFactory(ABC):
    """Creates scopes. Built-in service bound to the root scope."""

    @abstractmethod
    def create_scope(self) -> ServiceScope: ...


class ServiceScope(ABC):
    """A lifetime boundary for scoped services.

    Use it as a context manager to dispose it on exit:

        with provider.create_scope() as scope:
            scope.provider.get_required_service(Repo)
    """

    @property
    @abstractmethod
    def provider(self) -> ServiceResolver: ...

    @abstractmethod
    def dispose(self) -> None: ...

    @abstractmethod
    async def dispose_async(self) -> None: ...

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose_async()
