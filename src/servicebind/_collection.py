from __future__ import annotations

import inspect
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, overload

from ._configure import (
    Configurable,
    ConfigureKey,
    PostConfigureKey,
    ServiceConfigure,
    ServicePostConfigure,
    _name_of,
)
from ._descriptor import ServiceDescriptor
from ._errors import ContractViolationError


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from ._configure import ConfigureAction
    from ._descriptor import ServiceFactory
    from ._provider import ServiceProvider

    Decorator = Callable[[ServiceDescriptor], ServiceDescriptor]


class ServiceCollection(Sequence[ServiceDescriptor]):
    """Ordered registrations, editable until a provider is built.

    Order matters: single resolution picks the last registration of a service
    type, enumerable resolution returns all of them in registration order.

    Example:
      services = ServiceCollection()
      services.add_singleton(Clock, lambda _: SystemClock(), SystemClock)
      services.add_scoped(Repo, lambda p: Repo(p.get_required_service(Clock)))
      provider = services.build_service_provider()

    """

    def __init__(self, descriptors: Iterable[ServiceDescriptor] = ()) -> None:
        self._descriptors: list[ServiceDescriptor] = list(descriptors)

    @overload
    def __getitem__(self, index: int) -> ServiceDescriptor: ...

    @overload
    def __getitem__(self, index: slice) -> list[ServiceDescriptor]: ...

    def __getitem__(self, index: int | slice) -> ServiceDescriptor | list[ServiceDescriptor]:
        return self._descriptors[index]

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self._descriptors)

    def __repr__(self) -> str:
        return f"ServiceCollection({self._descriptors!r})"

    def add(self, descriptor: ServiceDescriptor) -> None:
        self._descriptors.append(descriptor)

    def add_all(self, descriptors: Iterable[ServiceDescriptor]) -> None:
        self._descriptors.extend(descriptors)

    def try_add(self, descriptor: ServiceDescriptor) -> None:
        """Add `descriptor` unless its service type is already registered."""
        if self._service_exists(descriptor.service_type):
            return
        self.add(descriptor)

    def try_add_enumerable(self, descriptor: ServiceDescriptor) -> None:
        """Add `descriptor` unless the same (service type, implementation type) pair exists.

        Different implementation types under one service type accumulate, which is
        how several implementations of one service are registered for `get_services`.
        """
        if any(
            d.service_type == descriptor.service_type and d.implementation_type == descriptor.implementation_type
            for d in self._descriptors
        ):
            return
        self.add(descriptor)

    def decorate(self, service_type: Any, decorator: Decorator) -> None:
        """Replace every descriptor of `service_type` with `decorator(descriptor)`.

        Raises ContractViolationError, leaving the collection untouched, if the
        decorator changes the service type.
        """
        rebuilt: list[ServiceDescriptor] = []
        for d in self._descriptors:
            if d.service_type != service_type:
                rebuilt.append(d)
                continue
            decorated = decorator(d)
            if decorated.service_type != service_type:
                msg = (
                    f"Decorator can not change the service type "
                    f"({_name_of(service_type)} -> {_name_of(decorated.service_type)})."
                )
                raise ContractViolationError(msg)
            rebuilt.append(decorated)
        self._descriptors = rebuilt

    def replace(self, service_type: Any, descriptor: ServiceDescriptor) -> None:
        """Remove the first descriptor of `service_type` (if any) and append `descriptor`."""
        if descriptor.service_type != service_type:
            msg = (
                f"The service type can not be changed "
                f"({_name_of(service_type)} -> {_name_of(descriptor.service_type)})."
            )
            raise ContractViolationError(msg)
        for index, d in enumerate(self._descriptors):
            if d.service_type == service_type:
                del self._descriptors[index]
                break
        self.add(descriptor)

    def replace_service(self, descriptor: ServiceDescriptor) -> None:
        """`replace` keyed by the service type of `descriptor`."""
        self.replace(descriptor.service_type, descriptor)

    def remove_all(self, service_type: Any) -> None:
        self._descriptors = [d for d in self._descriptors if d.service_type != service_type]

    def configure(self, service_type: Any, action: ConfigureAction) -> None:
        """Run `action(resolver, instance)` on every new instance of `service_type`.

        The service must opt in by subclassing `Configurable`.
        """
        _validate_configurable(service_type)
        self.add(
            ServiceDescriptor.transient(
                ConfigureKey(service_type),
                lambda _: ServiceConfigure(action),
                ServiceConfigure,
            )
        )

    def post_configure(self, service_type: Any, action: ConfigureAction) -> None:
        """Like `configure`, but runs after every configure action of `service_type`."""
        _validate_configurable(service_type)
        self.add(
            ServiceDescriptor.transient(
                PostConfigureKey(service_type),
                lambda _: ServicePostConfigure(action),
                ServicePostConfigure,
            )
        )

    def add_singleton(self, service_type: Any, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.add(ServiceDescriptor.singleton(service_type, factory, implementation_type))

    def try_add_singleton(self, service_type: Any, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.try_add(ServiceDescriptor.singleton(service_type, factory, implementation_type))

    def add_singleton_instance(self, service_type: Any, instance: object) -> None:
        self.add(ServiceDescriptor.from_instance(service_type, instance))

    def try_add_singleton_instance(self, service_type: Any, instance: object) -> None:
        self.try_add(ServiceDescriptor.from_instance(service_type, instance))

    def add_scoped(self, service_type: Any, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.add(ServiceDescriptor.scoped(service_type, factory, implementation_type))

    def try_add_scoped(self, service_type: Any, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.try_add(ServiceDescriptor.scoped(service_type, factory, implementation_type))

    def add_transient(self, service_type: Any, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.add(ServiceDescriptor.transient(service_type, factory, implementation_type))

    def try_add_transient(self, service_type: Any, factory: ServiceFactory, implementation_type: Any = None) -> None:
        self.try_add(ServiceDescriptor.transient(service_type, factory, implementation_type))

    def build_service_provider(self) -> ServiceProvider:
        """Freeze the current registrations into a new root provider.

        The provider keeps its own copy: later edits of this collection do not
        reach it.
        """
        from ._provider import ServiceProvider  # noqa: PLC0415

        logger.debug("Building service provider from %d descriptors", len(self._descriptors))
        return ServiceProvider(tuple(self._descriptors))

    def _service_exists(self, service_type: Any) -> bool:
        return any(d.service_type == service_type for d in self._descriptors)


def _validate_configurable(service_type: Any) -> None:
    if inspect.isclass(service_type) and not issubclass(service_type, Configurable):
        msg = f"{service_type.__name__} must subclass Configurable to accept configure actions."
        raise TypeError(msg)
