from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, cast

from ._configure import ConfigureKey, PostConfigureKey, _name_of
from ._errors import ContractViolationError


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._interfaces import ServiceResolver

    # Receives the resolver of the scope that builds the instance.
    ServiceFactory = Callable[[ServiceResolver], Any]


class Lifetime(Enum):
    """How many instances a registration produces and who releases them.

    - SINGLETON: one instance per root provider, created and cached by the root
      scope. Pre-built instances are never disposed by the container.
    - SCOPED: one instance per scope; never available from the root scope.
    - TRANSIENT: a new instance per request, owned by the caller.
    """

    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


@dataclass(frozen=True, eq=False)
class ServiceDescriptor:
    """Immutable registration record.

    Binds `service_type` (the key callers resolve) to either a pre-built
    `instance` or a `factory`, with the `implementation_type` it produces and
    its `lifetime`. Descriptors are the cache keys of a scope, so equality is
    structural: the instance is compared by identity, every other field by
    equality.
    """

    service_type: Any
    implementation_type: Any
    lifetime: Lifetime
    instance: object | None = None
    factory: ServiceFactory | None = None

    def __post_init__(self) -> None:
        if self.service_type is object:
            msg = "Service type can not be `object`."
            raise ValueError(msg)

        if self.instance is not None and self.factory is not None:
            msg = "Provide either `instance` or `factory`, not both."
            raise ValueError(msg)

        if self.instance is None and self.factory is None:
            msg = "Either `instance` or `factory` must be provided."
            raise ValueError(msg)

        if self.instance is not None and self.lifetime is not Lifetime.SINGLETON:
            msg = f"Only singleton services can use a pre-built instance, got {self.lifetime.value}."
            raise ValueError(msg)

        if inspect.isclass(self.service_type) and inspect.isclass(self.implementation_type):
            _validate_impl(self.service_type, self.implementation_type)

    @classmethod
    def singleton(
        cls,
        service_type: Any,
        factory: ServiceFactory,
        implementation_type: Any = None,
    ) -> ServiceDescriptor:
        """Singleton built by `factory`; the container disposes it with the root."""
        return cls(service_type, _impl_or(service_type, implementation_type), Lifetime.SINGLETON, factory=factory)

    @classmethod
    def scoped(
        cls,
        service_type: Any,
        factory: ServiceFactory,
        implementation_type: Any = None,
    ) -> ServiceDescriptor:
        return cls(service_type, _impl_or(service_type, implementation_type), Lifetime.SCOPED, factory=factory)

    @classmethod
    def transient(
        cls,
        service_type: Any,
        factory: ServiceFactory,
        implementation_type: Any = None,
    ) -> ServiceDescriptor:
        return cls(service_type, _impl_or(service_type, implementation_type), Lifetime.TRANSIENT, factory=factory)

    @classmethod
    def from_instance(cls, service_type: Any, instance: object) -> ServiceDescriptor:
        """Singleton backed by a pre-built instance.

        The container never disposes it; the caller keeps ownership.
        """
        if instance is None:
            msg = "Instance can not be None."
            raise ValueError(msg)
        return cls(service_type, type(instance), Lifetime.SINGLETON, instance=instance)

    @property
    def configure_key(self) -> ConfigureKey:
        return ConfigureKey(self.service_type)

    @property
    def post_configure_key(self) -> PostConfigureKey:
        return PostConfigureKey(self.service_type)

    def copy_with(self, *, factory: ServiceFactory) -> ServiceDescriptor:
        """Copy with a different factory, keeping types and lifetime."""
        return ServiceDescriptor(self.service_type, self.implementation_type, self.lifetime, factory=factory)

    def copy_with_instance(self, instance: object) -> ServiceDescriptor:
        if self.lifetime is not Lifetime.SINGLETON:
            msg = "The lifetime of the service must be singleton."
            raise ContractViolationError(msg)
        return ServiceDescriptor(self.service_type, self.implementation_type, self.lifetime, instance=instance)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, ServiceDescriptor):
            return NotImplemented
        return (
            self.service_type == other.service_type
            and self.implementation_type == other.implementation_type
            and self.lifetime is other.lifetime
            and self.instance is other.instance
            and self.factory == other.factory
        )

    def __hash__(self) -> int:
        return hash((self.service_type, self.implementation_type, self.lifetime, id(self.instance), self.factory))

    def __repr__(self) -> str:
        parts = [f"service_type={_name_of(self.service_type)}", f"lifetime={self.lifetime.value}"]
        parts.append(f"implementation_type={_name_of(self.implementation_type)}")
        if self.lifetime is Lifetime.SINGLETON:
            parts.append(f"factory={self.factory is not None}")
        return f"ServiceDescriptor({', '.join(parts)})"


def _impl_or(service_type: Any, implementation_type: Any) -> Any:
    return service_type if implementation_type is None else implementation_type


def _validate_impl(cls: type, impl: type) -> None:
    """Require `impl` to subclass `cls` for ordinary classes and ABCs.

    Protocols are skipped: a factory may return any structural match.
    """
    if _is_protocol(cls):
        return
    if not issubclass(impl, cls):
        msg = f"Implementation {impl.__name__} must be a subclass of {cls.__name__}"
        raise TypeError(msg)


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def _is_protocol(tp: type) -> bool:
        return typing.is_protocol(tp)

else:

    def _is_protocol(tp: type) -> bool:
        return issubclass(tp, cast("type", Protocol)) and getattr(tp, "_is_protocol", False)
