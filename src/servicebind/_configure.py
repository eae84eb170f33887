from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._interfaces import ServiceResolver

    ConfigureAction = Callable[[ServiceResolver, Any], None]


class Configurable:
    """Opt-in marker for services that accept configure/post-configure hooks.

    Only instances of subclasses are passed to the hooks registered with
    `ServiceCollection.configure` and `ServiceCollection.post_configure`.
    """


@dataclass(frozen=True)
class ConfigureKey:
    """Service key of the configure hooks for `service_type`."""

    service_type: Any

    def __repr__(self) -> str:
        return f"ConfigureKey[{_name_of(self.service_type)}]"


@dataclass(frozen=True)
class PostConfigureKey:
    """Service key of the post-configure hooks for `service_type`."""

    service_type: Any

    def __repr__(self) -> str:
        return f"PostConfigureKey[{_name_of(self.service_type)}]"


class ServiceConfigure:
    """Configures a service instance right after the container creates it.

    The action receives the resolver of the scope that created the instance
    and the instance itself.
    """

    def __init__(self, action: ConfigureAction) -> None:
        self._action = action

    def __call__(self, resolver: ServiceResolver, instance: object) -> None:
        self._action(resolver, instance)


class ServicePostConfigure(ServiceConfigure):
    """Like `ServiceConfigure`, but runs after every `ServiceConfigure`."""


def _name_of(service_type: Any) -> str:
    return getattr(service_type, "__qualname__", None) or repr(service_type)
