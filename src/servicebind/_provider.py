from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from typing import TYPE_CHECKING, Any

from ._configure import Configurable, ServiceConfigure
from ._descriptor import Lifetime, ServiceDescriptor
from ._errors import InvalidScopeError, ObjectDisposedError
from ._interfaces import (
    AsyncDisposable,
    Disposable,
    ScopeFactory,
    ServiceChecker,
    ServiceResolver,
    ServiceScope,
)
from ._logging import LoggerFactory


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable
    from types import TracebackType

    from typing_extensions import Self

# Built-in services: resolved without a descriptor, relative to the requesting scope.
_BUILT_IN_SERVICES = (ServiceResolver, ServiceChecker, ScopeFactory)

# Keeps detached disposal tasks alive until they finish.
_detached_disposals: set[asyncio.Task[None]] = set()


class ServiceProvider(ServiceResolver, ServiceChecker):
    """Root service provider.

    Built from a `ServiceCollection` snapshot; owns the root scope, which
    creates and caches singletons. Scoped services are not available here:
    create a scope with `create_scope()`.

    The provider and its root scope share one lifetime: disposing either one
    disposes both.
    """

    def __init__(self, descriptors: Iterable[ServiceDescriptor]) -> None:
        self._disposed = False
        self._descriptors: tuple[ServiceDescriptor, ...] = tuple(descriptors)
        self._root_scope = _ProviderScope(self, is_root=True)
        self._root_scope._attach_logger()  # noqa: SLF001

    def get_service(self, service_type: Any) -> Any:
        return self._get_service_by_type(service_type, self._root_scope)

    def get_services(self, service_type: Any) -> list[Any]:
        return self._get_services_by_type(service_type, self._root_scope)

    def is_service(self, service_type: Any) -> bool:
        self._throw_if_disposed()
        return service_type in _BUILT_IN_SERVICES or any(d.service_type == service_type for d in self._descriptors)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._root_scope.dispose()
        self._disposed = True
        self._descriptors = ()

    async def dispose_async(self) -> None:
        if self._disposed:
            return
        await self._root_scope.dispose_async()
        self._disposed = True
        self._descriptors = ()

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

    def _find_descriptors(self, service_type: Any) -> list[ServiceDescriptor]:
        self._throw_if_disposed()
        return [d for d in self._descriptors if d.service_type == service_type]

    def _get_service_by_type(self, service_type: Any, scope: _ProviderScope) -> Any:
        self._throw_if_disposed()
        is_built_in, instance = self._fetch_built_in_service(service_type, scope)
        if is_built_in:
            return instance
        descriptors = self._find_descriptors(service_type)
        if not descriptors:
            return None
        # last registration wins
        return scope._get_or_add(descriptors[-1])  # noqa: SLF001

    def _get_services_by_type(self, service_type: Any, scope: _ProviderScope) -> list[Any]:
        self._throw_if_disposed()
        is_built_in, instance = self._fetch_built_in_service(service_type, scope)
        if is_built_in:
            return [instance]
        return self._get_services(self._find_descriptors(service_type), scope)

    def _get_services(self, descriptors: Iterable[ServiceDescriptor], scope: _ProviderScope) -> list[Any]:
        self._throw_if_disposed()
        return [scope._get_or_add(d) for d in descriptors]  # noqa: SLF001

    def _fetch_built_in_service(self, service_type: Any, scope: _ProviderScope) -> tuple[bool, object | None]:
        """Look up the built-in services.

        Returns `(True, instance)` for a built-in service type, `(False, None)`
        otherwise. Keep in sync with `_BUILT_IN_SERVICES`.
        """
        if service_type is ServiceResolver:
            return True, scope
        if service_type is ServiceChecker:
            return True, self
        if service_type is ScopeFactory:
            return True, self._root_scope
        return False, None

    def _apply_configures(self, descriptor: ServiceDescriptor, instance: object, scope: _ProviderScope) -> None:
        """Run the configure, then the post-configure actions for a new instance."""
        if not isinstance(instance, Configurable):
            return
        self._throw_if_disposed()
        sink = self._root_scope._logger  # noqa: SLF001
        if sink is not None:
            sink.debug("Configuring the instance %s of %r service", id(instance), descriptor.service_type)

        configures: list[ServiceConfigure] = self._get_services(
            self._find_descriptors(descriptor.configure_key), scope
        )
        for configure in configures:
            configure(scope, instance)

        post_configures: list[ServiceConfigure] = self._get_services(
            self._find_descriptors(descriptor.post_configure_key), scope
        )
        for post_configure in post_configures:
            post_configure(scope, instance)

    def _create_scope(self) -> _ProviderScope:
        self._throw_if_disposed()
        scope = _ProviderScope(self, is_root=False)
        scope._attach_logger()  # noqa: SLF001
        return scope

    def _throw_if_disposed(self) -> None:
        if self._disposed:
            msg = "Service provider has been disposed."
            raise ObjectDisposedError(msg)


class _ProviderScope(ServiceScope, ServiceResolver, ScopeFactory):
    """Instance cache and disposal list of one scope.

    The root scope caches only the singletons it creates or is given; any
    other scope caches only its scoped services. Transient instances are never
    cached and never disposed by the container.
    """

    def __init__(self, root_provider: ServiceProvider, *, is_root: bool) -> None:
        self.is_root = is_root
        self._root_provider = root_provider
        self._disposed = False
        self._cache: dict[ServiceDescriptor, object] = {}
        self._disposables: list[Disposable | AsyncDisposable] = []
        self._logger: logging.Logger | None = None

    @property
    def provider(self) -> ServiceResolver:
        self._throw_if_disposed()
        return self

    def get_service(self, service_type: Any) -> Any:
        self._throw_if_disposed()
        return self._root_provider._get_service_by_type(service_type, self)  # noqa: SLF001

    def get_services(self, service_type: Any) -> list[Any]:
        self._throw_if_disposed()
        return self._root_provider._get_services_by_type(service_type, self)  # noqa: SLF001

    def create_scope(self) -> ServiceScope:
        self._throw_if_disposed()
        return self._root_provider._create_scope()  # noqa: SLF001

    def dispose(self) -> None:
        """Dispose the captured instances in capture order.

        Synchronous disposal can not wait for asynchronous work: an instance that
        only implements `AsyncDisposable` gets its `dispose_async` started and
        detached (see `_dispose_detached`). Use `dispose_async` to wait for it.
        """
        if self._disposed:
            return
        self._disposed = True
        if self._logger is not None:
            self._logger.debug("Service scope %s is disposing, root: %s", id(self), self.is_root)
        for disposable in self._disposables:
            try:
                if isinstance(disposable, Disposable):
                    disposable.dispose()
                else:
                    _dispose_detached(disposable)
            except Exception as e:  # noqa: BLE001
                logger.warning("Disposing %s failed: %s", type(disposable).__name__, e, exc_info=True)
        self._release()
        if self.is_root and not self._root_provider._disposed:  # noqa: SLF001
            self._root_provider.dispose()

    async def dispose_async(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self._logger is not None:
            self._logger.debug("Service scope %s is disposing asynchronously, root: %s", id(self), self.is_root)
        for disposable in self._disposables:
            try:
                if isinstance(disposable, AsyncDisposable):
                    await disposable.dispose_async()
                else:
                    disposable.dispose()
            except Exception as e:  # noqa: BLE001
                logger.warning("Disposing %s failed: %s", type(disposable).__name__, e, exc_info=True)
        self._release()
        if self.is_root and not self._root_provider._disposed:  # noqa: SLF001
            await self._root_provider.dispose_async()

    def _release(self) -> None:
        self._disposables = []
        self._cache = {}
        self._logger = None

    def _attach_logger(self) -> None:
        """Resolve the optional diagnostic logger once, capturing it if disposable."""
        factory = self.get_service(LoggerFactory)
        if factory is None:
            return
        sink = factory.create_logger(ServiceProvider)
        self._capture_disposable(sink)
        self._logger = sink
        sink.debug("Service scope %s constructing, root: %s", id(self), self.is_root)

    def _capture_disposable(self, instance: object) -> None:
        self._throw_if_disposed()
        if isinstance(instance, (Disposable, AsyncDisposable)):
            self._disposables.append(instance)

    def _get_or_add(self, descriptor: ServiceDescriptor) -> Any:  # noqa: C901
        self._throw_if_disposed()
        if self._logger is not None:
            self._logger.debug("Fetching %r", descriptor)
        if descriptor in self._cache:
            return self._cache[descriptor]

        if descriptor.lifetime is Lifetime.SINGLETON:
            if not self.is_root:
                # singletons always live in the root scope
                return self._root_provider._root_scope._get_or_add(descriptor)  # noqa: SLF001
            if descriptor.instance is not None:
                # pre-built instances stay owned by the caller
                instance = descriptor.instance
            else:
                if self._logger is not None:
                    self._logger.debug("Creating %r", descriptor)
                instance = descriptor.factory(self)
                self._capture_disposable(instance)
            self._cache[descriptor] = instance
            self._root_provider._apply_configures(descriptor, instance, self)  # noqa: SLF001
            return instance

        if descriptor.lifetime is Lifetime.SCOPED:
            if self.is_root:
                msg = f"Scoped service {descriptor!r} can not be provided by the root scope."
                raise InvalidScopeError(msg)
            if self._logger is not None:
                self._logger.debug("Creating %r", descriptor)
            instance = descriptor.factory(self)
            self._capture_disposable(instance)
            self._cache[descriptor] = instance
            self._root_provider._apply_configures(descriptor, instance, self)  # noqa: SLF001
            return instance

        if self._logger is not None:
            self._logger.debug("Creating %r", descriptor)
        instance = descriptor.factory(self)
        self._root_provider._apply_configures(descriptor, instance, self)  # noqa: SLF001
        return instance

    def _throw_if_disposed(self) -> None:
        if self._disposed:
            msg = "Scope has been disposed."
            raise ObjectDisposedError(msg)


def _dispose_detached(disposable: AsyncDisposable) -> None:
    """Start `dispose_async` without waiting for it to finish.

    With a running event loop the coroutine becomes a detached task. Without
    one, it runs on its own event loop in a daemon thread. Either way failures
    are logged when it completes.
    """
    result = disposable.dispose_async()
    if not inspect.isawaitable(result):
        return
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        thread = threading.Thread(
            target=_run_detached,
            args=(result,),
            name=f"servicebind-dispose-{type(disposable).__name__}",
            daemon=True,
        )
        thread.start()
        return
    task = loop.create_task(_wait(result))
    _detached_disposals.add(task)
    task.add_done_callback(_on_detached_done)


async def _wait(awaitable: Awaitable[Any]) -> None:
    await awaitable


def _run_detached(awaitable: Awaitable[Any]) -> None:
    try:
        asyncio.run(_wait(awaitable))
    except Exception as e:  # noqa: BLE001
        logger.warning("Detached asynchronous disposal failed: %s", e, exc_info=True)


def _on_detached_done(task: asyncio.Task[None]) -> None:
    _detached_disposals.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Detached asynchronous disposal failed: %s", exc, exc_info=exc)
