"""Properties resolution.

A properties resolver expands and cleans the per-component properties returned by a
route handler before they enter the page payload. The default implementation
handles lazy properties and partial reloads.
"""

import inspect
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeGuard, TypeVar, cast, runtime_checkable

from anyio.from_thread import BlockingPortal, start_blocking_portal

from litestar_monolikit.request import MonolikitDetails

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Generator, Mapping

    from litestar import Request

    from litestar_monolikit.plugin import MonolikitPlugin

__all__ = (
    "LazyProp",
    "LazyPropertiesResolver",
    "PropertiesResolver",
    "get_portal",
    "is_lazy_prop",
    "lazy",
)

T = TypeVar("T")


class AsyncRenderMixin:
    """Mixin providing async rendering utilities for prop classes.

    - ``with_portal``: Context manager for obtaining a BlockingPortal
    - ``_is_awaitable``: Type guard for checking if a callable is async
    """

    @staticmethod
    @contextmanager
    def with_portal(portal: "BlockingPortal | None" = None) -> "Generator[BlockingPortal, None, None]":
        """Get or create a blocking portal for async execution.

        Args:
            portal: Optional existing portal to reuse. If None, creates a new one.

        Yields:
            A BlockingPortal for executing async code from sync context.
        """
        if portal is None:
            with start_blocking_portal() as p:
                yield p
        else:
            yield portal

    @staticmethod
    def _is_awaitable(v: "Callable[..., T | Coroutine[Any, Any, T]]") -> "TypeGuard[Coroutine[Any, Any, T]]":
        return inspect.iscoroutinefunction(v)


class LazyProp(AsyncRenderMixin, Generic[T]):
    """A property only evaluated when a partial reload asks for it."""

    def __init__(self, value: "T | Callable[..., T | Coroutine[Any, Any, T]]") -> None:
        self._value = value
        self._evaluated = False
        self._result: "T | None" = None

    def render(self, portal: "BlockingPortal | None" = None) -> "T | None":
        if self._evaluated:
            return self._result
        value = self._value
        if not callable(value):
            self._result = value
        elif self._is_awaitable(cast("Callable[..., T]", value)):
            with self.with_portal(portal) as p:
                self._result = p.call(cast("Callable[..., Coroutine[Any, Any, T]]", value))
        else:
            self._result = cast("Callable[..., T]", value)()
        self._evaluated = True
        return self._result


def lazy(value_or_callable: "T | Callable[..., T | Coroutine[Any, Any, T]]") -> "LazyProp[T]":
    """Wrap a value or a (sync or async) callable as a lazy property.

    Lazy properties are left out of full page loads and evaluated only when a partial
    reload of the component requests them.

    Args:
        value_or_callable: The value or callable to defer.

    Returns:
        The lazy property.

    Example::

        @get("/users", component="Users/Index")
        async def index() -> dict[str, Any]:
            return {"users": await list_users(), "stats": lazy(compute_stats)}
    """
    return LazyProp[T](value_or_callable)


def is_lazy_prop(value: Any) -> "TypeGuard[LazyProp[Any]]":
    """Check if value is a lazy property.

    Args:
        value: Any value to check

    Returns:
        bool: True if value is a lazy property
    """
    return isinstance(value, LazyProp)


def get_portal(request: "Request[Any, Any, Any]") -> "BlockingPortal | None":
    """Return the plugin's blocking portal when the app lifespan is active.

    Returns:
        The portal, or None.
    """
    try:
        plugin: "MonolikitPlugin" = request.app.plugins.get("MonolikitPlugin")
        return plugin.portal
    except (KeyError, RuntimeError):
        return None


@runtime_checkable
class PropertiesResolver(Protocol):
    """Expands and cleans component properties before they enter a page payload."""

    def resolve(self, component: str, properties: "Mapping[str, Any]") -> "dict[str, Any]": ...


def _strip_keys(keys: "list[str]") -> "set[str]":
    return {key.strip() for key in keys if key.strip()}


class LazyPropertiesResolver:
    """Default resolver: lazy properties and partial reloads.

    A partial reload targets the component named by ``X-Monolikit-Partial-Component``.
    ``X-Monolikit-Only-Data`` keeps the listed keys, ``X-Monolikit-Except-Data`` drops
    the listed keys and takes precedence. Lazy properties are dropped on full loads
    and evaluated on partial reloads that keep them.
    """

    def __init__(self, request: "Request[Any, Any, Any]") -> None:
        self.request = request

    def _partial_keys(self, component: str) -> "tuple[set[str], set[str]] | None":
        details = MonolikitDetails(self.request)
        if details.partial_component != component:
            return None
        only = _strip_keys(details.only_data)
        except_ = _strip_keys(details.except_data)
        if not only and not except_:
            return None
        return only, except_

    def resolve(self, component: str, properties: "Mapping[str, Any]") -> "dict[str, Any]":
        partial = self._partial_keys(component)
        portal = get_portal(self.request)
        resolved: "dict[str, Any]" = {}
        for key, value in properties.items():
            if partial is None:
                if is_lazy_prop(value):
                    continue
                resolved[key] = value
                continue
            only, except_ = partial
            if except_:
                if key in except_:
                    continue
            elif key not in only:
                continue
            resolved[key] = value.render(portal) if is_lazy_prop(value) else value
        return resolved
