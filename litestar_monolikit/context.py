"""Per-request protocol state.

Each request handled by the protocol middleware gets its own :class:`MonolikitContext`,
stored in the ASGI scope state. It carries the shared data bag and the deferred root
view and version suppliers, so nothing leaks between concurrent requests.
"""

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast

from litestar_monolikit._utils import has_session
from litestar_monolikit.properties import is_lazy_prop

if TYPE_CHECKING:
    from collections.abc import Callable

    from anyio.from_thread import BlockingPortal
    from litestar.connection import ASGIConnection
    from litestar.types import Scope

__all__ = ("CONTEXT_STATE_KEY", "Deferred", "MonolikitContext", "SharedData", "get_context", "set_context")

T = TypeVar("T")

CONTEXT_STATE_KEY = "_monolikit_context"


class Deferred(Generic[T]):
    """A zero-argument producer evaluated at most once."""

    __slots__ = ("_evaluated", "_producer", "_value")

    def __init__(self, producer: "Callable[[], T]") -> None:
        self._producer = producer
        self._evaluated = False
        self._value: "T | None" = None

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    def get(self) -> "T":
        """Evaluate the producer on first access and memoize the result.

        Returns:
            The produced value.
        """
        if not self._evaluated:
            self._value = self._producer()
            self._evaluated = True
        return cast("T", self._value)


def _resolve_shared_value(value: Any, portal: "BlockingPortal | None") -> Any:
    if is_lazy_prop(value):
        return value.render(portal)
    if isinstance(value, Deferred):
        return cast("Deferred[Any]", value).get()
    if callable(value) and not isinstance(value, type):
        return value()
    return value


class SharedData(Mapping[str, Any]):
    """Ordered, last-write-wins bag of data shared with every page payload."""

    __slots__ = ("_data",)

    def __init__(self, initial: "Mapping[str, Any] | None" = None) -> None:
        self._data: "dict[str, Any]" = dict(initial or {})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> "Iterator[str]":
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"SharedData({self._data!r})"

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def merge(self, values: "Mapping[str, Any] | None") -> None:
        """Merge a mapping into the bag; later keys overwrite earlier ones."""
        if values:
            self._data.update(values)

    def resolve(self, portal: "BlockingPortal | None" = None) -> "dict[str, Any]":
        """Return a new dict with lazy and deferred values evaluated.

        Args:
            portal: Optional portal used to evaluate async lazy properties.

        Returns:
            The resolved shared data. The bag itself is left untouched.
        """
        return {key: _resolve_shared_value(value, portal) for key, value in self._data.items()}


class MonolikitContext:
    """State of the protocol for a single request."""

    __slots__ = ("_pulled", "root_view", "shared", "version")

    def __init__(
        self,
        root_view: "Callable[[], str]",
        version: "Callable[[], str | None]",
        shared: "Mapping[str, Any] | None" = None,
    ) -> None:
        self.shared = SharedData(shared)
        self.root_view: "Deferred[str]" = Deferred(root_view)
        self.version: "Deferred[str | None]" = Deferred(version)
        self._pulled: "dict[str, Any]" = {}

    def pull(self, connection: "ASGIConnection[Any, Any, Any, Any]", key: str, default: Any = None) -> Any:
        """Remove a flashed value from the session, remembering it for :meth:`reflash`.

        Args:
            connection: The ASGI connection.
            key: The session key.
            default: Returned when there is no session or no value.

        Returns:
            The session value, or ``default``.
        """
        if not has_session(connection):
            return default
        session = connection.session
        if key not in session:
            return default
        value = session.pop(key)
        self._pulled[key] = value
        return value

    def reflash(self, connection: "ASGIConnection[Any, Any, Any, Any]") -> None:
        """Write the flash data pulled during this request back to the session.

        Values flashed while handling the request are kept; pulled lists are placed
        before them and pulled mappings under them.
        """
        if not self._pulled or not has_session(connection):
            return
        session = dict(connection.session)
        for key, value in self._pulled.items():
            current = session.get(key)
            if isinstance(value, list) and isinstance(current, list):
                session[key] = [*value, *current]
            elif isinstance(value, dict) and isinstance(current, dict):
                session[key] = {**value, **current}
            else:
                session[key] = value if current is None else current
        connection.set_session(session)
        self._pulled.clear()


def set_context(scope: "Scope", context: MonolikitContext) -> None:
    scope.setdefault("state", {})[CONTEXT_STATE_KEY] = context  # type: ignore[typeddict-item]


def get_context(scope: "Scope") -> "MonolikitContext | None":
    """Return the protocol context stored for this request, if the middleware ran.

    Returns:
        The request's context, or None.
    """
    state = cast("dict[str, Any]", scope.get("state", {}))
    return state.get(CONTEXT_STATE_KEY)
