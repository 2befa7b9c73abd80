"""Monolikit protocol types.

This module defines the page payload sent to the client router and the optional
capabilities a concrete middleware may implement.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypedDict, runtime_checkable

__all__ = (
    "MonolikitHeaderType",
    "PagePayload",
    "SupportsBeforeHandle",
    "SupportsShare",
)


def _empty_dict_factory() -> "dict[str, Any]":
    return {}


@dataclass
class PagePayload:
    """Monolikit page payload.

    This is the object returned to the client router, either as the JSON body of a
    protocol response or embedded in the root view of a full page load.

    Attributes:
        component: Frontend component name to render.
        properties: Resolved per-component properties.
        shared: Data shared with every page (errors, flash notifications, custom data).
        url: Current page URL (path and query string).
        version: Asset version token, or None when versioning is disabled.
    """

    component: str
    url: str
    version: "str | None"
    properties: "dict[str, Any]" = field(default_factory=_empty_dict_factory)
    shared: "dict[str, Any]" = field(default_factory=_empty_dict_factory)

    def to_dict(self) -> "dict[str, Any]":
        """Convert to the wire format.

        Returns:
            The Monolikit protocol dictionary.
        """
        return {
            "component": self.component,
            "properties": self.properties,
            "shared": self.shared,
            "url": self.url,
            "version": self.version,
        }


class MonolikitHeaderType(TypedDict, total=False):
    """Type for monolikit_headers parameter in get_headers()."""

    enabled: "bool | None"
    external: "str | None"


@runtime_checkable
class SupportsBeforeHandle(Protocol):
    """A middleware that runs a hook before anything else on each request.

    Hook parameters are injected by name, see :func:`litestar_monolikit.injection.invoke_hook`.
    """

    def before_handle(self, *args: Any, **kwargs: Any) -> Any: ...


@runtime_checkable
class SupportsShare(Protocol):
    """A middleware that contributes shared data to every page payload.

    The hook returns a mapping merged into the request's shared data.
    """

    def share(self, *args: Any, **kwargs: Any) -> "Mapping[str, Any] | Any": ...
