from functools import cached_property
from typing import TYPE_CHECKING, Any, cast
from urllib.parse import unquote

from litestar import Request
from litestar.connection.base import AuthT, StateT, UserT, empty_receive, empty_send

from litestar_monolikit._utils import MonolikitHeaders

if TYPE_CHECKING:
    from litestar.connection import ASGIConnection
    from litestar.types import Receive, Scope, Send

    from litestar_monolikit.plugin import MonolikitPlugin

__all__ = ("MonolikitDetails", "MonolikitHeaders", "MonolikitRequest")

_DEFAULT_COMPONENT_OPT_KEYS: "tuple[str, ...]" = ("component", "view")


class MonolikitDetails:
    """MonolikitDetails holds all the values sent by the client router in headers."""

    def __init__(self, request: "ASGIConnection[Any, UserT, AuthT, StateT]") -> None:
        """Initialize :class:`MonolikitDetails`"""
        self.request = request

    def _get_header_value(self, name: "MonolikitHeaders") -> "str | None":
        """Parse request header

        Check for uri encoded header and unquotes it in readable format.

        Args:
            name: The header name.

        Returns:
            The header value.
        """
        if value := self.request.headers.get(name.value.lower()):
            is_uri_encoded = self.request.headers.get(f"{name.value.lower()}-uri-autoencoded") == "true"
            return unquote(value) if is_uri_encoded else value
        return None

    def _get_route_component(self) -> "str | None":
        rh = self.request.scope.get("route_handler")  # pyright: ignore[reportUnknownMemberType]
        if rh:
            component_opt_keys: "tuple[str, ...]" = _DEFAULT_COMPONENT_OPT_KEYS
            try:
                monolikit_plugin: "MonolikitPlugin" = self.request.app.plugins.get("MonolikitPlugin")
                component_opt_keys = monolikit_plugin.config.component_opt_keys
            except KeyError:
                pass

            for key in component_opt_keys:
                if (value := rh.opt.get(key)) is not None:
                    return cast("str", value)
        return None

    def __bool__(self) -> bool:
        """Return True when the request carries the protocol marker header.

        Returns:
            True if the request originated from the client router, otherwise False.
        """
        return self._get_header_value(MonolikitHeaders.ENABLED) is not None

    @cached_property
    def route_component(self) -> "str | None":
        """Return the component name declared on the route handler.

        Returns:
            The component name, or None if not configured.
        """
        return self._get_route_component()

    @cached_property
    def version(self) -> "str | None":
        """Return the asset version held by the client.

        Returns:
            The version string, or None if not present.
        """
        return self._get_header_value(MonolikitHeaders.VERSION)

    @cached_property
    def error_bag(self) -> "str | None":
        """Return the name the default error bag should be renamed to.

        Returns:
            The error bag name, or None if not present.
        """
        return self._get_header_value(MonolikitHeaders.ERROR_BAG)

    @cached_property
    def partial_component(self) -> "str | None":
        """Partial reload target component."""
        return self._get_header_value(MonolikitHeaders.PARTIAL_COMPONENT)

    @cached_property
    def only_data(self) -> "list[str]":
        """Keys kept by a partial reload."""
        value = self._get_header_value(MonolikitHeaders.ONLY_DATA)
        return value.split(",") if value else []

    @cached_property
    def except_data(self) -> "list[str]":
        """Keys dropped by a partial reload."""
        value = self._get_header_value(MonolikitHeaders.EXCEPT_DATA)
        return value.split(",") if value else []

    @cached_property
    def referer(self) -> "str | None":
        """Page the request was sent from."""
        return self._get_header_value(MonolikitHeaders.REFERER)


class MonolikitRequest(Request[UserT, AuthT, StateT]):
    """Request class exposing the Monolikit protocol headers."""

    __slots__ = ("monolikit",)

    def __init__(self, scope: "Scope", receive: "Receive" = empty_receive, send: "Send" = empty_send) -> None:
        """Initialize :class:`MonolikitRequest`"""
        super().__init__(scope=scope, receive=receive, send=send)
        self.monolikit = MonolikitDetails(self)

    @property
    def is_monolikit(self) -> bool:
        """True if the request carries the protocol marker header.

        Returns:
            True if the client expects a JSON page payload, otherwise False.
        """
        return bool(self.monolikit)

    @property
    def monolikit_enabled(self) -> bool:
        """True if the route handler declares a component.

        Returns:
            True if the route renders a page, otherwise False.
        """
        return self.monolikit.route_component is not None

    @property
    def monolikit_version(self) -> "str | None":
        """Get the asset version sent by the client.

        Returns:
            The version string sent by the client, or None if not present.
        """
        return self.monolikit.version

    @property
    def error_bag(self) -> "str | None":
        """Get the error bag name requested by the client.

        Returns:
            The error bag name, or None if not present.
        """
        return self.monolikit.error_bag
