from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from anyio.from_thread import start_blocking_portal
from litestar.plugins import CLIPlugin, InitPluginProtocol

from litestar_monolikit.config import MonolikitConfig

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from anyio.from_thread import BlockingPortal
    from click import Group
    from litestar import Litestar
    from litestar.config.app import AppConfig


class MonolikitPlugin(InitPluginProtocol, CLIPlugin):
    """Monolikit plugin.

    This plugin configures Litestar for the Monolikit protocol:

    - Session middleware requirement validation
    - The protocol middleware (``config.middleware_class``)
    - Exception handler for protocol requests
    - MonolikitRequest and MonolikitResponse as default classes
    - A type encoder for lazy properties
    - The ``litestar monolikit`` CLI group

    The plugin owns a BlockingPortal for the app lifespan, used to evaluate async
    lazy properties from the synchronous serialization path.

    Example::

        from litestar_monolikit import MonolikitConfig, MonolikitPlugin

        app = Litestar(
            plugins=[MonolikitPlugin(MonolikitConfig())],
            middleware=[ServerSideSessionConfig().middleware],
        )
    """

    __slots__ = ("_portal", "config")

    def __init__(self, config: "MonolikitConfig | None" = None) -> "None":
        """Initialize the plugin with Monolikit configuration."""
        self.config = config or MonolikitConfig()
        self._portal: "BlockingPortal | None" = None  # pyright: ignore[reportInvalidTypeForm]

    @asynccontextmanager
    async def lifespan(self, app: "Litestar") -> "AsyncGenerator[None, None]":
        """Lifespan to ensure the event loop is available.

        Args:
            app: The :class:`Litestar <litestar.app.Litestar>` instance.

        Yields:
            An asynchronous context manager.
        """
        with start_blocking_portal() as portal:
            self._portal = portal
            try:
                yield
            finally:
                self._portal = None

    @property
    def portal(self) -> "BlockingPortal":
        """Return the blocking portal used for lazy property resolution.

        Returns:
            The BlockingPortal instance.

        Raises:
            RuntimeError: If accessed before app lifespan is active.
        """
        if self._portal is None:
            msg = "BlockingPortal not available. Ensure app lifespan is active."
            raise RuntimeError(msg)
        return self._portal

    def on_cli_init(self, cli: "Group") -> None:
        from litestar_monolikit.cli import monolikit_group

        cli.add_command(monolikit_group)

    def on_app_init(self, app_config: "AppConfig") -> "AppConfig":
        """Configure application for use with Monolikit.

        Args:
            app_config: The :class:`AppConfig <litestar.config.app.AppConfig>` instance.

        Raises:
            ImproperlyConfiguredException: If no session middleware is configured.

        Returns:
            The :class:`AppConfig <litestar.config.app.AppConfig>` instance.
        """

        from litestar.exceptions import HTTPException, ImproperlyConfiguredException
        from litestar.middleware import DefineMiddleware
        from litestar.middleware.session import SessionMiddleware
        from litestar.security.session_auth.middleware import MiddlewareWrapper
        from litestar.utils.predicates import is_class_and_subclass

        from litestar_monolikit.exception_handler import exception_to_http_response
        from litestar_monolikit.properties import LazyProp
        from litestar_monolikit.request import MonolikitRequest
        from litestar_monolikit.response import (
            MonolikitBack,
            MonolikitExternalRedirect,
            MonolikitRedirect,
            MonolikitResponse,
        )

        for mw in app_config.middleware:
            if isinstance(mw, DefineMiddleware) and is_class_and_subclass(
                mw.middleware, (MiddlewareWrapper, SessionMiddleware)
            ):
                break
        else:
            msg = "The Monolikit plugin require a session middleware."
            raise ImproperlyConfiguredException(msg)

        exception_handlers: "dict[type[Exception] | int, Any]" = {
            Exception: exception_to_http_response,
            HTTPException: exception_to_http_response,
        }
        app_config.exception_handlers.update(exception_handlers)  # pyright: ignore[reportUnknownMemberType]
        app_config.request_class = MonolikitRequest
        app_config.response_class = MonolikitResponse
        app_config.middleware.append(DefineMiddleware(self.config.middleware_class, config=self.config))
        app_config.signature_types.extend(
            [MonolikitRequest, MonolikitResponse, MonolikitBack, MonolikitRedirect, MonolikitExternalRedirect, LazyProp]
        )
        app_config.type_encoders = {
            LazyProp: lambda val: val.render(portal=self._portal),
            **(app_config.type_encoders or {}),
        }
        app_config.lifespan.append(self.lifespan)  # pyright: ignore[reportUnknownMemberType]
        return app_config
