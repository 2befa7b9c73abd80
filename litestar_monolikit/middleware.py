"""Monolikit protocol middleware.

For every HTTP request the middleware prepares the protocol context (root view and
version suppliers, shared data), runs the application once, then applies the
protocol rules to the response: ``Vary`` header, asset version negotiation on GET
requests, empty response handling and ``302`` to ``303`` rewriting for PUT, PATCH
and DELETE.

Concrete applications customize the behaviour by subclassing
:class:`MonolikitMiddleware` and registering the subclass with
``MonolikitConfig(middleware_class=...)``::

    class AppMiddleware(MonolikitMiddleware):
        async def share(self, request: Request, session: dict[str, Any]) -> dict[str, Any]:
            return {"user": session.get("user")}
"""

import inspect
from typing import TYPE_CHECKING, Any, cast

from litestar.datastructures import MutableScopeHeaders
from litestar.enums import HttpMethod, ScopeType
from litestar.middleware import AbstractMiddleware
from litestar.status_codes import HTTP_200_OK, HTTP_302_FOUND, HTTP_303_SEE_OTHER

from litestar_monolikit._utils import MonolikitHeaders
from litestar_monolikit.config import MonolikitConfig, logger
from litestar_monolikit.context import MonolikitContext, get_context, set_context
from litestar_monolikit.helpers import resolve_flash_notifications, resolve_validation_errors
from litestar_monolikit.injection import invoke_hook
from litestar_monolikit.request import MonolikitRequest
from litestar_monolikit.response import MonolikitExternalRedirect
from litestar_monolikit.types import SupportsBeforeHandle, SupportsShare
from litestar_monolikit.version import resolve_version

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar import Request, Response
    from litestar.types import ASGIApp, Message, Receive, Scope, Send

__all__ = ("CapturedResponse", "MonolikitMiddleware", "REDIRECT_REWRITE_METHODS")

REDIRECT_REWRITE_METHODS = frozenset({HttpMethod.PUT.value, HttpMethod.PATCH.value, HttpMethod.DELETE.value})


class CapturedResponse:
    """A buffered downstream response that protocol rules may rewrite."""

    __slots__ = ("_body", "headers", "status_code")

    def __init__(self, status_code: int, headers: "MutableScopeHeaders | None" = None, body: bytes = b"") -> None:
        self.status_code = status_code
        self.headers = headers if headers is not None else MutableScopeHeaders()
        self._body = body

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def is_ok(self) -> bool:
        return self.status_code == HTTP_200_OK

    @property
    def is_empty(self) -> bool:
        return not self._body

    async def __call__(self, send: "Send") -> None:
        await send({"type": "http.response.start", "status": self.status_code, "headers": self.headers.headers})
        await send({"type": "http.response.body", "body": self._body, "more_body": False})


class _ResponseCapture:
    """ASGI ``send`` replacement buffering a complete response.

    Streaming responses are buffered too, so a protocol request to a streaming
    route only completes once the stream ends.
    """

    __slots__ = ("chunks", "headers", "status_code")

    def __init__(self) -> None:
        self.status_code: "int | None" = None
        self.headers = MutableScopeHeaders()
        self.chunks: "list[bytes]" = []

    async def send(self, message: "Message") -> None:
        if message["type"] == "http.response.start":
            self.status_code = message["status"]
            self.headers = MutableScopeHeaders.from_message(message)
        elif message["type"] == "http.response.body":
            self.chunks.append(message.get("body", b""))

    def response(self) -> CapturedResponse:
        if self.status_code is None:
            msg = "The application did not start a response."
            raise RuntimeError(msg)
        return CapturedResponse(self.status_code, self.headers, b"".join(self.chunks))


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class MonolikitMiddleware(AbstractMiddleware):
    """Middleware implementing the Monolikit protocol.

    Optional hooks are detected once, when the middleware is built:

    - ``before_handle(...)`` runs first on every request.
    - ``share(...)`` returns a mapping merged into the shared data.

    Both receive their parameters by name, see :func:`litestar_monolikit.injection.invoke_hook`.
    """

    scopes = {ScopeType.HTTP}

    def __init__(self, app: "ASGIApp", config: "MonolikitConfig | None" = None) -> None:
        super().__init__(app)
        self.app = app
        self.config = config or MonolikitConfig()
        self._before_handle: "Callable[..., Any] | None" = (
            self.before_handle if isinstance(self, SupportsBeforeHandle) else None
        )
        self._share: "Callable[..., Any] | None" = self.share if isinstance(self, SupportsShare) else None

    async def __call__(self, scope: "Scope", receive: "Receive", send: "Send") -> None:
        if scope["type"] != ScopeType.HTTP:
            await self.app(scope, receive, send)
            return

        request: MonolikitRequest[Any, Any, Any] = MonolikitRequest(scope=scope, receive=receive)

        if self._before_handle is not None:
            await invoke_hook(self._before_handle, request, self.config)

        context = MonolikitContext(
            root_view=lambda: self.root_view(request),
            version=lambda: self.version(request),
        )
        set_context(scope, context)

        if self._share is not None:
            context.shared.merge(await invoke_hook(self._share, request, self.config, context))
        if self.config.share_validation_errors:
            context.shared.set(self.config.errors_key, self.resolve_validation_errors(request))
        if self.config.share_flash_notifications:
            context.shared.set(self.config.flash_key, self.resolve_flash_notifications(request))

        if not request.is_monolikit:
            await self.app(scope, receive, self._vary_send(send))
            return

        capture = _ResponseCapture()
        await self.app(scope, receive, capture.send)
        response = await self.process_response(request, context, capture.response())
        response.headers["Vary"] = MonolikitHeaders.ENABLED.value
        await response(send)

    @staticmethod
    def _vary_send(send: "Send") -> "Send":
        async def wrapped_send(message: "Message") -> None:
            if message["type"] == "http.response.start":
                MutableScopeHeaders.from_message(message)["Vary"] = MonolikitHeaders.ENABLED.value
            await send(message)

        return wrapped_send

    async def process_response(
        self,
        request: "MonolikitRequest[Any, Any, Any]",
        context: MonolikitContext,
        response: CapturedResponse,
    ) -> CapturedResponse:
        """Apply the protocol rules to a buffered protocol response.

        Args:
            request: The current request.
            context: The request's protocol context.
            response: The response produced by the application.

        Returns:
            The response to send.
        """
        if request.method == HttpMethod.GET:
            version = context.version.get()
            if version is not None and request.monolikit_version != version:
                logger.debug(
                    "Asset version mismatch for %s (client %r, server %r).",
                    request.url.path,
                    request.monolikit_version,
                    version,
                )
                response = await self._capture(
                    request, await _resolve(self.on_version_change(request, response))
                )

        if response.is_ok and response.is_empty:
            response = await self._capture(request, await _resolve(self.on_empty_response(request, response)))

        if response.status_code == HTTP_302_FOUND and request.method in REDIRECT_REWRITE_METHODS:
            logger.debug("Rewriting 302 to 303 for %s %s.", request.method, request.url.path)
            response.status_code = HTTP_303_SEE_OTHER

        return response

    @staticmethod
    async def _capture(
        request: "Request[Any, Any, Any]", response: "CapturedResponse | Response[Any]"
    ) -> CapturedResponse:
        if isinstance(response, CapturedResponse):
            return response
        capture = _ResponseCapture()
        asgi_response = response.to_asgi_response(app=None, request=request)  # pyright: ignore[reportUnknownMemberType]
        await asgi_response(request.scope, request.receive, capture.send)
        return capture.response()

    def on_version_change(
        self, request: "Request[Any, Any, Any]", response: CapturedResponse
    ) -> "CapturedResponse | Response[Any]":
        """Determine what to do when the asset version has changed.

        By default, the session is reflashed and the client is asked to perform an
        external visit of the current URL, so the new assets load.

        Args:
            request: The current request.
            response: The response produced by the application.

        Returns:
            The response to send instead.
        """
        context = get_context(request.scope)
        if context is not None:
            context.reflash(request)
        return MonolikitExternalRedirect(request, redirect_to=str(request.url))

    def on_empty_response(
        self, request: "Request[Any, Any, Any]", response: CapturedResponse
    ) -> "CapturedResponse | Response[Any]":
        """Determine what to do when a handler returned a successful, empty response.

        Returns:
            The response unchanged.
        """
        return response

    def version(self, request: "Request[Any, Any, Any]") -> "str | None":
        """Determine the current asset version.

        Returns:
            The version token, or None to disable version checks.
        """
        return resolve_version(self.config, request.app).token

    def root_view(self, request: "Request[Any, Any, Any]") -> str:
        """Return the root template loaded on the first page visit.

        Returns:
            The template name.
        """
        return self.config.root_template

    def resolve_validation_errors(self, request: "Request[Any, Any, Any]") -> "dict[str, Any]":
        """Resolve validation errors in a shape that is easy to use client-side.

        Returns:
            The error bag view.
        """
        return resolve_validation_errors(request, get_context(request.scope))

    def resolve_flash_notifications(self, request: "Request[Any, Any, Any]") -> "dict[str, list[Any]]":
        """Resolve flash notifications, grouped by category.

        Returns:
            The flash notifications.
        """
        return cast("dict[str, list[Any]]", resolve_flash_notifications(request, get_context(request.scope)))
