import itertools
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar, cast
from urllib.parse import quote, urlparse

from litestar import MediaType, Request, Response
from litestar.datastructures.cookie import Cookie
from litestar.exceptions import ImproperlyConfiguredException
from litestar.response import Redirect
from litestar.response.base import ASGIResponse
from litestar.serialization import get_serializer
from litestar.status_codes import HTTP_200_OK, HTTP_303_SEE_OTHER, HTTP_307_TEMPORARY_REDIRECT, HTTP_409_CONFLICT
from litestar.utils.empty import value_or_default
from litestar.utils.helpers import get_enum_string_value
from litestar.utils.scope.state import ScopeState
from markupsafe import Markup

from litestar_monolikit._utils import get_headers
from litestar_monolikit.config import MonolikitConfig
from litestar_monolikit.context import MonolikitContext, SharedData, get_context
from litestar_monolikit.properties import get_portal
from litestar_monolikit.request import MonolikitDetails
from litestar_monolikit.types import MonolikitHeaderType, PagePayload
from litestar_monolikit.version import resolve_version

if TYPE_CHECKING:
    from anyio.from_thread import BlockingPortal
    from litestar import Litestar
    from litestar.background_tasks import BackgroundTask, BackgroundTasks
    from litestar.connection.base import AuthT, StateT, UserT
    from litestar.types import ResponseCookies, ResponseHeaders, TypeEncodersMap

    from litestar_monolikit.properties import PropertiesResolver

__all__ = (
    "MonolikitBack",
    "MonolikitExternalRedirect",
    "MonolikitRedirect",
    "MonolikitResponse",
    "build_page_payload",
    "get_monolikit_config",
)

T = TypeVar("T")


def get_monolikit_config(request: "Request[Any, Any, Any]") -> MonolikitConfig:
    """Return the registered plugin configuration, or defaults when no plugin is registered.

    Returns:
        The Monolikit configuration.
    """
    try:
        return cast("MonolikitConfig", request.app.plugins.get("MonolikitPlugin").config)
    except KeyError:
        return MonolikitConfig()


def _get_context(request: "Request[Any, Any, Any]", config: MonolikitConfig) -> MonolikitContext:
    """Return the request context, or a default one when the middleware did not run.

    Returns:
        The protocol context for this request.
    """
    context = get_context(request.scope)
    if context is not None:
        return context
    return MonolikitContext(
        root_view=lambda: config.root_template,
        version=lambda: resolve_version(config, request.app).token,
    )


def _get_redirect_url(request: "Request[Any, Any, Any]", url: "str | None") -> str:
    """Return a safe redirect URL, falling back to base_url when invalid.

    Args:
        request: The request object.
        url: Candidate redirect URL.

    Returns:
        A safe redirect URL (same-origin absolute, or relative), otherwise the request base URL.
    """
    base_url = str(request.base_url)

    if not url:
        return base_url

    parsed = urlparse(url)
    base = urlparse(base_url)

    if not parsed.scheme and not parsed.netloc:
        return url

    if parsed.scheme not in {"http", "https"}:
        return base_url

    if parsed.netloc != base.netloc:
        return base_url

    return url


def _get_relative_url(request: "Request[Any, Any, Any]") -> str:
    """Return the path and query string of the request.

    Returns:
        The path with query string if present, e.g. ``/reports?page=1``.
    """
    path = request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


def build_page_payload(
    component: str,
    properties: "Mapping[str, Any]",
    shared: "Mapping[str, Any]",
    url: str,
    version: "str | None",
    resolver: "PropertiesResolver",
    portal: "BlockingPortal | None" = None,
) -> PagePayload:
    """Assemble the page payload for a component.

    Args:
        component: The component name.
        properties: The raw properties returned by the route handler.
        shared: The shared data bag. It is not modified.
        url: The current URL.
        version: The current asset version token.
        resolver: The properties resolver.
        portal: Optional portal for async lazy values.

    Returns:
        The page payload.
    """
    bag = shared if isinstance(shared, SharedData) else SharedData(shared)
    return PagePayload(
        component=component,
        properties=resolver.resolve(component, properties),
        shared=bag.resolve(portal),
        url=url,
        version=version,
    )


class MonolikitResponse(Response[T]):
    """Monolikit Response

    Routes declaring a component render a page payload: as JSON for the client
    router, or embedded in the root view template on a full page load.
    """

    def __init__(
        self,
        content: T,
        *,
        template_name: "str | None" = None,
        background: "BackgroundTask | BackgroundTasks | None" = None,
        context: "dict[str, Any] | None" = None,
        cookies: "ResponseCookies | None" = None,
        encoding: "str" = "utf-8",
        headers: "ResponseHeaders | None" = None,
        media_type: "MediaType | str | None" = None,
        status_code: "int" = HTTP_200_OK,
        type_encoders: "TypeEncodersMap | None" = None,
    ) -> None:
        """Create a page response.

        Args:
            content: The component properties. Mappings are used as-is, any other
                value is exposed under the ``content`` property.
            template_name: Root view override for full page loads.
            background: A background task or tasks to execute after the response is finished.
            context: Extra template context for full page loads.
            cookies: Cookies to set on the response.
            encoding: Content encoding
            headers: A string keyed dictionary of response headers. Header keys are insensitive.
            media_type: A string or member of the :class:`MediaType <.enums.MediaType>` enum.
            status_code: A value for the response HTTP status code.
            type_encoders: A mapping of types to callables that transform them into types supported for serialization.
        """
        self.content = content
        self.background = background
        self.cookies: list[Cookie] = (
            [Cookie(key=key, value=value) for key, value in cookies.items()]
            if isinstance(cookies, Mapping)
            else list(cookies or [])
        )
        self.encoding = encoding
        self.headers: dict[str, Any] = (
            dict(headers) if isinstance(headers, Mapping) else {h.name: h.value for h in headers or {}}
        )
        self.media_type = media_type
        self.status_code = status_code
        self.response_type_encoders = {**(self.type_encoders or {}), **(type_encoders or {})}
        self.context = context or {}
        self.template_name = template_name

    def _properties(self) -> "Mapping[str, Any]":
        if self.content is None:
            return {}
        if isinstance(self.content, Mapping):
            return cast("Mapping[str, Any]", self.content)
        return {"content": self.content}

    def build_payload(self, request: "Request[Any, Any, Any]", component: str) -> PagePayload:
        """Build the page payload for this response.

        Args:
            request: The current request.
            component: The component to render.

        Returns:
            The page payload.
        """
        config = get_monolikit_config(request)
        context = _get_context(request, config)
        shared = SharedData(config.extra_static_page_props)
        shared.merge(context.shared)
        return build_page_payload(
            component=component,
            properties=self._properties(),
            shared=shared,
            url=_get_relative_url(request),
            version=context.version.get(),
            resolver=config.properties_resolver(request),
            portal=get_portal(request),
        )

    def create_template_context(
        self,
        request: "Request[UserT, AuthT, StateT]",
        payload: PagePayload,
        type_encoders: "TypeEncodersMap | None" = None,
    ) -> "dict[str, Any]":
        """Create a context object for the root view.

        Args:
            request: A :class:`Request <.connection.Request>` instance.
            payload: The page payload.
            type_encoders: A mapping of types to callables that transform them into types supported for serialization.

        Returns:
            A dictionary holding the template context
        """
        csrf_token = value_or_default(ScopeState.from_scope(request.scope).csrf_token, "")
        page = self.render(payload.to_dict(), MediaType.JSON, get_serializer(type_encoders)).decode()
        return {
            **self.context,
            "monolikit": page,
            "page": payload,
            "request": request,
            "csrf_input": Markup(f'<input type="hidden" name="_csrf_token" value="{csrf_token}" />'),
        }

    def _render_root_view(
        self,
        request: "Request[UserT, AuthT, StateT]",
        payload: PagePayload,
        type_encoders: "TypeEncodersMap | None",
    ) -> bytes:
        """Render the root view to bytes.

        Raises:
            ImproperlyConfiguredException: If the template engine is not configured.

        Returns:
            The rendered template as bytes.
        """
        template_engine = request.app.template_engine  # pyright: ignore[reportUnknownVariableType,reportUnknownMemberType]
        if not template_engine:
            msg = "Template engine is not configured"
            raise ImproperlyConfiguredException(msg)
        context = get_context(request.scope)
        if self.template_name is not None:
            template_name = self.template_name
        elif context is not None:
            template_name = context.root_view.get()
        else:
            template_name = get_monolikit_config(request).root_template
        template = template_engine.get_template(template_name)  # pyright: ignore[reportUnknownMemberType,reportUnknownVariableType]
        return template.render(**self.create_template_context(request, payload, type_encoders)).encode(self.encoding)  # pyright: ignore[reportUnknownMemberType,reportUnknownVariableType]

    def to_asgi_response(
        self,
        app: "Litestar | None",
        request: "Request[UserT, AuthT, StateT]",
        *,
        background: "BackgroundTask | BackgroundTasks | None" = None,
        cookies: "Iterable[Cookie] | None" = None,
        encoded_headers: "Iterable[tuple[bytes, bytes]] | None" = None,
        headers: "dict[str, str] | None" = None,
        is_head_response: "bool" = False,
        media_type: "MediaType | str | None" = None,
        status_code: "int | None" = None,
        type_encoders: "TypeEncodersMap | None" = None,
    ) -> "ASGIResponse":
        details = MonolikitDetails(request)
        headers = {**headers, **self.headers} if headers is not None else self.headers
        cookies = self.cookies if cookies is None else itertools.chain(self.cookies, cookies)
        type_encoders = (
            {**type_encoders, **(self.response_type_encoders or {})} if type_encoders else self.response_type_encoders
        )
        component = details.route_component

        if component is None:
            resolved_media_type = get_enum_string_value(self.media_type or media_type or MediaType.JSON)
            return ASGIResponse(
                background=self.background or background,
                body=self.render(self.content, resolved_media_type, get_serializer(type_encoders)),
                cookies=cookies,
                encoded_headers=encoded_headers,
                encoding=self.encoding,
                headers=headers,
                is_head_response=is_head_response,
                media_type=resolved_media_type,
                status_code=self.status_code or status_code,
            )

        payload = self.build_payload(cast("Request[Any, Any, Any]", request), component)

        if details:
            headers.update(get_headers(MonolikitHeaderType(enabled=True)))
            resolved_media_type = MediaType.JSON.value
            body = self.render(payload.to_dict(), resolved_media_type, get_serializer(type_encoders))
        else:
            resolved_media_type = get_enum_string_value(media_type or MediaType.HTML)
            body = self._render_root_view(request, payload, type_encoders)

        return ASGIResponse(  # pyright: ignore[reportUnknownMemberType]
            background=self.background or background,
            body=body,
            cookies=cookies,
            encoded_headers=encoded_headers,
            encoding=self.encoding,
            headers=headers,
            is_head_response=is_head_response,
            media_type=resolved_media_type,
            status_code=self.status_code or status_code,
        )


class MonolikitExternalRedirect(Response[Any]):
    """External visit (409 + X-Monolikit-External).

    Instructs the client router to perform a full browser navigation to the target
    instead of an in-protocol visit.
    """

    def __init__(self, request: "Request[Any, Any, Any]", redirect_to: "str", **kwargs: "Any") -> None:
        """Initialize external redirect with 409 status and X-Monolikit-External header.

        Args:
            request: The request object.
            redirect_to: The URL to visit (can be external).
            **kwargs: Additional keyword arguments passed to the Response constructor.
        """
        super().__init__(
            content=b"",
            status_code=HTTP_409_CONFLICT,
            headers=get_headers(
                MonolikitHeaderType(external=quote(redirect_to, safe="/#%[]=:;$&()+,!?*@'~")),
            ),
            **kwargs,
        )


class MonolikitRedirect(Redirect):
    """Redirect to a specified URL with same-origin validation."""

    def __init__(self, request: "Request[Any, Any, Any]", redirect_to: "str", **kwargs: "Any") -> None:
        """Initialize redirect with safe URL validation.

        Args:
            request: The request object.
            redirect_to: The URL to redirect to. Must be same-origin or relative.
            **kwargs: Additional keyword arguments passed to the Redirect constructor.
        """
        super().__init__(  # pyright: ignore[reportUnknownMemberType]
            path=_get_redirect_url(request, redirect_to),
            status_code=HTTP_307_TEMPORARY_REDIRECT if request.method == "GET" else HTTP_303_SEE_OTHER,
            **kwargs,
        )


class MonolikitBack(Redirect):
    """Redirect back to the previous page using the Referer header."""

    def __init__(self, request: "Request[Any, Any, Any]", **kwargs: "Any") -> None:
        """Initialize back redirect with safe URL validation.

        Args:
            request: The request object.
            **kwargs: Additional keyword arguments passed to the Redirect constructor.
        """
        super().__init__(  # pyright: ignore[reportUnknownMemberType]
            path=_get_redirect_url(request, MonolikitDetails(request).referer),
            status_code=HTTP_307_TEMPORARY_REDIRECT if request.method == "GET" else HTTP_303_SEE_OTHER,
            **kwargs,
        )
