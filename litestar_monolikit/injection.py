"""Dependency injection for middleware hooks.

Hook parameters are resolved by name, in the same spirit as Litestar's reserved
handler kwargs: a hook declares ``request``, ``session`` or ``config`` and receives
the matching value for the current request.
"""

import inspect
from typing import TYPE_CHECKING, Any

from litestar_monolikit._utils import has_session
from litestar_monolikit.exceptions import HookInjectionError

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar import Request

    from litestar_monolikit.config import MonolikitConfig
    from litestar_monolikit.context import MonolikitContext

__all__ = ("INJECTABLE_NAMES", "invoke_hook")

INJECTABLE_NAMES = (
    "request",
    "connection",
    "app",
    "headers",
    "cookies",
    "query",
    "state",
    "scope",
    "session",
    "config",
    "context",
)


def _provide(
    name: str,
    request: "Request[Any, Any, Any]",
    config: "MonolikitConfig",
    context: "MonolikitContext | None",
) -> Any:
    if name in {"request", "connection"}:
        return request
    if name == "app":
        return request.app
    if name == "headers":
        return request.headers
    if name == "cookies":
        return request.cookies
    if name == "query":
        return request.query_params
    if name == "state":
        return request.app.state
    if name == "scope":
        return request.scope
    if name == "session":
        return request.session if has_session(request) else {}
    if name == "config":
        return config
    return context


async def invoke_hook(
    hook: "Callable[..., Any]",
    request: "Request[Any, Any, Any]",
    config: "MonolikitConfig",
    context: "MonolikitContext | None" = None,
) -> Any:
    """Call a hook with its parameters resolved from the current request.

    Args:
        hook: The hook, usually a bound middleware method.
        request: The current request.
        config: The Monolikit configuration.
        context: The request's protocol context.

    Raises:
        HookInjectionError: If a parameter without default cannot be provided.

    Returns:
        The hook result, awaited when the hook is a coroutine function.
    """
    kwargs: "dict[str, Any]" = {}
    for parameter in inspect.signature(hook).parameters.values():
        if parameter.kind in {inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD}:
            continue
        if parameter.name in INJECTABLE_NAMES:
            kwargs[parameter.name] = _provide(parameter.name, request, config, context)
        elif parameter.default is inspect.Parameter.empty:
            raise HookInjectionError(getattr(hook, "__name__", repr(hook)), parameter.name)
    result = hook(**kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
