from collections import defaultdict
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, cast

from litestar_monolikit._utils import has_session
from litestar_monolikit.context import get_context
from litestar_monolikit.request import MonolikitDetails

if TYPE_CHECKING:
    from litestar.connection import ASGIConnection

    from litestar_monolikit.context import MonolikitContext

__all__ = (
    "DEFAULT_ERROR_BAG",
    "ERRORS_SESSION_KEY",
    "FLASH_SESSION_KEY",
    "error",
    "resolve_error_bags",
    "resolve_flash_notifications",
    "resolve_validation_errors",
    "share",
)

DEFAULT_ERROR_BAG = "default"
ERRORS_SESSION_KEY = "_errors"
FLASH_SESSION_KEY = "_messages"


def share(
    connection: "ASGIConnection[Any, Any, Any, Any]",
    key: "str",
    value: "Any",
) -> "None":
    """Share a value with the page payload of the current request.

    Args:
        connection: The ASGI connection.
        key: The key to store the value under.
        value: The value to store. Zero-argument callables and lazy properties are
            evaluated when the payload is built.
    """
    context = get_context(connection.scope)
    if context is None:
        msg = "Unable to share %r. The Monolikit middleware did not run for this request."
        connection.logger.warning(msg, key)
        return
    context.shared.set(key, value)


def error(
    connection: "ASGIConnection[Any, Any, Any, Any]",
    key: "str",
    message: "str",
    bag: "str" = DEFAULT_ERROR_BAG,
) -> "None":
    """Store a validation error message for the next request.

    Args:
        connection: The ASGI connection.
        key: The field the error belongs to.
        message: The error message.
        bag: The error bag name.
    """
    if not has_session(connection):
        msg = "Unable to set `error` session state.  A valid session was not found for this request."
        connection.logger.warning(msg)
        return
    session = dict(connection.session)
    bags = cast("dict[str, dict[str, list[str]]]", session.get(ERRORS_SESSION_KEY) or {})
    bags.setdefault(bag, {}).setdefault(key, []).append(message)
    session[ERRORS_SESSION_KEY] = bags
    connection.set_session(session)


def _first_message(messages: Any) -> "str | None":
    if isinstance(messages, str):
        return messages
    if isinstance(messages, (list, tuple)) and messages:
        return cast("str", messages[0])
    return None


def resolve_error_bags(bags: "Mapping[str, Any]", error_bag: "str | None" = None) -> "dict[str, Any]":
    """Reduce stored error bags to the shape shared with the client.

    Each bag keeps only the first message of each field. When a ``default`` bag
    exists it is either renamed to ``error_bag`` or hoisted to the top level; other
    bags are then left out. Without a ``default`` bag every bag is returned by name.

    Args:
        bags: Mapping of bag name to field to list of messages.
        error_bag: Name requested by the client for the default bag.

    Returns:
        The error bag view.

    Example::

        resolve_error_bags({"default": {"email": ["required"]}})
        # {"email": "required"}
        resolve_error_bags({"default": {"email": ["required"]}}, "login")
        # {"login": {"email": "required"}}
    """
    views: "dict[str, dict[str, str]]" = {}
    for name, fields in bags.items():
        view: "dict[str, str]" = {}
        for field, messages in cast("Mapping[str, Any]", fields or {}).items():
            if (message := _first_message(messages)) is not None:
                view[field] = message
        views[name] = view

    if DEFAULT_ERROR_BAG in views and error_bag:
        return {error_bag: views[DEFAULT_ERROR_BAG]}
    if DEFAULT_ERROR_BAG in views:
        return dict(views[DEFAULT_ERROR_BAG])
    return dict(views)


def resolve_validation_errors(
    connection: "ASGIConnection[Any, Any, Any, Any]",
    context: "MonolikitContext | None" = None,
) -> "dict[str, Any]":
    """Resolve the validation errors flashed by the previous request.

    Args:
        connection: The ASGI connection.
        context: The request context; when given, the errors are recorded so a
            reflash can restore them.

    Returns:
        The error bag view, empty when there is no session or no errors.
    """
    if not has_session(connection):
        return {}
    if context is not None:
        bags = context.pull(connection, ERRORS_SESSION_KEY)
    else:
        bags = connection.session.pop(ERRORS_SESSION_KEY, None)
    if not bags:
        return {}
    return resolve_error_bags(cast("Mapping[str, Any]", bags), MonolikitDetails(connection).error_bag)


def resolve_flash_notifications(
    connection: "ASGIConnection[Any, Any, Any, Any]",
    context: "MonolikitContext | None" = None,
) -> "dict[str, list[Any]]":
    """Collect flash messages, grouped by category.

    Messages are the ones stored by :func:`litestar.plugins.flash.flash`.

    Args:
        connection: The ASGI connection.
        context: The request context; when given, the messages are recorded so a
            reflash can restore them.

    Returns:
        Mapping of category to messages, empty when there is no session.
    """
    flash: "dict[str, list[Any]]" = defaultdict(list)
    if not has_session(connection):
        return dict(flash)
    if context is not None:
        messages = context.pull(connection, FLASH_SESSION_KEY, [])
    else:
        messages = connection.session.pop(FLASH_SESSION_KEY, [])
    for message in cast("list[dict[str, Any]]", messages or []):
        flash[message["category"]].append(message["message"])
    return dict(flash)
