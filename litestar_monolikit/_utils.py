from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar.connection import ASGIConnection

    from litestar_monolikit.types import MonolikitHeaderType


class MonolikitHeaders(str, Enum):
    """Enum for Monolikit Headers.

    Header names are matched case-insensitively, as every HTTP header is.
    """

    ENABLED = "X-Monolikit"
    VERSION = "X-Monolikit-Version"
    EXTERNAL = "X-Monolikit-External"
    ERROR_BAG = "X-Monolikit-Error-Bag"
    REFERER = "Referer"

    PARTIAL_COMPONENT = "X-Monolikit-Partial-Component"
    ONLY_DATA = "X-Monolikit-Only-Data"
    EXCEPT_DATA = "X-Monolikit-Except-Data"


def has_session(connection: "ASGIConnection[Any, Any, Any, Any]") -> bool:
    """Return True when a session middleware populated the connection scope.

    Args:
        connection: The ASGI connection.

    Returns:
        True if the scope carries session state, otherwise False.
    """
    return connection.scope.get("session") is not None


def get_enabled_header(enabled: bool = True) -> "dict[str, Any]":
    """Return the protocol marker header.

    Args:
        enabled: Whether the protocol is enabled.

    Returns:
        The headers for monolikit.
    """
    return {MonolikitHeaders.ENABLED.value: "true" if enabled else "false"}


def get_external_header(url: str) -> "dict[str, Any]":
    """Return the header instructing the client to perform a full visit.

    Args:
        url: The location to visit.

    Returns:
        The headers for monolikit.
    """
    return {MonolikitHeaders.EXTERNAL.value: url}


def get_headers(monolikit_headers: "MonolikitHeaderType") -> "dict[str, Any]":
    """Return headers for Monolikit responses.

    Args:
        monolikit_headers: The monolikit headers.

    Raises:
        ValueError: If the monolikit headers are empty.

    Returns:
        The headers for monolikit.
    """
    if not monolikit_headers:
        msg = "Value for monolikit_headers cannot be None."
        raise ValueError(msg)
    monolikit_headers_dict: "dict[str, Callable[..., dict[str, Any]]]" = {
        "enabled": get_enabled_header,
        "external": get_external_header,
    }

    header: "dict[str, Any]" = {}
    for key, value in monolikit_headers.items():
        if value is not None:
            header.update(monolikit_headers_dict[key](value))
    return header
