import re
from typing import TYPE_CHECKING, Any, cast

from litestar import MediaType
from litestar.exceptions import (
    HTTPException,
    InternalServerException,
    NotAuthorizedException,
    NotFoundException,
    PermissionDeniedException,
)
from litestar.exceptions.responses import (
    create_debug_response,  # pyright: ignore[reportUnknownVariableType]
    create_exception_response,  # pyright: ignore[reportUnknownVariableType]
)
from litestar.plugins.flash import flash
from litestar.repository.exceptions import (
    NotFoundError,  # pyright: ignore[reportUnknownVariableType,reportAttributeAccessIssue]
    RepositoryError,  # pyright: ignore[reportUnknownVariableType,reportAttributeAccessIssue]
)
from litestar.response import Response
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from litestar_monolikit._utils import has_session
from litestar_monolikit.helpers import error
from litestar_monolikit.request import MonolikitDetails, MonolikitRequest
from litestar_monolikit.response import MonolikitBack, MonolikitRedirect, get_monolikit_config

if TYPE_CHECKING:
    from litestar.connection import Request
    from litestar.connection.base import AuthT, StateT, UserT

__all__ = ("FIELD_ERR_RE", "create_monolikit_exception_response", "exception_to_http_response")

FIELD_ERR_RE = re.compile(r"field `(.+)`$")


class _HTTPConflictException(HTTPException):
    """Request conflict with the current state of the target resource."""

    status_code: int = HTTP_409_CONFLICT


def _is_monolikit(request: "Request[UserT, AuthT, StateT]") -> bool:
    if isinstance(request, MonolikitRequest):
        return request.is_monolikit
    return bool(MonolikitDetails(request))


def exception_to_http_response(request: "Request[UserT, AuthT, StateT]", exc: "Exception") -> "Response[Any]":
    """Handler for all exceptions subclassed from HTTPException.

    Protocol requests get protocol-aware responses, see
    :func:`create_monolikit_exception_response`. Other requests get Litestar's
    default exception responses.

    Args:
        request: The request object.
        exc: The exception to handle.

    Returns:
        The response object.
    """
    if _is_monolikit(request):
        return create_monolikit_exception_response(request, exc)
    if isinstance(exc, HTTPException):
        return cast("Response[Any]", create_exception_response(request, exc))
    if isinstance(exc, NotFoundError):
        http_exc = NotFoundException
    elif isinstance(exc, RepositoryError):
        http_exc = _HTTPConflictException  # type: ignore[assignment]
    else:
        http_exc = InternalServerException  # type: ignore[assignment]
    if request.app.debug and http_exc is not NotFoundException:
        return cast("Response[Any]", create_debug_response(request, exc))
    return cast("Response[Any]", create_exception_response(request, http_exc(detail=str(exc.__cause__))))  # pyright: ignore[reportUnknownArgumentType]


def _store_validation_errors(request: "Request[UserT, AuthT, StateT]", extras: Any, detail: str) -> None:
    if not isinstance(extras, (list, tuple)):
        return
    for extra in cast("list[Any]", extras):
        if not isinstance(extra, dict):
            continue
        message = cast("dict[str, Any]", extra)
        key = message.get("key")
        error_detail = str(message.get("message") or detail)
        match = FIELD_ERR_RE.search(error_detail)
        field = match.group(1) if match else (key if key is not None else "root")
        error(request, str(field), error_detail)


def create_monolikit_exception_response(
    request: "Request[UserT, AuthT, StateT]", exc: "Exception"
) -> "Response[Any]":
    """Create the exception response for a protocol request.

    - Validation failures (400, 422) store their messages in the default error bag,
      flash the detail, and redirect back so the client router shows the errors.
    - Unauthorized requests redirect to ``redirect_unauthorized_to`` when configured.
    - Anything else renders a JSON body carrying the status code and message.

    Args:
        request: The request object.
        exc: The exception to handle.

    Returns:
        The response object.
    """
    status_code = exc.status_code if isinstance(exc, HTTPException) else HTTP_500_INTERNAL_SERVER_ERROR
    detail = exc.detail if isinstance(exc, HTTPException) else str(exc)
    extras: Any = exc.extra if isinstance(exc, HTTPException) else None  # pyright: ignore[reportUnknownMemberType]
    content: "dict[str, Any]" = {"status_code": status_code, "message": detail}
    if extras:
        content["extra"] = extras

    if status_code in {HTTP_422_UNPROCESSABLE_ENTITY, HTTP_400_BAD_REQUEST} or isinstance(
        exc, PermissionDeniedException
    ):
        _store_validation_errors(request, extras, detail)
        if detail and has_session(request):
            flash(request, detail, category="error")
        return MonolikitBack(request)

    config = get_monolikit_config(request)
    is_unauthorized = status_code == HTTP_401_UNAUTHORIZED or isinstance(exc, NotAuthorizedException)
    if (
        is_unauthorized
        and config.redirect_unauthorized_to is not None
        and request.url.path != config.redirect_unauthorized_to
    ):
        if detail and has_session(request):
            flash(request, detail, category="error")
        return MonolikitRedirect(request, redirect_to=config.redirect_unauthorized_to)

    return Response[Any](media_type=MediaType.JSON, content=content, status_code=status_code)
