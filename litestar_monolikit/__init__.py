from litestar_monolikit import helpers
from litestar_monolikit.config import MonolikitConfig
from litestar_monolikit.context import MonolikitContext, SharedData, get_context
from litestar_monolikit.exception_handler import create_monolikit_exception_response, exception_to_http_response
from litestar_monolikit.helpers import error, resolve_error_bags, share
from litestar_monolikit.middleware import CapturedResponse, MonolikitMiddleware
from litestar_monolikit.plugin import MonolikitPlugin
from litestar_monolikit.properties import LazyPropertiesResolver, LazyProp, PropertiesResolver, lazy
from litestar_monolikit.request import MonolikitDetails, MonolikitHeaders, MonolikitRequest
from litestar_monolikit.response import (
    MonolikitBack,
    MonolikitExternalRedirect,
    MonolikitRedirect,
    MonolikitResponse,
    build_page_payload,
)
from litestar_monolikit.types import PagePayload
from litestar_monolikit.version import VersionInfo, resolve_version

__all__ = (
    "CapturedResponse",
    "LazyProp",
    "LazyPropertiesResolver",
    "MonolikitBack",
    "MonolikitConfig",
    "MonolikitContext",
    "MonolikitDetails",
    "MonolikitExternalRedirect",
    "MonolikitHeaders",
    "MonolikitMiddleware",
    "MonolikitPlugin",
    "MonolikitRedirect",
    "MonolikitRequest",
    "MonolikitResponse",
    "PagePayload",
    "PropertiesResolver",
    "SharedData",
    "VersionInfo",
    "build_page_payload",
    "create_monolikit_exception_response",
    "error",
    "exception_to_http_response",
    "get_context",
    "helpers",
    "lazy",
    "resolve_error_bags",
    "resolve_version",
    "share",
)
