from typing import Any

import pytest
from litestar import Request, get
from litestar.handlers import HTTPRouteHandler
from litestar.middleware import DefineMiddleware
from litestar.stores.memory import MemoryStore
from litestar.template.config import TemplateConfig
from litestar.testing import create_test_client

from litestar_monolikit import (
    MonolikitConfig,
    MonolikitHeaders,
    MonolikitPlugin,
    MonolikitResponse,
    lazy,
    share,
)

pytestmark = pytest.mark.anyio

PROTOCOL = {MonolikitHeaders.ENABLED.value: "true"}


async def _audit_log() -> "list[str]":
    return ["login", "logout"]


def _dashboard() -> "HTTPRouteHandler":
    @get("/dashboard", component="Dashboard")
    async def dashboard() -> "dict[str, Any]":
        return {
            "users": ["ada", "grace"],
            "stats": lazy(lambda: {"count": 2}),
            "audit": lazy(_audit_log),
        }

    return dashboard


async def test_full_load_drops_lazy_properties(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    with create_test_client(
        route_handlers=[_dashboard()],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.get("/dashboard", headers=PROTOCOL)

        assert response.status_code == 200
        assert response.json()["properties"] == {"users": ["ada", "grace"]}


async def test_partial_reload_only(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    with create_test_client(
        route_handlers=[_dashboard()],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.get(
            "/dashboard",
            headers={
                **PROTOCOL,
                MonolikitHeaders.PARTIAL_COMPONENT.value: "Dashboard",
                MonolikitHeaders.ONLY_DATA.value: "stats, audit",
            },
        )

        assert response.json()["properties"] == {"stats": {"count": 2}, "audit": ["login", "logout"]}


async def test_partial_reload_except_wins(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    with create_test_client(
        route_handlers=[_dashboard()],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.get(
            "/dashboard",
            headers={
                **PROTOCOL,
                MonolikitHeaders.PARTIAL_COMPONENT.value: "Dashboard",
                MonolikitHeaders.ONLY_DATA.value: "users",
                MonolikitHeaders.EXCEPT_DATA.value: "audit",
            },
        )

        assert response.json()["properties"] == {"users": ["ada", "grace"], "stats": {"count": 2}}


async def test_partial_reload_for_other_component_is_a_full_load(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    with create_test_client(
        route_handlers=[_dashboard()],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.get(
            "/dashboard",
            headers={
                **PROTOCOL,
                MonolikitHeaders.PARTIAL_COMPONENT.value: "Settings",
                MonolikitHeaders.ONLY_DATA.value: "stats",
            },
        )

        assert response.json()["properties"] == {"users": ["ada", "grace"]}


async def test_root_view_embeds_payload(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
    template_config: TemplateConfig,  # pyright: ignore[reportUnknownParameterType,reportMissingTypeArgument]
) -> None:
    with create_test_client(
        route_handlers=[_dashboard()],
        template_config=template_config,
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.get("/dashboard")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<title>Dashboard</title>" in response.text
        assert 'name="_csrf_token"' in response.text
        assert "ada" in response.text


async def test_template_name_override(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
    template_config: TemplateConfig,  # pyright: ignore[reportUnknownParameterType,reportMissingTypeArgument]
) -> None:
    @get("/", component="Home")
    async def handler() -> MonolikitResponse[Any]:
        return MonolikitResponse(content={"a": 1}, template_name="other.html.j2")

    with create_test_client(
        route_handlers=[handler],
        template_config=template_config,
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        assert "<title>other:Home</title>" in client.get("/").text


async def test_payload_url_includes_query_string(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    with create_test_client(
        route_handlers=[_dashboard()],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        assert client.get("/dashboard?page=2", headers=PROTOCOL).json()["url"] == "/dashboard?page=2"


async def test_non_mapping_content_is_wrapped(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    @get("/", view="Greeting")
    async def handler() -> str:
        return "hello"

    with create_test_client(
        route_handlers=[handler],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        data = client.get("/", headers=PROTOCOL).json()

        assert data["component"] == "Greeting"
        assert data["properties"] == {"content": "hello"}


async def test_route_without_component_is_plain_json(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    @get("/api/status")
    async def handler() -> "dict[str, Any]":
        return {"status": "ok"}

    with create_test_client(
        route_handlers=[handler],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.get("/api/status", headers=PROTOCOL)

        assert response.json() == {"status": "ok"}
        assert MonolikitHeaders.ENABLED.value.lower() not in response.headers


async def test_static_page_props_and_share(
    monolikit_config: MonolikitConfig,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    @get("/", component="Home")
    async def handler(request: Request[Any, Any, Any]) -> "dict[str, Any]":
        share(request, "app_name", "Overridden")
        share(request, "notifications", lambda: 3)
        return {}

    monolikit_config.extra_static_page_props = {"app_name": "Demo", "locale": "en"}
    with create_test_client(
        route_handlers=[handler],
        plugins=[MonolikitPlugin(config=monolikit_config)],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        shared = client.get("/", headers=PROTOCOL).json()["shared"]

        assert shared == {
            "app_name": "Overridden",
            "locale": "en",
            "errors": {},
            "flash": {},
            "notifications": 3,
        }
