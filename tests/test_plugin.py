from dataclasses import dataclass
from typing import Any

import pytest
from litestar import Litestar, Request, get, post
from litestar.exceptions import ImproperlyConfiguredException, NotAuthorizedException, NotFoundException
from litestar.middleware import DefineMiddleware
from litestar.stores.memory import MemoryStore
from litestar.testing import RequestFactory, create_test_client

from litestar_monolikit import (
    MonolikitConfig,
    MonolikitHeaders,
    MonolikitMiddleware,
    MonolikitPlugin,
    MonolikitRequest,
    MonolikitResponse,
)
from litestar_monolikit.properties import get_portal

pytestmark = pytest.mark.anyio

PROTOCOL = {MonolikitHeaders.ENABLED.value: "true"}


@dataclass
class UserCreate:
    name: str
    age: int


def test_session_middleware_is_required(monolikit_plugin: MonolikitPlugin) -> None:
    with pytest.raises(ImproperlyConfiguredException):
        Litestar(plugins=[monolikit_plugin])


def test_plugin_configures_app(monolikit_plugin: MonolikitPlugin, session_middleware: DefineMiddleware) -> None:
    app = Litestar(plugins=[monolikit_plugin], middleware=[session_middleware])

    assert app.request_class is MonolikitRequest
    assert app.response_class is MonolikitResponse
    assert app.plugins.get("MonolikitPlugin") is monolikit_plugin
    assert any(
        isinstance(mw, DefineMiddleware) and mw.middleware is MonolikitMiddleware for mw in app.middleware
    )


def test_portal_requires_lifespan(monolikit_plugin: MonolikitPlugin) -> None:
    with pytest.raises(RuntimeError):
        _ = monolikit_plugin.portal


def test_get_portal_without_plugin() -> None:
    assert get_portal(RequestFactory().get("/")) is None


async def test_get_portal_during_lifespan(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    @get("/portal")
    async def handler(request: Request[Any, Any, Any]) -> "dict[str, Any]":
        return {"same": get_portal(request) is monolikit_plugin.portal}

    with create_test_client(
        route_handlers=[handler],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        assert client.get("/portal").json() == {"same": True}

    assert get_portal(RequestFactory(app=client.app).get("/")) is None


async def test_validation_errors_are_redirected_back(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    @post("/users", component="Users/Create")
    async def create_user(data: UserCreate) -> "dict[str, Any]":
        return {"name": data.name}

    @get("/users/create", component="Users/Create")
    async def create_form() -> "dict[str, Any]":
        return {}

    with create_test_client(
        route_handlers=[create_user, create_form],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.post(
            "/users",
            json={"name": "Ada"},
            headers={**PROTOCOL, "Referer": "http://testserver.local/users/create"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"] == "http://testserver.local/users/create"

        shared = client.get("/users/create", headers=PROTOCOL).json()["shared"]
        assert list(shared["errors"]) == ["age"]
        assert "age" in shared["errors"]["age"]
        assert len(shared["flash"]["error"]) == 1


async def test_validation_errors_without_protocol_header(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    @post("/users")
    async def create_user(data: UserCreate) -> "dict[str, Any]":
        return {"name": data.name}

    with create_test_client(
        route_handlers=[create_user],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.post("/users", json={"name": "Ada"})

        assert response.status_code == 400


async def test_unauthorized_redirects_when_configured(
    monolikit_config: MonolikitConfig,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    @get("/account", component="Account")
    async def account() -> "dict[str, Any]":
        raise NotAuthorizedException(detail="Sign in first.")

    monolikit_config.redirect_unauthorized_to = "/login"
    with create_test_client(
        route_handlers=[account],
        plugins=[MonolikitPlugin(config=monolikit_config)],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.get("/account", headers=PROTOCOL, follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/login"


async def test_other_protocol_errors_render_json(
    monolikit_plugin: MonolikitPlugin,
    session_middleware: DefineMiddleware,
    session_store: MemoryStore,
) -> None:
    @get("/missing", component="Missing")
    async def missing() -> "dict[str, Any]":
        raise NotFoundException(detail="No such report.")

    with create_test_client(
        route_handlers=[missing],
        plugins=[monolikit_plugin],
        middleware=[session_middleware],
        stores={"sessions": session_store},
    ) as client:
        response = client.get("/missing", headers=PROTOCOL)

        assert response.status_code == 404
        assert response.json() == {"status_code": 404, "message": "No such report."}
        assert response.headers["vary"] == MonolikitHeaders.ENABLED.value
