from collections.abc import Generator
from pathlib import Path

import pytest
from litestar.contrib.jinja import JinjaTemplateEngine
from litestar.middleware import DefineMiddleware
from litestar.middleware.session.server_side import ServerSideSessionConfig
from litestar.stores.memory import MemoryStore
from litestar.template.config import TemplateConfig

from litestar_monolikit import MonolikitConfig, MonolikitPlugin

here = Path(__file__).parent


@pytest.fixture(autouse=True)
def clean_asset_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear the asset URL environment variable before each test for isolation."""
    monkeypatch.delenv("ASSET_URL", raising=False)
    yield


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def template_config() -> Generator[TemplateConfig[JinjaTemplateEngine], None, None]:
    yield TemplateConfig(directory=here / "templates", engine=JinjaTemplateEngine)


@pytest.fixture
def session_middleware() -> DefineMiddleware:
    return ServerSideSessionConfig().middleware


@pytest.fixture
def session_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def monolikit_config(tmp_path: Path) -> MonolikitConfig:
    """Configuration without any version source."""
    return MonolikitConfig(root_template="index.html.j2", asset_url=None, public_dir=tmp_path)


@pytest.fixture
def monolikit_plugin(monolikit_config: MonolikitConfig) -> MonolikitPlugin:
    return MonolikitPlugin(config=monolikit_config)
