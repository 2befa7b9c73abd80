import inspect
from collections.abc import Callable
from pathlib import Path
from typing import Any, cast

import pytest
from click import Group
from litestar import Litestar

from litestar_monolikit import MonolikitConfig, MonolikitPlugin
from litestar_monolikit.cli import get_version_info, monolikit_group, monolikit_version
from litestar_monolikit.version import hash_string


def _unwrap_command(command: object) -> Callable[..., Any]:
    callback = getattr(command, "callback")
    return cast("Callable[..., Any]", inspect.unwrap(callback))


def test_plugin_registers_cli_group() -> None:
    cli = Group(name="litestar")
    MonolikitPlugin().on_cli_init(cli)

    assert cli.commands["monolikit"] is monolikit_group
    assert "version" in monolikit_group.commands


def test_get_version_info_uses_plugin_config(tmp_path: Path, session_middleware: Any) -> None:
    config = MonolikitConfig(asset_url="https://cdn.example.com/", public_dir=tmp_path)
    app = Litestar(plugins=[MonolikitPlugin(config=config)], middleware=[session_middleware])

    info = get_version_info(app)

    assert info.token == hash_string("https://cdn.example.com/")
    assert info.source == "asset_url"


def test_get_version_info_without_plugin() -> None:
    info = get_version_info(Litestar())

    assert info.source in {"none", "manifest", "legacy_manifest"}


def test_version_command_prints_token(
    tmp_path: Path, session_middleware: Any, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "mix-manifest.json").write_bytes(b"{}")
    config = MonolikitConfig(asset_url=None, public_dir=tmp_path)
    app = Litestar(plugins=[MonolikitPlugin(config=config)], middleware=[session_middleware])

    _unwrap_command(monolikit_version)(app=app, verbose=False)

    output = capsys.readouterr().out
    assert hash_string("{}") in output
    assert "legacy_manifest" in output


def test_version_command_without_source(
    tmp_path: Path, session_middleware: Any, capsys: pytest.CaptureFixture[str]
) -> None:
    config = MonolikitConfig(asset_url=None, public_dir=tmp_path)
    app = Litestar(plugins=[MonolikitPlugin(config=config)], middleware=[session_middleware])

    _unwrap_command(monolikit_version)(app=app, verbose=True)

    output = capsys.readouterr().out
    assert "Version checks are disabled" in output
    assert app.debug is True
