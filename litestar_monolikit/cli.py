from typing import TYPE_CHECKING

from click import group, option
from litestar.cli._utils import LitestarGroup

if TYPE_CHECKING:
    from litestar import Litestar
    from rich.table import Table

    from litestar_monolikit.version import VersionInfo


@group(cls=LitestarGroup, name="monolikit")
def monolikit_group() -> None:
    """Manage Monolikit protocol settings."""


def get_version_info(app: "Litestar") -> "VersionInfo":
    """Resolve the asset version for an application.

    Args:
        app: The application. Its ``MonolikitPlugin`` configuration is used when registered.

    Returns:
        The resolved version and the source it came from.
    """
    from litestar_monolikit.config import MonolikitConfig
    from litestar_monolikit.version import resolve_version

    try:
        config = app.plugins.get("MonolikitPlugin").config
    except KeyError:
        config = MonolikitConfig()
    return resolve_version(config, app)


def version_table(info: "VersionInfo") -> "Table":
    from rich.table import Table

    table = Table(show_header=False, box=None)
    table.add_row("Version", info.token or "[dim]none[/]")
    table.add_row("Source", info.source)
    return table


@monolikit_group.command(  # type: ignore # noqa: PGH003
    name="version",
    help="Show the asset version sent to the client router.",
)
@option("--verbose", type=bool, help="Enable verbose output.", default=False, is_flag=True)
def monolikit_version(app: "Litestar", verbose: bool) -> None:
    """Print the resolved asset version."""
    from litestar.cli._utils import console

    if verbose:
        app.debug = True
    console.rule("[yellow]Resolving asset version[/]", align="left")
    info = get_version_info(app)
    console.print(version_table(info))
    if info.token is None:
        console.print("[bold yellow]No version source found. Version checks are disabled.[/]")
