"""Litestar-Monolikit Configuration.

Example usage::

    # Defaults: root template "index.html", manifests under "public/"
    MonolikitPlugin(config=MonolikitConfig())

    # Custom root template and static asset base
    MonolikitPlugin(config=MonolikitConfig(root_template="app.html.j2", asset_url="https://cdn.example.com/"))

    # Custom middleware with share/before_handle hooks
    MonolikitPlugin(config=MonolikitConfig(middleware_class=AppMiddleware))
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

logger = logging.getLogger("litestar_monolikit")

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar import Request

    from litestar_monolikit.middleware import MonolikitMiddleware
    from litestar_monolikit.properties import PropertiesResolver

__all__ = ("MonolikitConfig",)


def _empty_dict_factory() -> "dict[str, Any]":
    return {}


def _default_properties_resolver() -> "Callable[[Request[Any, Any, Any]], PropertiesResolver]":
    from litestar_monolikit.properties import LazyPropertiesResolver

    return LazyPropertiesResolver


def _default_middleware_class() -> "type[MonolikitMiddleware]":
    from litestar_monolikit.middleware import MonolikitMiddleware

    return MonolikitMiddleware


@dataclass
class MonolikitConfig:
    """Configuration for the Monolikit protocol.

    Attributes:
        root_template: Name of the root view template rendered on full page loads.
        component_opt_keys: Route handler opt keys holding the component name.
        asset_url: Explicit asset base URL used as the version source.
        public_dir: Directory holding the build manifests.
        build_manifest: Build manifest path, relative to ``public_dir``.
        legacy_manifest: Legacy manifest path, relative to ``public_dir``.
        use_vite_version: Use a registered ``VitePlugin`` as the first version source.
        share_validation_errors: Share the resolved validation errors on every request.
        share_flash_notifications: Share flash notifications on every request.
        errors_key: Shared data key for validation errors.
        flash_key: Shared data key for flash notifications.
        properties_resolver: Factory building the properties resolver for a request.
        middleware_class: The protocol middleware installed by the plugin.
        redirect_unauthorized_to: Path where unauthorized protocol requests redirect.
        extra_static_page_props: Values shared with every page payload.
    """

    root_template: str = "index.html"
    """Name of the root template to use.

    This must be a path that is found by the application template config.
    """
    component_opt_keys: "tuple[str, ...]" = ("component", "view")
    """Identifiers to use on routes to get the component to render.

    The first key found in the route handler opts will be used::

        @get("/", component="Home")
        @get("/", view="Home")
    """
    asset_url: "str | None" = field(default_factory=lambda: os.getenv("ASSET_URL") or None)
    """Base URL assets are served from. When set, its hash is the asset version."""
    public_dir: Path = field(default_factory=lambda: Path("public"))
    """Directory holding the build manifests."""
    build_manifest: str = "build/manifest.json"
    """Build manifest location, relative to ``public_dir``."""
    legacy_manifest: str = "mix-manifest.json"
    """Legacy manifest location, relative to ``public_dir``."""
    use_vite_version: bool = True
    """Prefer the version reported by a registered ``VitePlugin`` asset loader."""
    share_validation_errors: bool = True
    """Share the validation error bags with every page payload."""
    share_flash_notifications: bool = True
    """Share flash notifications with every page payload."""
    errors_key: str = "errors"
    """Shared data key holding validation errors."""
    flash_key: str = "flash"
    """Shared data key holding flash notifications."""
    properties_resolver: "Callable[[Request[Any, Any, Any]], PropertiesResolver]" = field(
        default_factory=_default_properties_resolver
    )
    """Factory returning the properties resolver used for a request."""
    middleware_class: "type[MonolikitMiddleware]" = field(default_factory=_default_middleware_class)
    """The protocol middleware. Subclass :class:`MonolikitMiddleware` to add hooks."""
    redirect_unauthorized_to: "str | None" = None
    """Optionally supply a path where unauthorized requests should redirect."""
    extra_static_page_props: "dict[str, Any]" = field(default_factory=_empty_dict_factory)
    """A dictionary of values to automatically add in to the shared data of every response."""

    def __post_init__(self) -> None:
        """Normalize path settings."""
        if isinstance(self.public_dir, str):
            self.public_dir = Path(self.public_dir)

    @property
    def build_manifest_path(self) -> Path:
        """Return the build manifest path.

        Returns:
            The build manifest path.
        """
        return self.public_dir / self.build_manifest

    @property
    def legacy_manifest_path(self) -> Path:
        """Return the legacy manifest path.

        Returns:
            The legacy manifest path.
        """
        return self.public_dir / self.legacy_manifest
