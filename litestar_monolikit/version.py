"""Asset version resolution.

The version token fingerprints the deployed frontend build. Clients send back the
token they hold; a mismatch on a GET request forces a full reload so new assets load.
"""

import hashlib
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Literal

from litestar_monolikit.config import logger
from litestar_monolikit.exceptions import ManifestReadError

if TYPE_CHECKING:
    from pathlib import Path

    from litestar import Litestar

    from litestar_monolikit.config import MonolikitConfig

__all__ = ("VersionInfo", "VersionSource", "hash_file", "hash_string", "resolve_version")

VersionSource = Literal["vite", "asset_url", "manifest", "legacy_manifest", "none"]


@dataclass(frozen=True)
class VersionInfo:
    """A resolved version token and the strategy that produced it."""

    token: "str | None"
    source: VersionSource


def hash_string(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()  # noqa: S324


@lru_cache(maxsize=32)
def _hash_file_cached(path: str, mtime_ns: int, size: int) -> str:
    with open(path, "rb") as fh:  # noqa: PTH123
        return hashlib.md5(fh.read()).hexdigest()  # noqa: S324


def hash_file(path: "Path") -> "str | None":
    """Return the md5 digest of a file, or None when it does not exist.

    Digests are cached by path, modification time and size, so an unchanged manifest
    is read once per process.

    Args:
        path: The file to hash.

    Raises:
        ManifestReadError: If the file exists but cannot be read.

    Returns:
        The hex digest, or None.
    """
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ManifestReadError(str(path)) from exc
    if not path.is_file():
        return None
    try:
        return _hash_file_cached(str(path), stat.st_mtime_ns, stat.st_size)
    except OSError as exc:
        raise ManifestReadError(str(path)) from exc


def _vite_version(app: "Litestar | None") -> "str | None":
    if app is None:
        return None
    try:
        vite_plugin = app.plugins.get("VitePlugin")
    except KeyError:
        return None
    asset_loader: Any = getattr(vite_plugin, "asset_loader", None)
    version_id = getattr(asset_loader, "version_id", None)
    return str(version_id) if version_id else None


def resolve_version(config: "MonolikitConfig", app: "Litestar | None" = None) -> VersionInfo:
    """Resolve the current asset version.

    Resolution order, first match wins:

    1. The asset loader of a registered ``VitePlugin``.
    2. The md5 of the configured asset URL.
    3. The md5 of the build manifest.
    4. The md5 of the legacy manifest.
    5. No version.

    Args:
        config: The Monolikit configuration.
        app: The application, used to find a Vite integration.

    Returns:
        The resolved version.
    """
    if config.use_vite_version and (token := _vite_version(app)) is not None:
        return VersionInfo(token=token, source="vite")
    if config.asset_url:
        return VersionInfo(token=hash_string(config.asset_url), source="asset_url")
    if (token := hash_file(config.build_manifest_path)) is not None:
        return VersionInfo(token=token, source="manifest")
    if (token := hash_file(config.legacy_manifest_path)) is not None:
        return VersionInfo(token=token, source="legacy_manifest")
    logger.debug("No asset version source found, version checks are disabled.")
    return VersionInfo(token=None, source="none")
