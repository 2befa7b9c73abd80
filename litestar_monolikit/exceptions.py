"""Litestar-Monolikit exception classes."""

__all__ = [
    "HookInjectionError",
    "LitestarMonolikitError",
    "ManifestReadError",
]


class LitestarMonolikitError(Exception):
    """Base exception for Litestar-Monolikit related errors."""


class HookInjectionError(LitestarMonolikitError):
    """Raised when a middleware hook asks for a parameter that cannot be provided."""

    def __init__(self, hook_name: str, parameter: str) -> None:
        super().__init__(
            f"Unable to resolve parameter {parameter!r} for hook {hook_name!r}. "
            "Give the parameter a default value or use one of the injectable names."
        )
        self.hook_name = hook_name
        self.parameter = parameter


class ManifestReadError(LitestarMonolikitError):
    """Raised when a manifest file exists but cannot be read."""

    def __init__(self, manifest_path: str) -> None:
        super().__init__(f"Unable to read the asset manifest at {manifest_path!r}.")
