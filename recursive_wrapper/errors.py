from __future__ import annotations

from pathlib import Path


class RecursiveWrapperError(Exception):
    """Base class for every failure raised by the recursive wrapper update."""


class ConfigurationError(RecursiveWrapperError, ValueError):
    """The build is set up in a way the recursive update cannot work with."""


class BootstrapError(RecursiveWrapperError, OSError):
    """Wrapper files could not be copied into an included build."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return str(self.args[0])


class InitScriptError(RecursiveWrapperError, OSError):
    """The temporary init script handed to spawned builds could not be written."""

    def __str__(self) -> str:
        return str(self.args[0])


class ChildBuildError(RecursiveWrapperError):
    def __init__(
        self,
        build_name: str,
        build_dir: Path,
        *,
        exit_code: int | None,
        reason: str | None = None,
    ) -> None:
        self.build_name = build_name
        self.build_dir = build_dir
        self.exit_code = exit_code
        if reason is None:
            reason = f"exit code {exit_code}"
        super().__init__(
            f"Wrapper update failed in included build '{build_name}' ({build_dir}): {reason}"
        )
