"""Minimal build host: reads settings, applies plugins, runs the requested tasks."""

from recursive_wrapper.host.model import (
    Build,
    BuildError,
    Buildscript,
    IncludedBuild,
    Project,
    StartParameter,
)
from recursive_wrapper.host.runner import BuildFailure, BuildResult, configure_build, run_build
from recursive_wrapper.host.settings import Settings, declared_plugins, load_settings
from recursive_wrapper.host.wrapper_task import WrapperTask, distribution_url_for, pinned_gradle_version

__all__ = [
    "Build",
    "BuildError",
    "BuildFailure",
    "BuildResult",
    "Buildscript",
    "IncludedBuild",
    "Project",
    "Settings",
    "StartParameter",
    "WrapperTask",
    "configure_build",
    "declared_plugins",
    "distribution_url_for",
    "load_settings",
    "pinned_gradle_version",
    "run_build",
]
