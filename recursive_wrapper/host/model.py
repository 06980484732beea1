"""Objects a plugin sees while a build is configured: build, project, buildscript."""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from importlib import metadata
from pathlib import Path
from typing import Any, Callable, Literal, Mapping

from taskkit import PluginRegistry, TaskContainer, TaskExecutionGraph

from recursive_wrapper.constants import DEFAULT_PLUGIN_INDEX_URL

ShowStacktrace = Literal["internal_exceptions", "always", "always_full"]
DependencyVerificationMode = Literal["strict", "lenient", "off"]
IncludeKind = Literal["direct", "plugin_management"]

SHOW_STACKTRACE_MODES: tuple[str, ...] = ("internal_exceptions", "always", "always_full")
DEPENDENCY_VERIFICATION_MODES: tuple[str, ...] = ("strict", "lenient", "off")

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """A build could not be configured."""


@dataclass(frozen=True)
class StartParameter:
    project_dir: Path
    task_names: tuple[str, ...] = ()
    init_scripts: tuple[Path, ...] = ()
    system_properties: Mapping[str, str] = field(default_factory=dict)
    show_stacktrace: ShowStacktrace = "internal_exceptions"
    dependency_verification: DependencyVerificationMode = "strict"
    daemon: bool = False
    task_options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "project_dir", Path(self.project_dir).resolve())
        object.__setattr__(self, "task_names", tuple(self.task_names))
        object.__setattr__(self, "init_scripts", tuple(Path(p) for p in self.init_scripts))
        object.__setattr__(self, "system_properties", dict(self.system_properties))
        object.__setattr__(self, "task_options", dict(self.task_options))
        if self.show_stacktrace not in SHOW_STACKTRACE_MODES:
            raise ValueError(f"Invalid stacktrace mode: {self.show_stacktrace}")
        if self.dependency_verification not in DEPENDENCY_VERIFICATION_MODES:
            raise ValueError(f"Invalid dependency verification mode: {self.dependency_verification}")


@dataclass(frozen=True)
class IncludedBuild:
    name: str
    project_dir: Path
    kind: IncludeKind = "direct"


class Repositories:
    def __init__(self, default_index_url: str = DEFAULT_PLUGIN_INDEX_URL) -> None:
        self.default_index_url = default_index_url
        self.urls: list[str] = []

    def plugin_index(self, url: str | None = None) -> None:
        url = url or self.default_index_url
        if url not in self.urls:
            self.urls.append(url)


class Dependencies:
    def __init__(self) -> None:
        self.by_configuration: dict[str, list[str]] = {}

    def add(self, configuration: str, notation: str) -> None:
        if not isinstance(notation, str) or "==" not in notation:
            raise BuildError(f"Dependency notation must look like 'name==version' (got {notation!r})")
        self.by_configuration.setdefault(configuration, []).append(notation)


class Buildscript:
    """Classpath requirements of a build script, checked against installed distributions."""

    def __init__(self, index_url: str = DEFAULT_PLUGIN_INDEX_URL) -> None:
        self.repositories = Repositories(index_url)
        self.dependencies = Dependencies()

    def resolve(self) -> list[str]:
        resolved: list[str] = []
        missing: list[str] = []
        for notation in self.dependencies.by_configuration.get("classpath", []):
            name, _, version = notation.partition("==")
            try:
                installed = metadata.version(name.strip())
            except metadata.PackageNotFoundError:
                installed = None
            if installed != version.strip():
                missing.append(notation)
                continue
            resolved.append(notation)

        if missing:
            searched = ", ".join(self.repositories.urls) or "<no repositories>"
            raise BuildError(
                "Could not resolve all dependencies for configuration 'classpath': "
                f"could not find {', '.join(missing)}. Searched in: {searched}"
            )
        return resolved


class Project:
    def __init__(self, build: "Build", name: str, project_dir: Path, parent: "Project | None" = None) -> None:
        self.build = build
        self.name = name
        self.project_dir = Path(project_dir)
        self.parent = parent
        self.tasks = TaskContainer(owner=self)
        self.buildscript = Buildscript(build.plugin_index_url)
        self.applied_plugins: list[str] = []
        self._after_evaluate: list[Callable[["Project"], Any]] = []
        self._evaluated = False

    @property
    def path(self) -> str:
        if self.parent is None:
            return ":"
        parent_path = self.parent.path.rstrip(":")
        return f"{parent_path}:{self.name}"

    def apply_plugin(self, plugin_id: str) -> None:
        if plugin_id in self.applied_plugins:
            logger.debug("Plugin %s already applied to %s", plugin_id, self.path)
            return
        ref = self.build.plugins.resolve(plugin_id)
        self.applied_plugins.append(ref.id)
        logger.debug("Applying plugin %s to project %s", ref.id, self.path)
        ref.apply(self)

    def after_evaluate(self, action: Callable[["Project"], Any]) -> None:
        if self._evaluated:
            action(self)
            return
        self._after_evaluate.append(action)

    def mark_evaluated(self) -> None:
        self._evaluated = True
        actions, self._after_evaluate = self._after_evaluate, []
        for action in actions:
            action(self)


class Build:
    """State of one build invocation, shared by the host and applied plugins.

    `resources` is closed when the invocation ends, whatever the outcome; plugins
    register temporary files and other cleanups on it.
    """

    def __init__(
        self,
        start_parameter: StartParameter,
        *,
        plugins: PluginRegistry,
        resources: ExitStack,
        included_builds: tuple[IncludedBuild, ...] = (),
        plugin_index_url: str = DEFAULT_PLUGIN_INDEX_URL,
        logger: logging.Logger | None = None,
    ) -> None:
        self.start_parameter = start_parameter
        self.plugin_index_url = plugin_index_url
        self.plugins = plugins
        self.resources = resources
        self.included_builds = included_builds
        self.parent: Build | None = None
        self._root_project: Project | None = None
        self._root_actions: list[Callable[[Project], Any]] = []
        self.task_graph: TaskExecutionGraph | None = None
        self.logger = logger or logging.getLogger(__name__)

    @property
    def root_project(self) -> Project:
        if self._root_project is None:
            raise BuildError("The root project has not been created yet")
        return self._root_project

    def configure_root_project(self, action: Callable[[Project], Any]) -> None:
        if self._root_project is not None:
            action(self._root_project)
            return
        self._root_actions.append(action)

    def create_root_project(self, name: str, project_dir: Path) -> Project:
        if self._root_project is not None:
            raise BuildError("The root project has already been created")
        project = Project(self, name, project_dir)
        self._root_project = project
        self.task_graph = TaskExecutionGraph(project.tasks, logger=self.logger)
        actions, self._root_actions = self._root_actions, []
        for action in actions:
            action(project)
        return project
