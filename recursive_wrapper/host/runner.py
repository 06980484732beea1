"""Run one build invocation: configure, plan, execute, clean up."""

from __future__ import annotations

import logging
import runpy
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path

from taskkit import PluginRegistry, TaskExecutionGraph, UnknownTaskError

from recursive_wrapper.config import RecursiveWrapperConfig
from recursive_wrapper.constants import WRAPPER_TASK_NAME
from recursive_wrapper.host.model import Build, BuildError, Project, StartParameter
from recursive_wrapper.host.settings import declared_plugins, load_settings
from recursive_wrapper.host.wrapper_task import WrapperTask


class BuildFailure(Exception):
    def __init__(self, message: str, *, task_path: str | None = None) -> None:
        super().__init__(message)
        self.task_path = task_path


@dataclass
class BuildResult:
    success: bool
    executed_tasks: list[str] = field(default_factory=list)
    failure: BaseException | None = None


def _register_builtin_tasks(project: Project, config: RecursiveWrapperConfig) -> None:
    def configure(task: WrapperTask) -> None:
        task.project_dir = project.project_dir
        task.apply_defaults(config.wrapper)
        task.apply_options(dict(project.build.start_parameter.task_options))

    project.tasks.register(WRAPPER_TASK_NAME, WrapperTask, configure=configure)


def _apply_init_script(build: Build, script: Path) -> None:
    if not script.is_file():
        raise BuildError(f"The specified initialization script '{script}' does not exist.")
    namespace = runpy.run_path(str(script), run_name="__recursive_wrapper_init__")
    init = namespace.get("init")
    if not callable(init):
        raise BuildError(f"Initialization script {script} does not define init(build)")
    init(build)


def configure_build(build: Build, config: RecursiveWrapperConfig) -> Project:
    start_parameter = build.start_parameter
    project_dir = start_parameter.project_dir

    build.configure_root_project(lambda project: _register_builtin_tasks(project, config))
    for script in start_parameter.init_scripts:
        _apply_init_script(build, script)

    project = build.create_root_project(project_dir.name, project_dir)
    project.buildscript.resolve()

    for plugin_id in declared_plugins(project_dir):
        project.apply_plugin(plugin_id)
    project.mark_evaluated()
    return project


def run_build(
    start_parameter: StartParameter,
    *,
    config: RecursiveWrapperConfig,
    plugins: PluginRegistry,
    logger: logging.Logger | None = None,
) -> BuildResult:
    """
    Configure and execute the requested tasks of the build in `start_parameter.project_dir`.

    Failures are reported through the returned BuildResult. Everything registered on
    the build's resource scope is released before this returns.
    """

    logger = logger or logging.getLogger(__name__)
    result = BuildResult(success=False)
    build: Build | None = None

    with ExitStack() as resources:
        try:
            settings = load_settings(start_parameter.project_dir)
            build = Build(
                start_parameter,
                plugins=plugins,
                resources=resources,
                included_builds=settings.included_builds,
                plugin_index_url=config.plugin.index_url,
                logger=logger,
            )
            for included in settings.included_builds:
                logger.debug("Included build %s (%s) at %s", included.name, included.kind, included.project_dir)

            project = configure_build(build, config)
            if not start_parameter.task_names:
                logger.info("No tasks requested. Available tasks: %s", ", ".join(project.tasks.names()))
                result.success = True
                return result

            graph = _task_graph(build)
            graph.populate(start_parameter.task_names)
            graph.ready()
            graph.execute()
            result.success = True
        except UnknownTaskError as exc:
            result.failure = BuildFailure(str(exc))
        except Exception as exc:
            task_path = getattr(exc, "task_path", None)
            if task_path is not None:
                failure = BuildFailure(f"Execution failed for task '{task_path}'.", task_path=task_path)
            else:
                failure = BuildFailure(f"A problem occurred configuring the build: {exc}")
            failure.__cause__ = exc
            result.failure = failure
        finally:
            if build is not None and build.task_graph is not None:
                result.executed_tasks = [record["path"] for record in build.task_graph.records]

    return result


def _task_graph(build: Build) -> TaskExecutionGraph:
    if build.task_graph is None:
        raise BuildError("The task graph is only available once the root project exists")
    return build.task_graph
