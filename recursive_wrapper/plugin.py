"""Plugin that carries a root `wrapper` task into every included build.

Applying the plugin registers, per included build, a bootstrap task and a task that
runs the included build's own `wrapper` task in a separate process. The root
`wrapper` task depends on all of them. Once the task graph is ready, and only if
`:wrapper` was requested, the root wrapper settings are turned into one shared
command line and an init script that applies this plugin in the spawned builds.
"""

from __future__ import annotations

import logging
import shlex
from typing import Any

from taskkit import PluginRef, TaskExecutionGraph, TaskProvider

from recursive_wrapper.bootstrap import WrapperBootstrapTask
from recursive_wrapper.constants import PLUGIN_ID, WRAPPER_TASK_NAME, WRAPPER_TASK_PATH
from recursive_wrapper.discovery import BuildNode, build_tree
from recursive_wrapper.errors import ConfigurationError
from recursive_wrapper.init_script import format_init_script, init_script_file
from recursive_wrapper.invoker import IncludedBuildWrapperTask, child_command_line
from recursive_wrapper.parameters import is_testing, synthesize_parameters

logger = logging.getLogger(__name__)


def bootstrap_task_name(node: BuildNode) -> str:
    return f"bootstrapWrapper{node.name}"


def wrapper_task_name(node: BuildNode) -> str:
    return f"{WRAPPER_TASK_NAME}{node.name}"


class RecursiveWrapperPlugin:
    def __init__(self, *, os_name: str | None = None) -> None:
        self._os_name = os_name

    def apply(self, project: Any) -> None:
        if project.parent is not None:
            raise ConfigurationError("This plugin can only be applied on the root project")

        build = project.build
        tasks = project.tasks
        root = build_tree(build, name=project.name or str(project.project_dir), root_dir=project.project_dir)
        nodes = root.included_builds

        bootstraps: list[TaskProvider[WrapperBootstrapTask]] = []
        for node in nodes:
            bootstraps.append(
                tasks.register(
                    bootstrap_task_name(node),
                    WrapperBootstrapTask,
                    configure=lambda task, node=node: _configure_bootstrap(task, project, node),
                )
            )

        # Every bootstrap precedes every spawn, so a copy failure aborts before any process starts.
        execs: list[TaskProvider[IncludedBuildWrapperTask]] = []
        for node in nodes:
            execs.append(
                tasks.register(
                    wrapper_task_name(node),
                    IncludedBuildWrapperTask,
                    configure=lambda task, node=node: _configure_exec(task, node, bootstraps),
                )
            )

        tasks.named(WRAPPER_TASK_NAME).configure(lambda wrapper: wrapper.depends_on(*execs))

        if nodes:
            logger.debug(
                "Recursive wrapper registered for included builds: %s",
                ", ".join(node.name for node in nodes),
            )

        build.task_graph.when_ready(lambda graph: self._when_ready(project, graph, execs))

    def _when_ready(
        self,
        project: Any,
        graph: TaskExecutionGraph,
        execs: list[TaskProvider[IncludedBuildWrapperTask]],
    ) -> None:
        if not graph.has_task(WRAPPER_TASK_PATH):
            return
        if not execs:
            return

        build = project.build
        start_parameter = build.start_parameter
        wrapper = project.tasks.named(WRAPPER_TASK_NAME).get()

        script = format_init_script(testing=is_testing(start_parameter))
        script_path = build.resources.enter_context(init_script_file(script))

        parameters = synthesize_parameters(wrapper, start_parameter, init_script=script_path)
        command_line = child_command_line(parameters, os_name=self._os_name)
        logger.info("Included builds will run: %s", shlex.join(command_line))

        for provider in execs:
            provider.configure(lambda task: setattr(task, "command_line", command_line))


def _configure_bootstrap(task: WrapperBootstrapTask, project: Any, node: BuildNode) -> None:
    task.source_dir = project.project_dir
    task.included_build_dir = node.root_dir


def _configure_exec(
    task: IncludedBuildWrapperTask,
    node: BuildNode,
    bootstraps: list[TaskProvider[WrapperBootstrapTask]],
) -> None:
    task.build_name = node.name
    task.working_dir = node.root_dir
    task.depends_on(*bootstraps)


def plugin_ref() -> PluginRef:
    return PluginRef(
        id=PLUGIN_ID,
        apply=lambda project: RecursiveWrapperPlugin().apply(project),
        doc="Runs the root wrapper task in every included build, recursively.",
        source=f"{__name__}.RecursiveWrapperPlugin",
    )
