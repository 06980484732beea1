"""Execution graph for tasks held in a TaskContainer.

This module is intentionally app-agnostic and must not import `recursive_wrapper.*`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Protocol

from .tasks import Task, TaskContainer


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class TaskRecorder(Protocol):
    def on_task_start(self, graph: "TaskExecutionGraph", path: str, **metrics: Any) -> None:
        ...

    def on_task_end(self, graph: "TaskExecutionGraph", record: dict[str, Any]) -> None:
        ...

    def on_task_error(self, graph: "TaskExecutionGraph", path: str, exc: Exception) -> None:
        ...


class DefaultTaskRecorder:
    def on_task_start(self, graph: "TaskExecutionGraph", path: str, **metrics: Any) -> None:
        tokens: list[str] = []
        task_type = metrics.get("task_type")
        if isinstance(task_type, str) and task_type.strip():
            tokens.append(f"type={task_type.strip()}")
        description = metrics.get("description")
        if isinstance(description, str) and description.strip():
            tokens.append(f"doc={description.strip()!r}")
        if tokens:
            graph.logger.info("> Task %s (%s)", path, ", ".join(tokens))
        else:
            graph.logger.info("> Task %s", path)

    def on_task_end(self, graph: "TaskExecutionGraph", record: dict[str, Any]) -> None:
        graph.records.append(record)
        graph.logger.debug("Completed task %s", record.get("path", "<unknown>"))

    def on_task_error(self, graph: "TaskExecutionGraph", path: str, exc: Exception) -> None:
        graph.logger.error("Execution failed for task '%s'. (%s)", path, exc)


class NullTaskRecorder:
    def on_task_start(self, graph: "TaskExecutionGraph", path: str, **metrics: Any) -> None:
        return

    def on_task_end(self, graph: "TaskExecutionGraph", record: dict[str, Any]) -> None:
        graph.records.append(record)

    def on_task_error(self, graph: "TaskExecutionGraph", path: str, exc: Exception) -> None:
        return


class TaskExecutionGraph:
    """Dependency-ordered plan of the tasks requested for one invocation.

    Lifecycle: `populate` resolves requested tasks and their dependencies, `ready`
    fires the `when_ready` callbacks exactly once, and `execute` runs every task in
    order, stopping at the first failure.
    """

    def __init__(
        self,
        container: TaskContainer,
        *,
        logger: logging.Logger | None = None,
        recorder: TaskRecorder | None = None,
    ) -> None:
        self._container = container
        self.logger = logger or logging.getLogger(__name__)
        self._recorder = recorder or DefaultTaskRecorder()
        self._validate_recorder(self._recorder)
        self._ordered: list[Task] = []
        self._callbacks: list[Callable[["TaskExecutionGraph"], Any]] = []
        self._populated = False
        self._ready = False
        self.records: list[dict[str, Any]] = []

    @property
    def all_tasks(self) -> tuple[Task, ...]:
        return tuple(self._ordered)

    def has_task(self, path: str) -> bool:
        if not self._populated:
            raise RuntimeError("Task graph has not been populated yet")
        return any(task.path == path for task in self._ordered)

    def when_ready(self, callback: Callable[["TaskExecutionGraph"], Any]) -> None:
        if not callable(callback):
            raise TypeError(f"Graph callback must be callable (type={type(callback).__name__})")
        if self._ready:
            callback(self)
            return
        self._callbacks.append(callback)

    def populate(self, requested: Iterable[str]) -> None:
        if self._populated:
            raise RuntimeError("Task graph has already been populated")

        ordered: list[Task] = []
        done: set[int] = set()
        visiting: list[Task] = []

        def visit(task: Task) -> None:
            if id(task) in done:
                return
            if any(task is seen for seen in visiting):
                cycle = " -> ".join(t.path for t in [*visiting, task])
                raise ValueError(f"Circular dependency between the following tasks: {cycle}")
            visiting.append(task)
            for dependency in task.dependencies:
                visit(self._container.resolve(dependency))
            visiting.pop()
            done.add(id(task))
            ordered.append(task)

        for name in requested:
            visit(self._container.named(name).get())

        self._ordered = ordered
        self._populated = True

    def ready(self) -> None:
        if not self._populated:
            raise RuntimeError("Task graph has not been populated yet")
        if self._ready:
            return
        self._ready = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)

    def execute(self) -> list[dict[str, Any]]:
        if not self._ready:
            self.ready()

        for task in self._ordered:
            self._execute_task(task)
        return list(self.records)

    def _execute_task(self, task: Task) -> None:
        path = task.path
        try:
            self._recorder.on_task_start(
                self,
                path,
                task_type=type(task).__name__,
                description=task.description,
            )
            result = task.run()
            record: dict[str, Any] = {
                "type": type(task).__name__,
                "path": path,
                "created_at": utc_now_iso8601(),
            }
            if result is not None:
                record["result"] = result
            self._recorder.on_task_end(self, record)
        except Exception as exc:
            try:
                self._recorder.on_task_error(self, path, exc)
            except Exception:
                self.logger.exception("Task recorder failed during error handling for %s", path)
            if not hasattr(exc, "task_path"):
                try:
                    setattr(exc, "task_path", path)
                except Exception:
                    pass
            raise

    def _validate_recorder(self, recorder: TaskRecorder) -> None:
        required = ("on_task_start", "on_task_end", "on_task_error")
        for name in required:
            method = getattr(recorder, name, None)
            if method is None or not callable(method):
                raise TypeError(f"Task recorder missing required method: {name}")
