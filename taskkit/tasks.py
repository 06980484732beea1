"""Named tasks, lazy providers and the container that owns them.

This module is intentionally app-agnostic and must not import `recursive_wrapper.*`.
"""

from __future__ import annotations

import difflib
from typing import Any, Callable, Generic, TypeVar

TaskT = TypeVar("TaskT", bound="Task")


class UnknownTaskError(KeyError):
    def __init__(self, name: str, suggestions: tuple[str, ...] = ()) -> None:
        self.name = name
        self.suggestions = suggestions
        message = f"Task '{name}' not found"
        if suggestions:
            message += f" (did you mean: {', '.join(suggestions)}?)"
        super().__init__(message)

    def __str__(self) -> str:
        return str(self.args[0])


class Task:
    """A unit of work with dependency edges on other tasks.

    Subclasses override `run`. Dependencies may be given as task names, providers
    or realized tasks; they are resolved against the owning container when the
    execution graph is populated.
    """

    description: str | None = None

    def __init__(self, name: str, owner: Any = None) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Task name must be a non-empty string")
        self.name = name.strip()
        self.owner = owner
        self._depends_on: list[Any] = []

    @property
    def path(self) -> str:
        return f":{self.name}"

    @property
    def dependencies(self) -> tuple[Any, ...]:
        return tuple(self._depends_on)

    def depends_on(self, *dependencies: Any) -> None:
        for dependency in dependencies:
            if isinstance(dependency, (list, tuple)):
                self.depends_on(*dependency)
                continue
            if not isinstance(dependency, (str, Task, TaskProvider)):
                raise TypeError(
                    f"Task {self.path} dependency must be a name, provider or task "
                    f"(type={type(dependency).__name__})"
                )
            self._depends_on.append(dependency)

    def run(self) -> Any:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path})"


class TaskProvider(Generic[TaskT]):
    """Lazy handle on a registered task.

    Configuration actions registered before realization are queued and applied in
    registration order; actions registered afterwards are applied immediately.
    """

    def __init__(
        self,
        container: "TaskContainer",
        name: str,
        task_type: type[TaskT],
    ) -> None:
        self._container = container
        self.name = name
        self.task_type = task_type
        self._pending: list[Callable[[TaskT], Any]] = []
        self._task: TaskT | None = None

    @property
    def path(self) -> str:
        return f":{self.name}"

    @property
    def is_realized(self) -> bool:
        return self._task is not None

    def configure(self, action: Callable[[TaskT], Any]) -> "TaskProvider[TaskT]":
        if not callable(action):
            raise TypeError(f"Configure action must be callable (type={type(action).__name__})")
        if self._task is not None:
            action(self._task)
        else:
            self._pending.append(action)
        return self

    def get(self) -> TaskT:
        if self._task is None:
            task = self.task_type(self.name, self._container.owner)
            self._task = task
            pending, self._pending = self._pending, []
            for action in pending:
                action(task)
        return self._task

    def __repr__(self) -> str:
        return f"TaskProvider({self.path}, type={self.task_type.__name__})"


class TaskContainer:
    def __init__(self, owner: Any = None) -> None:
        self.owner = owner
        self._providers: dict[str, TaskProvider[Any]] = {}

    def register(
        self,
        name: str,
        task_type: type[TaskT],
        configure: Callable[[TaskT], Any] | None = None,
    ) -> TaskProvider[TaskT]:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Task name must be a non-empty string")
        key = name.strip()
        if key in self._providers:
            raise ValueError(
                f"Cannot add task '{key}' as a task with that name already exists."
            )
        if not (isinstance(task_type, type) and issubclass(task_type, Task)):
            raise TypeError(f"Task type must be a Task subclass (got {task_type!r})")

        provider: TaskProvider[TaskT] = TaskProvider(self, key, task_type)
        if configure is not None:
            provider.configure(configure)
        self._providers[key] = provider
        return provider

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._providers))

    def named(self, name: str) -> TaskProvider[Any]:
        key = (name or "").strip().lstrip(":")
        provider = self._providers.get(key)
        if provider is None:
            raise UnknownTaskError(key, self.suggest(key))
        return provider

    def suggest(self, name: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (name or "").strip()
        if not key:
            return ()
        return tuple(difflib.get_close_matches(key, list(self._providers), n=limit))

    def resolve(self, reference: Any) -> Task:
        if isinstance(reference, Task):
            return reference
        if isinstance(reference, TaskProvider):
            return reference.get()
        if isinstance(reference, str):
            return self.named(reference).get()
        raise TypeError(f"Cannot resolve task reference of type {type(reference).__name__}")
