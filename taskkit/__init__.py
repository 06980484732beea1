"""Reusable task kernel (task container, execution graph, plugin registry).

This package is intentionally independent of `recursive_wrapper.*`. Any host-specific
conventions (task naming, wrapper semantics, process spawning) must live in the
consuming application.
"""

from taskkit.graph import (
    DefaultTaskRecorder,
    NullTaskRecorder,
    TaskExecutionGraph,
    TaskRecorder,
    utc_now_iso8601,
)
from taskkit.registry import PluginRef, PluginRegistry
from taskkit.tasks import Task, TaskContainer, TaskProvider, UnknownTaskError

__all__ = [
    "DefaultTaskRecorder",
    "NullTaskRecorder",
    "PluginRef",
    "PluginRegistry",
    "Task",
    "TaskContainer",
    "TaskExecutionGraph",
    "TaskProvider",
    "TaskRecorder",
    "UnknownTaskError",
    "utc_now_iso8601",
]
