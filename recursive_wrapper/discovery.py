from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Protocol

from recursive_wrapper.errors import ConfigurationError


class IncludedBuildHandle(Protocol):
    name: str
    project_dir: Path


class BuildRegistry(Protocol):
    @property
    def included_builds(self) -> Iterable[IncludedBuildHandle]:
        ...


@dataclass(frozen=True)
class BuildNode:
    """One build of the inclusion tree, as seen by the current process.

    `included_builds` only holds what this process knows about; the children of an
    included build are discovered by the child process itself.
    """

    name: str
    root_dir: Path
    included_builds: tuple["BuildNode", ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigurationError("Included build name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())
        root_dir = Path(self.root_dir)
        if not root_dir.is_absolute():
            raise ConfigurationError(f"Included build directory must be absolute: {root_dir}")
        object.__setattr__(self, "root_dir", root_dir)


def discover_included_builds(registry: BuildRegistry) -> tuple[BuildNode, ...]:
    """Return the direct includes of the current build, in declaration order.

    Raises ConfigurationError when two includes share a leaf name, since task names
    for the included builds are derived from it.
    """

    nodes: list[BuildNode] = []
    by_name: dict[str, BuildNode] = {}
    for included in registry.included_builds:
        node = BuildNode(name=included.name, root_dir=Path(included.project_dir).resolve())
        existing = by_name.get(node.name)
        if existing is not None:
            raise ConfigurationError(
                f"Included build {node.root_dir} has build name '{node.name}' "
                f"which is the same as included build {existing.root_dir}"
            )
        by_name[node.name] = node
        nodes.append(node)
    return tuple(nodes)


def build_tree(registry: BuildRegistry, *, name: str, root_dir: Path) -> BuildNode:
    """The current build with its direct includes; deeper levels are found by the child processes."""
    return BuildNode(
        name=name,
        root_dir=Path(root_dir).resolve(),
        included_builds=discover_included_builds(registry),
    )
