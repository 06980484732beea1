"""Materialize the wrapper files an included build needs before it can be updated."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from taskkit import Task

from recursive_wrapper.errors import BootstrapError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WrapperFileSet:
    posix_launcher: PurePosixPath = PurePosixPath("gradlew")
    windows_launcher: PurePosixPath = PurePosixPath("gradlew.bat")
    loader_artifact: PurePosixPath = PurePosixPath("gradle/wrapper/gradle-wrapper.jar")
    properties_file: PurePosixPath = PurePosixPath("gradle/wrapper/gradle-wrapper.properties")

    def __post_init__(self) -> None:
        for name in ("posix_launcher", "windows_launcher", "loader_artifact", "properties_file"):
            value = PurePosixPath(getattr(self, name))
            if value.is_absolute() or ".." in value.parts:
                raise ValueError(f"WrapperFileSet.{name} must be a relative path inside the build: {value}")
            object.__setattr__(self, name, value)

    def members(self) -> tuple[PurePosixPath, ...]:
        return (self.posix_launcher, self.windows_launcher, self.loader_artifact, self.properties_file)


GRADLE_WRAPPER_FILES = WrapperFileSet()


def bootstrap_wrapper(
    source_dir: Path,
    target_dir: Path,
    *,
    files: WrapperFileSet = GRADLE_WRAPPER_FILES,
) -> list[Path]:
    """
    Copy every wrapper file missing from `target_dir` out of `source_dir`.

    Existing files are never overwritten, so an included build that customized its
    wrapper keeps it. Returns the paths that were created; running this again on the
    same target returns an empty list.

    Raises:
        BootstrapError: if the source lacks a file the target needs, or a copy fails.
    """

    source_dir = Path(source_dir)
    target_dir = Path(target_dir)
    copied: list[Path] = []

    for member in files.members():
        target = target_dir.joinpath(*member.parts)
        if target.exists():
            logger.debug("Keeping existing wrapper file %s", target)
            continue

        source = source_dir.joinpath(*member.parts)
        if not source.is_file():
            raise BootstrapError(
                f"Cannot bootstrap wrapper in {target_dir}: source wrapper file {source} does not exist",
                path=source,
            )

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as exc:
            raise BootstrapError(f"Failed to copy {source} to {target}: {exc}", path=target) from exc

        logger.info("Bootstrapped %s from %s", target, source)
        copied.append(target)

    return copied


class WrapperBootstrapTask(Task):
    description = "Copies missing wrapper files into an included build."

    def __init__(self, name: str, owner: object = None) -> None:
        super().__init__(name, owner)
        self.source_dir: Path | None = None
        self.included_build_dir: Path | None = None
        self.files: WrapperFileSet = GRADLE_WRAPPER_FILES

    def run(self) -> list[str]:
        if self.source_dir is None or self.included_build_dir is None:
            raise ValueError(f"Task {self.path} is missing its source or included build directory")
        copied = bootstrap_wrapper(self.source_dir, self.included_build_dir, files=self.files)
        return [str(path) for path in copied]
