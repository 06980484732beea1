from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path

from taskkit import Task

from recursive_wrapper.constants import WRAPPER_TASK_PATH
from recursive_wrapper.errors import ChildBuildError
from recursive_wrapper.parameters import WrapperParameterSet

logger = logging.getLogger(__name__)

POSIX_LAUNCHER = "./gradlew"
WINDOWS_LAUNCHER = ".\\gradlew.bat"


def launcher_for(os_name: str | None = None) -> str:
    """Launcher script name relative to a build directory, for `os.name` (or the given value)."""
    name = os.name if os_name is None else os_name
    return WINDOWS_LAUNCHER if name == "nt" else POSIX_LAUNCHER


def child_command_line(parameters: WrapperParameterSet, *, os_name: str | None = None) -> tuple[str, ...]:
    return (launcher_for(os_name), WRAPPER_TASK_PATH, *parameters.arguments)


class IncludedBuildWrapperTask(Task):
    """Runs the wrapper update of one included build in its own process."""

    description = "Updates the wrapper of an included build."

    def __init__(self, name: str, owner: object = None) -> None:
        super().__init__(name, owner)
        self.build_name: str | None = None
        self.working_dir: Path | None = None
        self.command_line: tuple[str, ...] = ()

    def run(self) -> int:
        if self.working_dir is None or self.build_name is None:
            raise ValueError(f"Task {self.path} has no included build configured")
        if not self.command_line:
            raise ValueError(f"Task {self.path} has no command line; the wrapper task was not requested")

        launcher, *arguments = self.command_line
        # Relative launchers are resolved against the working directory on every platform.
        executable = self.working_dir / Path(launcher.replace("\\", "/"))

        logger.info("Starting wrapper update in %s: %s", self.working_dir, shlex.join(self.command_line))
        try:
            completed = subprocess.run([str(executable), *arguments], cwd=self.working_dir, check=False)
        except OSError as exc:
            raise ChildBuildError(
                self.build_name,
                self.working_dir,
                exit_code=None,
                reason=f"could not start {executable}: {exc}",
            ) from exc

        if completed.returncode != 0:
            raise ChildBuildError(self.build_name, self.working_dir, exit_code=completed.returncode)

        logger.info("Wrapper update finished in %s", self.working_dir)
        return completed.returncode
