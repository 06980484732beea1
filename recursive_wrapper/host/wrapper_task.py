"""The host's own `wrapper` task: writes launchers, loader artifact and wrapper properties."""

from __future__ import annotations

import logging
import os
import re
import stat
import zipfile
from pathlib import Path

from taskkit import Task

from recursive_wrapper.bootstrap import GRADLE_WRAPPER_FILES, WrapperFileSet
from recursive_wrapper.config import DISTRIBUTION_TYPES, WrapperDefaults
from recursive_wrapper.constants import VERSION
from recursive_wrapper.foundation.properties import load_properties, store_properties

logger = logging.getLogger(__name__)

DISTRIBUTIONS_BASE_URL = "https://services.gradle.org/distributions"
PYTHON_ENV_VAR = "RECURSIVE_WRAPPER_PYTHON"

_PINNED_VERSION = re.compile(r"(?:^|/)gradle-(?P<version>[^/]+?)-(?P<type>bin|all)\.zip$")

POSIX_LAUNCHER_SCRIPT = f"""#!/bin/sh
# Runs the build through the recursive-wrapper host pinned in gradle/wrapper/gradle-wrapper.properties.
# Set {PYTHON_ENV_VAR} to choose the interpreter.
cd "$(dirname "$0")" || exit 1
exec "${{{PYTHON_ENV_VAR}:-python3}}" -m recursive_wrapper "$@"
"""

WINDOWS_LAUNCHER_SCRIPT = f"""@rem Runs the build through the recursive-wrapper host pinned in gradle\\wrapper\\gradle-wrapper.properties.
@rem Set {PYTHON_ENV_VAR} to choose the interpreter.
@echo off
setlocal
cd /d "%~dp0"
if "%{PYTHON_ENV_VAR}%"=="" set {PYTHON_ENV_VAR}=python
"%{PYTHON_ENV_VAR}%" -m recursive_wrapper %*
exit /b %ERRORLEVEL%
"""


def distribution_url_for(gradle_version: str, distribution_type: str) -> str:
    if distribution_type not in DISTRIBUTION_TYPES:
        raise ValueError(f"Unknown distribution type: {distribution_type}")
    return f"{DISTRIBUTIONS_BASE_URL}/gradle-{gradle_version}-{distribution_type}.zip"


def pinned_gradle_version(project_dir: Path, *, files: WrapperFileSet = GRADLE_WRAPPER_FILES) -> str | None:
    """Version named by the existing wrapper properties of `project_dir`, if any."""
    properties_file = Path(project_dir).joinpath(*files.properties_file.parts)
    if not properties_file.is_file():
        return None
    url = load_properties(properties_file).get("distributionUrl", "")
    match = _PINNED_VERSION.search(url)
    return match.group("version") if match else None


class WrapperTask(Task):
    description = "Generates the wrapper files."

    def __init__(self, name: str, owner: object = None) -> None:
        super().__init__(name, owner)
        self.project_dir: Path | None = None
        self.files: WrapperFileSet = GRADLE_WRAPPER_FILES
        self.gradle_version: str | None = None
        self.distribution_type: str | None = "bin"
        self.distribution_url: str | None = None
        self.distribution_sha256_sum: str | None = None
        self.network_timeout: int | None = None

    def apply_defaults(self, defaults: WrapperDefaults) -> None:
        if self.project_dir is None:
            raise ValueError(f"Task {self.path} has no project directory")
        self.gradle_version = pinned_gradle_version(self.project_dir, files=self.files) or defaults.gradle_version
        self.distribution_type = defaults.distribution_type
        self.network_timeout = defaults.network_timeout

    def apply_options(self, options: dict[str, object]) -> None:
        """Apply command line options; a version or type option replaces an explicit URL and vice versa."""
        if options.get("gradle_version") is not None:
            self.gradle_version = str(options["gradle_version"])
            self.distribution_url = None
        if options.get("distribution_type") is not None:
            self.distribution_type = str(options["distribution_type"])
            self.distribution_url = None
        if options.get("distribution_url") is not None:
            self.distribution_url = str(options["distribution_url"])
            self.gradle_version = None
            self.distribution_type = None
        if options.get("distribution_sha256_sum") is not None:
            self.distribution_sha256_sum = str(options["distribution_sha256_sum"])
        if options.get("network_timeout") is not None:
            self.network_timeout = int(options["network_timeout"])  # type: ignore[call-overload]

    def resolved_distribution_url(self) -> str:
        if self.distribution_url is not None:
            return self.distribution_url
        if self.gradle_version is None or self.distribution_type is None:
            raise ValueError(f"Task {self.path} needs a distribution URL or a Gradle version and type")
        return distribution_url_for(self.gradle_version, self.distribution_type)

    def run(self) -> str:
        if self.project_dir is None:
            raise ValueError(f"Task {self.path} has no project directory")
        root = self.project_dir

        posix = root.joinpath(*self.files.posix_launcher.parts)
        posix.write_text(POSIX_LAUNCHER_SCRIPT, encoding="utf-8", newline="\n")
        posix.chmod(posix.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

        windows = root.joinpath(*self.files.windows_launcher.parts)
        windows.write_text(WINDOWS_LAUNCHER_SCRIPT, encoding="utf-8", newline="\r\n")

        loader = root.joinpath(*self.files.loader_artifact.parts)
        loader.parent.mkdir(parents=True, exist_ok=True)
        _write_loader_artifact(loader)

        properties: dict[str, str] = {
            "distributionBase": "GRADLE_USER_HOME",
            "distributionPath": "wrapper/dists",
            "distributionUrl": self.resolved_distribution_url(),
            "zipStoreBase": "GRADLE_USER_HOME",
            "zipStorePath": "wrapper/dists",
        }
        if self.distribution_sha256_sum is not None:
            properties["distributionSha256Sum"] = self.distribution_sha256_sum
        if self.network_timeout is not None:
            properties["networkTimeout"] = str(self.network_timeout)

        properties_file = root.joinpath(*self.files.properties_file.parts)
        properties_file.parent.mkdir(parents=True, exist_ok=True)
        store_properties(properties_file, properties)

        logger.info("Wrapper in %s now points at %s", root, properties["distributionUrl"])
        return properties["distributionUrl"]


def _write_loader_artifact(path: Path) -> None:
    manifest = (
        "Manifest-Version: 1.0\r\n"
        "Implementation-Title: recursive-wrapper launcher\r\n"
        f"Implementation-Version: {VERSION}\r\n"
        "\r\n"
    )
    tmp_path = path.with_name(path.name + ".tmp")
    with zipfile.ZipFile(tmp_path, "w") as archive:
        # Fixed timestamp keeps the artifact byte-identical between runs.
        info = zipfile.ZipInfo("META-INF/MANIFEST.MF", date_time=(1980, 2, 1, 0, 0, 0))
        archive.writestr(info, manifest)
    os.replace(tmp_path, path)
