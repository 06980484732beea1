"""The init script that makes a spawned build apply this plugin to itself.

Spawned builds are separate processes that may run a different release of this
package, so propagation happens by handing them a script rather than by walking
the whole inclusion tree from the root process.
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from recursive_wrapper.constants import DISTRIBUTION_NAME, PLUGIN_ID, VERSION
from recursive_wrapper.errors import InitScriptError

logger = logging.getLogger(__name__)

INIT_SCRIPT_PREFIX = "init-recursive-wrapper-"
INIT_SCRIPT_SUFFIX = ".py"

_TEMPLATE = '''\
"""Generated by {distribution} {version}; applies {plugin_id!r} to the root project."""


def init(build):
    def configure(project):
{dependency_line}        project.buildscript.repositories.plugin_index()
        project.after_evaluate(lambda evaluated: evaluated.apply_plugin({plugin_id!r}))

    build.configure_root_project(configure)
'''


def format_init_script(*, testing: bool) -> str:
    """Render the init script; test runs leave out the classpath line so nothing is resolved from the index."""
    if testing:
        dependency_line = ""
    else:
        requirement = f"{DISTRIBUTION_NAME}=={VERSION}"
        dependency_line = f"        project.buildscript.dependencies.add('classpath', {requirement!r})\n"
    return _TEMPLATE.format(
        distribution=DISTRIBUTION_NAME,
        version=VERSION,
        plugin_id=PLUGIN_ID,
        dependency_line=dependency_line,
    )


@contextmanager
def init_script_file(content: str, *, directory: str | None = None) -> Iterator[Path]:
    """Write `content` to a fresh temporary file and remove it when the block exits."""
    try:
        fd, raw_path = tempfile.mkstemp(prefix=INIT_SCRIPT_PREFIX, suffix=INIT_SCRIPT_SUFFIX, dir=directory)
    except OSError as exc:
        raise InitScriptError(f"Unable to write the init script: {exc}") from exc

    path = Path(raw_path)
    try:
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
        except OSError as exc:
            raise InitScriptError(f"Unable to write the init script {path}: {exc}") from exc
        logger.debug("Wrote init script %s", path)
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug("Removed init script %s", path)
