"""Read the few facts the host needs from Gradle settings and build scripts.

Only literal declarations are understood: `includeBuild("path")` (top level or in
`pluginManagement { }`) in the settings script, and `id("plugin")` entries inside
the `plugins { }` block of the build script. Anything computed at runtime is out of
reach of a static read.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from recursive_wrapper.host.model import BuildError, IncludedBuild

SETTINGS_FILE_NAMES: tuple[str, ...] = ("settings.gradle.kts", "settings.gradle")
BUILD_FILE_NAMES: tuple[str, ...] = ("build.gradle.kts", "build.gradle")

_INCLUDE_BUILD = re.compile(r"""\bincludeBuild\s*\(?\s*(["'])(?P<path>[^"']+)\1""")
_PLUGIN_ID = re.compile(r"""\bid\s*\(?\s*(["'])(?P<id>[^"']+)\1""")
_LINE_COMMENT = re.compile(r"//[^\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)


@dataclass(frozen=True)
class Settings:
    settings_file: Path | None
    included_builds: tuple[IncludedBuild, ...] = ()


def _strip_comments(text: str) -> str:
    return _LINE_COMMENT.sub("", _BLOCK_COMMENT.sub("", text))


def _block_spans(text: str, keyword: str) -> list[tuple[int, int]]:
    spans: list[tuple[int, int]] = []
    for match in re.finditer(rf"\b{re.escape(keyword)}\s*\{{", text):
        depth = 0
        for index in range(match.end() - 1, len(text)):
            if text[index] == "{":
                depth += 1
            elif text[index] == "}":
                depth -= 1
                if depth == 0:
                    spans.append((match.end(), index))
                    break
        else:
            raise BuildError(f"Unbalanced braces after '{keyword}' block")
    return spans


def find_file(project_dir: Path, names: tuple[str, ...]) -> Path | None:
    for name in names:
        candidate = project_dir / name
        if candidate.is_file():
            return candidate
    return None


def load_settings(project_dir: Path) -> Settings:
    project_dir = Path(project_dir)
    settings_file = find_file(project_dir, SETTINGS_FILE_NAMES)
    if settings_file is None:
        return Settings(settings_file=None)

    text = _strip_comments(settings_file.read_text(encoding="utf-8"))
    plugin_management = _block_spans(text, "pluginManagement")

    included: list[IncludedBuild] = []
    seen_dirs: set[Path] = set()
    for match in _INCLUDE_BUILD.finditer(text):
        raw_path = match.group("path")
        build_dir = (project_dir / raw_path).resolve()
        if build_dir in seen_dirs:
            continue
        if not build_dir.is_dir():
            raise BuildError(f"Included build {build_dir} does not exist (declared in {settings_file})")
        seen_dirs.add(build_dir)
        in_plugin_management = any(start <= match.start() < end for start, end in plugin_management)
        included.append(
            IncludedBuild(
                name=build_dir.name,
                project_dir=build_dir,
                kind="plugin_management" if in_plugin_management else "direct",
            )
        )

    return Settings(settings_file=settings_file, included_builds=tuple(included))


def declared_plugins(project_dir: Path) -> tuple[str, ...]:
    build_file = find_file(Path(project_dir), BUILD_FILE_NAMES)
    if build_file is None:
        return ()
    text = _strip_comments(build_file.read_text(encoding="utf-8"))
    ids: list[str] = []
    for start, end in _block_spans(text, "plugins"):
        for match in _PLUGIN_ID.finditer(text, start, end):
            if match.group("id") not in ids:
                ids.append(match.group("id"))
    return tuple(ids)
