from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from recursive_wrapper.errors import ConfigurationError

CONFIG_ENV_VAR = "RECURSIVE_WRAPPER_CONFIG"
CONFIG_REL_DIR = "gradle"
CONFIG_NAME = "recursive-wrapper"


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse one settings file; an empty file counts as an empty mapping."""
    text = path.read_text(encoding="utf-8")
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Could not parse settings file {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ConfigurationError(
            f"Settings file {path} must contain a YAML mapping, found {type(payload).__name__}"
        )
    return dict(payload)


def merge_overlay(settings: Mapping[str, Any], overlay: Mapping[str, Any], *, section: str = "") -> dict[str, Any]:
    """
    Layer `overlay` on top of `settings`, section by section.

    A key set to null in the overlay is removed so the built-in default applies again.
    """
    merged: dict[str, Any] = dict(settings)
    for key, value in overlay.items():
        where = f"{section}.{key}" if section else str(key)
        current = merged.get(key)
        if value is None:
            merged.pop(key, None)
        elif isinstance(current, Mapping):
            if not isinstance(value, Mapping):
                raise ConfigurationError(
                    f"Cannot merge local settings at {where}: base is mapping but overlay is {type(value).__name__}"
                )
            merged[key] = merge_overlay(current, value, section=where)
        elif current is not None and isinstance(value, Mapping):
            raise ConfigurationError(
                f"Cannot merge local settings at {where}: base is {type(current).__name__} but overlay is mapping"
            )
        else:
            merged[key] = value
    return merged


def load_config(
    project_dir: str | os.PathLike[str],
    *,
    config_path: str | os.PathLike[str] | None = None,
    env_var: str | None = CONFIG_ENV_VAR,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Load the YAML settings for the build rooted at `project_dir`.

    Resolution order:
      - an explicit `config_path`, or the file named by `env_var`, loaded alone;
      - otherwise `<project_dir>/gradle/recursive-wrapper.yaml`, deep-merged with
        `recursive-wrapper.local.yaml` from the same directory.

    Unlike an explicit path, a missing project config is not an error: every key
    has a default. Returns `(cfg, meta)`; `meta` records which files were read.
    """

    explicit_path = None
    if config_path is not None:
        explicit_path = str(config_path).strip() or None
    elif env_var:
        raw_env = os.environ.get(str(env_var), "")
        explicit_path = raw_env.strip() or None

    if explicit_path:
        expanded = os.path.abspath(os.path.expandvars(os.path.expanduser(explicit_path)))
        cfg = read_config_file(Path(expanded))
        meta = {
            "mode": "env" if config_path is None else "explicit",
            "paths": [expanded],
            "env_var": env_var,
        }
        return cfg, meta

    config_directory = Path(project_dir) / CONFIG_REL_DIR
    base_config_path = config_directory / f"{CONFIG_NAME}.yaml"
    local_overlay_path = config_directory / f"{CONFIG_NAME}.local.yaml"

    cfg: dict[str, Any] = {}
    loaded_paths: list[str] = []
    mode = "defaults"

    if base_config_path.is_file():
        cfg = read_config_file(base_config_path)
        loaded_paths.append(str(base_config_path.resolve()))
        mode = "base"

    if local_overlay_path.is_file():
        overlay = read_config_file(local_overlay_path)
        cfg = merge_overlay(cfg, overlay)
        loaded_paths.append(str(local_overlay_path.resolve()))
        mode = "base+local" if mode == "base" else "local"

    meta = {"mode": mode, "paths": loaded_paths, "env_var": env_var}
    return cfg, meta
