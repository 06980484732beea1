from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from recursive_wrapper.constants import DEFAULT_PLUGIN_INDEX_URL
from recursive_wrapper.errors import ConfigurationError

DistributionType = Literal["bin", "all"]
DISTRIBUTION_TYPES: tuple[str, ...] = ("bin", "all")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")

DEFAULT_GRADLE_VERSION = "8.10.2"


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts:
      - True/False
      - 0/1 (ints)
      - strings: true/false/1/0/yes/no (case-insensitive, surrounding whitespace ignored)

    Raises:
      ConfigurationError for anything else, with the provided config key path.
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ConfigurationError(f"Invalid boolean for {path}: {value!r}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
        raise ConfigurationError(f"Invalid boolean for {path}: {value!r}")

    raise ConfigurationError(f"Invalid boolean for {path}: {value!r}")


def parse_int(value: Any, path: str) -> int:
    if value is None:
        raise ConfigurationError(f"Invalid config value for {path}: None")
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid config type for {path}: expected int, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if not value.strip():
            raise ConfigurationError(f"Invalid config value for {path}: must be an int")
        try:
            return int(value.strip())
        except Exception as exc:  # noqa: BLE001
            raise ConfigurationError(f"Invalid config value for {path}: must be an int") from exc
    raise ConfigurationError(f"Invalid config type for {path}: expected int")


def parse_str(value: Any, path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Invalid config value for {path}: must be a non-empty string")
    return value.strip()


def parse_distribution_type(value: Any, path: str) -> DistributionType:
    normalized = parse_str(value, path).lower()
    if normalized not in DISTRIBUTION_TYPES:
        raise ConfigurationError(
            f"Unknown {path}: {value!r} (expected one of: {', '.join(DISTRIBUTION_TYPES)})"
        )
    return normalized  # type: ignore[return-value]


@dataclass(frozen=True)
class WrapperDefaults:
    gradle_version: str = DEFAULT_GRADLE_VERSION
    distribution_type: DistributionType = "bin"
    network_timeout: int | None = None


@dataclass(frozen=True)
class PluginSourceConfig:
    index_url: str = DEFAULT_PLUGIN_INDEX_URL


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None


@dataclass(frozen=True)
class RecursiveWrapperConfig:
    wrapper: WrapperDefaults = field(default_factory=WrapperDefaults)
    plugin: PluginSourceConfig = field(default_factory=PluginSourceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @staticmethod
    def from_dict(cfg: Mapping[str, Any]) -> tuple["RecursiveWrapperConfig", list[str]]:
        """
        Parse and validate configuration, returning (RecursiveWrapperConfig, warnings).

        Raises:
            ConfigurationError: if a value is invalid, or if `strict: true` is set and
            the mapping contains unknown keys.
        """

        if not isinstance(cfg, Mapping):
            raise ConfigurationError("Config must be a mapping")

        warnings: list[str] = []

        strict_unknown_keys = False
        if "strict" in cfg:
            strict_unknown_keys = parse_bool(cfg.get("strict"), "strict")

        schema: Mapping[str, Any] = {
            "strict": None,
            "wrapper": {"gradle_version": None, "distribution_type": None, "network_timeout": None},
            "plugin": {"index_url": None},
            "logging": {"level": None, "file": None},
        }

        def collect_unknown_keys(mapping: Any, section: Mapping[str, Any], *, prefix: str) -> list[str]:
            if not isinstance(mapping, Mapping):
                return []
            unknown: list[str] = []
            for key, value in mapping.items():
                if not isinstance(key, str):
                    continue
                name = f"{prefix}.{key}" if prefix else key
                if key not in section:
                    unknown.append(name)
                    continue
                subschema = section.get(key)
                if isinstance(subschema, Mapping):
                    unknown.extend(collect_unknown_keys(value, subschema, prefix=name))
            return unknown

        unknown_keys = sorted(set(collect_unknown_keys(cfg, schema, prefix="")))
        if unknown_keys:
            if strict_unknown_keys:
                raise ConfigurationError("Unknown config keys: " + ", ".join(unknown_keys))
            warnings.extend(f"Unknown config key: {key}" for key in unknown_keys)

        def section(name: str) -> Mapping[str, Any]:
            raw = cfg.get(name)
            if raw is None:
                return {}
            if not isinstance(raw, Mapping):
                raise ConfigurationError(f"Config section {name} must be a mapping")
            return raw

        wrapper_cfg = section("wrapper")
        defaults = WrapperDefaults()
        gradle_version = defaults.gradle_version
        if wrapper_cfg.get("gradle_version") is not None:
            gradle_version = parse_str(wrapper_cfg["gradle_version"], "wrapper.gradle_version")
        distribution_type = defaults.distribution_type
        if wrapper_cfg.get("distribution_type") is not None:
            distribution_type = parse_distribution_type(
                wrapper_cfg["distribution_type"], "wrapper.distribution_type"
            )
        network_timeout = defaults.network_timeout
        if wrapper_cfg.get("network_timeout") is not None:
            network_timeout = parse_int(wrapper_cfg["network_timeout"], "wrapper.network_timeout")
            if network_timeout <= 0:
                raise ConfigurationError(
                    f"Invalid config value for wrapper.network_timeout: must be > 0 (got {network_timeout})"
                )
        wrapper = WrapperDefaults(
            gradle_version=gradle_version,
            distribution_type=distribution_type,
            network_timeout=network_timeout,
        )

        plugin_cfg = section("plugin")
        plugin = PluginSourceConfig()
        if plugin_cfg.get("index_url") is not None:
            index_url = parse_str(plugin_cfg["index_url"], "plugin.index_url")
            if not index_url.startswith(("http://", "https://", "file:")):
                warnings.append(f"plugin.index_url does not look like a URL: {index_url!r}")
            plugin = PluginSourceConfig(index_url=index_url.rstrip("/"))

        logging_cfg = section("logging")
        level = "INFO"
        if logging_cfg.get("level") is not None:
            level = parse_str(logging_cfg["level"], "logging.level").upper()
            if level not in LOG_LEVELS:
                raise ConfigurationError(
                    f"Unknown logging.level: {logging_cfg['level']!r} (expected one of: {', '.join(LOG_LEVELS)})"
                )
        log_file = None
        if logging_cfg.get("file") is not None:
            log_file = parse_str(logging_cfg["file"], "logging.file")

        return (
            RecursiveWrapperConfig(
                wrapper=wrapper,
                plugin=plugin,
                logging=LoggingConfig(level=level, file=log_file),
            ),
            warnings,
        )
