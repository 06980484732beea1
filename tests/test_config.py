from pathlib import Path

import pytest

from recursive_wrapper.config import RecursiveWrapperConfig, parse_bool, parse_int
from recursive_wrapper.constants import DEFAULT_PLUGIN_INDEX_URL
from recursive_wrapper.errors import ConfigurationError
from recursive_wrapper.foundation.config_io import CONFIG_ENV_VAR, load_config


def test_empty_mapping_gives_defaults():
    config, warnings = RecursiveWrapperConfig.from_dict({})

    assert warnings == []
    assert config.wrapper.distribution_type == "bin"
    assert config.wrapper.network_timeout is None
    assert config.plugin.index_url == DEFAULT_PLUGIN_INDEX_URL
    assert config.logging.level == "INFO"


def test_values_are_parsed():
    config, warnings = RecursiveWrapperConfig.from_dict(
        {
            "wrapper": {"gradle_version": " 8.5 ", "distribution_type": "ALL", "network_timeout": "15000"},
            "plugin": {"index_url": "https://mirror.test/simple/"},
            "logging": {"level": "debug", "file": "build/wrapper.log"},
        }
    )

    assert warnings == []
    assert config.wrapper.gradle_version == "8.5"
    assert config.wrapper.distribution_type == "all"
    assert config.wrapper.network_timeout == 15000
    assert config.plugin.index_url == "https://mirror.test/simple"
    assert config.logging.level == "DEBUG"
    assert config.logging.file == "build/wrapper.log"


def test_unknown_keys_warn_unless_strict():
    cfg = {"wrapper": {"gradle_versoin": "8.5"}, "extra": 1}

    _config, warnings = RecursiveWrapperConfig.from_dict(cfg)
    assert warnings == ["Unknown config key: extra", "Unknown config key: wrapper.gradle_versoin"]

    with pytest.raises(ConfigurationError, match="Unknown config keys: extra, wrapper.gradle_versoin"):
        RecursiveWrapperConfig.from_dict({**cfg, "strict": "yes"})


def test_index_url_that_is_not_a_url_warns():
    _config, warnings = RecursiveWrapperConfig.from_dict({"plugin": {"index_url": "mirror"}})
    assert warnings == ["plugin.index_url does not look like a URL: 'mirror'"]


@pytest.mark.parametrize(
    "cfg, message",
    [
        ({"wrapper": {"network_timeout": 0}}, "must be > 0"),
        ({"wrapper": {"distribution_type": "src"}}, "Unknown wrapper.distribution_type"),
        ({"logging": {"level": "LOUD"}}, "Unknown logging.level"),
        ({"wrapper": "8.5"}, "must be a mapping"),
        ({"strict": "maybe"}, "Invalid boolean for strict"),
    ],
)
def test_invalid_values_are_rejected(cfg, message):
    with pytest.raises(ConfigurationError, match=message):
        RecursiveWrapperConfig.from_dict(cfg)


def test_strict_scalar_parsers():
    assert parse_bool(" No ", "x") is False
    assert parse_int(" 12 ", "x") == 12
    with pytest.raises(ConfigurationError):
        parse_int(True, "x")
    with pytest.raises(ConfigurationError):
        parse_bool(2, "x")


def test_missing_project_config_means_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)

    cfg, meta = load_config(tmp_path)

    assert cfg == {}
    assert meta["mode"] == "defaults"
    assert meta["paths"] == []


def test_local_overlay_is_deep_merged(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    config_dir = tmp_path / "gradle"
    config_dir.mkdir()
    (config_dir / "recursive-wrapper.yaml").write_text(
        "wrapper:\n  gradle_version: '8.5'\n  distribution_type: bin\n", encoding="utf-8"
    )
    (config_dir / "recursive-wrapper.local.yaml").write_text(
        "wrapper:\n  distribution_type: all\n", encoding="utf-8"
    )

    cfg, meta = load_config(tmp_path)

    assert cfg == {"wrapper": {"gradle_version": "8.5", "distribution_type": "all"}}
    assert meta["mode"] == "base+local"
    assert len(meta["paths"]) == 2


def test_env_var_config_is_loaded_alone(tmp_path: Path, monkeypatch):
    config_dir = tmp_path / "gradle"
    config_dir.mkdir()
    (config_dir / "recursive-wrapper.yaml").write_text("wrapper:\n  gradle_version: '8.5'\n", encoding="utf-8")
    explicit = tmp_path / "ci.yaml"
    explicit.write_text("logging:\n  level: DEBUG\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(explicit))

    cfg, meta = load_config(tmp_path)

    assert cfg == {"logging": {"level": "DEBUG"}}
    assert meta["mode"] == "env"


def test_env_var_pointing_nowhere_is_an_error(tmp_path: Path, monkeypatch):
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "missing.yaml"))
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path)


def test_non_mapping_yaml_is_rejected(tmp_path: Path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="must contain a YAML mapping"):
        load_config(tmp_path, config_path=path)


def test_overlay_type_mismatch_is_rejected(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    config_dir = tmp_path / "gradle"
    config_dir.mkdir()
    (config_dir / "recursive-wrapper.yaml").write_text("wrapper:\n  gradle_version: '8.5'\n", encoding="utf-8")
    (config_dir / "recursive-wrapper.local.yaml").write_text("wrapper: '8.6'\n", encoding="utf-8")

    with pytest.raises(ValueError, match="base is mapping"):
        load_config(tmp_path)


def test_unparsable_yaml_names_the_file(tmp_path: Path):
    path = tmp_path / "broken.yaml"
    path.write_text("wrapper: [8.5\n", encoding="utf-8")

    with pytest.raises(ConfigurationError) as excinfo:
        load_config(tmp_path, config_path=path)

    assert f"Could not parse settings file {path}" in str(excinfo.value)


def test_null_in_local_overlay_restores_the_default(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    config_dir = tmp_path / "gradle"
    config_dir.mkdir()
    (config_dir / "recursive-wrapper.yaml").write_text(
        "wrapper:\n  gradle_version: '8.5'\n  distribution_type: all\n", encoding="utf-8"
    )
    (config_dir / "recursive-wrapper.local.yaml").write_text("wrapper:\n  distribution_type: null\n", encoding="utf-8")

    cfg, _meta = load_config(tmp_path)

    assert cfg == {"wrapper": {"gradle_version": "8.5"}}
    config, _warnings = RecursiveWrapperConfig.from_dict(cfg)
    assert config.wrapper.distribution_type == "bin"
