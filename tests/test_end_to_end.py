import os
import sys
from pathlib import Path

import pytest

from recursive_wrapper import cli
from recursive_wrapper.foundation.config_io import CONFIG_ENV_VAR
from recursive_wrapper.foundation.properties import load_properties
from recursive_wrapper.host.wrapper_task import PYTHON_ENV_VAR

pytestmark = pytest.mark.skipif(os.name == "nt", reason="spawns the POSIX launcher script")

REPO_ROOT = Path(__file__).resolve().parents[1]
TESTING = "-Drecursive_wrapper.testing"


@pytest.fixture(autouse=True)
def _child_environment(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.setenv(PYTHON_ENV_VAR, sys.executable)
    existing = os.environ.get("PYTHONPATH")
    monkeypatch.setenv("PYTHONPATH", os.pathsep.join(p for p in (str(REPO_ROOT), existing) if p))


def _include(build_dir: Path, *paths: str) -> None:
    build_dir.mkdir(parents=True, exist_ok=True)
    (build_dir / "settings.gradle.kts").write_text(
        f'rootProject.name = "{build_dir.name}"\n' + "".join(f'includeBuild("{p}")\n' for p in paths),
        encoding="utf-8",
    )


def _bootstrap_root(root: Path) -> None:
    assert cli.main(["-p", str(root), "wrapper", TESTING, "-q"]) == 0
    (root / "build.gradle.kts").write_text('plugins {\n    id("recursive-wrapper")\n}\n', encoding="utf-8")


def _distribution(build_dir: Path) -> dict[str, str]:
    return load_properties(build_dir / "gradle" / "wrapper" / "gradle-wrapper.properties")


def test_wrapper_update_reaches_every_depth(tmp_path: Path):
    root = tmp_path / "root"
    _include(root, "../child")
    _include(tmp_path / "child", "grandchild")
    _include(tmp_path / "child" / "grandchild")
    _bootstrap_root(root)

    rc = cli.main(
        [
            "-p",
            str(root),
            "wrapper",
            "--gradle-version=8.5",
            "--distribution-type=all",
            "--gradle-distribution-sha256-sum=0123abcd",
            TESTING,
            "-q",
        ]
    )
    assert rc == 0

    for build_dir in (root, tmp_path / "child", tmp_path / "child" / "grandchild"):
        properties = _distribution(build_dir)
        assert properties["distributionUrl"].endswith("/gradle-8.5-all.zip"), build_dir
        assert properties["distributionSha256Sum"] == "0123abcd", build_dir
        assert (build_dir / "gradlew").is_file()


def test_root_without_included_builds(tmp_path: Path):
    root = tmp_path / "root"
    _include(root)
    _bootstrap_root(root)

    assert cli.main(["-p", str(root), "wrapper", "--gradle-version=8.6", TESTING, "-q"]) == 0
    assert _distribution(root)["distributionUrl"].endswith("/gradle-8.6-bin.zip")


def test_child_failure_fails_the_root(tmp_path: Path):
    root = tmp_path / "root"
    _include(root, "../child")
    _include(tmp_path / "child", "missing")
    _bootstrap_root(root)

    rc = cli.main(["-p", str(root), "wrapper", "--gradle-version=8.5", TESTING, "-q"])

    assert rc == 1
    assert _distribution(root)["distributionUrl"].endswith("/gradle-8.10.2-bin.zip")


def test_same_build_name_fails_before_any_spawn(tmp_path: Path):
    root = tmp_path / "root"
    _include(root, "../x/lib", "../y/lib")
    _include(tmp_path / "x" / "lib")
    _include(tmp_path / "y" / "lib")
    _bootstrap_root(root)

    rc = cli.main(["-p", str(root), "wrapper", TESTING, "-q"])

    assert rc == 1
    assert not (tmp_path / "x" / "lib" / "gradlew").exists()
    assert not (tmp_path / "y" / "lib" / "gradlew").exists()
