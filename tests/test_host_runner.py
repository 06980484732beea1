from contextlib import ExitStack
from pathlib import Path

import pytest

from recursive_wrapper.cli import default_plugins
from recursive_wrapper.config import RecursiveWrapperConfig
from recursive_wrapper.host.model import Build, BuildError, Buildscript, StartParameter
from recursive_wrapper.host.runner import run_build
from recursive_wrapper.init_script import format_init_script
from taskkit import PluginRef, PluginRegistry


def _start(project_dir: Path, **overrides) -> StartParameter:
    return StartParameter(project_dir=project_dir, **overrides)


def test_no_tasks_only_configures(tmp_path: Path):
    result = run_build(_start(tmp_path), config=RecursiveWrapperConfig(), plugins=default_plugins())

    assert result.success
    assert result.executed_tasks == []
    assert not (tmp_path / "gradlew").exists()


def test_unknown_task_suggests_the_closest_name(tmp_path: Path):
    result = run_build(
        _start(tmp_path, task_names=("wraper",)), config=RecursiveWrapperConfig(), plugins=default_plugins()
    )

    assert not result.success
    assert str(result.failure) == "Task 'wraper' not found (did you mean: wrapper?)"


def test_unknown_plugin_fails_configuration(tmp_path: Path):
    (tmp_path / "build.gradle.kts").write_text('plugins { id("java") }\n', encoding="utf-8")

    result = run_build(
        _start(tmp_path, task_names=("wrapper",)), config=RecursiveWrapperConfig(), plugins=default_plugins()
    )

    assert not result.success
    assert "Plugin with id 'java' not found" in str(result.failure)


def test_init_script_applies_the_plugin(tmp_path: Path):
    script = tmp_path / "init.py"
    script.write_text(format_init_script(testing=True), encoding="utf-8")
    project_dir = tmp_path / "build"
    project_dir.mkdir()
    applied: list[str] = []
    plugins = PluginRegistry.from_refs(
        [PluginRef(id="recursive-wrapper", apply=lambda project: applied.append(project.path))]
    )

    result = run_build(
        _start(project_dir, init_scripts=(script,)), config=RecursiveWrapperConfig(), plugins=plugins
    )

    assert result.success, result.failure
    assert applied == [":"]


def test_declared_and_init_script_plugin_is_applied_once(tmp_path: Path):
    script = tmp_path / "init.py"
    script.write_text(format_init_script(testing=True), encoding="utf-8")
    project_dir = tmp_path / "build"
    project_dir.mkdir()
    (project_dir / "build.gradle.kts").write_text('plugins {\n  id("recursive-wrapper")\n}\n', encoding="utf-8")
    applied: list[str] = []
    plugins = PluginRegistry.from_refs(
        [PluginRef(id="recursive-wrapper", apply=lambda project: applied.append(project.path))]
    )

    result = run_build(
        _start(project_dir, init_scripts=(script,)), config=RecursiveWrapperConfig(), plugins=plugins
    )

    assert result.success, result.failure
    assert applied == [":"]


def test_missing_init_script_fails_configuration(tmp_path: Path):
    result = run_build(
        _start(tmp_path, init_scripts=(tmp_path / "nope.py",)),
        config=RecursiveWrapperConfig(),
        plugins=default_plugins(),
    )

    assert not result.success
    assert "initialization script" in str(result.failure)
    assert isinstance(result.failure.__cause__, BuildError)


def test_unresolvable_classpath_fails_configuration(tmp_path: Path):
    script = tmp_path / "init.py"
    script.write_text(
        "def init(build):\n"
        "    def configure(project):\n"
        "        project.buildscript.dependencies.add('classpath', 'surely-not-installed-dist==9.9.9')\n"
        "        project.buildscript.repositories.plugin_index()\n"
        "    build.configure_root_project(configure)\n",
        encoding="utf-8",
    )
    project_dir = tmp_path / "build"
    project_dir.mkdir()

    result = run_build(
        _start(project_dir, init_scripts=(script,)), config=RecursiveWrapperConfig(), plugins=default_plugins()
    )

    assert not result.success
    message = str(result.failure)
    assert "Could not resolve all dependencies for configuration 'classpath'" in message
    assert "surely-not-installed-dist==9.9.9" in message
    assert "https://pypi.org/simple" in message


def test_dependency_notation_requires_a_pinned_version():
    with pytest.raises(BuildError, match="name==version"):
        Buildscript().dependencies.add("classpath", "recursive-wrapper")


def test_root_project_actions_run_in_order(tmp_path: Path):
    seen: list[str] = []
    with ExitStack() as resources:
        build = Build(_start(tmp_path), plugins=default_plugins(), resources=resources)
        build.configure_root_project(lambda project: seen.append("before"))

        with pytest.raises(BuildError, match="not been created"):
            _ = build.root_project

        project = build.create_root_project("root", tmp_path)
        build.configure_root_project(lambda p: seen.append("after"))

        assert seen == ["before", "after"]
        assert build.task_graph is not None
        assert project.path == ":"

        with pytest.raises(BuildError, match="already been created"):
            build.create_root_project("again", tmp_path)


def test_after_evaluate_runs_once_evaluated(tmp_path: Path):
    with ExitStack() as resources:
        build = Build(_start(tmp_path), plugins=default_plugins(), resources=resources)
        project = build.create_root_project("root", tmp_path)
        seen: list[str] = []

        project.after_evaluate(lambda p: seen.append("queued"))
        assert seen == []
        project.mark_evaluated()
        project.after_evaluate(lambda p: seen.append("immediate"))

        assert seen == ["queued", "immediate"]


def test_start_parameter_validates_modes(tmp_path: Path):
    with pytest.raises(ValueError, match="stacktrace"):
        StartParameter(project_dir=tmp_path, show_stacktrace="sometimes")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="verification"):
        StartParameter(project_dir=tmp_path, dependency_verification="paranoid")  # type: ignore[arg-type]


def test_configured_index_is_searched(tmp_path: Path):
    script = tmp_path / "init.py"
    script.write_text(
        "def init(build):\n"
        "    def configure(project):\n"
        "        project.buildscript.dependencies.add('classpath', 'surely-not-installed-dist==9.9.9')\n"
        "        project.buildscript.repositories.plugin_index()\n"
        "    build.configure_root_project(configure)\n",
        encoding="utf-8",
    )
    project_dir = tmp_path / "build"
    project_dir.mkdir()
    config, _warnings = RecursiveWrapperConfig.from_dict({"plugin": {"index_url": "https://mirror.test/simple"}})

    result = run_build(_start(project_dir, init_scripts=(script,)), config=config, plugins=default_plugins())

    assert not result.success
    assert "Searched in: https://mirror.test/simple" in str(result.failure)
