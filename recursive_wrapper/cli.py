from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from taskkit import PluginRegistry

from recursive_wrapper.config import DISTRIBUTION_TYPES, RecursiveWrapperConfig
from recursive_wrapper.constants import VERSION
from recursive_wrapper.errors import ConfigurationError
from recursive_wrapper.foundation.config_io import load_config
from recursive_wrapper.foundation.logging_utils import configure_stdio_utf8, setup_operational_logger
from recursive_wrapper.host.model import DEPENDENCY_VERIFICATION_MODES, StartParameter
from recursive_wrapper.host.runner import run_build
from recursive_wrapper.plugin import plugin_ref


def default_plugins() -> PluginRegistry:
    return PluginRegistry.from_refs([plugin_ref()])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recursive-wrapper",
        description="Run build tasks; `wrapper` updates the wrapper of this build and every included build.",
        add_help=True,
    )
    parser.add_argument("tasks", nargs="*", help="Tasks to run, e.g. wrapper or :wrapper")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-p", "--project-dir", help="Build directory (default: current directory)")
    parser.add_argument(
        "-D",
        "--system-prop",
        dest="system_properties",
        action="append",
        default=[],
        metavar="KEY[=VALUE]",
        help="Set a build system property",
    )
    parser.add_argument(
        "-I",
        "--init-script",
        dest="init_scripts",
        action="append",
        default=[],
        metavar="PATH",
        help="Initialization script to load before the build is configured",
    )

    stacktrace = parser.add_mutually_exclusive_group()
    stacktrace.add_argument("-s", "--stacktrace", action="store_true", help="Print the stacktrace of failures")
    stacktrace.add_argument("-S", "--full-stacktrace", action="store_true", help="Print the full stacktrace of failures")

    parser.add_argument("--no-daemon", action="store_true", help="Accepted for compatibility; builds never use a daemon")
    parser.add_argument(
        "--dependency-verification",
        choices=DEPENDENCY_VERIFICATION_MODES,
        default="strict",
        help="Dependency verification mode",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Log errors only")
    verbosity.add_argument("-i", "--info", action="store_true", help="Log at INFO level")
    verbosity.add_argument("-d", "--debug", action="store_true", help="Log at DEBUG level")

    wrapper = parser.add_argument_group("wrapper task options")
    wrapper.add_argument("--gradle-version", help="Gradle version for the wrapper")
    wrapper.add_argument("--distribution-type", choices=DISTRIBUTION_TYPES, help="Distribution type")
    wrapper.add_argument("--gradle-distribution-url", help="Explicit distribution URL")
    wrapper.add_argument("--gradle-distribution-sha256-sum", help="Expected SHA-256 of the distribution")
    wrapper.add_argument("--network-timeout", type=int, help="Distribution download timeout (ms)")

    return parser


def _parse_system_properties(raw: Sequence[str]) -> dict[str, str]:
    properties: dict[str, str] = {}
    for item in raw:
        key, _, value = item.partition("=")
        key = key.strip()
        if not key:
            raise ConfigurationError(f"Invalid system property: {item!r}")
        properties[key] = value
    return properties


def _log_level(args: argparse.Namespace, config: RecursiveWrapperConfig) -> int:
    if args.quiet:
        return logging.ERROR
    if args.debug:
        return logging.DEBUG
    if args.info:
        return logging.INFO
    return logging.getLevelName(config.logging.level)


def _start_parameter(args: argparse.Namespace, project_dir: Path) -> StartParameter:
    if args.full_stacktrace:
        show_stacktrace = "always_full"
    elif args.stacktrace:
        show_stacktrace = "always"
    else:
        show_stacktrace = "internal_exceptions"

    task_options = {
        "gradle_version": args.gradle_version,
        "distribution_type": args.distribution_type,
        "distribution_url": args.gradle_distribution_url,
        "distribution_sha256_sum": args.gradle_distribution_sha256_sum,
        "network_timeout": args.network_timeout,
    }
    if args.network_timeout is not None and args.network_timeout <= 0:
        raise ConfigurationError(f"--network-timeout must be positive (got {args.network_timeout})")

    return StartParameter(
        project_dir=project_dir,
        task_names=tuple(args.tasks),
        init_scripts=tuple(Path(p).expanduser().resolve() for p in args.init_scripts),
        system_properties=_parse_system_properties(args.system_properties),
        show_stacktrace=show_stacktrace,  # type: ignore[arg-type]
        dependency_verification=args.dependency_verification,
        daemon=False,
        task_options={k: v for k, v in task_options.items() if v is not None},
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_intermixed_args(list(argv) if argv is not None else None)
    configure_stdio_utf8()

    project_dir = Path(args.project_dir or os.getcwd()).expanduser().resolve()
    try:
        cfg_dict, _cfg_meta = load_config(project_dir)
        config, warnings = RecursiveWrapperConfig.from_dict(cfg_dict)
        start_parameter = _start_parameter(args, project_dir)
    except (OSError, ValueError) as exc:
        print(f"FAILURE: {exc}", file=sys.stderr)
        return 1

    log_file = config.logging.file
    if log_file is not None and not os.path.isabs(log_file):
        log_file = str(project_dir / log_file)
    logger = setup_operational_logger(_log_level(args, config), log_file=log_file)
    for warning in warnings:
        logger.warning(warning)

    result = run_build(start_parameter, config=config, plugins=default_plugins(), logger=logger)
    if result.success:
        print("BUILD SUCCESSFUL")
        return 0

    failure = result.failure
    cause = failure.__cause__ if failure is not None else None
    logger.error("FAILURE: %s", failure)
    if cause is not None:
        logger.error("> %s", cause)
        if start_parameter.show_stacktrace != "internal_exceptions":
            logger.error("Stacktrace:", exc_info=(type(cause), cause, cause.__traceback__))
    print("BUILD FAILED", file=sys.stderr)
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
