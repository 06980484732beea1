"""Build the command line forwarded to every included build's wrapper update."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping, Protocol

from recursive_wrapper.constants import TESTING_PROPERTY, TESTING_PROPERTY_ARG
from recursive_wrapper.errors import ConfigurationError

StacktraceFlag = Literal["--stacktrace", "--full-stacktrace"]


class WrapperTaskSettings(Protocol):
    distribution_url: str | None
    gradle_version: str | None
    distribution_type: str | None
    distribution_sha256_sum: str | None


class InvocationSettings(Protocol):
    show_stacktrace: str
    dependency_verification: str
    system_properties: Mapping[str, str]


def is_testing(start_parameter: InvocationSettings) -> bool:
    return TESTING_PROPERTY in start_parameter.system_properties


def probe_network_timeout(wrapper_task: Any) -> int | None:
    """Return the wrapper task's network timeout, or None when the host has no such property."""
    value = getattr(wrapper_task, "network_timeout", None)
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass(frozen=True)
class WrapperParameterSet:
    """Ordered, immutable parameters shared by every spawned wrapper update.

    The argument order is fixed (distribution selector, checksum, timeout, daemon,
    init script, stacktrace, testing marker, dependency verification) so the logged
    commands of two runs can be compared line by line.
    """

    init_script: Path
    distribution_url: str | None = None
    gradle_version: str | None = None
    distribution_type: str | None = None
    distribution_sha256_sum: str | None = None
    network_timeout: int | None = None
    stacktrace: StacktraceFlag | None = None
    testing: bool = False
    dependency_verification: str | None = None
    arguments: tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        if self.distribution_url is not None:
            if self.gradle_version is not None or self.distribution_type is not None:
                raise ConfigurationError(
                    "Either a distribution URL or a Gradle version with distribution type may be forwarded, not both"
                )
        elif self.gradle_version is None or self.distribution_type is None:
            raise ConfigurationError(
                "A distribution URL, or a Gradle version and distribution type, is required"
            )
        if self.network_timeout is not None and self.network_timeout <= 0:
            raise ConfigurationError(f"Network timeout must be positive (got {self.network_timeout})")

        args: list[str] = []
        if self.distribution_url is not None:
            args.append(f"--gradle-distribution-url={self.distribution_url}")
        else:
            args.append(f"--gradle-version={self.gradle_version}")
            args.append(f"--distribution-type={self.distribution_type}")
        if self.distribution_sha256_sum is not None:
            args.append(f"--gradle-distribution-sha256-sum={self.distribution_sha256_sum}")
        if self.network_timeout is not None:
            args.append(f"--network-timeout={self.network_timeout}")
        args.append("--no-daemon")
        args.append(f"--init-script={self.init_script}")
        if self.stacktrace is not None:
            args.append(self.stacktrace)
        if self.testing:
            args.append(TESTING_PROPERTY_ARG)
        if self.dependency_verification is not None:
            args.append(f"--dependency-verification={self.dependency_verification}")
        object.__setattr__(self, "arguments", tuple(args))


def synthesize_parameters(
    wrapper_task: WrapperTaskSettings,
    start_parameter: InvocationSettings,
    *,
    init_script: Path,
) -> WrapperParameterSet:
    """
    Read the root wrapper task and the invocation settings into a WrapperParameterSet.

    Must run once the task graph is ready: command line options such as
    `--gradle-version` are applied to the wrapper task up to that point.
    """

    distribution_url = wrapper_task.distribution_url
    gradle_version = None
    distribution_type = None
    if distribution_url is None:
        gradle_version = wrapper_task.gradle_version
        distribution_type = wrapper_task.distribution_type

    stacktrace: StacktraceFlag | None = None
    if start_parameter.show_stacktrace == "always":
        stacktrace = "--stacktrace"
    elif start_parameter.show_stacktrace == "always_full":
        stacktrace = "--full-stacktrace"

    dependency_verification = None
    if start_parameter.dependency_verification != "strict":
        dependency_verification = start_parameter.dependency_verification

    return WrapperParameterSet(
        init_script=Path(init_script),
        distribution_url=distribution_url,
        gradle_version=gradle_version,
        distribution_type=distribution_type,
        distribution_sha256_sum=wrapper_task.distribution_sha256_sum,
        network_timeout=probe_network_timeout(wrapper_task),
        stacktrace=stacktrace,
        testing=is_testing(start_parameter),
        dependency_verification=dependency_verification,
    )
