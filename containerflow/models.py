"""Input and output records for container workflows, with their validation rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta


class ValidationError(ValueError):
    """Raised when a workflow input does not satisfy its constraints."""


@dataclass
class WaitStrategyConfig:
    """How to decide that a started container is ready."""

    type: str = ""
    log_message: str = ""
    port: str = ""
    startup_timeout: timedelta = field(default_factory=timedelta)


@dataclass
class ContainerExecutionInput:
    """Everything needed to run a single container."""

    image: str = ""
    command: list[str] = field(default_factory=list)
    entrypoint: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    ports: list[str] = field(default_factory=list)
    volumes: dict[str, str] = field(default_factory=dict)
    work_dir: str = ""
    user: str = ""
    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    wait_strategy: WaitStrategyConfig = field(default_factory=WaitStrategyConfig)
    auto_remove: bool = False
    start_timeout: timedelta = field(default_factory=timedelta)
    run_timeout: timedelta = field(default_factory=timedelta)

    def validate(self) -> None:
        """Raise ValidationError if the input cannot be executed."""
        if not self.image:
            raise ValidationError("image is required")


@dataclass
class ContainerExecutionOutput:
    """The outcome of running one container."""

    container_id: str = ""
    name: str = ""
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    endpoint: str = ""
    success: bool = False
    duration: timedelta = field(default_factory=timedelta)


def _validate_containers(containers: list[ContainerExecutionInput]) -> None:
    if not containers:
        raise ValidationError("at least one container is required")
    for position, container in enumerate(containers):
        try:
            container.validate()
        except ValidationError as exc:
            raise ValidationError(f"container {position}: {exc}") from exc


@dataclass
class PipelineInput:
    """Containers to run one after another."""

    containers: list[ContainerExecutionInput] = field(default_factory=list)
    stop_on_error: bool = False
    cleanup: bool = False

    def validate(self) -> None:
        """Raise ValidationError unless there is at least one valid container."""
        _validate_containers(self.containers)


@dataclass
class PipelineOutput:
    """Aggregated results of a sequential pipeline."""

    results: list[ContainerExecutionOutput] = field(default_factory=list)
    total_success: int = 0
    total_failed: int = 0
    total_duration: timedelta = field(default_factory=timedelta)


@dataclass
class ParallelInput:
    """Containers to run side by side."""

    containers: list[ContainerExecutionInput] = field(default_factory=list)
    max_concurrency: int = 0
    failure_strategy: str = ""

    def validate(self) -> None:
        """Raise ValidationError unless there is at least one valid container."""
        _validate_containers(self.containers)


@dataclass
class ParallelOutput:
    """Aggregated results of a parallel run."""

    results: list[ContainerExecutionOutput] = field(default_factory=list)
    total_success: int = 0
    total_failed: int = 0
    total_duration: timedelta = field(default_factory=timedelta)


@dataclass
class LoopInput:
    """A container template run once for each item."""

    items: list[str] = field(default_factory=list)
    template: ContainerExecutionInput = field(default_factory=ContainerExecutionInput)
    parallel: bool = False
    max_concurrency: int = 0
    failure_strategy: str = ""

    def validate(self) -> None:
        """Raise ValidationError if there are no items or the template is invalid."""
        if not self.items:
            raise ValidationError("at least one item is required")
        try:
            self.template.validate()
        except ValidationError as exc:
            raise ValidationError(f"template: {exc}") from exc


@dataclass
class ParameterizedLoopInput:
    """A container template run once for each combination of parameter values."""

    parameters: dict[str, list[str]] = field(default_factory=dict)
    template: ContainerExecutionInput = field(default_factory=ContainerExecutionInput)
    parallel: bool = False
    max_concurrency: int = 0
    failure_strategy: str = ""

    def validate(self) -> None:
        """Raise ValidationError if any parameter has no values or the template is invalid."""
        if not self.parameters:
            raise ValidationError("at least one parameter is required")
        for key, values in self.parameters.items():
            if not values:
                raise ValidationError(f"parameter {key!r} has no values")
        try:
            self.template.validate()
        except ValidationError as exc:
            raise ValidationError(f"template: {exc}") from exc


@dataclass
class LoopOutput:
    """Aggregated results of a loop over items or parameter combinations."""

    results: list[ContainerExecutionOutput] = field(default_factory=list)
    total_success: int = 0
    total_failed: int = 0
    total_duration: timedelta = field(default_factory=timedelta)
    item_count: int = 0