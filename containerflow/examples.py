"""Runnable examples: an in-process worker, a simulated container executor and sample inputs."""

from __future__ import annotations

import argparse
import itertools
import re
import shlex
import threading
import time
import uuid
from collections.abc import Callable, Mapping, Sequence
from datetime import timedelta

from .models import (
    ContainerExecutionInput,
    ContainerExecutionOutput,
    ParallelInput,
    ParallelOutput,
    PipelineInput,
    PipelineOutput,
    WaitStrategyConfig,
)
from .workflows import (
    WorkflowError,
    container_pipeline_workflow,
    execute_container_workflow,
    loop_workflow,
    parallel_containers_workflow,
    parameterized_loop_workflow,
)

TASK_QUEUE = "docker-tasks"
ACTIVITY_NAME = "StartContainerActivity"

_BUILD_IMAGE = "python:3.12-alpine"
_LINT_IMAGE = "alpine:latest"

_VARIABLE = re.compile(r"\$\{(\w+)\}|\$(\w+)")


def _expand(text: str, env: Mapping[str, str]) -> str:
    return _VARIABLE.sub(lambda m: env.get(m.group(1) or m.group(2), ""), text)


def _script_of(command: Sequence[str]) -> str:
    if len(command) >= 3 and command[1] == "-c":
        return command[2]
    return " ".join(command)


def _simulated_stdout(container_input: ContainerExecutionInput) -> str:
    """Produce the text that the echo commands of a container's script would print."""
    lines = []
    for segment in _script_of(container_input.command).split("&&"):
        try:
            words = shlex.split(segment)
        except ValueError:
            words = segment.split()
        if words and words[0] == "echo":
            lines.append(" ".join(_expand(word, container_input.env) for word in words[1:]))
    return "".join(f"{line}\n" for line in lines)


def _endpoint(ports: Sequence[str]) -> str:
    if not ports:
        return ""
    host_port, _, container_port = ports[0].partition(":")
    port = host_port if host_port not in ("", "0") else container_port
    return f"localhost:{port or host_port}"


class SimulatedExecutor:
    """Simulates a container runtime: records each request and reports a result."""

    def __init__(self, exit_codes: Mapping[str, int] | None = None) -> None:
        self.exit_codes = dict(exit_codes or {})
        self.calls: list[ContainerExecutionInput] = []
        self._lock = threading.Lock()

    def __call__(self, container_input: ContainerExecutionInput) -> ContainerExecutionOutput:
        with self._lock:
            self.calls.append(container_input)
        started = time.monotonic()
        exit_code = self.exit_codes.get(container_input.name, 0)
        return ContainerExecutionOutput(
            container_id=f"sim-{uuid.uuid4().hex[:12]}",
            name=container_input.name,
            exit_code=exit_code,
            stdout=_simulated_stdout(container_input),
            stderr="",
            endpoint=_endpoint(container_input.ports),
            success=exit_code == 0,
            duration=timedelta(seconds=time.monotonic() - started),
        )


Workflow = Callable[..., object]


class Worker:
    """Holds registered workflows and activities and runs workflows in-process."""

    def __init__(
        self,
        task_queue: str = TASK_QUEUE,
        max_concurrent_activities: int = 10,
        max_concurrent_workflow_tasks: int = 10,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.task_queue = task_queue
        self.max_concurrent_activities = max_concurrent_activities
        self.max_concurrent_workflow_tasks = max_concurrent_workflow_tasks
        self.workflows: dict[str, Workflow] = {}
        self.activities: dict[str, Callable[[ContainerExecutionInput], ContainerExecutionOutput]] = {}
        self._sleep = sleep

    def register_workflow(self, name: str, workflow: Workflow) -> None:
        """Register a workflow under a name; a name may be registered only once."""
        if name in self.workflows:
            raise ValueError(f"workflow {name!r} is already registered")
        self.workflows[name] = workflow

    def register_activity(
        self,
        name: str,
        activity: Callable[[ContainerExecutionInput], ContainerExecutionOutput],
    ) -> None:
        """Register an activity under a name; a name may be registered only once."""
        if name in self.activities:
            raise ValueError(f"activity {name!r} is already registered")
        self.activities[name] = activity

    def run(self, workflow_name: str, payload: object) -> object:
        """Run a registered workflow with the container activity as its executor."""
        try:
            workflow = self.workflows[workflow_name]
        except KeyError:
            raise KeyError(f"workflow {workflow_name!r} is not registered") from None
        try:
            executor = self.activities[ACTIVITY_NAME]
        except KeyError:
            raise LookupError(f"activity {ACTIVITY_NAME!r} is not registered") from None
        return workflow(payload, executor, self._sleep)


def register_all(worker: Worker) -> None:
    """Register every container workflow and the container activity."""
    worker.register_workflow("ExecuteContainerWorkflow", execute_container_workflow)
    worker.register_workflow("ContainerPipelineWorkflow", container_pipeline_workflow)
    worker.register_workflow("ParallelContainersWorkflow", parallel_containers_workflow)
    worker.register_workflow("LoopWorkflow", loop_workflow)
    worker.register_workflow("ParameterizedLoopWorkflow", parameterized_loop_workflow)
    worker.register_activity(ACTIVITY_NAME, SimulatedExecutor())


def basic_input() -> ContainerExecutionInput:
    """A database container that waits for its readiness log line."""
    return ContainerExecutionInput(
        image="postgres:16-alpine",
        env={
            "POSTGRES_PASSWORD": "password",
            "POSTGRES_USER": "test",
            "POSTGRES_DB": "test",
        },
        ports=["5432:5432"],
        wait_strategy=WaitStrategyConfig(
            type="log",
            log_message="ready to accept connections",
            startup_timeout=timedelta(seconds=30),
        ),
        auto_remove=True,
        name="example-postgres",
    )


def parallel_input() -> ParallelInput:
    """Three test suites run side by side, continuing past failures."""
    return ParallelInput(
        max_concurrency=3,
        failure_strategy="continue",
        containers=[
            ContainerExecutionInput(
                name="unit-tests",
                image=_BUILD_IMAGE,
                command=["sh", "-c", "echo 'Running unit tests...' && sleep 3"],
            ),
            ContainerExecutionInput(
                name="integration-tests",
                image=_BUILD_IMAGE,
                command=["sh", "-c", "echo 'Running integration tests...' && sleep 4"],
            ),
            ContainerExecutionInput(
                name="lint-check",
                image=_LINT_IMAGE,
                command=["sh", "-c", "echo 'Running linter...' && sleep 2"],
            ),
        ],
    )


def pipeline_input() -> PipelineInput:
    """A build, test and package sequence that stops at the first failure."""
    return PipelineInput(
        stop_on_error=True,
        cleanup=True,
        containers=[
            ContainerExecutionInput(
                name="build",
                image=_BUILD_IMAGE,
                command=["sh", "-c", "echo 'Building application...' && sleep 2"],
            ),
            ContainerExecutionInput(
                name="test",
                image=_BUILD_IMAGE,
                command=["sh", "-c", "echo 'Running tests...' && sleep 2"],
            ),
            ContainerExecutionInput(
                name="package",
                image="alpine:latest",
                command=["sh", "-c", "echo 'Creating package...' && sleep 1"],
            ),
        ],
    )


def run_basic(worker: Worker) -> ContainerExecutionOutput:
    """Run the single-container example and print its result."""
    result = worker.run("ExecuteContainerWorkflow", basic_input())
    assert isinstance(result, ContainerExecutionOutput)
    print("Container executed successfully!")
    print(f"  Container ID: {result.container_id}")
    print(f"  Exit Code: {result.exit_code}")
    print(f"  Duration: {result.duration}")
    print(f"  Endpoint: {result.endpoint}")
    print(f"  Success: {result.success}")
    return result


def run_parallel(worker: Worker) -> ParallelOutput:
    """Run the parallel example and print a line per container."""
    result = worker.run("ParallelContainersWorkflow", parallel_input())
    assert isinstance(result, ParallelOutput)
    print("Parallel execution completed!")
    print(f"  Total Success: {result.total_success}")
    print(f"  Total Failed: {result.total_failed}")
    print(f"  Total Duration: {result.total_duration}")
    for item in result.results:
        status = "✓" if item.success else "✗"
        print(f"  {status} {item.name}: Exit={item.exit_code}, Duration={item.duration}")
    return result


def run_pipeline(worker: Worker) -> PipelineOutput:
    """Run the pipeline example and print a line per step."""
    result = worker.run("ContainerPipelineWorkflow", pipeline_input())
    assert isinstance(result, PipelineOutput)
    print("Pipeline completed!")
    print(f"  Total Success: {result.total_success}")
    print(f"  Total Failed: {result.total_failed}")
    print(f"  Total Duration: {result.total_duration}")
    for number, item in enumerate(result.results, start=1):
        print(f"  Step {number} ({item.name}): Exit={item.exit_code}, Duration={item.duration}")
    return result


def _describe(worker: Worker) -> None:
    print("Registered workflows:")
    for name in worker.workflows:
        print(f"  - {name}")
    print()
    print("Registered activities:")
    for name in worker.activities:
        print(f"  - {name}")
    print()
    print(f"Worker listening on task queue: {worker.task_queue}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run one of the examples, or all of them, against an in-process worker."""
    parser = argparse.ArgumentParser(prog="containerflow-examples")
    parser.add_argument(
        "example",
        nargs="?",
        default="all",
        choices=["basic", "parallel", "pipeline", "worker", "all"],
    )
    args = parser.parse_args(argv)

    worker = Worker()
    register_all(worker)

    runners = {"basic": run_basic, "parallel": run_parallel, "pipeline": run_pipeline}
    if args.example == "worker":
        _describe(worker)
        return 0
    selected = runners.values() if args.example == "all" else [runners[args.example]]
    try:
        for runner in itertools.chain(selected):
            runner(worker)
    except WorkflowError as exc:
        print(f"Workflow failed: {exc}")
        return 1
    return 0