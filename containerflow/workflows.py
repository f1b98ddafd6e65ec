"""Container workflows: single runs, pipelines, parallel fan-out and loops."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta

from .models import (
    ContainerExecutionInput,
    ContainerExecutionOutput,
    LoopInput,
    LoopOutput,
    ParallelInput,
    ParallelOutput,
    ParameterizedLoopInput,
    PipelineInput,
    PipelineOutput,
    ValidationError,
)
from .templating import generate_parameter_combinations, substitute_container_input

logger = logging.getLogger(__name__)

Executor = Callable[[ContainerExecutionInput], ContainerExecutionOutput]
Sleeper = Callable[[float], None]

FAIL_FAST = "fail_fast"
DEFAULT_TIMEOUT = timedelta(minutes=10)


class WorkflowError(Exception):
    """Raised when a workflow fails; carries the partial output when there is one."""

    def __init__(self, message: str, output: object | None = None) -> None:
        super().__init__(message)
        self.output = output


class _ActivityTimeoutError(TimeoutError):
    """An activity attempt ran longer than its start-to-close timeout."""


@dataclass
class RetryPolicy:
    """Exponential back-off between attempts of a failing activity."""

    initial_interval: timedelta = timedelta(seconds=1)
    backoff_coefficient: float = 2.0
    maximum_interval: timedelta = timedelta(minutes=1)
    maximum_attempts: int = 3

    def delays(self) -> Iterator[timedelta]:
        """Yield the wait before each retry, one fewer than the number of attempts."""
        interval = self.initial_interval
        for _ in range(max(self.maximum_attempts - 1, 0)):
            yield min(interval, self.maximum_interval)
            interval = interval * self.backoff_coefficient


@dataclass
class ActivityOptions:
    """Timeout and retry settings applied to each container activity."""

    start_to_close_timeout: timedelta = DEFAULT_TIMEOUT
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)


def _attempt_once(
    executor: Executor,
    container_input: ContainerExecutionInput,
    timeout: timedelta,
) -> ContainerExecutionOutput:
    started = time.monotonic()
    result = executor(container_input)
    elapsed = timedelta(seconds=time.monotonic() - started)
    if timeout > timedelta(0) and elapsed > timeout:
        raise _ActivityTimeoutError(
            f"activity exceeded start-to-close timeout of {timeout}"
        )
    return result


def run_activity(
    executor: Executor,
    container_input: ContainerExecutionInput,
    options: ActivityOptions | None = None,
    sleep: Sleeper = time.sleep,
) -> ContainerExecutionOutput:
    """Run the executor under the retry policy; re-raise the last error if all attempts fail."""
    options = options or ActivityOptions()
    delays = options.retry_policy.delays()
    while True:
        try:
            return _attempt_once(executor, container_input, options.start_to_close_timeout)
        except Exception as exc:
            delay = next(delays, None)
            if delay is None:
                raise
            logger.warning("Activity attempt failed, retrying in %s: %s", delay, exc)
            sleep(delay.total_seconds())


def _attempt(
    executor: Executor,
    container_input: ContainerExecutionInput,
    options: ActivityOptions,
    sleep: Sleeper,
) -> tuple[ContainerExecutionOutput, Exception | None]:
    try:
        return run_activity(executor, container_input, options, sleep), None
    except Exception as exc:
        return ContainerExecutionOutput(), exc


def _results(
    inputs: Sequence[ContainerExecutionInput],
    executor: Executor,
    options: ActivityOptions,
    sleep: Sleeper,
    parallel: bool,
) -> Iterator[tuple[ContainerExecutionOutput, Exception | None]]:
    """Yield (result, error) per input, in input order."""
    if not parallel:
        for container_input in inputs:
            yield _attempt(executor, container_input, options, sleep)
        return
    pool = ThreadPoolExecutor(max_workers=max(len(inputs), 1))
    try:
        futures = [
            pool.submit(_attempt, executor, container_input, options, sleep)
            for container_input in inputs
        ]
        for future in futures:
            yield future.result()
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def _cause(error: Exception | None) -> str:
    return str(error) if error is not None else "container did not succeed"


def _validated(workflow_input: object) -> None:
    try:
        workflow_input.validate()  # type: ignore[attr-defined]
    except ValidationError as exc:
        raise WorkflowError(f"invalid input: {exc}") from exc


def _elapsed_since(started: float) -> timedelta:
    return timedelta(seconds=time.monotonic() - started)


def execute_container_workflow(
    container_input: ContainerExecutionInput,
    executor: Executor,
    sleep: Sleeper = time.sleep,
) -> ContainerExecutionOutput:
    """Run one container and return its result."""
    logger.info(
        "Starting container execution workflow image=%s name=%s",
        container_input.image,
        container_input.name,
    )
    _validated(container_input)
    timeout = container_input.run_timeout or DEFAULT_TIMEOUT
    options = ActivityOptions(start_to_close_timeout=timeout)
    try:
        output = run_activity(executor, container_input, options, sleep)
    except Exception as exc:
        logger.error("Container execution failed: %s", exc)
        raise WorkflowError(str(exc)) from exc
    logger.info(
        "Container execution completed success=%s exitCode=%s duration=%s",
        output.success,
        output.exit_code,
        output.duration,
    )
    return output


def container_pipeline_workflow(
    pipeline_input: PipelineInput,
    executor: Executor,
    sleep: Sleeper = time.sleep,
) -> PipelineOutput:
    """Run containers one after another, optionally stopping at the first failure."""
    logger.info("Starting container pipeline workflow steps=%d", len(pipeline_input.containers))
    _validated(pipeline_input)
    started = time.monotonic()
    output = PipelineOutput()
    steps = _results(pipeline_input.containers, executor, ActivityOptions(), sleep, False)
    for number, (container_input, (result, error)) in enumerate(
        zip(pipeline_input.containers, steps), start=1
    ):
        step_name = container_input.name or f"step-{number}"
        output.results.append(result)
        if error is not None or not result.success:
            output.total_failed += 1
            logger.error("Pipeline step %d (%s) failed: %s", number, step_name, error)
            if pipeline_input.stop_on_error:
                output.total_duration = _elapsed_since(started)
                raise WorkflowError(
                    f"pipeline stopped at step {number}: {_cause(error)}", output
                ) from error
            continue
        output.total_success += 1
        logger.info("Pipeline step %d (%s) completed in %s", number, step_name, result.duration)
    output.total_duration = _elapsed_since(started)
    logger.info(
        "Pipeline workflow completed success=%d failed=%d",
        output.total_success,
        output.total_failed,
    )
    return output


def parallel_containers_workflow(
    parallel_input: ParallelInput,
    executor: Executor,
    sleep: Sleeper = time.sleep,
) -> ParallelOutput:
    """Start all containers at once and gather their results in input order."""
    logger.info(
        "Starting parallel containers workflow containers=%d maxConcurrency=%d",
        len(parallel_input.containers),
        parallel_input.max_concurrency,
    )
    _validated(parallel_input)
    started = time.monotonic()
    output = ParallelOutput()
    outcomes = _results(parallel_input.containers, executor, ActivityOptions(), sleep, True)
    for index, (result, error) in enumerate(outcomes):
        output.results.append(result)
        if error is not None or not result.success:
            output.total_failed += 1
            if parallel_input.failure_strategy == FAIL_FAST:
                output.total_duration = _elapsed_since(started)
                raise WorkflowError(
                    f"parallel execution failed at container {index}: {_cause(error)}",
                    output,
                ) from error
        else:
            output.total_success += 1
    output.total_duration = _elapsed_since(started)
    logger.info(
        "Parallel workflow completed success=%d failed=%d",
        output.total_success,
        output.total_failed,
    )
    return output


def _run_loop(
    inputs: list[ContainerExecutionInput],
    labels: Sequence[object],
    parallel: bool,
    failure_strategy: str,
    executor: Executor,
    sleep: Sleeper,
    kind: str,
) -> LoopOutput:
    started = time.monotonic()
    output = LoopOutput(item_count=len(inputs))
    outcomes = _results(inputs, executor, ActivityOptions(), sleep, parallel)
    for index, (result, error) in enumerate(outcomes):
        output.results.append(result)
        if error is not None or not result.success:
            output.total_failed += 1
            logger.error("%s iteration %d (%s) failed: %s", kind, index, labels[index], error)
            if failure_strategy == FAIL_FAST:
                output.total_duration = _elapsed_since(started)
                raise WorkflowError(
                    f"{kind} failed at iteration {index}: {_cause(error)}", output
                ) from error
        else:
            output.total_success += 1
    output.total_duration = _elapsed_since(started)
    logger.info(
        "%s workflow completed success=%d failed=%d items=%d",
        kind,
        output.total_success,
        output.total_failed,
        output.item_count,
    )
    return output


def loop_workflow(
    loop_input: LoopInput,
    executor: Executor,
    sleep: Sleeper = time.sleep,
) -> LoopOutput:
    """Run the template once per item, substituting {{item}} and {{index}}."""
    logger.info(
        "Starting loop workflow items=%d parallel=%s",
        len(loop_input.items),
        loop_input.parallel,
    )
    _validated(loop_input)
    inputs = [
        substitute_container_input(loop_input.template, item, index, None)
        for index, item in enumerate(loop_input.items)
    ]
    return _run_loop(
        inputs,
        loop_input.items,
        loop_input.parallel,
        loop_input.failure_strategy,
        executor,
        sleep,
        "loop",
    )


def parameterized_loop_workflow(
    loop_input: ParameterizedLoopInput,
    executor: Executor,
    sleep: Sleeper = time.sleep,
) -> LoopOutput:
    """Run the template once per combination of parameter values."""
    logger.info(
        "Starting parameterized loop workflow parameters=%d parallel=%s",
        len(loop_input.parameters),
        loop_input.parallel,
    )
    _validated(loop_input)
    combinations: list[Mapping[str, str]] = generate_parameter_combinations(
        loop_input.parameters
    )
    logger.info("Generated parameter combinations: %d", len(combinations))
    inputs = [
        substitute_container_input(loop_input.template, "", index, params)
        for index, params in enumerate(combinations)
    ]
    return _run_loop(
        inputs,
        combinations,
        loop_input.parallel,
        loop_input.failure_strategy,
        executor,
        sleep,
        "parameterized loop",
    )