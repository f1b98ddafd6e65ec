"""Runnable loop examples: per-item loops and parameter-matrix loops on an in-process worker."""

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence

from .examples import Worker, register_all
from .models import ContainerExecutionInput, LoopInput, LoopOutput, ParameterizedLoopInput
from .workflows import WorkflowError


def simple_parallel_loop_input() -> LoopInput:
    """Process several data files side by side, continuing past failures."""
    return LoopInput(
        items=["data1.csv", "data2.csv", "data3.csv", "data4.csv"],
        template=ContainerExecutionInput(
            image="alpine:latest",
            command=["sh", "-c", "echo 'Processing file: {{item}} at index {{index}}' && sleep 1"],
            env={"FILE_NAME": "{{item}}", "INDEX": "{{index}}"},
        ),
        parallel=True,
        failure_strategy="continue",
    )


def sequential_loop_input() -> LoopInput:
    """Deploy to regions one at a time, stopping at the first failure."""
    return LoopInput(
        items=["us-west-1", "us-east-1", "eu-central-1"],
        template=ContainerExecutionInput(
            image="alpine:latest",
            command=["sh", "-c", "echo 'Deploying to region: {{item}}' && sleep 2"],
            env={"REGION": "{{item}}", "DEPLOY_INDEX": "{{index}}"},
        ),
        parallel=False,
        failure_strategy="fail_fast",
    )


def parameterized_loop_input() -> ParameterizedLoopInput:
    """Deploy to every combination of environment and region."""
    return ParameterizedLoopInput(
        parameters={
            "env": ["dev", "staging", "prod"],
            "region": ["us-west", "us-east"],
        },
        template=ContainerExecutionInput(
            image="alpine:latest",
            command=[
                "sh",
                "-c",
                "echo 'Deploying to env={{.env}} region={{.region}}' && sleep 1",
            ],
            env={
                "ENVIRONMENT": "{{.env}}",
                "REGION": "{{.region}}",
                "INDEX": "{{index}}",
            },
        ),
        parallel=True,
        failure_strategy="fail_fast",
    )


def _run(worker: Worker, workflow_name: str, payload: object) -> LoopOutput:
    result = worker.run(workflow_name, payload)
    if not isinstance(result, LoopOutput):
        raise TypeError(f"{workflow_name} returned {type(result).__name__}, not LoopOutput")
    return result


def run_simple_parallel_loop(worker: Worker) -> LoopOutput:
    """Run the parallel per-item loop and print a summary."""
    result = _run(worker, "LoopWorkflow", simple_parallel_loop_input())
    print(
        f"Parallel loop completed: Success={result.total_success}, "
        f"Failed={result.total_failed}, Duration={result.total_duration}"
    )
    return result


def run_sequential_loop(worker: Worker) -> LoopOutput:
    """Run the sequential per-item loop and print a summary."""
    result = _run(worker, "LoopWorkflow", sequential_loop_input())
    print(
        f"Sequential loop completed: Success={result.total_success}, "
        f"Failed={result.total_failed}, Duration={result.total_duration}"
    )
    return result


def run_parameterized_loop(worker: Worker) -> LoopOutput:
    """Run the parameter-matrix loop and print a summary."""
    result = _run(worker, "ParameterizedLoopWorkflow", parameterized_loop_input())
    print(
        f"Parameterized loop completed: Combinations={result.item_count}, "
        f"Success={result.total_success}, Failed={result.total_failed}, "
        f"Duration={result.total_duration}"
    )
    return result


_RUNNERS: dict[str, tuple[str, Callable[[Worker], LoopOutput]]] = {
    "parallel": ("Simple Parallel Loop", run_simple_parallel_loop),
    "sequential": ("Sequential Loop", run_sequential_loop),
    "parameterized": ("Parameterized Loop - Matrix Deployment", run_parameterized_loop),
}


def main(argv: Sequence[str] | None = None) -> int:
    """Run one of the loop examples, or all of them, against an in-process worker."""
    parser = argparse.ArgumentParser(prog="containerflow-loop-examples")
    parser.add_argument("example", nargs="?", default="all", choices=[*_RUNNERS, "all"])
    args = parser.parse_args(argv)

    worker = Worker()
    register_all(worker)

    selected = list(_RUNNERS) if args.example == "all" else [args.example]
    try:
        for number, key in enumerate(selected, start=1):
            title, runner = _RUNNERS[key]
            print(f"\n=== Example {number}: {title} ===")
            runner(worker)
    except WorkflowError as exc:
        print(f"Workflow failed: {exc}")
        return 1
    return 0