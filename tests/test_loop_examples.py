from itertools import product

import pytest

from containerflow.examples import ACTIVITY_NAME, SimulatedExecutor, Worker, register_all
from containerflow.loop_examples import (
    main,
    parameterized_loop_input,
    run_parameterized_loop,
    run_sequential_loop,
    run_simple_parallel_loop,
    sequential_loop_input,
    simple_parallel_loop_input,
)
from containerflow.workflows import WorkflowError, loop_workflow, parameterized_loop_workflow


def _worker() -> Worker:
    worker = Worker(sleep=lambda seconds: None)
    register_all(worker)
    return worker


def _failing_worker() -> Worker:
    worker = Worker(sleep=lambda seconds: None)
    worker.register_workflow("LoopWorkflow", loop_workflow)
    worker.register_workflow("ParameterizedLoopWorkflow", parameterized_loop_workflow)
    worker.register_activity(ACTIVITY_NAME, SimulatedExecutor({"": 1}))
    return worker


def test_inputs_are_valid_and_match_source_settings():
    parallel = simple_parallel_loop_input()
    sequential = sequential_loop_input()
    matrix = parameterized_loop_input()
    parallel.validate()
    sequential.validate()
    matrix.validate()
    assert parallel.parallel is True
    assert parallel.failure_strategy == "continue"
    assert sequential.parallel is False
    assert sequential.failure_strategy == "fail_fast"
    assert matrix.parameters["env"] == ["dev", "staging", "prod"]


def test_parallel_loop_runs_every_item():
    worker = _worker()
    loop_input = simple_parallel_loop_input()
    result = run_simple_parallel_loop(worker)
    assert result.item_count == len(loop_input.items)
    assert result.total_success == len(loop_input.items)
    assert result.total_failed == 0
    calls = worker.activities[ACTIVITY_NAME].calls
    assert sorted(call.env["FILE_NAME"] for call in calls) == sorted(loop_input.items)
    assert sorted(call.env["INDEX"] for call in calls) == sorted(
        str(i) for i in range(len(loop_input.items))
    )


def test_sequential_loop_preserves_order():
    worker = _worker()
    loop_input = sequential_loop_input()
    result = run_sequential_loop(worker)
    assert result.total_success == len(loop_input.items)
    calls = worker.activities[ACTIVITY_NAME].calls
    assert [call.env["REGION"] for call in calls] == loop_input.items
    assert "{{item}}" not in calls[0].command[2]


def test_parameterized_loop_covers_every_combination():
    worker = _worker()
    loop_input = parameterized_loop_input()
    result = run_parameterized_loop(worker)
    expected = set(product(loop_input.parameters["env"], loop_input.parameters["region"]))
    assert result.item_count == len(expected)
    assert result.total_success == len(expected)
    calls = worker.activities[ACTIVITY_NAME].calls
    assert {(c.env["ENVIRONMENT"], c.env["REGION"]) for c in calls} == expected


def test_sequential_loop_fails_fast():
    with pytest.raises(WorkflowError) as info:
        run_sequential_loop(_failing_worker())
    assert info.value.output.total_failed == 1
    assert len(info.value.output.results) == 1


def test_parallel_loop_continues_past_failures():
    result = run_simple_parallel_loop(_failing_worker())
    assert result.total_failed == len(simple_parallel_loop_input().items)
    assert result.total_success == 0


def test_main_runs_selected_example(capsys):
    assert main(["parameterized"]) == 0
    out = capsys.readouterr().out
    assert "Parameterized loop completed" in out
    assert "Failed=0" in out


def test_main_runs_all(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "Parallel loop completed" in out
    assert "Sequential loop completed" in out


def test_main_rejects_unknown_example():
    with pytest.raises(SystemExit):
        main(["nonexistent"])