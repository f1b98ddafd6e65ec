import pytest

from containerflow.examples import (
    SimulatedExecutor,
    Worker,
    basic_input,
    main,
    parallel_input,
    pipeline_input,
    register_all,
    run_basic,
    run_parallel,
    run_pipeline,
)
from containerflow.models import ContainerExecutionInput, PipelineInput
from containerflow.workflows import WorkflowError


def _worker():
    worker = Worker(sleep=lambda seconds: None)
    register_all(worker)
    return worker


def test_register_all_registers_workflows_and_activity():
    worker = _worker()
    assert set(worker.workflows) == {
        "ExecuteContainerWorkflow",
        "ContainerPipelineWorkflow",
        "ParallelContainersWorkflow",
        "LoopWorkflow",
        "ParameterizedLoopWorkflow",
    }
    assert list(worker.activities) == ["StartContainerActivity"]


def test_duplicate_registration_rejected():
    worker = _worker()
    with pytest.raises(ValueError):
        register_all(worker)


def test_unknown_workflow_raises_key_error():
    worker = _worker()
    with pytest.raises(KeyError):
        worker.run("NoSuchWorkflow", basic_input())


def test_missing_activity_raises_lookup_error():
    worker = Worker()
    worker.register_workflow("ExecuteContainerWorkflow", lambda *a: None)
    with pytest.raises(LookupError):
        worker.run("ExecuteContainerWorkflow", basic_input())


def test_run_basic_succeeds_with_endpoint():
    result = run_basic(_worker())
    assert result.success is True
    assert result.exit_code == 0
    assert result.container_id
    assert result.name == basic_input().name
    assert result.endpoint == "localhost:5432"


def test_run_pipeline_counts_every_step():
    result = run_pipeline(_worker())
    expected = len(pipeline_input().containers)
    assert result.total_success == expected
    assert result.total_failed == 0
    assert [r.name for r in result.results] == [c.name for c in pipeline_input().containers]


def test_run_parallel_keeps_input_order():
    result = run_parallel(_worker())
    names = [c.name for c in parallel_input().containers]
    assert [r.name for r in result.results] == names
    assert result.total_success == len(names)
    assert result.total_failed == 0


def test_executor_expands_environment_in_echo():
    executor = SimulatedExecutor()
    output = executor(
        ContainerExecutionInput(
            image="alpine:latest",
            command=["sh", "-c", "echo $TEST_VAR"],
            env={"TEST_VAR": "test_value"},
        )
    )
    assert "test_value" in output.stdout
    assert len(executor.calls) == 1


def test_executor_reports_configured_exit_code():
    executor = SimulatedExecutor(exit_codes={"step2": 1})
    output = executor(ContainerExecutionInput(image="alpine:latest", name="step2"))
    assert output.exit_code == 1
    assert output.success is False


def test_pipeline_stops_on_failing_step():
    worker = Worker(sleep=lambda seconds: None)
    worker.register_workflow(
        "ContainerPipelineWorkflow", _worker().workflows["ContainerPipelineWorkflow"]
    )
    worker.register_activity("StartContainerActivity", SimulatedExecutor({"step1": 1}))
    pipeline = PipelineInput(
        containers=[
            ContainerExecutionInput(image="alpine:latest", name="step1"),
            ContainerExecutionInput(image="alpine:latest", name="step2"),
        ],
        stop_on_error=True,
    )
    with pytest.raises(WorkflowError) as info:
        worker.run("ContainerPipelineWorkflow", pipeline)
    assert info.value.output.total_failed == 1
    assert len(info.value.output.results) == 1


def test_main_worker_lists_registrations(capsys):
    assert main(["worker"]) == 0
    printed = capsys.readouterr().out
    assert "ExecuteContainerWorkflow" in printed
    assert "StartContainerActivity" in printed
    assert "docker-tasks" in printed


def test_main_runs_all_examples(capsys):
    assert main([]) == 0
    printed = capsys.readouterr().out
    assert "Pipeline completed!" in printed
    assert "Parallel execution completed!" in printed
    assert "Container executed successfully!" in printed