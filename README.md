# containerflow

Describe container runs as plain data and drive them through a small set of
workflows in `containerflow.workflows`:

- **single container**: `execute_container_workflow` runs one container under
  a retry policy and a run timeout. The timeout is ten minutes unless the
  input sets `run_timeout`.
- **pipeline**: `container_pipeline_workflow` runs containers one after
  another. With `stop_on_error` it stops at the first failed step; otherwise
  it goes on to the end and counts the failures.
- **parallel**: `parallel_containers_workflow` starts every container at once
  and collects the results in input order. A `failure_strategy` of
  `"fail_fast"` stops at the first failed result; any other value continues.
- **loop (withItems)**: `loop_workflow` runs one template once for each item,
  in parallel or one after another. The item and the index are substituted
  into the template.
- **parameterized loop (withParam)**: `parameterized_loop_workflow` runs one
  template for every combination of parameter values (the cartesian product).

A step counts as failed when the executor raises or when the returned output
has `success` set to false.

The workflows do not run containers themselves. They call an *executor*: any
callable that takes a `ContainerExecutionInput` and returns a
`ContainerExecutionOutput`. They also take a `sleep` callable (default
`time.sleep`), used to wait between retries. Plug in your own container
runtime, or use the simulated one for tests and demos.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Data model

`containerflow.models` defines the inputs and outputs as dataclasses:

- `ContainerExecutionInput`, `WaitStrategyConfig`, `ContainerExecutionOutput`
- `PipelineInput` / `PipelineOutput`
- `ParallelInput` / `ParallelOutput`
- `LoopInput`, `ParameterizedLoopInput` / `LoopOutput`

Every input has a `validate()` method. It raises `ValidationError` (a
`ValueError`) when the input is incomplete: the image is missing, there are no
containers or items, there are no parameters, or a parameter has no values.

## Template substitution

`containerflow.templating` fills in the loop placeholders:

- `{{item}}` becomes the current item
- `{{index}}` becomes the zero-based iteration index
- `{{.name}}` and `{{name}}` become the value of the parameter `name`

```python
from containerflow.templating import substitute_template, generate_parameter_combinations

substitute_template("process {{item}} index={{index}} env={{.env}}", "data.json", 3, {"env": "dev"})
# 'process data.json index=3 env=dev'

generate_parameter_combinations({"env": ["dev", "prod"], "region": ["us-west", "us-east"]})
# four dicts, one for each env/region pair
```

`substitute_container_input` returns a copy of a container description with
placeholders substituted in the image, command, entrypoint, environment (keys
and values), name, working directory and volumes (keys and values).

## Errors and retries

A workflow raises `WorkflowError` when its input does not validate (the
message starts with `invalid input:`), when a single container run fails, or
when a run fails under `stop_on_error` or `"fail_fast"`. For pipelines,
parallel runs and loops, the exception's `output` attribute holds the partial
output collected so far.

`run_activity` calls the executor under `ActivityOptions`: a start-to-close
timeout and a `RetryPolicy`. The defaults are a one-second initial interval, a
backoff coefficient of 2, a one-minute maximum interval and three attempts;
`RetryPolicy.delays()` yields the wait before each retry. Only an executor
that raises is retried; an output with `success` false is not.

## Demos

`containerflow.examples` provides `SimulatedExecutor`, an in-process `Worker`
and `register_all`, which registers every workflow and the simulated
`StartContainerActivity`. The simulated executor records each request, prints
nothing, and builds the output from the request: `stdout` is what the `echo`
commands of the container's script would print (with `$VAR` expanded from its
environment), the endpoint comes from the first port mapping, and the exit
code is 0 unless a different one is given for the container's name.

Two commands run the bundled examples against it, so no container runtime is
needed:

```
containerflow-demo [basic|parallel|pipeline|worker|all]
containerflow-loop-demo [parallel|sequential|parameterized|all]
```

`containerflow-demo` runs the single-container, parallel and pipeline
examples (all of them by default); `worker` lists the registered workflows,
activities and task queue instead. `containerflow-loop-demo` runs the parallel
loop, the sequential loop and the parameterized (matrix) loop. Both exit with
status 1 if a workflow fails.

## What this package does not do

- It has no executor that starts real containers. `WaitStrategyConfig`,
  ports, volumes, labels, user and auto-remove settings are carried as data
  for your executor to act on.
- `Worker` runs workflows in the calling process. There is no workflow
  server, task queue or remote worker.
- `max_concurrency` is recorded but not enforced: parallel runs start every
  container at once. `PipelineInput.cleanup` is likewise not acted on.
- The timeout does not interrupt an executor; an attempt that took longer than
  the timeout is counted as failed once it returns.