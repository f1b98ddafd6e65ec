[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "containerflow"
version = "0.1.0"
description = "Container workflow orchestration: single runs, pipelines, parallel fan-out and templated loops"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "containers",
    "workflow",
    "pipeline",
    "orchestration",
    "matrix",
    "loop",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
containerflow-demo = "containerflow.examples:main"
containerflow-loop-demo = "containerflow.loop_examples:main"

[tool.hatch.build.targets.wheel]
packages = ["containerflow"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
