"""Container workflows: single runs, pipelines, parallel fan-out and templated loops, with a simulated executor for demos."""

__version__ = "0.1.0"