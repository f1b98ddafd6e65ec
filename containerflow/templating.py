"""Placeholder substitution for container templates and parameter matrices."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from itertools import product

from .models import ContainerExecutionInput


def substitute_template(
    template: str, item: str, index: int, params: Mapping[str, str] | None
) -> str:
    """Replace {{item}}, {{index}}, {{.name}} and {{name}} placeholders in a string."""
    result = template.replace("{{item}}", item).replace("{{index}}", str(index))
    for key, value in (params or {}).items():
        result = result.replace(f"{{{{.{key}}}}}", value)
        result = result.replace(f"{{{{{key}}}}}", value)
    return result


def substitute_container_input(
    template: ContainerExecutionInput,
    item: str,
    index: int,
    params: Mapping[str, str] | None,
) -> ContainerExecutionInput:
    """Return a copy of the template with placeholders substituted in its fields."""

    def sub(text: str) -> str:
        return substitute_template(text, item, index, params)

    changes: dict[str, object] = {"image": sub(template.image)}
    if template.command:
        changes["command"] = [sub(part) for part in template.command]
    if template.entrypoint:
        changes["entrypoint"] = [sub(part) for part in template.entrypoint]
    if template.env:
        changes["env"] = {sub(k): sub(v) for k, v in template.env.items()}
    if template.name:
        changes["name"] = sub(template.name)
    if template.work_dir:
        changes["work_dir"] = sub(template.work_dir)
    if template.volumes:
        changes["volumes"] = {sub(k): sub(v) for k, v in template.volumes.items()}
    return dataclasses.replace(template, **changes)


def generate_parameter_combinations(
    params: Mapping[str, Sequence[str]],
) -> list[dict[str, str]]:
    """Return the cartesian product of parameter values as one dict per combination."""
    if not params:
        return []
    keys = list(params)
    return [dict(zip(keys, values)) for values in product(*(params[k] for k in keys))]