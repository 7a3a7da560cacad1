"""Serialization of generated documents.

Workflows are written as YAML (PyYAML), the task graph as JSON. Both
renderers are deterministic: keys keep insertion order and nothing depends
on the environment.
"""

from __future__ import annotations

import json

import yaml

from .model import Workflow

__all__ = ["GENERATED_MARKER", "render_json", "render_workflow"]

GENERATED_MARKER = '~~ Generated by rsynth. To modify, edit rsynth.toml and run "rsynth synth".'


class _WorkflowDumper(yaml.SafeDumper):
    """SafeDumper that indents block sequences and keeps multi-line scripts literal."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        super().increase_indent(flow, False)


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_WorkflowDumper.add_representer(str, _represent_str)


def render_workflow(workflow: Workflow) -> str:
    """Render a workflow as a YAML document with a generated-file header."""
    body = yaml.dump(
        workflow.to_dict(),
        Dumper=_WorkflowDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=4096,
    )
    return f"# {GENERATED_MARKER}\n\n{body}"


def render_json(payload: object) -> str:
    """Render a JSON document with the generated-file marker as `//` key."""
    if isinstance(payload, dict):
        payload = {"//": GENERATED_MARKER, **payload}
    return json.dumps(payload, indent=2) + "\n"
