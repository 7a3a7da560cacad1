from __future__ import annotations

import json

import yaml

from rsynth.workflows.model import Job, JobPermission, JobStep, Workflow, WorkflowTriggers
from rsynth.workflows.render import GENERATED_MARKER, render_json, render_workflow


def _workflow() -> Workflow:
    return Workflow(
        name="release",
        triggers=WorkflowTriggers(push_branches=("main",)),
        jobs={
            "release": Job(
                runs_on="ubuntu-latest",
                permissions={"contents": JobPermission.WRITE},
                steps=[
                    JobStep(name="Checkout", uses="actions/checkout@v4", with_={"fetch-depth": 0}),
                    JobStep(name="Script", run="echo one\necho two"),
                ],
            )
        },
    )


class TestRenderWorkflow:
    def test_header(self) -> None:
        assert render_workflow(_workflow()).startswith(f"# {GENERATED_MARKER}\n\n")

    def test_round_trips_through_yaml(self) -> None:
        wf = _workflow()
        assert yaml.safe_load(render_workflow(wf)) == wf.to_dict()

    def test_on_key_is_quoted(self) -> None:
        text = render_workflow(_workflow())
        assert "'on':" in text
        assert "on" in yaml.safe_load(text)

    def test_key_order_is_kept(self) -> None:
        text = render_workflow(_workflow())
        assert text.index("name: release") < text.index("'on':") < text.index("jobs:")
        assert text.index("runs-on:") < text.index("permissions:") < text.index("steps:")

    def test_multiline_script_is_literal(self) -> None:
        assert "run: |" in render_workflow(_workflow())

    def test_sequences_are_indented(self) -> None:
        assert "    - name: Checkout" in render_workflow(_workflow())

    def test_deterministic(self) -> None:
        assert render_workflow(_workflow()) == render_workflow(_workflow())


class TestRenderJson:
    def test_marker_first(self) -> None:
        text = render_json({"tasks": {}})
        assert list(json.loads(text)) == ["//", "tasks"]
        assert text.endswith("}\n")
