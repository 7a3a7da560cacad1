"""Workflow document model and rendering."""

from .model import Job, JobPermission, JobStep, Workflow, WorkflowTriggers
from .render import GENERATED_MARKER, render_json, render_workflow

__all__ = [
    # model
    "Job",
    "JobPermission",
    "JobStep",
    "Workflow",
    "WorkflowTriggers",
    # render
    "GENERATED_MARKER",
    "render_json",
    "render_workflow",
]
