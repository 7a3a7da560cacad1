"""Release workflow and task-graph synthesizer."""

__version__ = "0.1.0"
