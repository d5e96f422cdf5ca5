"""
D4 Jobs Module

Render job orchestration: the per-job state machine with atomic publish and
the report service boundary used by the API and CLI.
"""

from .service import ReportService, design_from_mapping
from .task import JobState, RenderJob, RenderTask, can_transition, is_terminal

__all__ = [
    "JobState",
    "RenderJob",
    "RenderTask",
    "ReportService",
    "can_transition",
    "design_from_mapping",
    "is_terminal",
]
