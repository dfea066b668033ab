"""
Studio Ops orchestrator - the saga engine and the four workflows.

Components:
- saga: Workflow template (run record + events + failure semantics), errors
- workflows: BootstrapWorkflow, DailyStandupWorkflow, WeeklyReportWorkflow, ReleasePrepWorkflow
- models: Request/result models
- temporal: Durable and scheduled triggering (imported on demand)
"""

from .models import (
    BootstrapResult,
    DailyStandupRequest,
    NewProjectRequest,
    ReleasePrepRequest,
    ReleasePrepResult,
    StandupResult,
    WeeklyReportRequest,
    WeeklyReportResult,
)
from .saga import ProjectNotApprovedError, ProjectNotFoundError, Workflow, WorkflowError
from .workflows import BootstrapWorkflow, DailyStandupWorkflow, ReleasePrepWorkflow, WeeklyReportWorkflow

__all__ = [
    # Saga
    "Workflow",
    "WorkflowError",
    "ProjectNotApprovedError",
    "ProjectNotFoundError",
    # Workflows
    "BootstrapWorkflow",
    "DailyStandupWorkflow",
    "WeeklyReportWorkflow",
    "ReleasePrepWorkflow",
    # Models
    "NewProjectRequest",
    "DailyStandupRequest",
    "WeeklyReportRequest",
    "ReleasePrepRequest",
    "BootstrapResult",
    "StandupResult",
    "WeeklyReportResult",
    "ReleasePrepResult",
]
