"""
Storage module for Studio Ops — the Run Ledger.

Components:
- models: Enums, Pydantic records and SQLAlchemy models
- ledger: RunLedger (workflow runs, domain events, entity repositories)

Ready-Made Solutions:
- SQLAlchemy: Database ORM
- Pydantic: Data validation
"""

from .models import (
    DomainEvent,
    Employee,
    EmployeeRole,
    EventType,
    Project,
    ProjectStatus,
    StandupEntry,
    Task,
    TaskStatus,
    WorkflowRun,
    WorkflowStatus,
    WorkflowType,
    generate_id,
    utcnow,
)
from .ledger import InvalidTransitionError, NotFoundError, RunLedger, clamp_workload, seed_demo_data

__all__ = [
    # Models
    "DomainEvent",
    "Employee",
    "EmployeeRole",
    "EventType",
    "Project",
    "ProjectStatus",
    "StandupEntry",
    "Task",
    "TaskStatus",
    "WorkflowRun",
    "WorkflowStatus",
    "WorkflowType",
    "generate_id",
    "utcnow",
    # Ledger
    "RunLedger",
    "InvalidTransitionError",
    "NotFoundError",
    "clamp_workload",
    "seed_demo_data",
]
