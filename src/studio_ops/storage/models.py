"""
Storage Models — Pydantic and SQLAlchemy models for the Run Ledger.

This module provides:
- Enums shared by the ledger, the workflows and the agents
- Pydantic records (immutable snapshots returned by the ledger)
- SQLAlchemy models (database persistence) with `to_record()`
- Helper functions for ID generation

Ready-Made Solutions:
- Pydantic v2 for validation
- SQLAlchemy for ORM
- uuid for unique IDs
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import declarative_base, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite stores datetimes without tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Enums
# =============================================================================


class EmployeeRole(str, enum.Enum):
    CEO = "CEO"
    CTO = "CTO"
    PRODUCT_MANAGER = "PRODUCT_MANAGER"
    DEVELOPER = "DEVELOPER"
    DESIGNER = "DESIGNER"
    QA = "QA"
    OPS = "OPS"


class ProjectStatus(str, enum.Enum):
    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskStatus(str, enum.Enum):
    """Task lifecycle: TODO → IN_PROGRESS → REVIEW → DONE | BLOCKED."""
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


class WorkflowType(str, enum.Enum):
    PROJECT_BOOTSTRAP = "PROJECT_BOOTSTRAP"
    DAILY_STANDUP = "DAILY_STANDUP"
    WEEKLY_REPORT = "WEEKLY_REPORT"
    RELEASE_PREP = "RELEASE_PREP"


class WorkflowStatus(str, enum.Enum):
    """Run status. RUNNING → COMPLETED | FAILED, terminal once set."""
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not WorkflowStatus.RUNNING


class EventType(str, enum.Enum):
    GITHUB_COMMIT = "GITHUB_COMMIT"
    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_COMPLETED = "TASK_COMPLETED"
    WORKFLOW_TRIGGERED = "WORKFLOW_TRIGGERED"
    WORKFLOW_COMPLETED = "WORKFLOW_COMPLETED"
    STANDUP_SUBMITTED = "STANDUP_SUBMITTED"
    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_UPDATED = "PROJECT_UPDATED"
    WHATSAPP_MESSAGE = "WHATSAPP_MESSAGE"
    CLICKUP_TASK_CREATED = "CLICKUP_TASK_CREATED"
    CLICKUP_TASK_UPDATED = "CLICKUP_TASK_UPDATED"
    CLICKUP_TASK_STATUS_CHANGED = "CLICKUP_TASK_STATUS_CHANGED"


# =============================================================================
# Pydantic Records (returned by the ledger)
# =============================================================================


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Employee(_Record):
    id: str
    name: str
    role: EmployeeRole
    email: str
    workload_score: float = Field(ge=0.0, le=1.0)
    is_active: bool = True


class Project(_Record):
    id: str
    name: str
    description: str = ""
    status: ProjectStatus
    priority: int = Field(ge=1, le=10)
    created_at: datetime
    updated_at: datetime


class Task(_Record):
    id: str
    title: str
    description: str = ""
    status: TaskStatus
    project_id: str
    project_name: Optional[str] = None
    assignee_id: Optional[str] = None
    assignee_name: Optional[str] = None
    estimate_hours: Optional[float] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class StandupEntry(_Record):
    id: str
    employee_id: str
    employee_name: Optional[str] = None
    project_id: Optional[str] = None
    date: datetime
    yesterday: str
    today: str
    blockers: Optional[str] = None
    created_at: datetime


class DomainEvent(_Record):
    """Append-only fact. Never mutated after creation."""
    id: str
    type: EventType
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class WorkflowRun(_Record):
    """
    One record per saga execution.

    Invariant: finished_at is None iff status == RUNNING.
    """
    id: str
    type: WorkflowType
    status: WorkflowStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    result_summary: Optional[str] = None


# =============================================================================
# SQLAlchemy Models (for database persistence)
# =============================================================================

Base = declarative_base()


class EmployeeModel(Base):
    __tablename__ = "employees"

    id = Column(String(100), primary_key=True)
    name = Column(String(200), nullable=False)
    role = Column(Enum(EmployeeRole), nullable=False, index=True)
    email = Column(String(200), nullable=False, unique=True)
    workload_score = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    tasks = relationship("TaskModel", back_populates="assignee")

    def to_record(self) -> Employee:
        return Employee(
            id=self.id,
            name=self.name,
            role=self.role,
            email=self.email,
            workload_score=self.workload_score,
            is_active=self.is_active,
        )


class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(String(100), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(Enum(ProjectStatus), nullable=False, default=ProjectStatus.PLANNING, index=True)
    priority = Column(Integer, nullable=False, default=5)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tasks = relationship("TaskModel", back_populates="project")

    def to_record(self) -> Project:
        return Project(
            id=self.id,
            name=self.name,
            description=self.description or "",
            status=self.status,
            priority=self.priority,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(String(100), primary_key=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(Enum(TaskStatus), nullable=False, default=TaskStatus.TODO, index=True)
    project_id = Column(String(100), ForeignKey("projects.id"), nullable=False, index=True)
    assignee_id = Column(String(100), ForeignKey("employees.id"), nullable=True, index=True)
    estimate_hours = Column(Float, nullable=True)
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, index=True)

    project = relationship("ProjectModel", back_populates="tasks")
    assignee = relationship("EmployeeModel", back_populates="tasks")

    def to_record(self) -> Task:
        return Task(
            id=self.id,
            title=self.title,
            description=self.description or "",
            status=self.status,
            project_id=self.project_id,
            project_name=self.project.name if self.project else None,
            assignee_id=self.assignee_id,
            assignee_name=self.assignee.name if self.assignee else None,
            estimate_hours=self.estimate_hours,
            due_date=self.due_date,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class StandupEntryModel(Base):
    __tablename__ = "standup_entries"

    id = Column(String(100), primary_key=True)
    employee_id = Column(String(100), ForeignKey("employees.id"), nullable=False, index=True)
    project_id = Column(String(100), ForeignKey("projects.id"), nullable=True)
    date = Column(DateTime, nullable=False, index=True)
    yesterday = Column(Text, nullable=False)
    today = Column(Text, nullable=False)
    blockers = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    employee = relationship("EmployeeModel")

    def to_record(self) -> StandupEntry:
        return StandupEntry(
            id=self.id,
            employee_id=self.employee_id,
            employee_name=self.employee.name if self.employee else None,
            project_id=self.project_id,
            date=self.date,
            yesterday=self.yesterday,
            today=self.today,
            blockers=self.blockers,
            created_at=self.created_at,
        )


class EventLogModel(Base):
    __tablename__ = "event_log"

    id = Column(String(100), primary_key=True)
    type = Column(Enum(EventType), nullable=False, index=True)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def to_record(self) -> DomainEvent:
        return DomainEvent(
            id=self.id,
            type=self.type,
            payload=self.payload or {},
            created_at=self.created_at,
        )


class WorkflowRunModel(Base):
    __tablename__ = "workflow_runs"

    id = Column(String(100), primary_key=True)
    type = Column(Enum(WorkflowType), nullable=False, index=True)
    status = Column(Enum(WorkflowStatus), nullable=False, default=WorkflowStatus.RUNNING)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    finished_at = Column(DateTime, nullable=True)
    # "metadata" is reserved on declarative classes
    run_metadata = Column("metadata", JSON, nullable=False, default=dict)
    result_summary = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def to_record(self) -> WorkflowRun:
        return WorkflowRun(
            id=self.id,
            type=self.type,
            status=self.status,
            started_at=self.started_at,
            finished_at=self.finished_at,
            metadata=self.run_metadata or {},
            result_summary=self.result_summary,
        )


# =============================================================================
# Helper Functions
# =============================================================================


def generate_id(prefix: str) -> str:
    """
    Generate unique entity ID.

    Format: {prefix}_{uuid4}
    Example: run_a1b2c3d4-e5f6-7890-abcd-ef1234567890
    """
    return f"{prefix}_{uuid.uuid4()}"
