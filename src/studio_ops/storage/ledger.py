"""
Run Ledger — SQLAlchemy-based persistence for Studio Ops.

This service provides:
- Workflow run records (create, terminal update, queries)
- Append-only domain event log
- Narrow repository operations for projects, tasks, employees and standups

Every operation opens its own session; writes are independent and no
transaction spans several calls.

Invariants implemented:
- finished_at is set exactly when a run reaches a terminal status
- Terminal runs are never updated again
- Employee workload is clamped to [0, 1] on every write

Ready-Made Solutions:
- SQLAlchemy: Database ORM
- Pydantic: Immutable records returned to callers
"""

import logging
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import create_engine
from sqlalchemy.orm import joinedload, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import (
    Base,
    DomainEvent,
    Employee,
    EmployeeModel,
    EmployeeRole,
    EventLogModel,
    EventType,
    Project,
    ProjectModel,
    ProjectStatus,
    StandupEntry,
    StandupEntryModel,
    Task,
    TaskModel,
    TaskStatus,
    WorkflowRun,
    WorkflowRunModel,
    WorkflowStatus,
    WorkflowType,
    generate_id,
    utcnow,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """Raised when a workflow run status change violates the lifecycle."""


class NotFoundError(LookupError):
    """Raised when an entity referenced by id does not exist."""


def _day_bounds(day: Union[date, datetime]) -> tuple:
    if isinstance(day, datetime):
        day = day.date()
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def clamp_workload(score: float) -> float:
    return max(0.0, min(1.0, score))


class RunLedger:
    """
    Persistence boundary for workflow runs, domain events and studio entities.

    Usage:
        with RunLedger("sqlite:///.data/studio.db") as ledger:
            run = ledger.create_run(WorkflowType.DAILY_STANDUP)
    """

    def __init__(self, database_url: str = "sqlite:///.data/studio.db", echo: bool = False):
        """
        Initialize the ledger.

        Args:
            database_url: SQLAlchemy database URL ("sqlite://" for in-memory)
            echo: Log SQL statements
        """
        self.database_url = database_url

        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
            else:
                self._ensure_sqlite_dir(database_url)

        self.engine = create_engine(database_url, **engine_kwargs)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        logger.info(f"RunLedger initialized: {database_url}")

    @staticmethod
    def _ensure_sqlite_dir(database_url: str) -> None:
        path = database_url.split("sqlite:///", 1)[-1]
        if path:
            Path(path).resolve().parent.mkdir(parents=True, exist_ok=True)

    def close(self) -> None:
        """Dispose the engine and its connection pool."""
        self.engine.dispose()
        logger.info("RunLedger closed")

    def __enter__(self) -> "RunLedger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================================================================
    # Workflow Runs
    # =========================================================================

    def create_run(
        self,
        workflow_type: WorkflowType,
        status: WorkflowStatus = WorkflowStatus.RUNNING,
        started_at: Optional[datetime] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> WorkflowRun:
        """Create a workflow run record (RUNNING unless told otherwise)."""
        started_at = started_at or utcnow()
        with self.SessionLocal() as session:
            run = WorkflowRunModel(
                id=generate_id("run"),
                type=workflow_type,
                status=status,
                started_at=started_at,
                finished_at=started_at if status.is_terminal else None,
                run_metadata=metadata or {},
            )
            session.add(run)
            session.commit()
            logger.debug(f"Workflow run created: {run.id} ({workflow_type.value})")
            return run.to_record()

    def update_run_status(
        self,
        run_id: str,
        status: WorkflowStatus,
        result_summary: Optional[str] = None,
    ) -> WorkflowRun:
        """
        Move a run to a new status.

        finished_at is set exactly when the new status is terminal.

        Raises:
            NotFoundError: Unknown run id
            InvalidTransitionError: Run is already terminal
        """
        with self.SessionLocal() as session:
            run = session.get(WorkflowRunModel, run_id)
            if run is None:
                raise NotFoundError(f"Workflow run not found: {run_id}")

            if run.status.is_terminal:
                raise InvalidTransitionError(
                    f"Workflow run {run_id} already finished with status {run.status.value}"
                )

            run.status = status
            run.finished_at = utcnow() if status.is_terminal else None
            if result_summary is not None:
                run.result_summary = result_summary

            session.commit()
            logger.debug(f"Workflow run {run_id} → {status.value}")
            return run.to_record()

    def get_run(self, run_id: str) -> Optional[WorkflowRun]:
        with self.SessionLocal() as session:
            run = session.get(WorkflowRunModel, run_id)
            return run.to_record() if run else None

    def get_recent_runs(self, limit: int = 20) -> List[WorkflowRun]:
        with self.SessionLocal() as session:
            runs = (
                session.query(WorkflowRunModel)
                .order_by(WorkflowRunModel.created_at.desc())
                .limit(limit)
                .all()
            )
            return [r.to_record() for r in runs]

    def get_runs_by_type(self, workflow_type: WorkflowType, limit: int = 10) -> List[WorkflowRun]:
        with self.SessionLocal() as session:
            runs = (
                session.query(WorkflowRunModel)
                .filter(WorkflowRunModel.type == workflow_type)
                .order_by(WorkflowRunModel.created_at.desc())
                .limit(limit)
                .all()
            )
            return [r.to_record() for r in runs]

    # =========================================================================
    # Domain Events
    # =========================================================================

    def log_event(self, event_type: EventType, payload: Optional[Dict[str, Any]] = None) -> DomainEvent:
        """Append a domain event."""
        with self.SessionLocal() as session:
            event = EventLogModel(
                id=generate_id("evt"),
                type=event_type,
                payload=payload or {},
                created_at=utcnow(),
            )
            session.add(event)
            session.commit()
            return event.to_record()

    def get_events_since(self, since: datetime, event_type: Optional[EventType] = None) -> List[DomainEvent]:
        """Events created at or after `since`, newest first."""
        with self.SessionLocal() as session:
            query = session.query(EventLogModel).filter(EventLogModel.created_at >= since)
            if event_type is not None:
                query = query.filter(EventLogModel.type == event_type)
            events = query.order_by(EventLogModel.created_at.desc()).all()
            return [e.to_record() for e in events]

    def get_events_by_type(self, event_type: EventType, limit: int = 50) -> List[DomainEvent]:
        with self.SessionLocal() as session:
            events = (
                session.query(EventLogModel)
                .filter(EventLogModel.type == event_type)
                .order_by(EventLogModel.created_at.desc())
                .limit(limit)
                .all()
            )
            return [e.to_record() for e in events]

    def get_recent_events(self, limit: int = 100) -> List[DomainEvent]:
        with self.SessionLocal() as session:
            events = (
                session.query(EventLogModel)
                .order_by(EventLogModel.created_at.desc())
                .limit(limit)
                .all()
            )
            return [e.to_record() for e in events]

    # =========================================================================
    # Projects
    # =========================================================================

    def create_project(
        self,
        name: str,
        description: str = "",
        status: ProjectStatus = ProjectStatus.PLANNING,
        priority: int = 5,
    ) -> Project:
        with self.SessionLocal() as session:
            project = ProjectModel(
                id=generate_id("prj"),
                name=name,
                description=description,
                status=status,
                priority=max(1, min(10, priority)),
            )
            session.add(project)
            session.commit()
            return project.to_record()

    def get_project_by_id(self, project_id: str) -> Optional[Project]:
        with self.SessionLocal() as session:
            project = session.get(ProjectModel, project_id)
            return project.to_record() if project else None

    def get_all_projects(self) -> List[Project]:
        with self.SessionLocal() as session:
            projects = (
                session.query(ProjectModel)
                .order_by(ProjectModel.priority.desc(), ProjectModel.created_at.desc())
                .all()
            )
            return [p.to_record() for p in projects]

    def get_projects_by_status(self, status: ProjectStatus) -> List[Project]:
        with self.SessionLocal() as session:
            projects = (
                session.query(ProjectModel)
                .filter(ProjectModel.status == status)
                .order_by(ProjectModel.priority.desc(), ProjectModel.created_at.desc())
                .all()
            )
            return [p.to_record() for p in projects]

    def update_project_status(self, project_id: str, status: ProjectStatus) -> Project:
        with self.SessionLocal() as session:
            project = session.get(ProjectModel, project_id)
            if project is None:
                raise NotFoundError(f"Project not found: {project_id}")
            project.status = status
            session.commit()
            return project.to_record()

    # =========================================================================
    # Tasks
    # =========================================================================

    def _task_query(self, session):
        return session.query(TaskModel).options(
            joinedload(TaskModel.assignee),
            joinedload(TaskModel.project),
        )

    def create_task(
        self,
        project_id: str,
        title: str,
        description: str = "",
        status: TaskStatus = TaskStatus.TODO,
        estimate_hours: Optional[float] = None,
        due_date: Optional[datetime] = None,
        assignee_id: Optional[str] = None,
    ) -> Task:
        with self.SessionLocal() as session:
            try:
                task = TaskModel(
                    id=generate_id("tsk"),
                    project_id=project_id,
                    title=title,
                    description=description,
                    status=status,
                    estimate_hours=estimate_hours,
                    due_date=due_date,
                    assignee_id=assignee_id,
                )
                session.add(task)
                session.commit()
                return self._task_query(session).filter(TaskModel.id == task.id).one().to_record()
            except Exception:
                session.rollback()
                raise

    def get_task_by_id(self, task_id: str) -> Optional[Task]:
        with self.SessionLocal() as session:
            task = self._task_query(session).filter(TaskModel.id == task_id).one_or_none()
            return task.to_record() if task else None

    def get_tasks_by_project(self, project_id: str) -> List[Task]:
        with self.SessionLocal() as session:
            tasks = (
                self._task_query(session)
                .filter(TaskModel.project_id == project_id)
                .order_by(TaskModel.created_at.asc())
                .all()
            )
            return [t.to_record() for t in tasks]

    def get_tasks_by_assignee(self, assignee_id: str) -> List[Task]:
        with self.SessionLocal() as session:
            tasks = (
                self._task_query(session)
                .filter(TaskModel.assignee_id == assignee_id)
                .order_by(TaskModel.due_date.asc(), TaskModel.created_at.asc())
                .all()
            )
            return [t.to_record() for t in tasks]

    def get_tasks_by_status(self, status: TaskStatus) -> List[Task]:
        with self.SessionLocal() as session:
            tasks = (
                self._task_query(session)
                .filter(TaskModel.status == status)
                .order_by(TaskModel.due_date.asc(), TaskModel.created_at.asc())
                .all()
            )
            return [t.to_record() for t in tasks]

    def get_tasks_updated_between(self, start: datetime, end: datetime) -> List[Task]:
        """Tasks whose updated_at falls in [start, end)."""
        with self.SessionLocal() as session:
            tasks = (
                self._task_query(session)
                .filter(TaskModel.updated_at >= start, TaskModel.updated_at < end)
                .order_by(TaskModel.updated_at.asc())
                .all()
            )
            return [t.to_record() for t in tasks]

    def assign_task(self, task_id: str, assignee_id: str) -> Task:
        with self.SessionLocal() as session:
            task = session.get(TaskModel, task_id)
            if task is None:
                raise NotFoundError(f"Task not found: {task_id}")
            if session.get(EmployeeModel, assignee_id) is None:
                raise NotFoundError(f"Employee not found: {assignee_id}")
            task.assignee_id = assignee_id
            session.commit()
            return self._task_query(session).filter(TaskModel.id == task_id).one().to_record()

    def update_task_status(self, task_id: str, status: TaskStatus) -> Task:
        with self.SessionLocal() as session:
            task = session.get(TaskModel, task_id)
            if task is None:
                raise NotFoundError(f"Task not found: {task_id}")
            task.status = status
            session.commit()
            return self._task_query(session).filter(TaskModel.id == task_id).one().to_record()

    # =========================================================================
    # Employees
    # =========================================================================

    def create_employee(
        self,
        name: str,
        role: EmployeeRole,
        email: str,
        workload_score: float = 0.0,
        is_active: bool = True,
    ) -> Employee:
        with self.SessionLocal() as session:
            employee = EmployeeModel(
                id=generate_id("emp"),
                name=name,
                role=role,
                email=email,
                workload_score=clamp_workload(workload_score),
                is_active=is_active,
            )
            session.add(employee)
            session.commit()
            return employee.to_record()

    def get_employee_by_id(self, employee_id: str) -> Optional[Employee]:
        with self.SessionLocal() as session:
            employee = session.get(EmployeeModel, employee_id)
            return employee.to_record() if employee else None

    def get_active_employees(self) -> List[Employee]:
        with self.SessionLocal() as session:
            employees = (
                session.query(EmployeeModel)
                .filter(EmployeeModel.is_active.is_(True))
                .order_by(EmployeeModel.name.asc())
                .all()
            )
            return [e.to_record() for e in employees]

    def get_employees_by_role(self, role: EmployeeRole) -> List[Employee]:
        with self.SessionLocal() as session:
            employees = (
                session.query(EmployeeModel)
                .filter(EmployeeModel.role == role, EmployeeModel.is_active.is_(True))
                .order_by(EmployeeModel.name.asc())
                .all()
            )
            return [e.to_record() for e in employees]

    def update_employee_workload(self, employee_id: str, workload_score: float) -> Employee:
        """Set workload, clamped to [0, 1]."""
        with self.SessionLocal() as session:
            employee = session.get(EmployeeModel, employee_id)
            if employee is None:
                raise NotFoundError(f"Employee not found: {employee_id}")
            employee.workload_score = clamp_workload(workload_score)
            session.commit()
            return employee.to_record()

    # =========================================================================
    # Standups
    # =========================================================================

    def create_standup(
        self,
        employee_id: str,
        day: Union[date, datetime],
        yesterday: str,
        today: str,
        blockers: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> StandupEntry:
        if not isinstance(day, datetime):
            day = datetime.combine(day, time.min)
        with self.SessionLocal() as session:
            entry = StandupEntryModel(
                id=generate_id("std"),
                employee_id=employee_id,
                project_id=project_id,
                date=day,
                yesterday=yesterday,
                today=today,
                blockers=blockers,
            )
            session.add(entry)
            session.commit()
            entry = (
                session.query(StandupEntryModel)
                .options(joinedload(StandupEntryModel.employee))
                .filter(StandupEntryModel.id == entry.id)
                .one()
            )
            return entry.to_record()

    def get_standups_by_date(self, day: Union[date, datetime]) -> List[StandupEntry]:
        """All standups whose date falls on the given calendar day."""
        start, end = _day_bounds(day)
        with self.SessionLocal() as session:
            entries = (
                session.query(StandupEntryModel)
                .options(joinedload(StandupEntryModel.employee))
                .filter(StandupEntryModel.date >= start, StandupEntryModel.date < end)
                .order_by(StandupEntryModel.created_at.asc())
                .all()
            )
            return [e.to_record() for e in entries]


def seed_demo_data(ledger: RunLedger) -> Dict[str, Any]:
    """Create the demo team, one active project and a few tasks."""
    team = [
        ("Ada Keller", EmployeeRole.CEO, "ada@studio.example", 0.3),
        ("Marco Lind", EmployeeRole.CTO, "marco@studio.example", 0.5),
        ("Priya Nair", EmployeeRole.PRODUCT_MANAGER, "priya@studio.example", 0.4),
        ("Tom Becker", EmployeeRole.DEVELOPER, "tom@studio.example", 0.6),
        ("Lena Ortiz", EmployeeRole.DEVELOPER, "lena@studio.example", 0.5),
        ("Sara Kim", EmployeeRole.DESIGNER, "sara@studio.example", 0.4),
        ("Noah Weber", EmployeeRole.QA, "noah@studio.example", 0.3),
    ]
    employees = [
        ledger.create_employee(name=name, role=role, email=email, workload_score=load)
        for name, role, email, load in team
    ]

    project = ledger.create_project(
        name="Sample Mobile App",
        description="A mobile app where users can share their social media content",
        status=ProjectStatus.ACTIVE,
        priority=7,
    )

    task_specs = [
        ("User registration", "Email and password sign-up", TaskStatus.DONE, employees[3], 16),
        ("Home screen design", "Dashboard UI/UX design", TaskStatus.IN_PROGRESS, employees[5], 24),
        ("Backend API", "RESTful API endpoints", TaskStatus.IN_PROGRESS, employees[4], 32),
        ("Write tests", "Unit and integration tests", TaskStatus.TODO, employees[6], 16),
    ]
    tasks = [
        ledger.create_task(
            project_id=project.id,
            title=title,
            description=description,
            status=status,
            estimate_hours=hours,
            assignee_id=assignee.id,
        )
        for title, description, status, assignee, hours in task_specs
    ]

    logger.info(f"Seeded {len(employees)} employees, project {project.name}, {len(tasks)} tasks")
    return {"employees": employees, "project": project, "tasks": tasks}
