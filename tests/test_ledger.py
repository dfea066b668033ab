"""
Tests for the Run Ledger.

Runs against an in-memory SQLite database.
"""

from datetime import date, datetime, timedelta

import pytest

from studio_ops.storage import (
    EmployeeRole,
    EventType,
    InvalidTransitionError,
    NotFoundError,
    ProjectStatus,
    RunLedger,
    TaskStatus,
    WorkflowStatus,
    WorkflowType,
    utcnow,
)


class TestWorkflowRuns:
    """Run lifecycle and the finished_at invariant."""

    def test_new_run_is_running_without_finish_time(self, ledger):
        """A fresh run is RUNNING with no finished_at."""
        run = ledger.create_run(WorkflowType.DAILY_STANDUP, metadata={"date": "2024-01-15"})

        assert run.id.startswith("run")
        assert run.status == WorkflowStatus.RUNNING
        assert run.finished_at is None
        assert run.metadata == {"date": "2024-01-15"}

    def test_terminal_update_sets_finish_time(self, ledger):
        """finished_at is set when the run reaches a terminal status."""
        run = ledger.create_run(WorkflowType.WEEKLY_REPORT)

        done = ledger.update_run_status(run.id, WorkflowStatus.COMPLETED, "all good")

        assert done.status == WorkflowStatus.COMPLETED
        assert done.finished_at is not None
        assert done.finished_at >= done.started_at
        assert done.result_summary == "all good"

    def test_terminal_run_cannot_change(self, ledger):
        """A finished run rejects further status changes."""
        run = ledger.create_run(WorkflowType.RELEASE_PREP)
        ledger.update_run_status(run.id, WorkflowStatus.FAILED, "boom")

        with pytest.raises(InvalidTransitionError):
            ledger.update_run_status(run.id, WorkflowStatus.COMPLETED)

        assert ledger.get_run(run.id).status == WorkflowStatus.FAILED

    def test_unknown_run_raises(self, ledger):
        """Updating a missing run raises NotFoundError."""
        with pytest.raises(NotFoundError):
            ledger.update_run_status("run_missing", WorkflowStatus.COMPLETED)

    def test_created_terminal_run_has_finish_time(self, ledger):
        """Creating a run directly in a terminal status stamps finished_at."""
        run = ledger.create_run(WorkflowType.DAILY_STANDUP, status=WorkflowStatus.FAILED)

        assert run.finished_at == run.started_at

    def test_recent_runs_limit(self, ledger):
        """get_recent_runs honours the limit."""
        for _ in range(5):
            ledger.create_run(WorkflowType.DAILY_STANDUP)

        assert len(ledger.get_recent_runs(3)) == 3
        assert len(ledger.get_runs_by_type(WorkflowType.DAILY_STANDUP)) == 5
        assert ledger.get_runs_by_type(WorkflowType.RELEASE_PREP) == []


class TestEvents:
    """Append-only event log."""

    def test_log_and_query_by_type(self, ledger):
        """Events are queryable by type."""
        ledger.log_event(EventType.GITHUB_COMMIT, {"sha": "abc"})
        ledger.log_event(EventType.PROJECT_CREATED, {"projectId": "prj_1"})

        commits = ledger.get_events_by_type(EventType.GITHUB_COMMIT)

        assert len(commits) == 1
        assert commits[0].payload == {"sha": "abc"}

    def test_events_since(self, ledger):
        """get_events_since filters by creation time and type."""
        before = utcnow() - timedelta(seconds=1)
        ledger.log_event(EventType.TASK_CREATED, {"n": 1})
        ledger.log_event(EventType.WORKFLOW_TRIGGERED, {"n": 2})

        assert len(ledger.get_events_since(before)) == 2
        assert len(ledger.get_events_since(before, EventType.TASK_CREATED)) == 1
        assert ledger.get_events_since(utcnow() + timedelta(hours=1)) == []


class TestEntities:
    """Projects, tasks, employees and standups."""

    def test_project_priority_clamped(self, ledger):
        """Project priority is kept within 1..10."""
        high = ledger.create_project("High", priority=42)
        low = ledger.create_project("Low", priority=-3)

        assert high.priority == 10
        assert low.priority == 1

    def test_projects_by_status(self, ledger):
        project = ledger.create_project("Alpha")
        ledger.update_project_status(project.id, ProjectStatus.ACTIVE)

        assert [p.name for p in ledger.get_projects_by_status(ProjectStatus.ACTIVE)] == ["Alpha"]
        assert ledger.get_projects_by_status(ProjectStatus.PLANNING) == []

    def test_task_assignment_carries_names(self, ledger):
        """Task records carry assignee and project names."""
        project = ledger.create_project("Alpha")
        dev = ledger.create_employee("Dev One", EmployeeRole.DEVELOPER, "dev1@example.com")
        task = ledger.create_task(project.id, "Build login", estimate_hours=8)

        assigned = ledger.assign_task(task.id, dev.id)

        assert assigned.assignee_id == dev.id
        assert assigned.assignee_name == "Dev One"
        assert assigned.project_name == "Alpha"
        assert ledger.get_tasks_by_assignee(dev.id)[0].id == task.id

    def test_assign_to_unknown_employee(self, ledger):
        project = ledger.create_project("Alpha")
        task = ledger.create_task(project.id, "Build login")

        with pytest.raises(NotFoundError):
            ledger.assign_task(task.id, "emp_missing")

    def test_task_status_queries(self, ledger):
        project = ledger.create_project("Alpha")
        task = ledger.create_task(project.id, "Build login")
        ledger.update_task_status(task.id, TaskStatus.BLOCKED)

        assert [t.id for t in ledger.get_tasks_by_status(TaskStatus.BLOCKED)] == [task.id]
        assert ledger.get_tasks_by_status(TaskStatus.TODO) == []

    def test_tasks_updated_between(self, ledger):
        """Window is half-open on updated_at."""
        project = ledger.create_project("Alpha")
        task = ledger.create_task(project.id, "Build login")
        now = utcnow()

        inside = ledger.get_tasks_updated_between(now - timedelta(hours=1), now + timedelta(hours=1))
        outside = ledger.get_tasks_updated_between(now + timedelta(hours=1), now + timedelta(hours=2))

        assert [t.id for t in inside] == [task.id]
        assert outside == []

    def test_workload_clamped(self, ledger):
        """Workload writes are clamped to [0, 1]."""
        emp = ledger.create_employee("Busy", EmployeeRole.DEVELOPER, "busy@example.com", workload_score=3.0)
        assert emp.workload_score == 1.0

        updated = ledger.update_employee_workload(emp.id, -0.5)
        assert updated.workload_score == 0.0

    def test_inactive_employees_excluded(self, ledger):
        ledger.create_employee("Active", EmployeeRole.QA, "a@example.com")
        ledger.create_employee("Gone", EmployeeRole.QA, "g@example.com", is_active=False)

        assert [e.name for e in ledger.get_active_employees()] == ["Active"]
        assert [e.name for e in ledger.get_employees_by_role(EmployeeRole.QA)] == ["Active"]

    def test_standups_by_calendar_day(self, ledger):
        """Standups are matched by calendar day."""
        emp = ledger.create_employee("Dev", EmployeeRole.DEVELOPER, "dev@example.com")
        ledger.create_standup(emp.id, date(2024, 1, 15), "API work", "Tests", blockers="CI is red")
        ledger.create_standup(emp.id, datetime(2024, 1, 16, 9, 30), "Tests", "Review")

        entries = ledger.get_standups_by_date(date(2024, 1, 15))

        assert len(entries) == 1
        assert entries[0].employee_name == "Dev"
        assert entries[0].blockers == "CI is red"
        assert len(ledger.get_standups_by_date(datetime(2024, 1, 16, 23, 0))) == 1


class TestSeedAndLifecycle:
    """Demo seed data and file-backed databases."""

    def test_seed_demo_data(self, ledger, seeded):
        assert len(seeded["employees"]) == 7
        assert seeded["project"].status == ProjectStatus.ACTIVE
        assert len(seeded["tasks"]) == 4
        assert len(ledger.get_tasks_by_project(seeded["project"].id)) == 4

    def test_file_database_persists(self, tmp_path):
        """A file-backed ledger keeps data across instances."""
        url = f"sqlite:///{tmp_path / 'nested' / 'studio.db'}"

        with RunLedger(url) as first:
            run = first.create_run(WorkflowType.WEEKLY_REPORT)

        with RunLedger(url) as second:
            assert second.get_run(run.id) is not None
