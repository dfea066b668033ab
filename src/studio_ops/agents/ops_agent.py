"""
Ops Agent - day-to-day team operations.

Actions:
- collect-standups: placeholder standups for active employees missing one
- assign-tasks: round-robin assignment balanced by workload
- nudge-late-tasks: remind employees about overdue tasks
- daily-summary: Markdown + plain-text digest of one day
"""

import logging
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

from pydantic import Field

from ..config import ChatId
from ..integrations.telegram import MessagingClient
from ..storage import (
    EmployeeRole,
    ProjectStatus,
    RunLedger,
    Task,
    TaskStatus,
    clamp_workload,
    utcnow,
)
from .base_agent import DecisionModel, DecisionUnit

logger = logging.getLogger(__name__)

ASSIGNABLE_ROLES = (EmployeeRole.DEVELOPER, EmployeeRole.DESIGNER, EmployeeRole.QA)
WORKLOAD_STEP = 0.1

PLACEHOLDER_YESTERDAY = "Standup not submitted yet"
PLACEHOLDER_TODAY = "Standup pending"

# Bounded preview sizes per summary bucket
COMPLETED_PREVIEW = 10
BUCKET_PREVIEW = 5


class OpsAction(str, Enum):
    COLLECT_STANDUPS = "collect-standups"
    ASSIGN_TASKS = "assign-tasks"
    NUDGE_LATE_TASKS = "nudge-late-tasks"
    DAILY_SUMMARY = "daily-summary"


class OpsInput(DecisionModel):
    action: OpsAction = OpsAction.COLLECT_STANDUPS
    day: Optional[date] = None
    task_ids: List[str] = Field(default_factory=list)


class OpsOutput(DecisionModel):
    summary: str
    standups_collected: Optional[int] = None
    tasks_assigned: Optional[int] = None
    nudges_sent: Optional[int] = None
    # Markdown, for chat delivery
    formatted_summary: Optional[str] = None


def format_task_bucket(
    title: str,
    tasks: Sequence[Task],
    limit: int,
    empty_text: Optional[str] = None,
) -> List[str]:
    """
    Markdown lines for one summary bucket: header, up to `limit` items and an
    overflow counter. Empty buckets render `empty_text`, or nothing if None.
    """
    if not tasks and empty_text is None:
        return []

    lines = [f"{title} ({len(tasks)})"]
    if not tasks:
        lines.append(empty_text)
    for task in tasks[:limit]:
        lines.append(f"• {task.title} - {task.assignee_name or 'Unassigned'}")
    if len(tasks) > limit:
        lines.append(f"…and {len(tasks) - limit} more")
    lines.append("")
    return lines


class OpsAgent(DecisionUnit[OpsInput, OpsOutput]):
    name = "Ops Agent"

    def __init__(
        self,
        ledger: RunLedger,
        messenger: Optional[MessagingClient] = None,
        chat_ids: Sequence[ChatId] = (),
    ):
        self.ledger = ledger
        self.messenger = messenger
        self.chat_ids = tuple(chat_ids)

    def run(self, data: OpsInput) -> OpsOutput:
        logger.info(f"[{self.name}] Running action: {data.action.value}")
        day = data.day or utcnow().date()

        if data.action == OpsAction.COLLECT_STANDUPS:
            return self.collect_standups(day)
        if data.action == OpsAction.ASSIGN_TASKS:
            return self.assign_tasks(data.task_ids)
        if data.action == OpsAction.NUDGE_LATE_TASKS:
            return self.nudge_late_tasks()
        if data.action == OpsAction.DAILY_SUMMARY:
            return self.daily_summary(day)
        raise ValueError(f"Unknown action: {data.action}")

    # =========================================================================
    # Actions
    # =========================================================================

    def collect_standups(self, day: date) -> OpsOutput:
        employees = self.ledger.get_active_employees()
        existing = self.ledger.get_standups_by_date(day)
        submitted = {s.employee_id for s in existing}

        created = 0
        for employee in employees:
            if employee.id in submitted:
                continue
            self.ledger.create_standup(
                employee_id=employee.id,
                day=day,
                yesterday=PLACEHOLDER_YESTERDAY,
                today=PLACEHOLDER_TODAY,
            )
            created += 1

        total = len(existing) + created
        if created:
            detail = f"{created} new standups created."
        else:
            detail = "The whole team has submitted their standup."
        return OpsOutput(standups_collected=total, summary=f"{total} standups collected. {detail}")

    def assign_tasks(self, task_ids: List[str]) -> OpsOutput:
        if not task_ids:
            return OpsOutput(tasks_assigned=0, summary="No tasks to assign.")

        candidates = [e for e in self.ledger.get_active_employees() if e.role in ASSIGNABLE_ROLES]
        if not candidates:
            return OpsOutput(tasks_assigned=0, summary="No developers available for assignment.")

        candidates.sort(key=lambda e: e.workload_score)
        workloads: Dict[str, float] = {e.id: e.workload_score for e in candidates}

        assigned = 0
        for i, task_id in enumerate(task_ids):
            employee = candidates[i % len(candidates)]
            try:
                self.ledger.assign_task(task_id, employee.id)
                workloads[employee.id] = clamp_workload(workloads[employee.id] + WORKLOAD_STEP)
                self.ledger.update_employee_workload(employee.id, workloads[employee.id])
                assigned += 1
            except Exception as e:
                logger.warning(f"[{self.name}] Failed to assign task {task_id}: {e}")

        return OpsOutput(tasks_assigned=assigned, summary=f"{assigned} tasks assigned. Workload balanced.")

    def nudge_late_tasks(self) -> OpsOutput:
        now = utcnow()
        nudges = 0

        for employee in self.ledger.get_active_employees():
            late = [
                t for t in self.ledger.get_tasks_by_assignee(employee.id)
                if t.due_date is not None and t.due_date < now and t.status != TaskStatus.DONE
            ]
            if not late:
                continue

            task_list = "\n".join(f"- {t.title}" for t in late)
            message = (
                f"Hi {employee.name}, a few tasks are behind their planned date:\n\n"
                f"{task_list}\n\nLet us know if you need support, we'll sort it out together."
            )
            self._deliver(employee.name, message)
            nudges += 1

        return OpsOutput(nudges_sent=nudges, summary=f"Reminders sent for {nudges} employees with late tasks.")

    def _deliver(self, recipient: str, message: str) -> None:
        if self.messenger is None or not self.chat_ids:
            logger.info(f"[{self.name}] Nudge for {recipient}: {message}")
            return
        for chat_id in self.chat_ids:
            self.messenger.send_message(chat_id, message)

    def daily_summary(self, day: date) -> OpsOutput:
        start = datetime.combine(day, time.min)
        updated_today = self.ledger.get_tasks_updated_between(start, start + timedelta(days=1))
        completed = [t for t in updated_today if t.status == TaskStatus.DONE]
        started = [t for t in updated_today if t.status == TaskStatus.IN_PROGRESS]

        pending = self.ledger.get_tasks_by_status(TaskStatus.TODO)
        blocked = self.ledger.get_tasks_by_status(TaskStatus.BLOCKED)
        in_progress = self.ledger.get_tasks_by_status(TaskStatus.IN_PROGRESS)

        standups = self.ledger.get_standups_by_date(day)
        submitters = {s.employee_id for s in standups}

        active_projects = len(self.ledger.get_projects_by_status(ProjectStatus.ACTIVE)) + len(
            self.ledger.get_projects_by_status(ProjectStatus.PLANNING)
        )

        lines = [f"📊 *Daily Summary - {day.strftime('%d %B %Y')}*", ""]
        lines += format_task_bucket("✅ *Completed Tasks*", completed, COMPLETED_PREVIEW, "No tasks completed today.")
        lines += format_task_bucket("🚀 *Started Tasks*", started, BUCKET_PREVIEW)
        lines += format_task_bucket("📋 *Pending Tasks*", pending, BUCKET_PREVIEW, "No pending tasks.")
        lines += format_task_bucket("🚫 *Blocked Tasks*", blocked, BUCKET_PREVIEW)
        lines += format_task_bucket("⚙️ *In Progress Tasks*", in_progress, BUCKET_PREVIEW, "No tasks in progress.")

        lines.append(f"👥 *Standups* ({len(standups)})")
        if standups:
            lines.append(f"{len(submitters)} people submitted their standup.")
        else:
            lines.append("No standups submitted today.")
        lines.append("")
        lines.append(f"📁 *Active Projects*: {active_projects}")

        plain = (
            f"Daily summary: {len(completed)} tasks completed, {len(pending)} pending, "
            f"{len(blocked)} blocked, {len(in_progress)} in progress. "
            f"{len(standups)} standups collected."
        )
        return OpsOutput(summary=plain, formatted_summary="\n".join(lines) + "\n")
