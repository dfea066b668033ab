"""
The four studio workflows.

Each workflow receives its Decision Units at construction; `from_context`
wires the default units from a StudioContext.

- BootstrapWorkflow: brief → evaluation (approval gate) → project → features
  → architecture (advisory) → tasks → assignment
- DailyStandupWorkflow: standups → daily summary → standup prose
- WeeklyReportWorkflow: completed/active/blocked aggregation → weekly prose
- ReleasePrepWorkflow: project + tasks → quality assessment → release notes
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ..agents import (
    ArchitectureInput,
    BriefInput,
    CEOAgent,
    ClientAgent,
    CTOAgent,
    DecisionUnit,
    EvaluationInput,
    FeaturePlanInput,
    OpsAction,
    OpsAgent,
    OpsInput,
    PMAgent,
    ProductAgent,
    QAAgent,
    QualityInput,
    ReleaseAgent,
    ReleaseInput,
    StandupDigestInput,
    StandupSummaryAgent,
    TaskBreakdownInput,
    WeeklyDigestInput,
    WeeklySummaryAgent,
)
from ..context import StudioContext
from ..storage import EventType, ProjectStatus, RunLedger, TaskStatus, WorkflowType
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
from .saga import ProjectNotApprovedError, ProjectNotFoundError, Workflow

logger = logging.getLogger(__name__)


def _ops_agent(ctx: StudioContext) -> OpsAgent:
    return OpsAgent(
        ctx.ledger,
        messenger=ctx.integrations.telegram,
        chat_ids=ctx.config.telegram.chat_ids,
    )


# =============================================================================
# Project Bootstrap
# =============================================================================


class BootstrapWorkflow(Workflow[NewProjectRequest, BootstrapResult]):
    name = "ProjectBootstrap"
    workflow_type = WorkflowType.PROJECT_BOOTSTRAP

    def __init__(
        self,
        ledger: RunLedger,
        client: DecisionUnit,
        ceo: DecisionUnit,
        product: DecisionUnit,
        cto: DecisionUnit,
        pm: DecisionUnit,
        ops: DecisionUnit,
    ):
        super().__init__(ledger)
        self.client = client
        self.ceo = ceo
        self.product = product
        self.cto = cto
        self.pm = pm
        self.ops = ops

    @classmethod
    def from_context(cls, ctx: StudioContext) -> "BootstrapWorkflow":
        return cls(
            ctx.ledger,
            client=ClientAgent(ctx.llm),
            ceo=CEOAgent(ctx.llm),
            product=ProductAgent(ctx.llm),
            cto=CTOAgent(ctx.llm),
            pm=PMAgent(ctx.ledger),
            ops=_ops_agent(ctx),
        )

    def execute(self, request: NewProjectRequest) -> Tuple[BootstrapResult, str]:
        self.step(1, "Client Agent refining brief")
        brief = self.client.run(BriefInput(raw_brief=request.brief, client_info=request.client_info))

        self.step(2, "CEO Agent validating and prioritizing")
        evaluation = self.ceo.run(
            EvaluationInput(
                name=request.name,
                description=brief.refined_description,
                goals=brief.goals,
            )
        )
        if not evaluation.approved:
            raise ProjectNotApprovedError(evaluation.rationale)

        self.step(3, "Creating project")
        project = self.ledger.create_project(
            name=request.name,
            description=brief.refined_description,
            status=ProjectStatus.PLANNING,
            priority=evaluation.priority,
        )
        self.ledger.log_event(
            EventType.PROJECT_CREATED,
            {"projectId": project.id, "name": project.name, "status": project.status.value},
        )

        self.step(4, "Product Agent breaking down features")
        plan = self.product.run(
            FeaturePlanInput(
                project_id=project.id,
                description=brief.refined_description,
                goals=brief.goals,
            )
        )

        self.step(5, "CTO Agent providing architecture suggestions")
        advice = self.cto.run(ArchitectureInput(project_id=project.id, features=plan.features))
        logger.info(f"[{self.name}] Suggested architecture: {advice.architecture} ({', '.join(advice.tech_stack)})")

        self.step(6, "PM Agent creating tasks")
        breakdown = self.pm.run(TaskBreakdownInput(project_id=project.id, features=plan.mvp_features))

        self.step(7, "Ops Agent assigning tasks")
        self.ops.run(OpsInput(action=OpsAction.ASSIGN_TASKS, task_ids=breakdown.task_ids))

        summary = (
            f"Project created: {project.name}. {breakdown.tasks_created} tasks created and assigned. "
            f"Priority: {evaluation.priority}."
        )
        result = BootstrapResult(
            project_id=project.id,
            project=project,
            tasks_created=breakdown.tasks_created,
            summary=summary,
        )
        return result, summary


# =============================================================================
# Daily Standup
# =============================================================================


class DailyStandupWorkflow(Workflow[DailyStandupRequest, StandupResult]):
    name = "DailyStandup"
    workflow_type = WorkflowType.DAILY_STANDUP

    def __init__(self, ledger: RunLedger, ops: DecisionUnit, summarizer: DecisionUnit):
        super().__init__(ledger)
        self.ops = ops
        self.summarizer = summarizer

    @classmethod
    def from_context(cls, ctx: StudioContext) -> "DailyStandupWorkflow":
        return cls(ctx.ledger, ops=_ops_agent(ctx), summarizer=StandupSummaryAgent(ctx.llm))

    def snapshot(self, request: DailyStandupRequest) -> Dict[str, Any]:
        return {"date": request.resolved_day().isoformat()}

    def execute(self, request: DailyStandupRequest) -> Tuple[StandupResult, str]:
        day = request.resolved_day()

        self.step(1, "Ops Agent collecting standups")
        collected = self.ops.run(OpsInput(action=OpsAction.COLLECT_STANDUPS, day=day))
        count = collected.standups_collected or 0

        self.step(2, "Ops Agent composing daily summary")
        daily = self.ops.run(OpsInput(action=OpsAction.DAILY_SUMMARY, day=day))

        self.step(3, "Writing standup summary")
        prose = self.summarizer.run(StandupDigestInput(day=day, standups_collected=count))

        summary = f"Collected {count} standups."
        result = StandupResult(
            standups_collected=count,
            summary=prose,
            formatted_summary=daily.formatted_summary,
        )
        return result, summary


# =============================================================================
# Weekly Report
# =============================================================================


class WeeklyReportWorkflow(Workflow[WeeklyReportRequest, WeeklyReportResult]):
    name = "WeeklyReport"
    workflow_type = WorkflowType.WEEKLY_REPORT

    def __init__(self, ledger: RunLedger, summarizer: DecisionUnit):
        super().__init__(ledger)
        self.summarizer = summarizer

    @classmethod
    def from_context(cls, ctx: StudioContext) -> "WeeklyReportWorkflow":
        return cls(ctx.ledger, summarizer=WeeklySummaryAgent(ctx.llm))

    def snapshot(self, request: WeeklyReportRequest) -> Dict[str, Any]:
        start, end = request.window()
        return {"weekStart": start.isoformat(), "weekEnd": end.isoformat()}

    def execute(self, request: WeeklyReportRequest) -> Tuple[WeeklyReportResult, str]:
        start, end = request.window()

        self.step(1, f"Aggregating {start.isoformat()} to {end.isoformat()}")
        completed = [
            t for t in self.ledger.get_tasks_by_status(TaskStatus.DONE)
            if _within(t.updated_at, start, end)
        ]
        ongoing = self.ledger.get_projects_by_status(ProjectStatus.ACTIVE) + self.ledger.get_projects_by_status(
            ProjectStatus.PLANNING
        )
        blocked = self.ledger.get_tasks_by_status(TaskStatus.BLOCKED)
        events = self.ledger.get_events_since(start)

        self.step(2, "Writing weekly summary")
        prose = self.summarizer.run(
            WeeklyDigestInput(
                completed_tasks=len(completed),
                ongoing_projects=len(ongoing),
                blocked_items=len(blocked),
                recent_events=len(events),
            )
        )

        summary = (
            f"Weekly report: {len(completed)} tasks completed, {len(ongoing)} active projects, "
            f"{len(blocked)} blocked items."
        )
        result = WeeklyReportResult(
            completed_tasks=len(completed),
            ongoing_projects=len(ongoing),
            blocked_items=len(blocked),
            summary=prose,
        )
        return result, summary


def _within(moment: Optional[datetime], start: datetime, end: datetime) -> bool:
    return moment is not None and start <= moment <= end


# =============================================================================
# Release Preparation
# =============================================================================


class ReleasePrepWorkflow(Workflow[ReleasePrepRequest, ReleasePrepResult]):
    name = "ReleasePreparation"
    workflow_type = WorkflowType.RELEASE_PREP

    def __init__(self, ledger: RunLedger, qa: DecisionUnit, release: DecisionUnit):
        super().__init__(ledger)
        self.qa = qa
        self.release = release

    @classmethod
    def from_context(cls, ctx: StudioContext) -> "ReleasePrepWorkflow":
        return cls(ctx.ledger, qa=QAAgent(), release=ReleaseAgent(ctx.llm))

    def snapshot(self, request: ReleasePrepRequest) -> Dict[str, Any]:
        return {"projectId": request.project_id, "version": request.version}

    def execute(self, request: ReleasePrepRequest) -> Tuple[ReleasePrepResult, str]:
        project = self.ledger.get_project_by_id(request.project_id)
        if project is None:
            raise ProjectNotFoundError(request.project_id)
        tasks = self.ledger.get_tasks_by_project(project.id)

        self.step(1, "QA Agent assessing quality")
        quality = self.qa.run(QualityInput(project=project, tasks=tasks))

        self.step(2, "Release Agent generating release notes")
        notes = self.release.run(ReleaseInput(project=project, version=request.version, tasks=tasks))

        summary = f"Release preparation completed: {project.name} v{request.version}."
        result = ReleasePrepResult(
            project_id=project.id,
            version=request.version,
            quality_assessment=quality.assessment,
            release_notes=notes.release_notes,
            quality_score=quality.quality_score,
            ready_for_release=quality.ready_for_release,
        )
        return result, summary
