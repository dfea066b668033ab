"""
Saga engine - run lifecycle shared by all workflows.

Every workflow run:
1. Creates a RUNNING run record with an input snapshot and emits WORKFLOW_TRIGGERED
2. Executes its fixed, ordered steps (no branching, no saga-level retries)
3. On success: COMPLETED + summary, WORKFLOW_COMPLETED{status: COMPLETED}
4. On failure: FAILED + error message, WORKFLOW_COMPLETED{status: FAILED}, re-raise

Side effects of steps that already ran are not compensated: a project
created before a later step failed stays in the ledger, and the FAILED run
(metadata + events) is the record of what happened.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Tuple, TypeVar

from pydantic import BaseModel

from ..storage import EventType, RunLedger, WorkflowRun, WorkflowStatus, WorkflowType

logger = logging.getLogger(__name__)

ReqT = TypeVar("ReqT", bound=BaseModel)
ResT = TypeVar("ResT", bound=BaseModel)


# =============================================================================
# Errors
# =============================================================================


class WorkflowError(Exception):
    """Expected business failure of a workflow step."""


class ProjectNotApprovedError(WorkflowError):
    def __init__(self, rationale: str):
        self.rationale = rationale
        super().__init__(f"Project not approved by CEO: {rationale}")


class ProjectNotFoundError(WorkflowError):
    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


# =============================================================================
# Workflow template
# =============================================================================


class Workflow(ABC, Generic[ReqT, ResT]):
    """
    Base class for the four studio workflows.

    Subclasses set `name` and `workflow_type` and implement `execute`,
    which returns the result and the run's summary line.
    """

    name = "Workflow"
    workflow_type: WorkflowType

    def __init__(self, ledger: RunLedger):
        self.ledger = ledger

    def snapshot(self, request: ReqT) -> Dict[str, Any]:
        """Run metadata: the triggering input."""
        return {"input": request.model_dump(mode="json", by_alias=True)}

    @abstractmethod
    def execute(self, request: ReqT) -> Tuple[ResT, str]:
        ...

    def run(self, request: ReqT) -> ResT:
        run = self.ledger.create_run(self.workflow_type, metadata=self.snapshot(request))
        finished = False

        try:
            self.ledger.log_event(
                EventType.WORKFLOW_TRIGGERED,
                {"workflowType": self.name, "workflowRunId": run.id},
            )
            logger.info(f"[{self.name}] Starting run {run.id}")
            result, summary = self.execute(request)
            # A ledger failure here fails the run like any step failure
            self.ledger.update_run_status(run.id, WorkflowStatus.COMPLETED, summary)
            finished = True
            self._log_completed(run, WorkflowStatus.COMPLETED, summary)
        except Exception as e:
            logger.error(f"[{self.name}] Run {run.id} failed: {e}")
            if not finished:
                # Errors raised while recording the failure propagate as they are
                message = str(e) or type(e).__name__
                self.ledger.update_run_status(run.id, WorkflowStatus.FAILED, message)
                self._log_completed(run, WorkflowStatus.FAILED, message)
            raise

        logger.info(f"[{self.name}] Run {run.id} completed: {summary}")
        return result

    def _log_completed(self, run: WorkflowRun, status: WorkflowStatus, summary: str) -> None:
        self.ledger.log_event(
            EventType.WORKFLOW_COMPLETED,
            {"workflowRunId": run.id, "status": status.value, "summary": summary},
        )

    def step(self, number: int, description: str) -> None:
        logger.info(f"[{self.name}] Step {number}: {description}")
