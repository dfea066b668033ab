"""
Temporal Workflows for Studio Ops.

StudioWorkflow is the durable trigger of one saga run: it executes the
activity for the requested workflow type exactly once. Sagas are never
retried automatically, a failed run must be re-triggered.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ApplicationError

with workflow.unsafe.imports_passed_through():
    from ...storage import WorkflowType
    from .activities import bootstrap_project, daily_standup, release_prep, weekly_report
    from .config import DEFAULT_CONFIG

ACTIVITY_BY_TYPE = {
    WorkflowType.PROJECT_BOOTSTRAP.value: bootstrap_project,
    WorkflowType.DAILY_STANDUP.value: daily_standup,
    WorkflowType.WEEKLY_REPORT.value: weekly_report,
    WorkflowType.RELEASE_PREP.value: release_prep,
}


@workflow.defn
class StudioWorkflow:
    """
    Durable trigger for the studio sagas.

    Queries:
    - status: Current status and workflow type
    """

    def __init__(self) -> None:
        self._status = "initialized"
        self._workflow_type: Optional[str] = None

    @workflow.run
    async def run(self, workflow_type: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run one saga.

        Args:
            workflow_type: WorkflowType value (e.g. "DAILY_STANDUP")
            payload: Request fields for that workflow

        Returns:
            The saga result
        """
        activity_fn = ACTIVITY_BY_TYPE.get(workflow_type)
        if activity_fn is None:
            # ApplicationError fails the workflow; other exceptions retry the workflow task
            raise ApplicationError(f"Unknown workflow type: {workflow_type}", non_retryable=True)

        self._workflow_type = workflow_type
        self._status = "running"

        try:
            result = await workflow.execute_activity(
                activity_fn,
                args=[payload or {}],
                start_to_close_timeout=timedelta(seconds=DEFAULT_CONFIG.activity_start_to_close_timeout),
                heartbeat_timeout=timedelta(seconds=DEFAULT_CONFIG.activity_heartbeat_timeout),
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
        except Exception:
            self._status = "failed"
            raise

        self._status = "completed"
        return result

    @workflow.query
    def status(self) -> Dict[str, Any]:
        """Get current workflow status."""
        return {"status": self._status, "workflow_type": self._workflow_type}
