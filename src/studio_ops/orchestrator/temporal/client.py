"""
Temporal Client for Studio Ops.

Starts saga runs on the worker and registers the recurring standup and
weekly report schedules.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from temporalio.client import Client, WorkflowHandle
from temporalio.common import RetryPolicy
from temporalio.exceptions import WorkflowAlreadyStartedError

from ...storage import WorkflowType, utcnow
from .config import DEFAULT_CONFIG, TemporalConfig
from .workflows import StudioWorkflow

# One cron run per id; a second start is rejected by the server
RECURRING_WORKFLOW_IDS = {
    WorkflowType.DAILY_STANDUP: "studio-daily-standup",
    WorkflowType.WEEKLY_REPORT: "studio-weekly-report",
}


class TemporalClient:
    """
    Temporal client wrapper for Studio Ops.

    Usage:
        async with TemporalClient() as client:
            handle = await client.start_run(WorkflowType.DAILY_STANDUP)
            result = await handle.result()
    """

    def __init__(self, config: Optional[TemporalConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self._client: Optional[Client] = None

    async def connect(self) -> "TemporalClient":
        """Connect to Temporal server."""
        self._client = await Client.connect(
            self.config.target,
            namespace=self.config.namespace,
        )
        return self

    async def __aenter__(self) -> "TemporalClient":
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self._client = None

    @property
    def client(self) -> Client:
        """Get underlying Temporal client."""
        if self._client is None:
            raise RuntimeError("Client not connected. Use 'async with TemporalClient()' or call connect()")
        return self._client

    async def start_run(
        self,
        workflow_type: WorkflowType,
        payload: Optional[Dict[str, Any]] = None,
        *,
        workflow_id: Optional[str] = None,
        cron_schedule: str = "",
    ) -> WorkflowHandle:
        """
        Start StudioWorkflow for one saga type.

        Args:
            workflow_type: Saga to run
            payload: Request fields for the saga
            workflow_id: Optional custom workflow ID
            cron_schedule: Optional cron expression for a recurring run
        """
        wf_id = workflow_id or f"{workflow_type.value.lower()}-{utcnow().strftime('%Y%m%d%H%M%S%f')}"

        return await self.client.start_workflow(
            StudioWorkflow.run,
            args=[workflow_type.value, payload or {}],
            id=wf_id,
            task_queue=self.config.task_queue,
            execution_timeout=timedelta(seconds=self.config.workflow_execution_timeout),
            retry_policy=RetryPolicy(maximum_attempts=1),
            cron_schedule=cron_schedule,
        )

    async def schedule_recurring(self) -> Dict[str, WorkflowHandle]:
        """Register the daily standup and weekly report cron runs (idempotent)."""
        crons = {
            WorkflowType.DAILY_STANDUP: self.config.daily_standup_cron,
            WorkflowType.WEEKLY_REPORT: self.config.weekly_report_cron,
        }
        handles = {}
        for workflow_type, workflow_id in RECURRING_WORKFLOW_IDS.items():
            try:
                handle = await self.start_run(
                    workflow_type,
                    workflow_id=workflow_id,
                    cron_schedule=crons[workflow_type],
                )
            except WorkflowAlreadyStartedError:
                handle = self.client.get_workflow_handle(workflow_id)
            handles[workflow_type.value.lower()] = handle
        return handles

    async def query_status(self, workflow_id: str) -> Dict[str, Any]:
        """Status reported by a StudioWorkflow run (its `status` query)."""
        handle = self.client.get_workflow_handle(workflow_id)
        return await handle.query(StudioWorkflow.status)

    async def unschedule_recurring(self) -> None:
        """Cancel the daily standup and weekly report cron runs."""
        for workflow_id in RECURRING_WORKFLOW_IDS.values():
            await self.client.get_workflow_handle(workflow_id).cancel()
