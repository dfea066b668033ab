"""
Tests for the Temporal trigger workflow, client wrapper, worker and configuration.

Runs without a Temporal server.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from temporalio.exceptions import ApplicationError, WorkflowAlreadyStartedError

from studio_ops.orchestrator.temporal.activities import ALL_ACTIVITIES
from studio_ops.orchestrator.temporal.client import TemporalClient
from studio_ops.orchestrator.temporal.config import TemporalConfig
from studio_ops.orchestrator.temporal.worker import create_worker, run_worker
from studio_ops.orchestrator.temporal.workflows import ACTIVITY_BY_TYPE, StudioWorkflow
from studio_ops.storage import WorkflowType


class TestActivityMapping:
    def test_every_workflow_type_has_an_activity(self):
        assert set(ACTIVITY_BY_TYPE) == {t.value for t in WorkflowType}
        assert set(ACTIVITY_BY_TYPE.values()) == set(ALL_ACTIVITIES)


class TestStudioWorkflow:
    def test_initial_status(self):
        assert StudioWorkflow().status() == {"status": "initialized", "workflow_type": None}

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self):
        """Unknown workflow types fail before any activity is scheduled."""
        with pytest.raises(ApplicationError, match="Unknown workflow type: NOPE") as exc_info:
            await StudioWorkflow().run("NOPE", {})

        assert exc_info.value.non_retryable is True


class TestTemporalConfig:
    def test_defaults(self, monkeypatch):
        for name in ("TEMPORAL_HOST", "TEMPORAL_PORT", "TEMPORAL_TASK_QUEUE", "DAILY_STANDUP_CRON"):
            monkeypatch.delenv(name, raising=False)

        config = TemporalConfig.from_env()

        assert config.target == "localhost:7233"
        assert config.task_queue == "studio-ops"
        assert config.daily_standup_cron == "0 9 * * 1-5"
        assert config.weekly_report_cron == "0 17 * * 5"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TEMPORAL_HOST", "temporal.internal")
        monkeypatch.setenv("TEMPORAL_PORT", "7000")
        monkeypatch.setenv("DAILY_STANDUP_CRON", "30 8 * * *")

        config = TemporalConfig.from_env()

        assert config.target == "temporal.internal:7000"
        assert config.daily_standup_cron == "30 8 * * *"


class TestTemporalClient:
    """Client wrapper with the Temporal SDK client mocked out."""

    def _connected(self, config=None):
        client = TemporalClient(config or TemporalConfig(task_queue="studio-test"))
        client._client = AsyncMock()
        return client

    def test_requires_connection(self):
        with pytest.raises(RuntimeError, match="not connected"):
            TemporalClient().client

    @pytest.mark.asyncio
    async def test_start_run(self):
        client = self._connected()

        await client.start_run(WorkflowType.RELEASE_PREP, {"projectId": "prj_1", "version": "1.0.0"})

        call = client._client.start_workflow.call_args
        assert call.args[0] == StudioWorkflow.run
        assert call.kwargs["args"] == ["RELEASE_PREP", {"projectId": "prj_1", "version": "1.0.0"}]
        assert call.kwargs["task_queue"] == "studio-test"
        assert call.kwargs["id"].startswith("release_prep-")
        assert call.kwargs["retry_policy"].maximum_attempts == 1
        assert call.kwargs["cron_schedule"] == ""

    @pytest.mark.asyncio
    async def test_schedule_recurring(self):
        client = self._connected(TemporalConfig(daily_standup_cron="0 8 * * *", weekly_report_cron="0 18 * * 5"))

        handles = await client.schedule_recurring()

        assert set(handles) == {"daily_standup", "weekly_report"}
        calls = {c.kwargs["id"]: c.kwargs for c in client._client.start_workflow.call_args_list}
        assert calls["studio-daily-standup"]["cron_schedule"] == "0 8 * * *"
        assert calls["studio-daily-standup"]["args"] == ["DAILY_STANDUP", {}]
        assert calls["studio-weekly-report"]["cron_schedule"] == "0 18 * * 5"

    @pytest.mark.asyncio
    async def test_schedule_recurring_reuses_running_cron(self):
        """A restart with schedules already registered keeps the existing runs."""
        client = self._connected()
        client._client.start_workflow.side_effect = [
            WorkflowAlreadyStartedError("studio-daily-standup", "StudioWorkflow"),
            MagicMock(),
        ]
        client._client.get_workflow_handle = MagicMock(return_value="existing-handle")

        handles = await client.schedule_recurring()

        assert handles["daily_standup"] == "existing-handle"
        client._client.get_workflow_handle.assert_called_once_with("studio-daily-standup")

    @pytest.mark.asyncio
    async def test_query_status(self):
        client = self._connected()
        handle = MagicMock()
        handle.query = AsyncMock(return_value={"status": "running", "workflow_type": "WEEKLY_REPORT"})
        client._client.get_workflow_handle = MagicMock(return_value=handle)

        status = await client.query_status("weekly-1")

        client._client.get_workflow_handle.assert_called_once_with("weekly-1")
        handle.query.assert_awaited_once_with(StudioWorkflow.status)
        assert status["status"] == "running"

    @pytest.mark.asyncio
    async def test_unschedule_recurring(self):
        """Both cron runs are cancelled by their fixed ids."""
        client = self._connected()
        handle = MagicMock()
        handle.cancel = AsyncMock()
        client._client.get_workflow_handle = MagicMock(return_value=handle)

        await client.unschedule_recurring()

        ids = [c.args[0] for c in client._client.get_workflow_handle.call_args_list]
        assert ids == ["studio-daily-standup", "studio-weekly-report"]
        assert handle.cancel.await_count == 2


class TestWorker:
    @pytest.mark.asyncio
    async def test_registers_workflow_and_activities(self):
        sdk_client = MagicMock()

        with patch("studio_ops.orchestrator.temporal.worker.Worker") as worker_cls:
            worker = await create_worker(sdk_client, TemporalConfig(task_queue="studio-test"))

        assert worker is worker_cls.return_value
        kwargs = worker_cls.call_args.kwargs
        assert worker_cls.call_args.args == (sdk_client,)
        assert kwargs["task_queue"] == "studio-test"
        assert kwargs["workflows"] == [StudioWorkflow]
        assert kwargs["activities"] == ALL_ACTIVITIES

    @pytest.mark.asyncio
    async def test_run_worker_with_schedule(self):
        with patch("studio_ops.orchestrator.temporal.worker.TemporalClient") as client_cls, \
                patch("studio_ops.orchestrator.temporal.worker.Worker") as worker_cls:
            studio = client_cls.return_value
            studio.connect = AsyncMock(return_value=studio)
            studio.schedule_recurring = AsyncMock(return_value={"daily_standup": MagicMock(id="studio-daily-standup")})
            worker_cls.return_value.run = AsyncMock()

            await run_worker(TemporalConfig(task_queue="studio-test"), schedule=True)

        studio.schedule_recurring.assert_awaited_once()
        assert worker_cls.call_args.args == (studio.client,)
        worker_cls.return_value.run.assert_awaited_once()
