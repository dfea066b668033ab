"""
Temporal Activities for Studio Ops.

One activity per workflow type. Each runs the saga to completion inside
the activity; the saga itself owns run records and events.

Architecture:
- _impl functions: Pure business logic (testable without Temporal)
- @activity.defn functions: Temporal wrappers with heartbeats
"""

import asyncio
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel
from temporalio import activity

from ...context import StudioContext, open_context
from ..models import DailyStandupRequest, NewProjectRequest, ReleasePrepRequest, WeeklyReportRequest
from ..workflows import BootstrapWorkflow, DailyStandupWorkflow, ReleasePrepWorkflow, WeeklyReportWorkflow


def _run_workflow(workflow_cls, request: BaseModel, ctx: Optional[StudioContext]) -> Dict[str, Any]:
    if ctx is not None:
        result = workflow_cls.from_context(ctx).run(request)
    else:
        with open_context() as opened:
            result = workflow_cls.from_context(opened).run(request)
    return result.model_dump(mode="json", by_alias=True)


async def _execute(
    workflow_cls,
    request_model: Type[BaseModel],
    payload: Dict[str, Any],
    ctx: Optional[StudioContext],
) -> Dict[str, Any]:
    request = request_model.model_validate(payload or {})
    return await asyncio.to_thread(_run_workflow, workflow_cls, request, ctx)


# =============================================================================
# Pure Implementation Functions (for testing)
# =============================================================================


async def _bootstrap_project_impl(
    payload: Dict[str, Any],
    ctx: Optional[StudioContext] = None,
) -> Dict[str, Any]:
    """
    Run the project bootstrap saga.

    Args:
        payload: NewProjectRequest fields (camelCase or snake_case)
        ctx: Context to run in; a fresh one is opened if None

    Returns:
        BootstrapResult as JSON-compatible dict
    """
    return await _execute(BootstrapWorkflow, NewProjectRequest, payload, ctx)


async def _daily_standup_impl(
    payload: Dict[str, Any],
    ctx: Optional[StudioContext] = None,
) -> Dict[str, Any]:
    return await _execute(DailyStandupWorkflow, DailyStandupRequest, payload, ctx)


async def _weekly_report_impl(
    payload: Dict[str, Any],
    ctx: Optional[StudioContext] = None,
) -> Dict[str, Any]:
    return await _execute(WeeklyReportWorkflow, WeeklyReportRequest, payload, ctx)


async def _release_prep_impl(
    payload: Dict[str, Any],
    ctx: Optional[StudioContext] = None,
) -> Dict[str, Any]:
    return await _execute(ReleasePrepWorkflow, ReleasePrepRequest, payload, ctx)


# =============================================================================
# Temporal Activity Wrappers (with heartbeats)
# =============================================================================


@activity.defn
async def bootstrap_project(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Temporal wrapper for the project bootstrap saga."""
    activity.heartbeat()
    result = await _bootstrap_project_impl(payload)
    activity.heartbeat()
    return result


@activity.defn
async def daily_standup(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Temporal wrapper for the daily standup saga."""
    activity.heartbeat()
    result = await _daily_standup_impl(payload)
    activity.heartbeat()
    return result


@activity.defn
async def weekly_report(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Temporal wrapper for the weekly report saga."""
    activity.heartbeat()
    result = await _weekly_report_impl(payload)
    activity.heartbeat()
    return result


@activity.defn
async def release_prep(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Temporal wrapper for the release preparation saga."""
    activity.heartbeat()
    result = await _release_prep_impl(payload)
    activity.heartbeat()
    return result


ALL_ACTIVITIES = [bootstrap_project, daily_standup, weekly_report, release_prep]
