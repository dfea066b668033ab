"""
API Gateway — HTTP interface for Studio Ops.

Provides REST API endpoints for:
- GET /health — liveness
- POST /webhooks/github — code push events (signature checked if a secret is set)
- GET/POST /webhooks/whatsapp — hub verification / incoming messages
- POST /webhooks/clickup — ticket events
- POST /workflows/new-project — project bootstrap
- POST /workflows/daily-standup/run — daily standup
- POST /workflows/weekly-report/run — weekly report
- POST /workflows/release-prep — release preparation
- POST /workflows/daily-summary — daily summary, optionally pushed to chat
- GET /workflows/runs — recent workflow runs

Errors are returned as {"success": false, "error": "..."}.
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..agents import OpsAction, OpsAgent, OpsInput
from ..chat_commands import register_chat_commands
from ..config import ChatId
from ..context import StudioContext
from ..integrations.github import verify_signature
from ..integrations.whatsapp import parse_webhook_messages, verify_webhook
from ..orchestrator import (
    BootstrapWorkflow,
    DailyStandupRequest,
    DailyStandupWorkflow,
    NewProjectRequest,
    ProjectNotFoundError,
    ReleasePrepRequest,
    ReleasePrepWorkflow,
    WeeklyReportRequest,
    WeeklyReportWorkflow,
    WorkflowError,
)
from ..storage import EventType, WorkflowRun, utcnow

logger = logging.getLogger(__name__)

CLICKUP_EVENTS = {
    "taskCreated": EventType.CLICKUP_TASK_CREATED,
    "taskStatusUpdated": EventType.CLICKUP_TASK_STATUS_CHANGED,
}


# =============================================================================
# Request/Response Models
# =============================================================================

class DailySummaryRequest(BaseModel):
    """Request for an on-demand daily summary."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    day: Optional[date] = Field(default=None, alias="date", description="Summary day, defaults to today")
    chat_ids: Optional[List[ChatId]] = Field(default=None, description="Chat ids to push the summary to")


class WorkflowRunResponse(BaseModel):
    """One workflow run."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    type: str
    status: str
    started_at: str
    finished_at: Optional[str] = None
    result_summary: Optional[str] = None

    @classmethod
    def from_run(cls, run: WorkflowRun) -> "WorkflowRunResponse":
        return cls(
            id=run.id,
            type=run.type.value,
            status=run.status.value,
            started_at=run.started_at.isoformat(),
            finished_at=run.finished_at.isoformat() if run.finished_at else None,
            result_summary=run.result_summary,
        )


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


# =============================================================================
# API Gateway Class
# =============================================================================

class APIGateway:
    """
    API Gateway for Studio Ops.

    Holds the StudioContext and delegates to workflows and the ledger.
    The context is owned by the caller.
    """

    def __init__(self, ctx: StudioContext):
        self.ctx = ctx
        self.ops = OpsAgent(ctx.ledger)
        register_chat_commands(ctx.integrations.telegram, ctx)
        logger.info("APIGateway initialized")

    def start_chat(self) -> None:
        """Start chat polling (no-op warning for the simulated client)."""
        self.ctx.integrations.telegram.start_polling()

    # =========================================================================
    # Workflow Operations
    # =========================================================================

    def new_project(self, request: NewProjectRequest) -> Dict[str, Any]:
        return BootstrapWorkflow.from_context(self.ctx).run(request).model_dump(mode="json", by_alias=True)

    def daily_standup(self, request: DailyStandupRequest) -> Dict[str, Any]:
        return DailyStandupWorkflow.from_context(self.ctx).run(request).model_dump(mode="json", by_alias=True)

    def weekly_report(self, request: WeeklyReportRequest) -> Dict[str, Any]:
        return WeeklyReportWorkflow.from_context(self.ctx).run(request).model_dump(mode="json", by_alias=True)

    def release_prep(self, request: ReleasePrepRequest) -> Dict[str, Any]:
        return ReleasePrepWorkflow.from_context(self.ctx).run(request).model_dump(mode="json", by_alias=True)

    def daily_summary(self, request: DailySummaryRequest) -> Dict[str, Any]:
        day = request.day or utcnow().date()
        result = self.ops.run(OpsInput(action=OpsAction.DAILY_SUMMARY, day=day))

        chat_ids = request.chat_ids if request.chat_ids is not None else list(self.ctx.config.telegram.chat_ids)
        text = result.formatted_summary or result.summary
        delivered = 0
        for chat_id in chat_ids:
            try:
                self.ctx.integrations.telegram.send_message_with_markdown(chat_id, text)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to send summary to Telegram chat {chat_id}: {e}")

        return {
            "success": True,
            "summary": result.summary,
            "formattedSummary": result.formatted_summary,
            "date": day.isoformat(),
            "delivered": delivered,
        }

    def recent_runs(self, limit: int) -> List[WorkflowRunResponse]:
        return [WorkflowRunResponse.from_run(r) for r in self.ctx.ledger.get_recent_runs(limit)]

    # =========================================================================
    # Webhook Operations
    # =========================================================================

    def record_github(self, payload: Dict[str, Any], event: Optional[str]) -> None:
        self.ctx.ledger.log_event(EventType.GITHUB_COMMIT, payload)
        logger.info(f"GitHub webhook received: {event or payload.get('action') or 'push'}")

    def record_whatsapp(self, payload: Dict[str, Any]) -> int:
        messages = parse_webhook_messages(payload)
        self.ctx.ledger.log_event(EventType.WHATSAPP_MESSAGE, payload)
        logger.info(f"WhatsApp webhook received: {len(messages)} messages")
        return len(messages)

    def record_clickup(self, payload: Dict[str, Any]) -> EventType:
        event_type = CLICKUP_EVENTS.get(payload.get("event"), EventType.CLICKUP_TASK_UPDATED)
        self.ctx.ledger.log_event(event_type, payload)
        logger.info(f"ClickUp webhook received: {payload.get('event')}")
        return event_type


async def _json_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("JSON body must be an object")
    return payload


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(gateway: APIGateway, start_chat: bool = False) -> FastAPI:
    """Create FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_chat:
            gateway.start_chat()
        yield

    app = FastAPI(
        title="Studio Ops API",
        description="HTTP API for the Studio Ops workflows",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Store gateway instance
    app.state.gateway = gateway

    # ==========================================================================
    # Error Handlers
    # ==========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = "; ".join(
            f"{'.'.join(str(p) for p in e['loc'] if p != 'body')}: {e['msg']}" for e in exc.errors()
        )
        return error_response(400, errors or "Invalid request")

    @app.exception_handler(ProjectNotFoundError)
    async def project_not_found(request: Request, exc: ProjectNotFoundError):
        return error_response(404, str(exc))

    @app.exception_handler(WorkflowError)
    async def workflow_error(request: Request, exc: WorkflowError):
        return error_response(400, str(exc))

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.error(f"Request {request.method} {request.url.path} failed: {exc}")
        return error_response(500, str(exc) or "Internal server error")

    # ==========================================================================
    # Routes
    # ==========================================================================

    @app.get("/health")
    async def health():
        """Liveness check."""
        return {"status": "ok", "timestamp": utcnow().isoformat()}

    @app.post("/webhooks/github")
    async def github_webhook(request: Request):
        """Record a GitHub webhook delivery."""
        raw = await request.body()
        secret = gateway.ctx.config.github.webhook_secret
        if not verify_signature(secret, raw, request.headers.get("X-Hub-Signature-256")):
            return error_response(401, "Invalid signature")
        try:
            payload = await _json_body(request)
        except ValueError as e:
            return error_response(400, f"Invalid JSON body: {e}")
        gateway.record_github(payload, request.headers.get("X-GitHub-Event"))
        return {"received": True}

    @app.get("/webhooks/whatsapp")
    async def whatsapp_verify(request: Request):
        """WhatsApp hub subscription handshake."""
        params = request.query_params
        challenge = verify_webhook(
            params.get("hub.mode"),
            params.get("hub.verify_token"),
            params.get("hub.challenge"),
            gateway.ctx.config.whatsapp.verify_token,
        )
        if challenge is None:
            return PlainTextResponse("Forbidden", status_code=403)
        return PlainTextResponse(challenge)

    @app.post("/webhooks/whatsapp")
    async def whatsapp_webhook(request: Request):
        """Record incoming WhatsApp messages."""
        try:
            payload = await _json_body(request)
        except ValueError as e:
            return error_response(400, f"Invalid JSON body: {e}")
        return {"received": True, "messages": gateway.record_whatsapp(payload)}

    @app.post("/webhooks/clickup")
    async def clickup_webhook(request: Request):
        """Record a ClickUp task event."""
        try:
            payload = await _json_body(request)
        except ValueError as e:
            return error_response(400, f"Invalid JSON body: {e}")
        event_type = gateway.record_clickup(payload)
        return {"received": True, "eventType": event_type.value}

    @app.post("/workflows/new-project")
    def new_project(request: NewProjectRequest):
        """Run the project bootstrap workflow."""
        return gateway.new_project(request)

    @app.post("/workflows/daily-standup/run")
    def daily_standup(request: Optional[DailyStandupRequest] = None):
        """Run the daily standup workflow."""
        return gateway.daily_standup(request or DailyStandupRequest())

    @app.post("/workflows/weekly-report/run")
    def weekly_report(request: Optional[WeeklyReportRequest] = None):
        """Run the weekly report workflow."""
        return gateway.weekly_report(request or WeeklyReportRequest())

    @app.post("/workflows/release-prep")
    def release_prep(request: ReleasePrepRequest):
        """Run the release preparation workflow."""
        return gateway.release_prep(request)

    @app.post("/workflows/daily-summary")
    def daily_summary(request: Optional[DailySummaryRequest] = None):
        """Compose the daily summary and push it to chat."""
        return gateway.daily_summary(request or DailySummaryRequest())

    @app.get("/workflows/runs")
    def list_runs(limit: int = Query(default=20, ge=1, le=100)):
        """Most recent workflow runs."""
        return [r.model_dump(by_alias=True) for r in gateway.recent_runs(limit)]

    return app


# =============================================================================
# Main Entry Point
# =============================================================================

def serve(ctx: StudioContext) -> None:
    """Run the API with uvicorn until interrupted."""
    import uvicorn

    app = create_app(APIGateway(ctx), start_chat=True)
    logger.info(f"API Gateway listening on http://{ctx.config.api_host}:{ctx.config.api_port}")
    uvicorn.run(app, host=ctx.config.api_host, port=ctx.config.api_port)


if __name__ == "__main__":
    from ..cli import setup_logging
    from ..context import open_context

    setup_logging(timestamps=True)

    with open_context() as context:
        serve(context)
