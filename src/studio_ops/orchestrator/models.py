"""
Pydantic models for workflow requests and results.

Requests are validated before a workflow starts: a validation error never
creates a run record.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..agents import ClientInfo
from ..storage import Project, utcnow

REPORT_WINDOW = timedelta(days=7)


class _WorkflowModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Requests
# =============================================================================


class NewProjectRequest(_WorkflowModel):
    """Input of the project bootstrap workflow."""
    name: str = Field(..., min_length=1, description="Project name")
    description: Optional[str] = Field(default=None, description="Free-form project brief")
    client_info: Optional[ClientInfo] = Field(default=None, description="Client contact and requirements")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @property
    def brief(self) -> str:
        return self.description or self.name


class DailyStandupRequest(_WorkflowModel):
    day: Optional[date] = Field(default=None, alias="date", description="Standup day, defaults to today (UTC)")

    def resolved_day(self) -> date:
        return self.day or utcnow().date()


class WeeklyReportRequest(_WorkflowModel):
    week_start: Optional[datetime] = Field(default=None, description="Window start, defaults to 7 days ago")
    week_end: Optional[datetime] = Field(default=None, description="Window end, defaults to now")

    @field_validator("week_start", "week_end")
    @classmethod
    def _to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v) if v is not None else None

    @model_validator(mode="after")
    def _check_window(self) -> "WeeklyReportRequest":
        if self.week_start and self.week_end and self.week_start > self.week_end:
            raise ValueError("weekStart must not be after weekEnd")
        return self

    def window(self) -> Tuple[datetime, datetime]:
        """Resolved (start, end), naive UTC."""
        end = self.week_end or utcnow()
        start = self.week_start or end - REPORT_WINDOW
        return start, end


class ReleasePrepRequest(_WorkflowModel):
    project_id: str = Field(..., min_length=1, description="Project to release")
    version: str = Field(..., min_length=1, description="Release version, e.g. 1.0.0")


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return (value - value.utcoffset()).replace(tzinfo=None)


# =============================================================================
# Results
# =============================================================================


class BootstrapResult(_WorkflowModel):
    project_id: str
    project: Project
    tasks_created: int
    summary: str


class StandupResult(_WorkflowModel):
    standups_collected: int
    summary: str
    # Markdown daily summary for chat delivery
    formatted_summary: Optional[str] = None


class WeeklyReportResult(_WorkflowModel):
    completed_tasks: int
    ongoing_projects: int
    blocked_items: int
    summary: str


class ReleasePrepResult(_WorkflowModel):
    project_id: str
    version: str
    quality_assessment: str
    release_notes: str
    quality_score: int = 0
    ready_for_release: bool = False
