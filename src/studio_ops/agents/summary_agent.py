"""
Summary writers for the standup and weekly report workflows.

Both produce plain prose: generated when possible, templated otherwise.
"""

from datetime import date
from typing import Optional

from .base_agent import DecisionModel, GenerativeDecisionUnit


class StandupDigestInput(DecisionModel):
    day: date
    standups_collected: int


class WeeklyDigestInput(DecisionModel):
    completed_tasks: int
    ongoing_projects: int
    blocked_items: int
    recent_events: int


class _ProseUnit(GenerativeDecisionUnit):
    def parse_response(self, text: str, data) -> str:
        if not text.strip():
            raise ValueError("empty summary")
        return text.strip()


class StandupSummaryAgent(_ProseUnit):
    name = "Standup Summary"

    def describe(self, data: StandupDigestInput) -> str:
        return f"Summarizing {data.standups_collected} standups for {data.day.isoformat()}"

    def should_generate(self, data: StandupDigestInput) -> Optional[str]:
        if data.standups_collected == 0:
            return "no standups collected"
        return None

    def build_prompt(self, data: StandupDigestInput) -> str:
        return (
            f"{data.standups_collected} standups were collected today. "
            "Write a daily standup summary in a casual-professional tone covering "
            "completed work, work in progress and blockers."
        )

    def fallback(self, data: StandupDigestInput) -> str:
        if data.standups_collected == 0:
            return "No standups collected yet today. Waiting for standups from the team."
        return (
            f"Summary: {data.standups_collected} standups collected today. "
            "Check the ledger for details."
        )


class WeeklySummaryAgent(_ProseUnit):
    name = "Weekly Summary"

    def describe(self, data: WeeklyDigestInput) -> str:
        return "Writing weekly report summary"

    def build_prompt(self, data: WeeklyDigestInput) -> str:
        return (
            "Write a weekly report summary in a casual-professional tone. "
            f"Data: {data.completed_tasks} completed tasks, {data.ongoing_projects} active projects, "
            f"{data.blocked_items} blocked items, {data.recent_events} events. "
            "Add priorities and recommendations."
        )

    def fallback(self, data: WeeklyDigestInput) -> str:
        if data.blocked_items > 0:
            status = "⚠️ There are blocked items that need attention."
        else:
            status = "✅ Nothing is blocked, work is flowing smoothly."
        return (
            "Weekly Summary:\n"
            f"- Completed tasks: {data.completed_tasks}\n"
            f"- Active projects: {data.ongoing_projects}\n"
            f"- Blocked items: {data.blocked_items}\n"
            f"- Total events: {data.recent_events}\n\n"
            f"{status}"
        )
