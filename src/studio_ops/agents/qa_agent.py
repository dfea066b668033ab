"""
QA Agent - release quality assessment from task states.

score = clamp(completion% - 10 x blocked%, 0, 100), rounded.
Ready for release iff score >= 70 and no task is blocked.
"""

import logging
from typing import List

from pydantic import Field

from ..storage import Project, Task, TaskStatus
from .base_agent import DecisionModel, DecisionUnit

logger = logging.getLogger(__name__)

RELEASE_THRESHOLD = 70
BLOCKED_PENALTY = 10


class QualityInput(DecisionModel):
    project: Project
    tasks: List[Task] = Field(default_factory=list)


class QualityReport(DecisionModel):
    assessment: str
    test_suggestions: List[str]
    quality_score: int = Field(ge=0, le=100)
    ready_for_release: bool


def quality_score(done: int, blocked: int, total: int) -> float:
    if total == 0:
        return 0.0
    completion_rate = done / total * 100
    blocked_rate = blocked / total * 100
    return max(0.0, min(100.0, completion_rate - blocked_rate * BLOCKED_PENALTY))


class QAAgent(DecisionUnit[QualityInput, QualityReport]):
    name = "QA Agent"

    def run(self, data: QualityInput) -> QualityReport:
        logger.info(f"[{self.name}] Assessing quality for project: {data.project.id}")

        tasks = data.tasks
        total = len(tasks)
        if total == 0:
            return QualityReport(
                assessment="No tasks yet, quality cannot be assessed.",
                test_suggestions=[],
                quality_score=0,
                ready_for_release=False,
            )

        by_status = {status: [t for t in tasks if t.status == status] for status in TaskStatus}
        done = len(by_status[TaskStatus.DONE])
        blocked = len(by_status[TaskStatus.BLOCKED])
        review = len(by_status[TaskStatus.REVIEW])
        in_progress = len(by_status[TaskStatus.IN_PROGRESS])

        completion = done / total * 100
        score = quality_score(done, blocked, total)

        suggestions = []
        if done:
            suggestions.append("Run regression tests for the completed tasks")
        if review:
            suggestions.append(f"{review} tasks are in review, code review should be completed")
        if blocked:
            suggestions.append(f"{blocked} blocked tasks need to be resolved")
        if in_progress > total * 0.5:
            suggestions.append("Too many tasks in progress, there may be a focus problem")

        blocked_note = f"{blocked} blocked tasks" if blocked else ""
        if score >= 90 and blocked:
            assessment = (
                f"Quality check: Excellent. {completion:.0f}% of tasks completed, {blocked_note}. "
                "Resolve them before release."
            )
        elif score >= 90:
            assessment = (
                f"Quality check: Excellent. {completion:.0f}% of tasks completed, nothing blocked. "
                "Looks ready for release."
            )
        elif score >= 70:
            assessment = (
                f"Quality check: Good. {completion:.0f}% of tasks completed. "
                f"{blocked_note + ', ' if blocked else ''}release possible after minor improvements."
            )
        elif score >= 50:
            assessment = (
                f"Quality check: Fair. {completion:.0f}% of tasks completed. "
                f"{blocked_note or 'Gaps'} remain, evaluate carefully before release."
            )
        else:
            assessment = (
                f"Quality check: Low. {completion:.0f}% of tasks completed. "
                f"{blocked_note or 'Significant gaps'} remain, release not recommended."
            )

        return QualityReport(
            assessment=assessment,
            test_suggestions=suggestions,
            quality_score=round(score),
            ready_for_release=score >= RELEASE_THRESHOLD and blocked == 0,
        )
