"""
PM Agent - breaks features into tasks and stores them in the ledger.

Each feature becomes four fixed-role tasks; their estimates are fixed
shares of the feature estimate (16h when the feature has none).
"""

import logging
from typing import List

from pydantic import Field

from ..storage import EventType, RunLedger, Task, TaskStatus
from .base_agent import DecisionModel, DecisionUnit
from .product_agent import FeatureSpec

logger = logging.getLogger(__name__)

DEFAULT_FEATURE_HOURS = 16.0

# (title suffix, description template, share of the feature estimate)
BREAKDOWN = [
    ("Design", "UI/UX design for the {name} feature", 0.3),
    ("Backend Development", "Backend API development for the {name} feature", 0.4),
    ("Frontend Development", "Frontend development for the {name} feature", 0.2),
    ("Test", "Test writing and QA for the {name} feature", 0.1),
]


class PlannedTask(DecisionModel):
    title: str
    description: str
    estimate_hours: float


class TaskBreakdownInput(DecisionModel):
    project_id: str
    features: List[FeatureSpec] = Field(default_factory=list)


class TaskBreakdown(DecisionModel):
    tasks_created: int
    task_ids: List[str]
    tasks: List[Task]


def break_down_feature(feature: FeatureSpec) -> List[PlannedTask]:
    hours = feature.estimated_hours or DEFAULT_FEATURE_HOURS
    return [
        PlannedTask(
            title=f"{feature.name} - {suffix}",
            description=template.format(name=feature.name),
            estimate_hours=round(hours * share, 2),
        )
        for suffix, template, share in BREAKDOWN
    ]


class PMAgent(DecisionUnit[TaskBreakdownInput, TaskBreakdown]):
    name = "PM Agent"

    def __init__(self, ledger: RunLedger):
        self.ledger = ledger

    def run(self, data: TaskBreakdownInput) -> TaskBreakdown:
        logger.info(
            f"[{self.name}] Creating tasks for project: {data.project_id}, features: {len(data.features)}"
        )

        tasks: List[Task] = []
        for feature in data.features:
            for planned in break_down_feature(feature):
                task = self.ledger.create_task(
                    project_id=data.project_id,
                    title=planned.title,
                    description=planned.description,
                    status=TaskStatus.TODO,
                    estimate_hours=planned.estimate_hours,
                )
                self.ledger.log_event(
                    EventType.TASK_CREATED,
                    {"taskId": task.id, "projectId": data.project_id, "title": task.title},
                )
                tasks.append(task)

        logger.info(f"[{self.name}] Created {len(tasks)} tasks for {len(data.features)} features")
        return TaskBreakdown(tasks_created=len(tasks), task_ids=[t.id for t in tasks], tasks=tasks)
