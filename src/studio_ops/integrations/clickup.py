"""
Ticketing integration (ClickUp API v2).
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .base import CredentialsMissingError, IntegrationError, LiveHttpClient

logger = logging.getLogger(__name__)


class ClickUpTask(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    status: str
    assignees: List[str] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    # 1 = Urgent, 2 = High, 3 = Normal, 4 = Low
    priority: Optional[int] = None
    url: str
    list_id: str


class ClickUpList(BaseModel):
    id: str
    name: str
    folder_id: Optional[str] = None
    space_id: str


class ClickUpSpace(BaseModel):
    id: str
    name: str
    color: Optional[str] = None


class TaskUpdate(BaseModel):
    """Fields to change on an existing ticket; unset fields are left alone."""
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    assignees: Optional[List[str]] = None
    due_date: Optional[datetime] = None
    priority: Optional[int] = None


def _to_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def _from_millis(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc).replace(tzinfo=None)


class TicketingClient(ABC):
    """Capability interface for the ticketing service."""

    @abstractmethod
    def create_task(
        self,
        list_id: str,
        name: str,
        description: Optional[str] = None,
        assignees: Optional[List[str]] = None,
        due_date: Optional[datetime] = None,
        priority: Optional[int] = None,
    ) -> ClickUpTask:
        ...

    @abstractmethod
    def update_task(self, task_id: str, updates: TaskUpdate) -> ClickUpTask:
        ...

    @abstractmethod
    def get_tasks(self, list_id: str, include_closed: bool = False) -> List[ClickUpTask]:
        ...

    @abstractmethod
    def create_list(self, folder_id: str, name: str) -> ClickUpList:
        ...

    @abstractmethod
    def get_spaces(self) -> List[ClickUpSpace]:
        ...


class SimulatedClickUpClient(TicketingClient):
    """Synthetic ClickUp workspace."""

    def create_task(
        self,
        list_id: str,
        name: str,
        description: Optional[str] = None,
        assignees: Optional[List[str]] = None,
        due_date: Optional[datetime] = None,
        priority: Optional[int] = None,
    ) -> ClickUpTask:
        logger.info(f"[Simulated ClickUp] Creating task in list {list_id}: {name}")
        stamp = int(time.time() * 1000)
        return ClickUpTask(
            id=f"clickup-task-{stamp}",
            name=name,
            description=description,
            status="to do",
            assignees=assignees or [],
            due_date=due_date,
            priority=priority,
            url=f"https://app.clickup.com/t/{stamp}",
            list_id=list_id,
        )

    def update_task(self, task_id: str, updates: TaskUpdate) -> ClickUpTask:
        logger.info(f"[Simulated ClickUp] Updating task {task_id}: {updates.model_dump(exclude_none=True)}")
        return ClickUpTask(
            id=task_id,
            name=updates.name or "Updated Task",
            description=updates.description,
            status=updates.status or "to do",
            assignees=updates.assignees or [],
            due_date=updates.due_date,
            priority=updates.priority,
            url=f"https://app.clickup.com/t/{task_id}",
            list_id="simulated-list-id",
        )

    def get_tasks(self, list_id: str, include_closed: bool = False) -> List[ClickUpTask]:
        logger.info(f"[Simulated ClickUp] Fetching tasks from list {list_id}")
        return [
            ClickUpTask(
                id="clickup-task-1",
                name="Sample Task",
                description="This is a sample task",
                status="in progress",
                url="https://app.clickup.com/t/1",
                list_id=list_id,
            )
        ]

    def create_list(self, folder_id: str, name: str) -> ClickUpList:
        logger.info(f"[Simulated ClickUp] Creating list in folder {folder_id}: {name}")
        return ClickUpList(
            id=f"clickup-list-{int(time.time() * 1000)}",
            name=name,
            folder_id=folder_id,
            space_id="simulated-space-id",
        )

    def get_spaces(self) -> List[ClickUpSpace]:
        logger.info("[Simulated ClickUp] Fetching spaces")
        return [ClickUpSpace(id="clickup-space-1", name="Studio Workspace", color="#7b68ee")]


class LiveClickUpClient(LiveHttpClient, TicketingClient):
    """ClickUp REST client authenticated with a personal API token."""

    service = "ClickUp"

    def __init__(
        self,
        api_key: str,
        team_id: Optional[str] = None,
        base_url: str = "https://api.clickup.com/api/v2",
        **kwargs,
    ):
        super().__init__(base_url, **kwargs)
        self.team_id = team_id
        self.session.headers.update({
            "Authorization": api_key,
            "Content-Type": "application/json",
        })

    @staticmethod
    def _to_task(data: Dict[str, Any]) -> ClickUpTask:
        try:
            priority = data.get("priority")
            return ClickUpTask(
                id=data["id"],
                name=data["name"],
                description=data.get("description"),
                status=data["status"]["status"],
                assignees=[a.get("email", "") for a in data.get("assignees", [])],
                due_date=_from_millis(data.get("due_date")),
                priority=int(priority["id"]) if priority else None,
                url=data["url"],
                list_id=data["list"]["id"],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise IntegrationError("ClickUp", f"unexpected task payload: {e}") from e

    def create_task(
        self,
        list_id: str,
        name: str,
        description: Optional[str] = None,
        assignees: Optional[List[str]] = None,
        due_date: Optional[datetime] = None,
        priority: Optional[int] = None,
    ) -> ClickUpTask:
        def call() -> ClickUpTask:
            body: Dict[str, Any] = {"name": name}
            if description:
                body["description"] = description
            if assignees:
                body["assignees"] = assignees
            if due_date:
                body["due_date"] = _to_millis(due_date)
            if priority is not None:
                body["priority"] = priority
            return self._to_task(self._request("POST", f"/list/{list_id}/task", json=body))

        return self._with_fallback(
            "create_task", call, list_id, name, description, assignees, due_date, priority
        )

    def update_task(self, task_id: str, updates: TaskUpdate) -> ClickUpTask:
        def call() -> ClickUpTask:
            body = updates.model_dump(exclude_none=True)
            if updates.due_date:
                body["due_date"] = _to_millis(updates.due_date)
            return self._to_task(self._request("PUT", f"/task/{task_id}", json=body))

        return self._with_fallback("update_task", call, task_id, updates)

    def get_tasks(self, list_id: str, include_closed: bool = False) -> List[ClickUpTask]:
        def call() -> List[ClickUpTask]:
            params = {"include_closed": "true"} if include_closed else {}
            data = self._request("GET", f"/list/{list_id}/task", params=params)
            return [self._to_task(item) for item in data.get("tasks", [])]

        return self._with_fallback("get_tasks", call, list_id, include_closed)

    def create_list(self, folder_id: str, name: str) -> ClickUpList:
        def call() -> ClickUpList:
            data = self._request("POST", f"/folder/{folder_id}/list", json={"name": name})
            return ClickUpList(
                id=data["id"],
                name=data["name"],
                folder_id=(data.get("folder") or {}).get("id"),
                space_id=data["space"]["id"],
            )

        return self._with_fallback("create_list", call, folder_id, name)

    def get_spaces(self) -> List[ClickUpSpace]:
        def call() -> List[ClickUpSpace]:
            if not self.team_id:
                raise CredentialsMissingError(self.service, "ClickUp team ID is required")
            data = self._request("GET", f"/team/{self.team_id}/space")
            return [
                ClickUpSpace(id=s["id"], name=s["name"], color=s.get("color"))
                for s in data.get("spaces", [])
            ]

        return self._with_fallback("get_spaces", call)
