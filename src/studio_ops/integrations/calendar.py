"""
Calendar integration (Google Calendar v3 REST).

The live client exchanges the configured refresh token for an access
token before every call.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

import requests
from pydantic import BaseModel, Field

from ..storage.models import utcnow
from .base import IntegrationAuthError, IntegrationError, LiveHttpClient

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
SEARCH_WINDOW = timedelta(days=7)


class CalendarEvent(BaseModel):
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    attendees: List[str] = Field(default_factory=list)
    url: Optional[str] = None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_time(value: str) -> datetime:
    return _as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def first_free_slot(
    busy: Iterable[Tuple[datetime, datetime]],
    duration: timedelta,
    window_start: datetime,
    window_end: datetime,
) -> Optional[datetime]:
    """
    Earliest start in [window_start, window_end] with `duration` free.

    Busy intervals may overlap and arrive unsorted.
    """
    current = window_start
    for busy_start, busy_end in sorted(busy):
        if current + duration <= busy_start:
            return current
        if busy_end > current:
            current = busy_end
    if current + duration <= window_end:
        return current
    return None


class CalendarClient(ABC):
    """Capability interface for the calendar service."""

    @abstractmethod
    def schedule_event(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        attendees: Optional[List[str]] = None,
    ) -> CalendarEvent:
        ...

    @abstractmethod
    def find_available_slot(self, duration_minutes: int, attendees: List[str]) -> Optional[datetime]:
        ...


class SimulatedCalendarClient(CalendarClient):
    """Synthetic calendar: every event is accepted, a slot is free in two hours."""

    def schedule_event(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        attendees: Optional[List[str]] = None,
    ) -> CalendarEvent:
        attendees = attendees or []
        logger.info(
            f"[Simulated Calendar] Scheduling event: {title} "
            f"({start_time.isoformat()} - {end_time.isoformat()}) attendees={attendees}"
        )
        event_id = f"cal-{uuid.uuid4().hex[:8]}"
        return CalendarEvent(
            id=event_id,
            title=title,
            start_time=start_time,
            end_time=end_time,
            attendees=attendees,
            url=f"https://calendar.google.com/event?eid={event_id}",
        )

    def find_available_slot(self, duration_minutes: int, attendees: List[str]) -> Optional[datetime]:
        logger.info(f"[Simulated Calendar] Finding {duration_minutes}min slot for {attendees}")
        return utcnow() + timedelta(hours=2)


class LiveCalendarClient(LiveHttpClient, CalendarClient):
    """Google Calendar client on the primary calendar."""

    service = "Calendar"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        base_url: str = "https://www.googleapis.com/calendar/v3",
        **kwargs,
    ):
        super().__init__(base_url, **kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token

    def _authorize(self) -> None:
        """Refresh the access token and install it on the session."""
        try:
            resp = self.session.post(
                TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise IntegrationError(self.service, f"token refresh failed: {e}") from e
        if not resp.ok:
            raise IntegrationAuthError(
                self.service, "Failed to refresh Google Calendar access token", resp.status_code
            )
        token = resp.json().get("access_token")
        if not token:
            raise IntegrationAuthError(self.service, "Token response has no access_token")
        self.session.headers["Authorization"] = f"Bearer {token}"

    def schedule_event(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        attendees: Optional[List[str]] = None,
    ) -> CalendarEvent:
        attendees = attendees or []

        def call() -> CalendarEvent:
            self._authorize()
            body = {
                "summary": title,
                "start": {"dateTime": _as_utc(start_time).isoformat(), "timeZone": "UTC"},
                "end": {"dateTime": _as_utc(end_time).isoformat(), "timeZone": "UTC"},
                "attendees": [{"email": email} for email in attendees],
            }
            data = self._request("POST", "/calendars/primary/events", json=body)
            if not data.get("id"):
                raise IntegrationError(self.service, "Failed to create calendar event")
            return CalendarEvent(
                id=data["id"],
                title=data.get("summary") or title,
                start_time=start_time,
                end_time=end_time,
                attendees=attendees,
                url=data.get("htmlLink"),
            )

        return self._with_fallback("schedule_event", call, title, start_time, end_time, attendees)

    def find_available_slot(self, duration_minutes: int, attendees: List[str]) -> Optional[datetime]:
        def call() -> Optional[datetime]:
            self._authorize()
            now = datetime.now(timezone.utc)
            until = now + SEARCH_WINDOW
            data = self._request(
                "POST",
                "/freeBusy",
                json={
                    "timeMin": now.isoformat(),
                    "timeMax": until.isoformat(),
                    "items": [{"id": email} for email in attendees],
                },
            )
            busy = [
                (_parse_time(slot["start"]), _parse_time(slot["end"]))
                for calendar in (data.get("calendars") or {}).values()
                for slot in calendar.get("busy", [])
                if slot.get("start") and slot.get("end")
            ]
            slot = first_free_slot(busy, timedelta(minutes=duration_minutes), now, until)
            return slot.replace(tzinfo=None) if slot else None

        return self._with_fallback("find_available_slot", call, duration_minutes, attendees)
