"""
Tests for the Integration Clients.

Live clients run against a mocked requests.Session; nothing leaves the process.
"""

import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from studio_ops.config import (
    CalendarSettings,
    ClickUpSettings,
    GithubSettings,
    StudioConfig,
    TelegramSettings,
    WhatsAppSettings,
)
from studio_ops.integrations import (
    IntegrationAuthError,
    IntegrationError,
    IntegrationNotFoundError,
    RateLimitError,
    TaskUpdate,
    create_calendar_client,
    create_clickup_client,
    create_github_client,
    create_integrations,
    create_telegram_client,
    create_whatsapp_client,
    retry_with_backoff,
)
from studio_ops.integrations.calendar import LiveCalendarClient, SimulatedCalendarClient, first_free_slot
from studio_ops.integrations.clickup import LiveClickUpClient, SimulatedClickUpClient
from studio_ops.integrations.github import LiveGithubClient, SimulatedGithubClient, split_repo, verify_signature
from studio_ops.integrations.telegram import (
    COMMAND_ERROR_REPLY,
    CommandRouter,
    LiveTelegramClient,
    SimulatedTelegramClient,
    parse_command,
)
from studio_ops.integrations.whatsapp import (
    LiveWhatsAppClient,
    SimulatedWhatsAppClient,
    normalize_number,
    parse_webhook_messages,
    verify_webhook,
)


def _response(status=200, payload=None, headers=None):
    resp = requests.Response()
    resp.status_code = status
    resp.reason = "Test"
    resp._content = json.dumps(payload).encode() if payload is not None else b""
    resp.headers.update(headers or {})
    return resp


def _mock_session(client, *responses):
    client.session = MagicMock()
    client.session.headers = {}
    client.session.request.side_effect = list(responses)
    return client.session


# =============================================================================
# Retry and error classification
# =============================================================================


class TestRetry:
    """Exponential backoff for rate limits only."""

    def test_retries_rate_limit_then_succeeds(self):
        delays = []
        calls = iter([RateLimitError("X", "slow down"), RateLimitError("X", "slow down"), "ok"])

        def fn():
            item = next(calls)
            if isinstance(item, Exception):
                raise item
            return item

        assert retry_with_backoff(fn, base_delay=0.5, sleep=delays.append) == "ok"
        assert delays == [0.5, 1.0]

    def test_gives_up_after_max_attempts(self):
        delays = []

        def fn():
            raise RateLimitError("X", "slow down")

        with pytest.raises(RateLimitError):
            retry_with_backoff(fn, max_attempts=3, sleep=delays.append)
        assert delays == [1.0, 2.0]

    def test_other_errors_not_retried(self):
        delays = []

        def fn():
            raise IntegrationError("X", "bad request", 400)

        with pytest.raises(IntegrationError):
            retry_with_backoff(fn, sleep=delays.append)
        assert delays == []

    def test_error_message_prefix(self):
        err = IntegrationError("GitHub", "boom", 500)

        assert str(err) == "[GitHub] boom"
        assert err.status_code == 500


class TestStatusClassification:
    """HTTP status codes map onto typed errors."""

    @pytest.mark.parametrize("status,error", [
        (401, IntegrationAuthError),
        (404, IntegrationNotFoundError),
        (500, IntegrationError),
    ])
    def test_typed_errors(self, status, error):
        client = LiveClickUpClient("key")
        _mock_session(client, _response(status, {"err": "nope"}))

        with pytest.raises(error, match="nope"):
            client.get_tasks("list-1")

    def test_rate_limit_retried_with_backoff(self):
        delays = []
        client = LiveClickUpClient("key", sleep=delays.append)
        session = _mock_session(client, _response(429), _response(200, {"tasks": []}))

        assert client.get_tasks("list-1") == []
        assert session.request.call_count == 2
        assert delays == [1.0]

    def test_transport_error_wrapped(self):
        client = LiveClickUpClient("key")
        client.session = MagicMock()
        client.session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(IntegrationError, match="request failed"):
            client.get_tasks("list-1")

    def test_github_403_with_exhausted_quota_is_rate_limit(self):
        client = LiveGithubClient("tok", max_attempts=1)
        _mock_session(client, _response(403, {"message": "API rate limit"}, {"X-RateLimit-Remaining": "0"}))

        with pytest.raises(RateLimitError):
            client.create_issue("acme/app", "Bug", "Details")


class TestFallback:
    """Simulated fallback outside production."""

    def test_live_failure_answered_by_simulation(self):
        client = LiveClickUpClient("key", fallback=SimulatedClickUpClient())
        _mock_session(client, _response(500, {"err": "down"}))

        tasks = client.get_tasks("list-1")

        assert tasks[0].name == "Sample Task"

    def test_without_fallback_error_propagates(self):
        client = LiveClickUpClient("key")
        _mock_session(client, _response(500, {"err": "down"}))

        with pytest.raises(IntegrationError):
            client.get_tasks("list-1")


# =============================================================================
# Factories
# =============================================================================


class TestFactories:
    """Live or simulated, decided once."""

    def test_no_credentials_means_simulated(self):
        clients = create_integrations(StudioConfig(environment="test"))

        assert isinstance(clients.github, SimulatedGithubClient)
        assert isinstance(clients.calendar, SimulatedCalendarClient)
        assert isinstance(clients.clickup, SimulatedClickUpClient)
        assert isinstance(clients.telegram, SimulatedTelegramClient)
        assert isinstance(clients.whatsapp, SimulatedWhatsAppClient)

    def test_credentials_outside_production_get_fallback(self):
        config = StudioConfig(
            environment="development",
            github=GithubSettings(token="tok"),
            clickup=ClickUpSettings(api_key="key"),
            telegram=TelegramSettings(bot_token="123:abc"),
        )

        github = create_github_client(config)
        clickup = create_clickup_client(config)
        telegram = create_telegram_client(config)

        assert isinstance(github, LiveGithubClient)
        assert isinstance(github.fallback, SimulatedGithubClient)
        assert isinstance(clickup.fallback, SimulatedClickUpClient)
        assert isinstance(telegram, LiveTelegramClient)
        assert isinstance(telegram.fallback, SimulatedTelegramClient)

    def test_production_has_no_fallback(self):
        config = StudioConfig(
            environment="production",
            calendar=CalendarSettings(client_id="id", client_secret="secret", refresh_token="refresh"),
        )

        calendar = create_calendar_client(config)

        assert isinstance(calendar, LiveCalendarClient)
        assert calendar.fallback is None

    def test_whatsapp_needs_all_settings(self):
        partial = StudioConfig(environment="test", whatsapp=WhatsAppSettings(access_token="tok"))
        disabled = StudioConfig(
            environment="test",
            whatsapp=WhatsAppSettings(access_token="tok", phone_number_id="123", enabled=False),
        )
        full = StudioConfig(environment="test", whatsapp=WhatsAppSettings(access_token="tok", phone_number_id="123"))

        assert isinstance(create_whatsapp_client(partial), SimulatedWhatsAppClient)
        assert isinstance(create_whatsapp_client(disabled), SimulatedWhatsAppClient)
        assert isinstance(create_whatsapp_client(full), LiveWhatsAppClient)


# =============================================================================
# GitHub
# =============================================================================


class TestGithub:
    def test_split_repo(self):
        assert split_repo("acme/app") == ("acme", "app")
        for bad in ("acme", "acme/", "/app", "a/b/c"):
            with pytest.raises(ValueError, match="Invalid repo format"):
                split_repo(bad)

    def test_commits_parsed(self):
        client = LiveGithubClient("tok")
        session = _mock_session(client, _response(200, [{
            "sha": "deadbeef",
            "html_url": "https://github.com/acme/app/commit/deadbeef",
            "author": None,
            "commit": {
                "message": "fix: login\n\nLonger body",
                "author": {"email": "dev@example.com", "date": "2024-01-15T10:00:00Z"},
            },
        }]))

        commits = client.get_recent_commits_for_repo("acme/app", datetime(2024, 1, 14))

        assert commits[0].message == "fix: login"
        assert commits[0].author == "dev@example.com"
        args, kwargs = session.request.call_args
        assert args == ("GET", "https://api.github.com/repos/acme/app/commits")
        assert kwargs["params"]["since"] == "2024-01-14T00:00:00Z"

    def test_signature(self):
        body = b'{"ref": "refs/heads/main"}'
        digest = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()

        assert verify_signature("s3cret", body, f"sha256={digest}")
        assert not verify_signature("s3cret", body, "sha256=" + "0" * 64)
        assert not verify_signature("s3cret", body, digest)
        assert not verify_signature("s3cret", body, None)
        assert verify_signature(None, body, None)


# =============================================================================
# Calendar
# =============================================================================


class TestFirstFreeSlot:
    """Earliest gap in a set of busy intervals."""

    start = datetime(2024, 1, 15, 9, 0)
    end = datetime(2024, 1, 15, 17, 0)

    def _at(self, hour, minute=0):
        return datetime(2024, 1, 15, hour, minute)

    def test_empty_calendar(self):
        assert first_free_slot([], timedelta(hours=1), self.start, self.end) == self.start

    def test_gap_between_meetings(self):
        busy = [(self._at(11), self._at(12)), (self._at(9), self._at(10, 30))]

        assert first_free_slot(busy, timedelta(minutes=30), self.start, self.end) == self._at(10, 30)

    def test_overlapping_intervals(self):
        busy = [(self._at(9), self._at(12)), (self._at(10), self._at(11))]

        assert first_free_slot(busy, timedelta(hours=1), self.start, self.end) == self._at(12)

    def test_no_room(self):
        busy = [(self._at(9), self._at(16, 30))]

        assert first_free_slot(busy, timedelta(hours=1), self.start, self.end) is None


class TestCalendar:
    def test_simulated_slot_in_two_hours(self):
        slot = SimulatedCalendarClient().find_available_slot(30, ["a@example.com"])

        assert slot > datetime.now(timezone.utc).replace(tzinfo=None)

    def test_live_schedule_refreshes_token(self):
        client = LiveCalendarClient("id", "secret", "refresh")
        session = _mock_session(client, _response(200, {"id": "evt1", "htmlLink": "https://cal/evt1"}))
        session.post.return_value = _response(200, {"access_token": "fresh"})

        event = client.schedule_event("Kickoff", datetime(2024, 1, 15, 9), datetime(2024, 1, 15, 10), ["a@example.com"])

        assert event.id == "evt1"
        assert session.headers["Authorization"] == "Bearer fresh"
        body = session.request.call_args.kwargs["json"]
        assert body["start"]["dateTime"] == "2024-01-15T09:00:00+00:00"
        assert body["attendees"] == [{"email": "a@example.com"}]

    def test_refresh_rejected(self):
        client = LiveCalendarClient("id", "secret", "refresh")
        session = _mock_session(client)
        session.post.return_value = _response(400, {"error": "invalid_grant"})

        with pytest.raises(IntegrationAuthError):
            client.schedule_event("Kickoff", datetime(2024, 1, 15, 9), datetime(2024, 1, 15, 10))
        session.request.assert_not_called()


# =============================================================================
# ClickUp
# =============================================================================


class TestClickUp:
    def test_create_task_payload(self):
        client = LiveClickUpClient("key")
        session = _mock_session(client, _response(200, {
            "id": "t1",
            "name": "Ship",
            "status": {"status": "to do"},
            "assignees": [{"email": "dev@example.com"}],
            "due_date": "1705312800000",
            "priority": {"id": "2"},
            "url": "https://app.clickup.com/t/t1",
            "list": {"id": "list-1"},
        }))

        task = client.create_task("list-1", "Ship", due_date=datetime(2024, 1, 15, 10), priority=2)

        body = session.request.call_args.kwargs["json"]
        assert body == {"name": "Ship", "due_date": 1705312800000, "priority": 2}
        assert task.due_date == datetime(2024, 1, 15, 10)
        assert task.priority == 2
        assert task.assignees == ["dev@example.com"]

    def test_update_sends_only_set_fields(self):
        client = LiveClickUpClient("key")
        session = _mock_session(client, _response(200, {
            "id": "t1", "name": "Ship", "status": {"status": "done"},
            "url": "https://app.clickup.com/t/t1", "list": {"id": "list-1"},
        }))

        task = client.update_task("t1", TaskUpdate(status="done"))

        assert session.request.call_args.kwargs["json"] == {"status": "done"}
        assert task.status == "done"

    def test_spaces_need_team(self):
        with pytest.raises(IntegrationError, match="team ID"):
            LiveClickUpClient("key").get_spaces()


# =============================================================================
# Telegram
# =============================================================================


class TestCommandRouter:
    """Command parsing and dispatch."""

    def test_parse_command(self):
        assert parse_command("/summary@studio_bot 2024-01-15") == ("summary", ["2024-01-15"])
        assert parse_command("/HELP") == ("help", [])
        assert parse_command("hello") is None
        assert parse_command("/") is None
        assert parse_command(None) is None

    def test_dispatch(self):
        router = CommandRouter()
        calls = []
        router.register("/summary", lambda chat_id, args: calls.append((chat_id, args)))

        assert router.dispatch(7, "/summary 2024-01-15", reply=None) is True
        assert router.dispatch(7, "/unknown", reply=None) is False
        assert router.dispatch(7, "just text", reply=None) is False
        assert calls == [(7, ["2024-01-15"])]
        assert router.commands() == ["summary"]

    def test_failing_handler_gets_error_reply(self):
        router = CommandRouter()
        replies = []

        def broken(chat_id, args):
            raise RuntimeError("boom")

        router.register("summary", broken)

        assert router.dispatch(7, "/summary", reply=lambda c, t: replies.append((c, t))) is True
        assert replies == [(7, COMMAND_ERROR_REPLY)]


class TestTelegram:
    def test_send_markdown(self):
        client = LiveTelegramClient("123:abc")
        session = _mock_session(client, _response(200, {"ok": True, "result": {"message_id": 5, "date": 1705312800}}))

        message = client.send_message_with_markdown(42, "*hi*")

        args, kwargs = session.request.call_args
        assert args == ("POST", "https://api.telegram.org/bot123:abc/sendMessage")
        assert kwargs["json"] == {"chat_id": 42, "text": "*hi*", "parse_mode": "Markdown"}
        assert message.message_id == 5
        assert message.timestamp == datetime(2024, 1, 15, 10)

    def test_poll_once_dispatches_and_advances_offset(self):
        client = LiveTelegramClient("123:abc")
        seen = []
        client.on_command("help", lambda chat_id, args: seen.append(chat_id))
        session = _mock_session(
            client,
            _response(200, {"ok": True, "result": [
                {"update_id": 10, "message": {"chat": {"id": 42}, "text": "/help"}},
                {"update_id": 11, "message": {"chat": {"id": 43}, "text": "hello"}},
            ]}),
            _response(200, {"ok": True, "result": []}),
        )

        assert client.poll_once() == 2
        assert client.poll_once() == 0
        assert seen == [42]
        assert session.request.call_args.kwargs["params"]["offset"] == 12

    def test_update_without_chat_ignored(self):
        assert SimulatedTelegramClient().handle_update({"edited_message": {}}) is False


# =============================================================================
# WhatsApp
# =============================================================================


class TestWhatsApp:
    def test_normalize_number(self):
        assert normalize_number("+90 555-123 4567") == "905551234567"

    def test_verify_webhook(self):
        assert verify_webhook("subscribe", "tok", "12345", "tok") == "12345"
        assert verify_webhook("subscribe", "wrong", "12345", "tok") is None
        assert verify_webhook("unsubscribe", "tok", "12345", "tok") is None
        assert verify_webhook("subscribe", None, "12345", None) is None

    def test_parse_webhook_messages(self):
        payload = {"entry": [{"changes": [{"value": {"messages": [
            {"id": "wamid.1", "from": "905551234567", "type": "text",
             "text": {"body": "Status?"}, "timestamp": "1705312800"},
            {"id": "wamid.2", "from": "905551234567", "type": "image"},
        ]}}]}]}

        events = parse_webhook_messages(payload)

        assert len(events) == 1
        assert events[0].body == "Status?"
        assert events[0].timestamp == datetime(2024, 1, 15, 10)
        assert parse_webhook_messages({}) == []

    def test_live_send(self):
        client = LiveWhatsAppClient("tok", "phone-1")
        session = _mock_session(client, _response(200, {"messages": [{"id": "wamid.9"}]}))

        message = client.send_message("+90 555 123 4567", "Hello")

        assert message.id == "wamid.9"
        body = session.request.call_args.kwargs["json"]
        assert body == {
            "messaging_product": "whatsapp",
            "to": "905551234567",
            "type": "text",
            "text": {"body": "Hello"},
        }

    def test_unsupported_media(self):
        with pytest.raises(ValueError):
            LiveWhatsAppClient("tok", "phone-1").send_media("123", "https://x/y.bin", "sticker")
