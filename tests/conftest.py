"""
Shared fixtures for the Studio Ops test suite.

Everything runs against an in-memory SQLite ledger and simulated
integrations; no test touches the network.
"""

from typing import List, Optional, Tuple

import pytest

from studio_ops.config import StudioConfig
from studio_ops.context import StudioContext
from studio_ops.integrations import IntegrationClients, IntegrationError
from studio_ops.integrations.telegram import ChatId, ChatMessage, MessagingClient
from studio_ops.llm import GenerationClient
from studio_ops.storage import RunLedger, seed_demo_data, utcnow


class ScriptedLLM(GenerationClient):
    """Generation client that replays canned responses and records prompts."""

    def __init__(self, responses: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.responses = list(responses or [])
        self.error = error
        self.prompts: List[str] = []

    def generate(self, prompt: str, temperature: float = 0.7) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if not self.responses:
            return ""
        return self.responses.pop(0)


class RecordingMessenger(MessagingClient):
    """Messaging client that keeps every sent message in memory."""

    def __init__(self, fail_for=()):
        super().__init__()
        self.sent: List[Tuple[ChatId, str, Optional[str]]] = []
        self.fail_for = set(fail_for)
        self.polling = False

    def send_message(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = None) -> ChatMessage:
        if chat_id in self.fail_for:
            raise IntegrationError("Telegram", "chat not found", status_code=400)
        self.sent.append((chat_id, text, parse_mode))
        return ChatMessage(chat_id=chat_id, text=text, timestamp=utcnow())

    def start_polling(self) -> None:
        self.polling = True

    def stop_polling(self) -> None:
        self.polling = False


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def ledger():
    """Fresh in-memory Run Ledger."""
    ledger = RunLedger("sqlite://")
    yield ledger
    ledger.close()


@pytest.fixture
def seeded(ledger):
    """Ledger with the demo team, sample project and tasks."""
    return seed_demo_data(ledger)


@pytest.fixture
def config():
    return StudioConfig(database_url="sqlite://", environment="test")


@pytest.fixture
def ctx(ledger, config):
    """StudioContext with simulated integrations and no generation client."""
    return StudioContext(
        ledger=ledger,
        integrations=IntegrationClients.simulated(),
        config=config,
        llm=None,
    )


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture
def scripted_llm():
    """Factory for ScriptedLLM instances."""
    return ScriptedLLM
