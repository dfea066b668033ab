"""
Chat integration (Telegram Bot API).

Incoming messages are dispatched through a CommandRouter: a plain mapping
from command name to handler, called synchronously for each received
message. The live client feeds it from a long-polling background thread.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel

from ..config import ChatId
from ..storage.models import utcnow
from .base import IntegrationError, LiveHttpClient

logger = logging.getLogger(__name__)

CommandHandler = Callable[[ChatId, List[str]], None]

COMMAND_ERROR_REPLY = "An error occurred while processing the command."


def _from_unix(value: Optional[int]) -> datetime:
    if not value:
        return utcnow()
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


class ChatMessage(BaseModel):
    chat_id: ChatId
    text: str
    message_id: Optional[int] = None
    timestamp: datetime


def parse_command(text: Optional[str]) -> Optional[Tuple[str, List[str]]]:
    """
    Split "/summary@studio_bot 2024-01-15" into ("summary", ["2024-01-15"]).

    Returns None for anything that is not a command.
    """
    if not text or not text.startswith("/"):
        return None
    parts = text.split()
    command = parts[0][1:].split("@", 1)[0].lower()
    if not command:
        return None
    return command, parts[1:]


class CommandRouter:
    """Command name -> handler mapping."""

    def __init__(self):
        self._handlers: Dict[str, CommandHandler] = {}

    def register(self, command: str, handler: CommandHandler) -> None:
        self._handlers[command.lstrip("/").lower()] = handler

    def commands(self) -> List[str]:
        return sorted(self._handlers)

    def dispatch(self, chat_id: ChatId, text: Optional[str], reply: Callable[[ChatId, str], Any]) -> bool:
        """
        Run the handler for `text` if it is a known command.

        A failing handler is logged and answered with a generic error reply.
        Returns True if a handler was found.
        """
        parsed = parse_command(text)
        if parsed is None:
            return False
        command, args = parsed
        handler = self._handlers.get(command)
        if handler is None:
            logger.debug(f"[Telegram] Ignoring unknown command /{command}")
            return False

        try:
            handler(chat_id, args)
        except Exception as e:
            logger.error(f"[Telegram] Error handling command /{command}: {e}")
            reply(chat_id, COMMAND_ERROR_REPLY)
        return True


class MessagingClient(ABC):
    """Capability interface for the chat service."""

    def __init__(self):
        self.router = CommandRouter()

    @abstractmethod
    def send_message(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = None) -> ChatMessage:
        ...

    def send_message_with_markdown(self, chat_id: ChatId, text: str) -> ChatMessage:
        return self.send_message(chat_id, text, parse_mode="Markdown")

    def on_command(self, command: str, handler: CommandHandler) -> None:
        self.router.register(command, handler)

    def handle_update(self, update: Dict[str, Any]) -> bool:
        """Dispatch one Bot API update; returns True if a command ran."""
        message = update.get("message") or {}
        chat = message.get("chat") or {}
        if "id" not in chat:
            return False
        return self.router.dispatch(chat["id"], message.get("text"), self.send_message)

    @abstractmethod
    def start_polling(self) -> None:
        ...

    @abstractmethod
    def stop_polling(self) -> None:
        ...


class SimulatedTelegramClient(MessagingClient):
    """Logs outgoing messages; never polls."""

    def send_message(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = None) -> ChatMessage:
        logger.info(f"[Simulated Telegram] Sending message to {chat_id}:\n{text}")
        return ChatMessage(chat_id=chat_id, text=text, timestamp=utcnow())

    def start_polling(self) -> None:
        logger.warning("[Telegram] No bot token, cannot start polling")

    def stop_polling(self) -> None:
        pass


class LiveTelegramClient(LiveHttpClient, MessagingClient):
    """Telegram Bot API client with getUpdates long polling."""

    service = "Telegram"

    def __init__(
        self,
        bot_token: str,
        base_url: str = "https://api.telegram.org",
        poll_timeout: int = 30,
        **kwargs,
    ):
        LiveHttpClient.__init__(self, f"{base_url.rstrip('/')}/bot{bot_token}", **kwargs)
        MessagingClient.__init__(self)
        self.poll_timeout = poll_timeout
        self._offset: Optional[int] = None
        self._polling_thread: Optional[threading.Thread] = None
        self._stop_polling = threading.Event()

    @property
    def is_polling(self) -> bool:
        return self._polling_thread is not None and self._polling_thread.is_alive()

    def send_message(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = None) -> ChatMessage:
        def call() -> ChatMessage:
            body: Dict[str, Any] = {"chat_id": chat_id, "text": text}
            if parse_mode:
                body["parse_mode"] = parse_mode
            data = self._request("POST", "/sendMessage", json=body)
            result = data.get("result") or {}
            return ChatMessage(
                chat_id=chat_id,
                text=text,
                message_id=result.get("message_id"),
                timestamp=_from_unix(result.get("date")),
            )

        return self._with_fallback("send_message", call, chat_id, text, parse_mode)

    def poll_once(self) -> int:
        """Fetch and dispatch one batch of updates; returns the batch size."""
        params: Dict[str, Any] = {"timeout": self.poll_timeout, "allowed_updates": '["message"]'}
        if self._offset is not None:
            params["offset"] = self._offset
        data = self._request_once("GET", "/getUpdates", params=params, timeout=self.poll_timeout + 10)
        updates = data.get("result") or []
        for update in updates:
            self._offset = update["update_id"] + 1
            self.handle_update(update)
        return len(updates)

    def start_polling(self) -> None:
        if self.is_polling:
            return

        self._stop_polling.clear()

        def polling_loop():
            while not self._stop_polling.is_set():
                try:
                    self.poll_once()
                except IntegrationError as e:
                    logger.error(f"[Telegram] Polling error: {e}")
                    self._stop_polling.wait(timeout=5.0)

        self._polling_thread = threading.Thread(target=polling_loop, name="telegram-polling", daemon=True)
        self._polling_thread.start()
        logger.info("[Telegram] Bot polling started")

    def stop_polling(self) -> None:
        if not self._polling_thread:
            return
        self._stop_polling.set()
        self._polling_thread.join(timeout=2.0)
        self._polling_thread = None
        logger.info("[Telegram] Bot polling stopped")
