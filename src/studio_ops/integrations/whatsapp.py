"""
Messaging integration (WhatsApp Cloud API).

Outgoing messages go through the Graph API. Incoming messages arrive on the
HTTP gateway webhook and are turned into WhatsAppMessageEvent records by
`parse_webhook_messages`.
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ..storage.models import utcnow
from .base import LiveHttpClient

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("image", "video", "document", "audio")


class WhatsAppMessage(BaseModel):
    id: str
    to: str
    message: str
    timestamp: datetime


class WhatsAppMediaMessage(BaseModel):
    id: str
    to: str
    media_url: str
    media_type: str
    caption: Optional[str] = None
    timestamp: datetime


class WhatsAppMessageEvent(BaseModel):
    message_id: str
    sender: str
    body: str
    timestamp: datetime


def normalize_number(to: str) -> str:
    """Strip '+', spaces and dashes from a phone number."""
    return "".join(ch for ch in to if ch not in "+ -")


def verify_webhook(mode: Optional[str], token: Optional[str], challenge: Optional[str], verify_token: Optional[str]) -> Optional[str]:
    """Hub subscription handshake: the challenge to echo, or None to reject."""
    if mode == "subscribe" and verify_token and token == verify_token:
        return challenge
    return None


def parse_webhook_messages(payload: Dict[str, Any]) -> List[WhatsAppMessageEvent]:
    """Extract text messages from a Cloud API webhook notification."""
    events = []
    for entry in payload.get("entry") or []:
        for change in entry.get("changes") or []:
            for message in (change.get("value") or {}).get("messages") or []:
                if message.get("type") != "text":
                    continue
                ts = message.get("timestamp")
                events.append(
                    WhatsAppMessageEvent(
                        message_id=message.get("id", ""),
                        sender=message.get("from", ""),
                        body=(message.get("text") or {}).get("body", ""),
                        timestamp=(
                            datetime.fromtimestamp(int(ts), tz=timezone.utc).replace(tzinfo=None)
                            if ts else utcnow()
                        ),
                    )
                )
    return events


class WhatsAppClient(ABC):
    """Capability interface for the WhatsApp messaging service."""

    @abstractmethod
    def send_message(self, to: str, message: str) -> WhatsAppMessage:
        ...

    @abstractmethod
    def send_media(self, to: str, media_url: str, media_type: str, caption: Optional[str] = None) -> WhatsAppMediaMessage:
        ...


class SimulatedWhatsAppClient(WhatsAppClient):
    def send_message(self, to: str, message: str) -> WhatsAppMessage:
        logger.info(f"[Simulated WhatsApp] Sending message to {to}:\n{message}")
        return WhatsAppMessage(id=f"wa-{int(time.time() * 1000)}", to=to, message=message, timestamp=utcnow())

    def send_media(self, to: str, media_url: str, media_type: str, caption: Optional[str] = None) -> WhatsAppMediaMessage:
        logger.info(f"[Simulated WhatsApp] Sending {media_type} to {to}: {media_url}")
        return WhatsAppMediaMessage(
            id=f"wa-media-{int(time.time() * 1000)}",
            to=to,
            media_url=media_url,
            media_type=media_type,
            caption=caption,
            timestamp=utcnow(),
        )


class LiveWhatsAppClient(LiveHttpClient, WhatsAppClient):
    """WhatsApp Cloud API client for one business phone number."""

    service = "WhatsApp"

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        base_url: str = "https://graph.facebook.com/v19.0",
        **kwargs,
    ):
        super().__init__(base_url, **kwargs)
        self.phone_number_id = phone_number_id
        self.session.headers["Authorization"] = f"Bearer {access_token}"

    def _send(self, body: Dict[str, Any]) -> str:
        data = self._request(
            "POST",
            f"/{self.phone_number_id}/messages",
            json={"messaging_product": "whatsapp", **body},
        )
        messages = data.get("messages") or [{}]
        return messages[0].get("id", "")

    def send_message(self, to: str, message: str) -> WhatsAppMessage:
        def call() -> WhatsAppMessage:
            number = normalize_number(to)
            message_id = self._send({"to": number, "type": "text", "text": {"body": message}})
            return WhatsAppMessage(id=message_id, to=number, message=message, timestamp=utcnow())

        return self._with_fallback("send_message", call, to, message)

    def send_media(self, to: str, media_url: str, media_type: str, caption: Optional[str] = None) -> WhatsAppMediaMessage:
        if media_type not in MEDIA_TYPES:
            raise ValueError(f"Unsupported media type: {media_type}")

        def call() -> WhatsAppMediaMessage:
            number = normalize_number(to)
            media: Dict[str, Any] = {"link": media_url}
            if caption and media_type != "audio":
                media["caption"] = caption
            message_id = self._send({"to": number, "type": media_type, media_type: media})
            return WhatsAppMediaMessage(
                id=message_id,
                to=number,
                media_url=media_url,
                media_type=media_type,
                caption=caption,
                timestamp=utcnow(),
            )

        return self._with_fallback("send_media", call, to, media_url, media_type, caption)
