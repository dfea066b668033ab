"""
Integration Clients for Studio Ops.

Each external system has one capability interface with a live and a
simulated implementation. The `create_*_client` factories below are the
only place where that choice is made:

- no credentials       -> simulated client
- credentials, non-prod -> live client with a simulated fallback
- credentials, prod    -> live client, typed errors propagate
"""

import logging
from dataclasses import dataclass

from ..config import StudioConfig
from .base import (
    CredentialsMissingError,
    IntegrationAuthError,
    IntegrationError,
    IntegrationNotFoundError,
    RateLimitError,
    retry_with_backoff,
)
from .calendar import CalendarClient, LiveCalendarClient, SimulatedCalendarClient
from .clickup import LiveClickUpClient, SimulatedClickUpClient, TaskUpdate, TicketingClient
from .github import CodeHostingClient, LiveGithubClient, SimulatedGithubClient
from .telegram import CommandRouter, LiveTelegramClient, MessagingClient, SimulatedTelegramClient
from .whatsapp import LiveWhatsAppClient, SimulatedWhatsAppClient, WhatsAppClient

logger = logging.getLogger(__name__)


def _simulated(name: str, config: StudioConfig):
    if config.is_production:
        logger.warning(f"[{name}] No credentials configured in production, using simulated client")
    else:
        logger.info(f"[{name}] No credentials configured, using simulated client")


def create_github_client(config: StudioConfig) -> CodeHostingClient:
    if not config.github.token:
        _simulated("GitHub", config)
        return SimulatedGithubClient()
    fallback = None if config.is_production else SimulatedGithubClient()
    return LiveGithubClient(config.github.token, fallback=fallback)


def create_calendar_client(config: StudioConfig) -> CalendarClient:
    settings = config.calendar
    if not settings.configured:
        _simulated("Calendar", config)
        return SimulatedCalendarClient()
    fallback = None if config.is_production else SimulatedCalendarClient()
    return LiveCalendarClient(
        settings.client_id, settings.client_secret, settings.refresh_token, fallback=fallback
    )


def create_clickup_client(config: StudioConfig) -> TicketingClient:
    if not config.clickup.api_key:
        _simulated("ClickUp", config)
        return SimulatedClickUpClient()
    fallback = None if config.is_production else SimulatedClickUpClient()
    return LiveClickUpClient(config.clickup.api_key, team_id=config.clickup.team_id, fallback=fallback)


def create_telegram_client(config: StudioConfig) -> MessagingClient:
    if not config.telegram.bot_token:
        _simulated("Telegram", config)
        return SimulatedTelegramClient()
    fallback = None if config.is_production else SimulatedTelegramClient()
    return LiveTelegramClient(config.telegram.bot_token, fallback=fallback)


def create_whatsapp_client(config: StudioConfig) -> WhatsAppClient:
    settings = config.whatsapp
    if not (settings.enabled and settings.access_token and settings.phone_number_id):
        _simulated("WhatsApp", config)
        return SimulatedWhatsAppClient()
    fallback = None if config.is_production else SimulatedWhatsAppClient()
    return LiveWhatsAppClient(settings.access_token, settings.phone_number_id, fallback=fallback)


@dataclass
class IntegrationClients:
    """The integration clients shared by one process."""

    github: CodeHostingClient
    calendar: CalendarClient
    clickup: TicketingClient
    telegram: MessagingClient
    whatsapp: WhatsAppClient

    @classmethod
    def simulated(cls) -> "IntegrationClients":
        return cls(
            github=SimulatedGithubClient(),
            calendar=SimulatedCalendarClient(),
            clickup=SimulatedClickUpClient(),
            telegram=SimulatedTelegramClient(),
            whatsapp=SimulatedWhatsAppClient(),
        )


def create_integrations(config: StudioConfig) -> IntegrationClients:
    return IntegrationClients(
        github=create_github_client(config),
        calendar=create_calendar_client(config),
        clickup=create_clickup_client(config),
        telegram=create_telegram_client(config),
        whatsapp=create_whatsapp_client(config),
    )


__all__ = [
    "IntegrationClients",
    "create_integrations",
    "create_github_client",
    "create_calendar_client",
    "create_clickup_client",
    "create_telegram_client",
    "create_whatsapp_client",
    # Interfaces
    "CodeHostingClient",
    "CalendarClient",
    "TicketingClient",
    "MessagingClient",
    "WhatsAppClient",
    "CommandRouter",
    "TaskUpdate",
    # Errors
    "IntegrationError",
    "RateLimitError",
    "IntegrationAuthError",
    "IntegrationNotFoundError",
    "CredentialsMissingError",
    "retry_with_backoff",
]
