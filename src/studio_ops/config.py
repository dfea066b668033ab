"""
Configuration for Studio Ops.

All configuration loaded from environment, `.env` and an optional YAML file.
Secrets come only from the environment; YAML may override non-secret values.

Usage:
    config = load_config()               # env + config/studio.yaml
    config = StudioConfig.from_env()     # env only
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("development", "production", "test")

ChatId = Union[str, int]


def _parse_chat_ids(raw: Optional[str]) -> Tuple[ChatId, ...]:
    """Split a comma separated list of chat ids; numeric ids become ints."""
    if not raw:
        return ()
    chat_ids: List[ChatId] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            chat_ids.append(int(part))
        except ValueError:
            chat_ids.append(part)
    return tuple(chat_ids)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in ("false", "0", "no", "off")


@dataclass(frozen=True)
class GithubSettings:
    token: Optional[str] = None
    webhook_secret: Optional[str] = None


@dataclass(frozen=True)
class CalendarSettings:
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.refresh_token)


@dataclass(frozen=True)
class ClickUpSettings:
    api_key: Optional[str] = None
    team_id: Optional[str] = None


@dataclass(frozen=True)
class TelegramSettings:
    bot_token: Optional[str] = None
    chat_ids: Tuple[ChatId, ...] = ()


@dataclass(frozen=True)
class WhatsAppSettings:
    access_token: Optional[str] = None
    phone_number_id: Optional[str] = None
    verify_token: Optional[str] = None
    enabled: bool = True


@dataclass(frozen=True)
class LLMSettings:
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-pro"


@dataclass(frozen=True)
class StudioConfig:
    """Studio Ops process configuration."""

    database_url: str = "sqlite:///.data/studio.db"
    environment: str = "development"

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = 3000

    llm: LLMSettings = field(default_factory=LLMSettings)
    github: GithubSettings = field(default_factory=GithubSettings)
    calendar: CalendarSettings = field(default_factory=CalendarSettings)
    clickup: ClickUpSettings = field(default_factory=ClickUpSettings)
    telegram: TelegramSettings = field(default_factory=TelegramSettings)
    whatsapp: WhatsAppSettings = field(default_factory=WhatsAppSettings)

    def __post_init__(self) -> None:
        if self.environment not in ENVIRONMENTS:
            raise ValueError(
                f"Unknown environment '{self.environment}', expected one of {ENVIRONMENTS}"
            )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def llm_provider(self) -> Optional[str]:
        """Generation provider to use: Gemini preferred, then OpenAI."""
        if self.llm.gemini_api_key:
            return "gemini"
        if self.llm.openai_api_key:
            return "openai"
        return None

    @classmethod
    def from_env(cls) -> "StudioConfig":
        """Load configuration from environment variables (and `.env`)."""
        load_dotenv()

        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///.data/studio.db"),
            environment=os.getenv("APP_ENV", "development"),
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=int(os.getenv("PORT", "3000")),
            llm=LLMSettings(
                openai_api_key=os.getenv("OPENAI_API_KEY") or None,
                openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
                gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
                gemini_model=os.getenv("GEMINI_MODEL", "gemini-pro"),
            ),
            github=GithubSettings(
                token=os.getenv("GITHUB_TOKEN") or None,
                webhook_secret=os.getenv("GITHUB_WEBHOOK_SECRET") or None,
            ),
            calendar=CalendarSettings(
                client_id=os.getenv("GOOGLE_CALENDAR_CLIENT_ID") or None,
                client_secret=os.getenv("GOOGLE_CALENDAR_CLIENT_SECRET") or None,
                refresh_token=os.getenv("GOOGLE_CALENDAR_REFRESH_TOKEN") or None,
            ),
            clickup=ClickUpSettings(
                api_key=os.getenv("CLICKUP_API_KEY") or None,
                team_id=os.getenv("CLICKUP_TEAM_ID") or None,
            ),
            telegram=TelegramSettings(
                bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
                chat_ids=_parse_chat_ids(os.getenv("TELEGRAM_CHAT_IDS")),
            ),
            whatsapp=WhatsAppSettings(
                access_token=os.getenv("WHATSAPP_ACCESS_TOKEN") or None,
                phone_number_id=os.getenv("WHATSAPP_PHONE_NUMBER_ID") or None,
                verify_token=os.getenv("WHATSAPP_VERIFY_TOKEN") or None,
                enabled=_env_flag("WHATSAPP_ENABLED", True),
            ),
        )

    def with_overrides(self, overrides: Dict[str, Any]) -> "StudioConfig":
        """
        Apply non-secret overrides from a YAML mapping.

        Supported keys:
            database.url, api.host, api.port,
            llm.openai_model, llm.gemini_model, telegram.chat_ids
        """
        config = self

        database = overrides.get("database") or {}
        if database.get("url"):
            config = replace(config, database_url=str(database["url"]))

        api = overrides.get("api") or {}
        if api.get("host"):
            config = replace(config, api_host=str(api["host"]))
        if api.get("port"):
            config = replace(config, api_port=int(api["port"]))

        llm = overrides.get("llm") or {}
        if llm.get("openai_model"):
            config = replace(config, llm=replace(config.llm, openai_model=llm["openai_model"]))
        if llm.get("gemini_model"):
            config = replace(config, llm=replace(config.llm, gemini_model=llm["gemini_model"]))

        telegram = overrides.get("telegram") or {}
        if telegram.get("chat_ids") and not config.telegram.chat_ids:
            raw = ",".join(str(c) for c in telegram["chat_ids"])
            config = replace(
                config,
                telegram=replace(config.telegram, chat_ids=_parse_chat_ids(raw)),
            )

        return config


def load_config(config_path: str = "config/studio.yaml") -> StudioConfig:
    """Load configuration from environment, then apply YAML overrides if present."""
    config = StudioConfig.from_env()

    if Path(config_path).exists():
        try:
            with open(config_path) as f:
                file_config = yaml.safe_load(f)
            if file_config:
                # Handle nested config (studio: {...})
                if len(file_config) == 1 and "studio" in file_config:
                    file_config = file_config["studio"]
                config = config.with_overrides(file_config)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config {config_path}: {e}, using defaults")

    return config
