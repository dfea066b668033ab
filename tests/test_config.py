"""
Tests for configuration loading.
"""

import pytest

from studio_ops.config import StudioConfig, load_config

ENV_VARS = [
    "DATABASE_URL", "APP_ENV", "API_HOST", "PORT",
    "OPENAI_API_KEY", "OPENAI_MODEL", "GEMINI_API_KEY", "GEMINI_MODEL",
    "GITHUB_TOKEN", "GITHUB_WEBHOOK_SECRET",
    "GOOGLE_CALENDAR_CLIENT_ID", "GOOGLE_CALENDAR_CLIENT_SECRET", "GOOGLE_CALENDAR_REFRESH_TOKEN",
    "CLICKUP_API_KEY", "CLICKUP_TEAM_ID",
    "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_IDS",
    "WHATSAPP_ACCESS_TOKEN", "WHATSAPP_PHONE_NUMBER_ID", "WHATSAPP_VERIFY_TOKEN", "WHATSAPP_ENABLED",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestFromEnv:
    """Environment variable loading."""

    def test_defaults(self, clean_env):
        """Without env vars everything is simulated and local."""
        config = StudioConfig.from_env()

        assert config.database_url == "sqlite:///.data/studio.db"
        assert config.environment == "development"
        assert config.api_port == 3000
        assert config.llm_provider is None
        assert config.telegram.chat_ids == ()
        assert config.whatsapp.enabled is True
        assert not config.calendar.configured

    def test_values_from_env(self, clean_env):
        clean_env.setenv("APP_ENV", "production")
        clean_env.setenv("PORT", "8080")
        clean_env.setenv("TELEGRAM_CHAT_IDS", "12345, -100987, ops-room,")
        clean_env.setenv("WHATSAPP_ENABLED", "false")

        config = StudioConfig.from_env()

        assert config.is_production
        assert config.api_port == 8080
        assert config.telegram.chat_ids == (12345, -100987, "ops-room")
        assert config.whatsapp.enabled is False

    def test_gemini_preferred_over_openai(self, clean_env):
        """Gemini wins when both keys are set."""
        clean_env.setenv("OPENAI_API_KEY", "sk-test")
        assert StudioConfig.from_env().llm_provider == "openai"

        clean_env.setenv("GEMINI_API_KEY", "gm-test")
        assert StudioConfig.from_env().llm_provider == "gemini"

    def test_unknown_environment_rejected(self, clean_env):
        clean_env.setenv("APP_ENV", "staging")

        with pytest.raises(ValueError, match="staging"):
            StudioConfig.from_env()


class TestYamlOverrides:
    """Non-secret overrides from config/studio.yaml."""

    def test_nested_studio_section(self, clean_env, tmp_path):
        path = tmp_path / "studio.yaml"
        path.write_text(
            "studio:\n"
            "  database:\n"
            "    url: sqlite:///tmp/override.db\n"
            "  api:\n"
            "    port: 9000\n"
            "  llm:\n"
            "    openai_model: gpt-4o\n"
            "  telegram:\n"
            "    chat_ids: [111, 222]\n"
        )

        config = load_config(str(path))

        assert config.database_url == "sqlite:///tmp/override.db"
        assert config.api_port == 9000
        assert config.llm.openai_model == "gpt-4o"
        assert config.telegram.chat_ids == (111, 222)

    def test_env_chat_ids_win(self, clean_env, tmp_path):
        """Chat ids from the environment are not replaced by YAML."""
        clean_env.setenv("TELEGRAM_CHAT_IDS", "42")
        path = tmp_path / "studio.yaml"
        path.write_text("telegram:\n  chat_ids: [111]\n")

        assert load_config(str(path)).telegram.chat_ids == (42,)

    def test_missing_file_uses_env(self, clean_env, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"))

        assert config.api_port == 3000

    def test_broken_yaml_falls_back(self, clean_env, tmp_path):
        """A malformed file is logged and ignored."""
        path = tmp_path / "studio.yaml"
        path.write_text("studio: [unclosed\n")

        config = load_config(str(path))

        assert config.database_url == "sqlite:///.data/studio.db"
