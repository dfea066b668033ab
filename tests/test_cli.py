"""
Tests for the studio-ops command line.

Each test runs against its own SQLite file in a temporary directory.
"""

import pytest

from studio_ops.cli import build_parser, main
from studio_ops.storage import RunLedger, WorkflowStatus, WorkflowType


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'studio.db'}"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("APP_ENV", "test")
    for name in ("OPENAI_API_KEY", "GEMINI_API_KEY", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_IDS",
                 "GITHUB_TOKEN", "CLICKUP_API_KEY", "WHATSAPP_ACCESS_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return url


def _runs(url):
    with RunLedger(url) as ledger:
        return ledger.get_recent_runs()


class TestParser:
    def test_commands(self):
        parser = build_parser()

        args = parser.parse_args(["run:release-prep", "prj_1", "2.0.0"])
        assert (args.project_id, args.version) == ("prj_1", "2.0.0")

        args = parser.parse_args(["run:daily-standup", "--date", "2024-01-15"])
        assert args.date.isoformat() == "2024-01-15"

    def test_bad_date_exits(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run:daily-standup", "--date", "15.01.2024"])


class TestMain:
    """End-to-end command runs."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "studio-ops" in capsys.readouterr().out

    def test_seed(self, db_url, capsys):
        assert main(["seed"]) == 0

        out = capsys.readouterr().out
        assert "🌱 Demo data created" in out
        assert "Employees: 7" in out

    def test_simulate_new_project(self, db_url, capsys):
        assert main(["seed"]) == 0

        assert main(["simulate:new-project"]) == 0

        out = capsys.readouterr().out
        assert "✅ Project created!" in out
        assert "Tasks Created: 16" in out
        runs = _runs(db_url)
        assert runs[0].type == WorkflowType.PROJECT_BOOTSTRAP
        assert runs[0].status == WorkflowStatus.COMPLETED

    def test_daily_standup(self, db_url, capsys):
        assert main(["run:daily-standup", "--date", "2024-01-15"]) == 0

        assert "Daily standup completed" in capsys.readouterr().out

    def test_weekly_report(self, db_url, capsys):
        assert main(["seed"]) == 0

        assert main(["run:weekly-report"]) == 0

        assert "Completed Tasks: 1" in capsys.readouterr().out

    def test_release_prep_unknown_project(self, db_url, capsys):
        assert main(["run:release-prep", "prj_missing", "1.0.0"]) == 1

        assert "❌ Error: Project not found: prj_missing" in capsys.readouterr().out
        assert _runs(db_url)[0].status == WorkflowStatus.FAILED
