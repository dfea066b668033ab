"""
Temporal-based triggering for Studio Ops.

StudioWorkflow runs one saga per execution as a single activity; the saga
keeps its own run records in the Run Ledger. Cron executions drive the
daily standup and weekly report.
"""

from .activities import bootstrap_project, daily_standup, release_prep, weekly_report
from .client import TemporalClient
from .config import TemporalConfig
from .worker import create_worker, run_worker
from .workflows import StudioWorkflow

__all__ = [
    # Workflows
    "StudioWorkflow",
    # Activities
    "bootstrap_project",
    "daily_standup",
    "weekly_report",
    "release_prep",
    # Infrastructure
    "TemporalConfig",
    "TemporalClient",
    "create_worker",
    "run_worker",
]
