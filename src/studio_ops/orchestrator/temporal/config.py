"""
Temporal configuration for Studio Ops.

All configuration loaded from environment variables.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class TemporalConfig:
    """Temporal connection, timeouts and schedules."""

    # Connection
    host: str = "localhost"
    port: int = 7233
    namespace: str = "default"

    task_queue: str = "studio-ops"

    # Timeouts (seconds)
    workflow_execution_timeout: int = 3600
    activity_start_to_close_timeout: int = 600
    activity_heartbeat_timeout: int = 60

    # Cron schedules (UTC)
    daily_standup_cron: str = "0 9 * * 1-5"
    weekly_report_cron: str = "0 17 * * 5"

    @property
    def target(self) -> str:
        """Temporal server address."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_env(cls) -> "TemporalConfig":
        """Load configuration from environment variables."""
        return cls(
            host=os.getenv("TEMPORAL_HOST", "localhost"),
            port=int(os.getenv("TEMPORAL_PORT", "7233")),
            namespace=os.getenv("TEMPORAL_NAMESPACE", "default"),
            task_queue=os.getenv("TEMPORAL_TASK_QUEUE", "studio-ops"),
            workflow_execution_timeout=int(os.getenv("TEMPORAL_WORKFLOW_TIMEOUT", "3600")),
            activity_start_to_close_timeout=int(os.getenv("TEMPORAL_ACTIVITY_TIMEOUT", "600")),
            activity_heartbeat_timeout=int(os.getenv("TEMPORAL_HEARTBEAT_TIMEOUT", "60")),
            daily_standup_cron=os.getenv("DAILY_STANDUP_CRON", "0 9 * * 1-5"),
            weekly_report_cron=os.getenv("WEEKLY_REPORT_CRON", "0 17 * * 5"),
        )


DEFAULT_CONFIG = TemporalConfig.from_env()
