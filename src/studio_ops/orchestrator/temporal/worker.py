"""
Temporal Worker for Studio Ops.

Polls the studio task queue and executes StudioWorkflow and the four saga
activities. With --schedule it also registers the daily standup and weekly
report cron runs before polling.

Usage:
    studio-ops-worker [--schedule] [--verbose]
"""

import argparse
import asyncio
import logging
from typing import List, Optional

from temporalio.client import Client
from temporalio.worker import UnsandboxedWorkflowRunner, Worker

from .activities import ALL_ACTIVITIES
from .client import TemporalClient
from .config import DEFAULT_CONFIG, TemporalConfig
from .workflows import StudioWorkflow

logger = logging.getLogger(__name__)


async def create_worker(client: Client, config: Optional[TemporalConfig] = None) -> Worker:
    """Worker bound to the studio task queue."""
    config = config or DEFAULT_CONFIG

    # Activities share the ledger and SDK clients, so workflows run unsandboxed
    return Worker(
        client,
        task_queue=config.task_queue,
        workflows=[StudioWorkflow],
        activities=ALL_ACTIVITIES,
        workflow_runner=UnsandboxedWorkflowRunner(),
    )


async def run_worker(config: Optional[TemporalConfig] = None, schedule: bool = False) -> None:
    """Poll until cancelled, optionally registering the recurring runs first."""
    config = config or DEFAULT_CONFIG

    studio = await TemporalClient(config).connect()
    logger.info(f"[Worker] Connected to {config.target} ({config.namespace})")

    if schedule:
        handles = await studio.schedule_recurring()
        for name, handle in handles.items():
            logger.info(f"[Worker] Scheduled {name} as {handle.id}")

    worker = await create_worker(studio.client, config)
    logger.info(f"[Worker] Polling task queue '{config.task_queue}'")
    try:
        await worker.run()
    except asyncio.CancelledError:
        logger.info("[Worker] Cancelled")
    finally:
        logger.info("[Worker] Stopped")


def main(argv: Optional[List[str]] = None) -> int:
    from ...cli import setup_logging

    parser = argparse.ArgumentParser(prog="studio-ops-worker", description="Studio Ops Temporal worker")
    parser.add_argument("--schedule", action="store_true", help="Register the standup and weekly report cron runs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    args = parser.parse_args(argv)

    setup_logging(args.verbose, timestamps=True)

    try:
        asyncio.run(run_worker(schedule=args.schedule))
    except KeyboardInterrupt:
        print("\nWorker interrupted.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
