#!/usr/bin/env python3
"""
Studio Ops CLI — run workflows from the command line.

Usage:
    studio-ops simulate:new-project [--name NAME] [--description TEXT]
    studio-ops run:daily-standup [--date YYYY-MM-DD]
    studio-ops run:weekly-report [--week-start ISO] [--week-end ISO]
    studio-ops run:release-prep PROJECT_ID VERSION
    studio-ops seed
    studio-ops serve

Examples:
    # Bootstrap the sample project
    studio-ops simulate:new-project

    # Standup for a given day
    studio-ops run:daily-standup --date 2024-01-15
"""

import argparse
import logging
import sys
from datetime import date, datetime
from typing import List, Optional

from .agents import ClientInfo
from .context import StudioContext, open_context
from .orchestrator import (
    BootstrapWorkflow,
    DailyStandupRequest,
    DailyStandupWorkflow,
    NewProjectRequest,
    ReleasePrepRequest,
    ReleasePrepWorkflow,
    WeeklyReportRequest,
    WeeklyReportWorkflow,
)
from .storage import seed_demo_data

SAMPLE_PROJECT_NAME = "New Mobile App"
SAMPLE_PROJECT_DESCRIPTION = (
    "A mobile app where users can share their social media content. "
    "The MVP should include basic sharing and profile features."
)
SAMPLE_CLIENT = ClientInfo(
    name="Test Client",
    email="test@example.com",
    requirements="React Native, backend API, user authentication",
)


def setup_logging(verbose: bool = False, timestamps: bool = False):
    """Configure logging. Long-running processes pass timestamps=True."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s' if verbose or timestamps else '%(message)s'
    )
    # Quiet down noisy loggers
    if not verbose:
        logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)


# =============================================================================
# Commands
# =============================================================================

def simulate_new_project(ctx: StudioContext, args) -> int:
    request = NewProjectRequest(
        name=args.name,
        description=args.description,
        client_info=SAMPLE_CLIENT,
    )
    result = BootstrapWorkflow.from_context(ctx).run(request)

    print("\n✅ Project created!")
    print(f"   Project ID: {result.project_id}")
    print(f"   Tasks Created: {result.tasks_created}")
    print(f"   Summary: {result.summary}\n")
    return 0


def run_daily_standup(ctx: StudioContext, args) -> int:
    result = DailyStandupWorkflow.from_context(ctx).run(DailyStandupRequest(day=args.date))

    print("\n✅ Daily standup completed!")
    print(f"   Standups Collected: {result.standups_collected}")
    print(f"   Summary:\n{result.summary}\n")
    if result.formatted_summary:
        print(result.formatted_summary)
    return 0


def run_weekly_report(ctx: StudioContext, args) -> int:
    request = WeeklyReportRequest(week_start=args.week_start, week_end=args.week_end)
    result = WeeklyReportWorkflow.from_context(ctx).run(request)

    print("\n✅ Weekly report generated!")
    print(f"   Completed Tasks: {result.completed_tasks}")
    print(f"   Ongoing Projects: {result.ongoing_projects}")
    print(f"   Blocked Items: {result.blocked_items}")
    print(f"   Summary:\n{result.summary}\n")
    return 0


def run_release_prep(ctx: StudioContext, args) -> int:
    request = ReleasePrepRequest(project_id=args.project_id, version=args.version)
    result = ReleasePrepWorkflow.from_context(ctx).run(request)

    icon = "✅" if result.ready_for_release else "⚠️"
    print(f"\n{icon} Release preparation completed: v{result.version}")
    print(f"   Quality: {result.quality_assessment}")
    print(f"   Score: {result.quality_score}/100, ready: {'yes' if result.ready_for_release else 'no'}")
    print(f"\n{result.release_notes}")
    return 0


def seed(ctx: StudioContext, args) -> int:
    data = seed_demo_data(ctx.ledger)

    print("\n🌱 Demo data created")
    print(f"   Employees: {len(data['employees'])}")
    print(f"   Project: {data['project'].name} ({data['project'].id})")
    print(f"   Tasks: {len(data['tasks'])}\n")
    return 0


def serve(ctx: StudioContext, args) -> int:
    from .api_gateway import serve as serve_api

    serve_api(ctx)
    return 0


COMMANDS = {
    "simulate:new-project": simulate_new_project,
    "run:daily-standup": run_daily_standup,
    "run:weekly-report": run_weekly_report,
    "run:release-prep": run_release_prep,
    "seed": seed,
    "serve": serve,
}


# =============================================================================
# Argument Parsing
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="studio-ops",
        description="Studio Ops CLI - run studio workflows",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s simulate:new-project
  %(prog)s run:daily-standup --date 2024-01-15
  %(prog)s run:weekly-report
  %(prog)s run:release-prep prj_123 1.0.0
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    new_project = subparsers.add_parser("simulate:new-project", help="Run the project bootstrap workflow")
    new_project.add_argument("--name", default=SAMPLE_PROJECT_NAME, help="Project name")
    new_project.add_argument("--description", default=SAMPLE_PROJECT_DESCRIPTION, help="Project brief")

    standup = subparsers.add_parser("run:daily-standup", help="Run the daily standup workflow")
    standup.add_argument("--date", type=date.fromisoformat, help="Day (YYYY-MM-DD), defaults to today")

    weekly = subparsers.add_parser("run:weekly-report", help="Run the weekly report workflow")
    weekly.add_argument("--week-start", type=datetime.fromisoformat, help="Window start (ISO)")
    weekly.add_argument("--week-end", type=datetime.fromisoformat, help="Window end (ISO)")

    release = subparsers.add_parser("run:release-prep", help="Run the release preparation workflow")
    release.add_argument("project_id", help="Project id")
    release.add_argument("version", help="Release version")

    subparsers.add_parser("seed", help="Create the demo team and sample project")
    subparsers.add_parser("serve", help="Start the HTTP API and chat polling")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        with open_context() as ctx:
            return handler(ctx, args)
    except Exception as e:
        print(f"\n❌ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
