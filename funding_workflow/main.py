"""Command-line entry point for the funding workflow core.

- ``--once``: fetch projects and log one monitoring snapshot
- ``--bulk-evaluate PROGRAM_ID``: AI-score every pending project of a program
- no argument: run the monitoring poller until interrupted
"""

import asyncio
import logging
import sys

from .ai_scoring import AIScoringAdapter, BulkEvaluator, build_provider
from .config import load_config
from .database import SupabaseClient
from .models.project import ProjectStatus
from .models.user import Role, User
from .monitoring import MonitoringPoller, compute_snapshot
from .services import ProgramService, ProjectService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

# Statuses picked up by a bulk evaluation run
BULK_STATUSES = (ProjectStatus.SUBMITTED, ProjectStatus.ELIGIBLE, ProjectStatus.UNDER_REVIEW)

# Actor recorded as evaluated_by for command-line runs
CLI_USER = User(id="cli", email="cli@localhost", name="Command line", role=Role.MANAGER)


async def run_once():
    """Fetch all projects and log a single monitoring snapshot."""
    config = load_config()
    logging.getLogger().setLevel(config.log_level)

    projects = ProjectService(SupabaseClient(config.supabase_url, config.supabase_key))
    snapshot = compute_snapshot(
        projects.fetch_projects(force=True),
        high_workload_threshold=config.high_workload_threshold,
        overdue_days=config.overdue_days,
    )
    if projects.last_error:
        logger.error("Snapshot computed without fresh data: %s", projects.last_error)

    logger.info(
        "Projects: %d | active: %d | success rate: %d%% | average score: %s",
        snapshot.total_projects,
        snapshot.active_count,
        snapshot.success_rate,
        snapshot.average_score if snapshot.average_score is not None else "n/a",
    )
    for risk in snapshot.risks:
        logger.info("Risk [%s] %s: %s", risk.level, risk.title, risk.description)
    return snapshot


async def bulk_evaluate(program_id: str):
    """Stage AI evaluations for every pending project of one program."""
    config = load_config()
    logging.getLogger().setLevel(config.log_level)

    store = SupabaseClient(config.supabase_url, config.supabase_key)
    projects = ProjectService(store)
    programs = ProgramService(store, default_currency=config.default_currency)

    pending = [p for p in projects.filter_by_program(program_id) if p.status in BULK_STATUSES]
    logger.info("Program %s: %d projects awaiting evaluation", program_id, len(pending))

    evaluator = BulkEvaluator(
        AIScoringAdapter(build_provider(config)),
        projects,
        programs,
        delay_seconds=config.bulk_evaluation_delay_seconds,
        on_progress=lambda progress: logger.info(
            "Evaluating %d/%d: %s", progress.current, progress.total, progress.current_project
        ),
    )
    report = await evaluator.run(pending, CLI_USER)

    for project_id, error in report.failed.items():
        logger.warning("Not evaluated: %s (%s)", project_id, error)
    return report


def start_monitoring():
    """Run the monitoring poller until interrupted."""
    config = load_config()
    logging.getLogger().setLevel(config.log_level)

    logger.info("Initializing monitoring poller")
    logger.info("Refresh interval: %d seconds", config.monitoring_refresh_seconds)

    projects = ProjectService(SupabaseClient(config.supabase_url, config.supabase_key))
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    poller = MonitoringPoller(
        projects,
        interval_seconds=config.monitoring_refresh_seconds,
        high_workload_threshold=config.high_workload_threshold,
        overdue_days=config.overdue_days,
    )

    async def boot():
        poller.start()
        # Run first refresh immediately
        await poller.refresh()

    loop.run_until_complete(boot())

    # Keep running
    try:
        loop.run_forever()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down poller...")
        poller.shutdown()
        # Let the scheduler's shutdown callback run before the loop closes
        loop.run_until_complete(asyncio.sleep(0))
    finally:
        loop.close()


def cli():
    args = sys.argv[1:]
    if args and args[0] == "--once":
        asyncio.run(run_once())
    elif args and args[0] == "--bulk-evaluate":
        if len(args) < 2:
            sys.exit("usage: funding-workflow --bulk-evaluate PROGRAM_ID")
        asyncio.run(bulk_evaluate(args[1]))
    else:
        start_monitoring()


if __name__ == "__main__":
    cli()
