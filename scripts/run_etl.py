"""
Script to run catalog jobs once, or keep the scheduler running

Usage:
    python scripts/run_etl.py --catalog scripts/sample_catalog.json --job parcel-refresh
    python scripts/run_etl.py --catalog scripts/sample_catalog.json --all
    python scripts/run_etl.py --catalog scripts/sample_catalog.json --schedule
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, etl, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.exceptions import ETLException
from core.logging import setup_logging
from etl.pipeline import build_pipeline
from schemas.catalog import Catalog
from schemas.enums import JobStatus

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run ETL jobs from a catalog file")
    parser.add_argument(
        "--catalog",
        default=settings.CATALOG_PATH,
        help="Catalog JSON with data_sources, transformation_rules and jobs (default: CATALOG_PATH)"
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--job", action="append", dest="job_ids", help="Job id to run (repeatable)")
    mode.add_argument("--all", action="store_true", help="Run every active job once")
    mode.add_argument("--schedule", action="store_true", help="Run the scheduler until interrupted")
    return parser.parse_args(argv)


async def run_etl(args) -> int:
    """Returns the process exit code"""
    if not args.catalog:
        logger.error("No catalog given; pass --catalog or set CATALOG_PATH")
        return 2

    catalog = Catalog.from_file(args.catalog)
    manager = build_pipeline()

    try:
        await manager.initialize(catalog.jobs, catalog.data_sources, catalog.transformation_rules)

        for excluded in manager.get_excluded_jobs():
            logger.warning(f"Skipping job {excluded.job_id}: {excluded.reason}")

        if args.schedule:
            manager.start()
            logger.info("Scheduler running; press Ctrl+C to stop")
            await asyncio.Event().wait()
            return 0

        job_ids = args.job_ids or [job.id for job in manager.get_all_jobs()]
        if not job_ids:
            logger.warning("No active jobs in catalog. Skipping ETL.")
            return 0

        failures = 0
        for job_id in job_ids:
            try:
                logger.info(f"Running job: {job_id}")
                run = await manager.execute_job(job_id)
                logger.info(
                    f"Job {job_id} finished with {run.status.value}: "
                    f"Extracted={run.records_extracted}, "
                    f"Loaded={run.records_loaded}, "
                    f"RowErrors={len(run.row_errors)}, "
                    f"Quality={run.quality_score}"
                )
                if run.status == JobStatus.FAILED:
                    failures += 1
            except ETLException as e:
                logger.error(f"Job {job_id} could not run: {e.message}")
                failures += 1

        logger.info(f"All ETL jobs completed ({failures} failed)")
        return 1 if failures else 0

    finally:
        await manager.shutdown()


def main(argv=None) -> int:
    setup_logging()
    args = parse_args(argv)
    try:
        return asyncio.run(run_etl(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
