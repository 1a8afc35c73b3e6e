"""
Worker process entry point (`reengagement-worker`).

    reengagement-worker                  # scheduler, runs forever
    reengagement-worker reengagement_once

WORKER_JOB picks the job when no argument is given.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable, Mapping, Sequence

from reengagement.config import get_settings
from reengagement.infrastructure.observability.logging import get_logger, setup_logging
from reengagement.jobs.reengagement_job import run_reengagement_once, start_reengagement_scheduler

logger = get_logger(__name__)

DEFAULT_JOB = "reengagement"

JOB_REGISTRY: dict[str, Callable[[], Awaitable[None]]] = {
    DEFAULT_JOB: start_reengagement_scheduler,
    "reengagement_once": run_reengagement_once,
}


def resolve_job_name(argv: Sequence[str], environ: Mapping[str, str]) -> str:
    raw = argv[0] if argv else environ.get("WORKER_JOB", DEFAULT_JOB)
    return raw.strip().lower()


async def run_worker(job_name: str) -> None:
    """
    Run one registered job until it returns.

    Raises:
        ValueError: If no job is registered under job_name
    """
    job = JOB_REGISTRY.get(job_name)
    if job is None:
        known = ", ".join(sorted(JOB_REGISTRY))
        raise ValueError(f"Unknown worker job '{job_name}'. Available jobs: {known}")

    logger.info("Starting background worker", job=job_name)
    await job()


def main() -> None:
    setup_logging(log_level=get_settings().log_level)
    asyncio.run(run_worker(resolve_job_name(sys.argv[1:], os.environ)))


if __name__ == "__main__":
    main()
