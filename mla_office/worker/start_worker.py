"""
Celery worker startup script

This script starts the celery worker with appropriate configuration.
Every export request becomes one task; the worker's concurrency is the only
bound on how many exports run at once.
"""

# Local imports
from mla_office.core.config import settings
from mla_office.utils.logger import get_logger
from mla_office.worker.app import app

logger = get_logger(__name__)


def start_worker():
    """Start the celery worker."""

    argv = [
        "worker",
        "--loglevel=info",
        "--concurrency=4",
        "--max-tasks-per-child=100",
        f"--time-limit={settings.export_time_limit}",
        f"--soft-time-limit={settings.export_soft_time_limit}",
        "--prefetch-multiplier=1",
    ]

    logger.info("Starting Celery worker", broker=settings.redis_host, queues="exports")
    app.worker_main(argv)


if __name__ == "__main__":
    start_worker()
