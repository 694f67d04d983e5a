from celery import Celery

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging()

INTELLIGENCE_QUEUE = "intelligence"

celery_app = Celery(
    "mining_intel",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_routes={
        "mining_intel.services.orchestrator.process_company": {"queue": INTELLIGENCE_QUEUE}
    },
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # One company per worker slot; a late ack re-delivers work lost to a crash
    worker_prefetch_multiplier=1,
    imports=("mining_intel.services.orchestrator",),
)
