from __future__ import annotations

import logging

import redis
from celery import Celery

from ..core.celery_app import celery_app, INTELLIGENCE_QUEUE
from .caching import _get_sync_redis

logger = logging.getLogger(__name__)

PROCESS_COMPANY_TASK = "mining_intel.services.orchestrator.process_company"
# kombu Redis transport: delivered-but-unacknowledged messages
UNACKED_KEY = "unacked"


class CeleryTaskQueue:
    """
    Task queue used by the intake endpoint: one task per company name.

    Dispatch, retry counting and timeouts are Celery's job; this only sends
    work and reports the backlog.
    """

    def __init__(
        self,
        app: Celery | None = None,
        queue: str = INTELLIGENCE_QUEUE,
        client: redis.Redis | None = None,
    ) -> None:
        self.app = app or celery_app
        self.queue = queue
        self._client = client

    def enqueue(self, company_name: str) -> None:
        self.app.send_task(PROCESS_COMPANY_TASK, args=[company_name], queue=self.queue)
        logger.info(
            "Company queued for processing",
            extra={"company": company_name, "step": "enqueue"},
        )

    def pending_count(self) -> int:
        """
        Number of tasks not yet finished.

        With the Redis broker a waiting task sits in a list named after the
        queue. Once a worker takes it, the message moves to the ``unacked``
        hash and stays there until the task ends (tasks ack late), including
        while a retry countdown is pending.
        """
        client = self._client if self._client is not None else _get_sync_redis()
        try:
            waiting = int(client.llen(self.queue) or 0)
            in_flight = int(client.hlen(UNACKED_KEY) or 0)
        except redis.RedisError:
            logger.warning("Could not read queue length", extra={"step": "status"})
            return 0
        return waiting + in_flight


def get_task_queue() -> CeleryTaskQueue:
    return CeleryTaskQueue()
