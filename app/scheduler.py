"""
Scheduler - Jobs planifiés (rq-scheduler).

- vérification des images: toutes les 30 minutes
- surveillance des deals périmés: toutes les heures
"""
from datetime import datetime, timedelta, timezone

import redis
from rq_scheduler import Scheduler

from app.core.config import REDIS_URL
from app.core.logging import get_logger

logger = get_logger(__name__)

IMAGE_CHECK_INTERVAL = 1800
STALE_CHECK_INTERVAL = 3600


def setup_scheduled_jobs(redis_conn=None) -> Scheduler:
    redis_conn = redis_conn or redis.from_url(REDIS_URL)
    scheduler = Scheduler(connection=redis_conn, queue_name="default")

    # Annuler les jobs existants
    for job in scheduler.get_jobs():
        scheduler.cancel(job)

    from app.jobs_images import verify_deal_images
    scheduler.schedule(
        scheduled_time=datetime.now(timezone.utc) + timedelta(minutes=1),
        func=verify_deal_images,
        interval=IMAGE_CHECK_INTERVAL,
        repeat=None,
        result_ttl=3600,
        queue_name="default",
    )
    logger.info("Scheduled: image verification every 30 minutes")

    from app.jobs_stale import check_stale_deals
    scheduler.schedule(
        scheduled_time=datetime.now(timezone.utc) + timedelta(minutes=5),
        func=check_stale_deals,
        interval=STALE_CHECK_INTERVAL,
        repeat=None,
        result_ttl=3600,
        queue_name="low",
    )
    logger.info("Scheduled: stale deals check every hour")

    return scheduler


if __name__ == "__main__":
    from app.core.config import LOG_LEVEL
    from app.core.logging import setup_logging

    setup_logging(level=LOG_LEVEL)
    scheduler = setup_scheduled_jobs()
    scheduler.run()
