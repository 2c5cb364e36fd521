import logging

from celery import Celery

from plantlog.config import settings
from plantlog.database import SessionLocal, redis_client
from plantlog.services.local_store import LocalDayStore
from plantlog.services.remote_store import RemoteDayStore
from plantlog.services.sync import DaySync

logger = logging.getLogger(__name__)

# Celery Configuration
celery_app = Celery('plantlog', broker=settings.CELERY_BROKER_URL)
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)


def _day_sync(db) -> DaySync:
    return DaySync(LocalDayStore(redis_client, settings.STORAGE_PREFIX), RemoteDayStore(db))


@celery_app.task
def sync_local_days_to_remote(user_id: str) -> int:
    """Mirror every locally stored day to the remote store for `user_id`."""
    logger.info("Sync of local days for %s started", user_id)
    db = SessionLocal()
    try:
        synced = _day_sync(db).sync_local_days(user_id)
        logger.info("Synced %d local days for %s", synced, user_id)
        return synced
    finally:
        db.close()

