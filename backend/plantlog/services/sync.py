import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from plantlog.exceptions import RemoteStoreError, SyncError
from plantlog.records import DayRecord
from plantlog.services.linking import link_with_previous, previous_date_key
from plantlog.services.local_store import LocalDayStore
from plantlog.services.remote_store import RemoteDayStore

logger = logging.getLogger(__name__)


class DaySync:
    """
    Local-first access to day records with an optional remote mirror.

    The local store is the source of truth for not losing data: a save is
    done once the local write succeeds. The remote store is consulted only
    when a user id is given.
    """

    def __init__(self, local: LocalDayStore, remote: Optional[RemoteDayStore] = None):
        self.local = local
        self.remote = remote

    def load_day(self, date_key: str, user_id: Optional[str] = None) -> DayRecord:
        data = self.local.get_linked_day(date_key)
        if not user_id or self.remote is None:
            return data

        try:
            cloud = self.remote.fetch_day(user_id, date_key)
            if cloud is None:
                return data
            prev_key = previous_date_key(date_key)
            prev_cloud = self.remote.fetch_day(user_id, prev_key) if prev_key else None
        except RemoteStoreError as e:
            logger.warning("Remote load of %s failed, using local data: %s", date_key, e)
            return data

        return link_with_previous(cloud, prev_cloud)

    def save_day(self, record: DayRecord, user_id: Optional[str] = None, mirror: bool = True) -> bool:
        """
        Save locally, then mirror to the remote store when a user is signed in.

        Local failures raise StorageError. Returns whether the remote mirror
        succeeded (False when it was skipped or failed).
        """
        self.local.save_day(record)
        if not mirror or not user_id:
            return False
        return self.mirror_day(record, user_id)

    def mirror_day(self, record: DayRecord, user_id: str) -> bool:
        if self.remote is None:
            return False
        try:
            self.remote.upsert_day(user_id, record)
            return True
        except Exception:
            logger.exception("Error syncing day %s to remote store", record.date_key)
            return False

    def delete_day(self, date_key: str, user_id: Optional[str] = None):
        """Remove a day remotely (when signed in) and then locally.

        A remote failure raises SyncError before anything local is touched.
        """
        if user_id and self.remote is not None:
            try:
                day_id = self.remote.find_day_id(user_id, date_key)
                if day_id is not None:
                    self.remote.delete_day(user_id, day_id)
            except RemoteStoreError as e:
                logger.error("Remote delete of %s failed: %s", date_key, e)
                raise SyncError(f"Could not delete day {date_key}") from e
        self.local.delete_day(date_key)

    def sync_local_days(self, user_id: str) -> int:
        """Mirror every locally stored day; returns how many were mirrored."""
        synced = 0
        for day in self.local.all_days():
            if self.mirror_day(day, user_id):
                synced += 1
        return synced


def mirror_day_job(session_factory: Callable[[], Session], local: LocalDayStore, record: DayRecord, user_id: str) -> bool:
    """Background mirror of one saved day using its own database session."""
    db = session_factory()
    try:
        return DaySync(local, RemoteDayStore(db)).mirror_day(record, user_id)
    finally:
        db.close()
