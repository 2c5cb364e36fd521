import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

import redis
from pydantic import ValidationError

from plantlog.config import settings
from plantlog.exceptions import StorageError
from plantlog.records import DayRecord, UserSettings, default_day
from plantlog.services.linking import link_with_previous, previous_date_key

logger = logging.getLogger(__name__)

SETTINGS_KEY = "@power_plant_settings"


class LocalDayStore:
    """
    Device-local day records kept in Redis, one JSON value per date.

    Reads never fail: a missing or unreadable value falls back to the default
    record. Writes raise StorageError so the caller can report a failed save.
    """

    def __init__(self, client: redis.Redis, prefix: str = settings.STORAGE_PREFIX):
        self.client = client
        self.prefix = prefix

    def day_key(self, date_key: str) -> str:
        return f"{self.prefix}:day:{date_key}"

    def index_key(self) -> str:
        return f"{self.prefix}:days:index"

    def _get_json(self, key: str):
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.warning("Local read of %s failed: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Ignoring corrupt local value at %s", key)
            return None

    def day_index(self) -> List[str]:
        data = self._get_json(self.index_key())
        return list(data) if isinstance(data, list) else []

    def find_day(self, date_key: str) -> Optional[DayRecord]:
        """Stored record for `date_key`, or None when nothing usable is stored."""
        data = self._get_json(self.day_key(date_key))
        if not isinstance(data, dict):
            return None
        try:
            return DayRecord.model_validate({**data, "dateKey": date_key})
        except ValidationError as e:
            logger.warning("Stored day %s does not match the record shape: %s", date_key, e)
            return None

    def get_day(self, date_key: str) -> DayRecord:
        return self.find_day(date_key) or default_day(date_key)

    def get_linked_day(self, date_key: str) -> DayRecord:
        current = self.get_day(date_key)
        prev_key = previous_date_key(date_key)
        if not prev_key:
            return current
        return link_with_previous(current, self.find_day(prev_key))

    def save_day(self, record: DayRecord):
        try:
            self.client.set(self.day_key(record.date_key), json.dumps(record.to_dict()))
            index = self.day_index()
            if record.date_key not in index:
                index.append(record.date_key)
                index.sort()
                self.client.set(self.index_key(), json.dumps(index))
        except redis.RedisError as e:
            logger.error("Error saving day %s: %s", record.date_key, e)
            raise StorageError(f"Could not save day {record.date_key}") from e

    def delete_day(self, date_key: str):
        try:
            self.client.delete(self.day_key(date_key))
            index = [d for d in self.day_index() if d != date_key]
            self.client.set(self.index_key(), json.dumps(index))
        except redis.RedisError as e:
            logger.error("Error deleting day %s: %s", date_key, e)
            raise StorageError(f"Could not delete day {date_key}") from e

    def all_days(self) -> List[DayRecord]:
        return [self.get_day(date_key) for date_key in self.day_index()]

    def get_settings(self) -> UserSettings:
        data = self._get_json(SETTINGS_KEY)
        if not isinstance(data, dict):
            return UserSettings()
        try:
            return UserSettings.model_validate({**UserSettings().to_dict(), **data})
        except ValidationError:
            return UserSettings()

    def _merged_settings(self, changes: dict) -> UserSettings:
        current = self.get_settings().to_dict()
        aliased = {
            (UserSettings.model_fields[k].alias if k in UserSettings.model_fields else k): v
            for k, v in changes.items()
        }
        return UserSettings.model_validate({**current, **aliased})

    def save_settings(self, changes: dict) -> UserSettings:
        updated = self._merged_settings(changes)
        try:
            self.client.set(SETTINGS_KEY, json.dumps(updated.to_dict()))
        except redis.RedisError as e:
            logger.error("Error saving settings: %s", e)
            raise StorageError("Could not save settings") from e
        return updated

    def export_bundle(self) -> str:
        """Every stored day plus settings as one JSON document."""
        return json.dumps(
            {
                "days": [day.to_dict() for day in self.all_days()],
                "settings": self.get_settings().to_dict(),
                "exportedAt": datetime.now(timezone.utc).isoformat(),
            },
            indent=2,
        )

    def import_bundle(self, payload: str) -> bool:
        """Restore an exported bundle. Nothing is written unless the whole bundle is valid."""
        try:
            data = json.loads(payload)
            if not isinstance(data, dict):
                return False
            days = data.get("days") or []
            changes = data.get("settings") or {}
            if not isinstance(days, list) or not isinstance(changes, dict):
                return False
            records = [DayRecord.model_validate(day) for day in days]
            self._merged_settings(changes)

            for record in records:
                self.save_day(record)
            if changes:
                self.save_settings(changes)
            return True
        except (ValueError, StorageError) as e:
            logger.error("Import failed: %s", e)
            return False
