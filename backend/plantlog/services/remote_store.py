import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from plantlog.exceptions import RemoteStoreError
from plantlog.models.day import DailyData, FeederReading, TurbineReading
from plantlog.models.profile import Profile
from plantlog.records import DayRecord, DaySummary, UserSettings
from plantlog.services.calculations import day_stats

logger = logging.getLogger(__name__)


def month_bounds(month_key: str) -> Optional[tuple]:
    """First date key of the month and of the following month, e.g. ("2026-01-01", "2026-02-01")."""
    try:
        year, month = (int(part) for part in month_key.split("-"))
    except (AttributeError, ValueError):
        return None
    if not 1 <= month <= 12:
        return None
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    return f"{year:04d}-{month:02d}-01", f"{next_year:04d}-{next_month:02d}-01"


class RemoteDayStore:
    """
    Relational mirror of day records: one `daily_data` row per user and date
    with `feeders` and `turbines` child rows. Every query is scoped to the
    owning user id. SQLAlchemy errors are re-raised as RemoteStoreError.
    """

    def __init__(self, db: Session):
        self.db = db

    def _day_row(self, user_id: str, date_key: str) -> Optional[DailyData]:
        return (
            self.db.query(DailyData)
            .filter(DailyData.user_id == user_id)
            .filter(DailyData.date_key == date_key)
            .first()
        )

    def upsert_day(self, user_id: str, record: DayRecord) -> DailyData:
        """Insert or update a day and its readings."""
        try:
            row = self._day_row(user_id, record.date_key)
            if row is None:
                row = DailyData(user_id=user_id, date_key=record.date_key)
                self.db.add(row)
                self.db.flush()

            feeders = {f.feeder_name: f for f in row.feeders}
            for name, entry in record.feeders.items():
                feeder = feeders.get(name)
                if feeder is None:
                    feeder = FeederReading(daily_data=row, feeder_name=name)
                    self.db.add(feeder)
                feeder.start_reading = entry.start
                feeder.end_reading = entry.end

            turbines = {t.turbine_name: t for t in row.turbines}
            for name, entry in record.turbines.items():
                turbine = turbines.get(name)
                if turbine is None:
                    turbine = TurbineReading(daily_data=row, turbine_name=name)
                    self.db.add(turbine)
                turbine.previous_reading = entry.previous
                turbine.present_reading = entry.present
                turbine.hours = entry.hours

            self.db.commit()
            return row
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RemoteStoreError(f"Could not upsert day {record.date_key}") from e

    def fetch_day(self, user_id: str, date_key: str) -> Optional[DayRecord]:
        try:
            row = self._day_row(user_id, date_key)
            return row.to_record() if row is not None else None
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Could not fetch day {date_key}") from e

    def find_day_id(self, user_id: str, date_key: str) -> Optional[int]:
        try:
            row = self._day_row(user_id, date_key)
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Could not fetch day {date_key}") from e
        return row.id if row is not None else None

    def fetch_date_keys(self, user_id: str) -> List[str]:
        try:
            rows = (
                self.db.query(DailyData.date_key)
                .filter(DailyData.user_id == user_id)
                .order_by(DailyData.date_key.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise RemoteStoreError("Could not list days") from e
        return [r.date_key for r in rows]

    def fetch_month_summaries(self, user_id: str, month_key: str) -> List[DaySummary]:
        """Per-day production/export/consumption for one month, newest first.

        Figures are in thousands of meter units (GWh for MWh meters).
        """
        bounds = month_bounds(month_key)
        if bounds is None:
            return []
        month_start, next_month_start = bounds
        try:
            rows = (
                self.db.query(DailyData)
                .filter(DailyData.user_id == user_id)
                .filter(DailyData.date_key >= month_start)
                .filter(DailyData.date_key < next_month_start)
                .order_by(DailyData.date_key.desc())
                .all()
            )
            summaries = []
            for row in rows:
                stats = day_stats(row.to_record())
                summaries.append(DaySummary(
                    id=row.id,
                    date_key=row.date_key,
                    production=stats.production / 1000,
                    export_val=stats.export_val / 1000,
                    consumption=stats.consumption / 1000,
                ))
            return summaries
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Could not summarise month {month_key}") from e

    def delete_day(self, user_id: str, day_id: int):
        """Delete a day's feeders, then turbines, then the day row, in one transaction."""
        try:
            row = (
                self.db.query(DailyData)
                .filter(DailyData.id == day_id)
                .filter(DailyData.user_id == user_id)
                .first()
            )
            if row is None:
                raise RemoteStoreError(f"Day {day_id} not found")
            self.db.query(FeederReading).filter(FeederReading.daily_data_id == row.id).delete(
                synchronize_session=False
            )
            self.db.query(TurbineReading).filter(TurbineReading.daily_data_id == row.id).delete(
                synchronize_session=False
            )
            self.db.query(DailyData).filter(DailyData.id == row.id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RemoteStoreError(f"Could not delete day {day_id}") from e

    def fetch_profile(self, user_id: str) -> Optional[UserSettings]:
        try:
            profile = self.db.get(Profile, user_id)
        except SQLAlchemyError as e:
            raise RemoteStoreError("Could not fetch profile") from e
        return profile.to_settings() if profile is not None else None

    def update_profile(self, user_id: str, changes: UserSettings):
        try:
            profile = self.db.get(Profile, user_id)
            if profile is None:
                profile = Profile(id=user_id)
                self.db.add(profile)
            profile.display_name = changes.display_name
            profile.decimal_precision = changes.decimal_precision
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RemoteStoreError("Could not update profile") from e
