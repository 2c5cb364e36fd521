from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from plantlog.database import Base
from plantlog.records import DEFAULT_HOURS, DayRecord, FeederEntry, TurbineEntry


def _utcnow():
    return datetime.now(timezone.utc)


class DailyData(Base):
    __tablename__ = "daily_data"
    __table_args__ = (UniqueConstraint("user_id", "date_key", name="uq_daily_data_user_date"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    date_key = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    feeders = relationship("FeederReading", back_populates="daily_data", order_by="FeederReading.id")
    turbines = relationship("TurbineReading", back_populates="daily_data", order_by="TurbineReading.id")

    def to_record(self) -> DayRecord:
        return DayRecord(
            date_key=self.date_key,
            feeders={
                f.feeder_name: FeederEntry(start=f.start_reading or "", end=f.end_reading or "")
                for f in self.feeders
            },
            turbines={
                t.turbine_name: TurbineEntry(
                    previous=t.previous_reading or "",
                    present=t.present_reading or "",
                    hours=t.hours or DEFAULT_HOURS,
                )
                for t in self.turbines
            },
        )


class FeederReading(Base):
    __tablename__ = "feeders"
    __table_args__ = (UniqueConstraint("daily_data_id", "feeder_name", name="uq_feeders_day_name"),)

    id = Column(Integer, primary_key=True, index=True)
    daily_data_id = Column(Integer, ForeignKey("daily_data.id"), nullable=False, index=True)
    feeder_name = Column(String(16), nullable=False)
    start_reading = Column(Text, default="")
    end_reading = Column(Text, default="")
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    daily_data = relationship("DailyData", back_populates="feeders")


class TurbineReading(Base):
    __tablename__ = "turbines"
    __table_args__ = (UniqueConstraint("daily_data_id", "turbine_name", name="uq_turbines_day_name"),)

    id = Column(Integer, primary_key=True, index=True)
    daily_data_id = Column(Integer, ForeignKey("daily_data.id"), nullable=False, index=True)
    turbine_name = Column(String(16), nullable=False)
    previous_reading = Column(Text, default="")
    present_reading = Column(Text, default="")
    hours = Column(Text, default=DEFAULT_HOURS)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    daily_data = relationship("DailyData", back_populates="turbines")
