from sqlalchemy import Column, DateTime, Integer, String

from plantlog.database import Base
from plantlog.models.day import _utcnow
from plantlog.records import UserSettings


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # same id as the session identity
    display_name = Column(String(255), default="Engineer")
    decimal_precision = Column(Integer, default=2)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_settings(self) -> UserSettings:
        return UserSettings(
            display_name=self.display_name or "Engineer",
            decimal_precision=2 if self.decimal_precision is None else self.decimal_precision,
        )
