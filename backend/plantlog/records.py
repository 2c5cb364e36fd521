"""Shape of a day's meter readings and the helpers around date keys."""
from datetime import date
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, model_validator

FEEDERS = ["F2", "F3", "F4", "F5"]
TURBINES = ["A", "B", "C", "S"]

DEFAULT_HOURS = "24"
DATE_KEY_FORMAT = "%Y-%m-%d"


class FeederEntry(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    start: str = ""
    end: str = ""


class TurbineEntry(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    previous: str = ""
    present: str = ""
    hours: str = DEFAULT_HOURS


class DayRecord(BaseModel):
    """One calendar date of feeder and turbine readings for one user.

    Readings are kept as the raw text the engineer typed; an empty string
    means "not entered". Every id of FEEDERS and TURBINES is always present,
    missing ones are filled with blank entries on construction.
    """

    model_config = ConfigDict(populate_by_name=True)

    date_key: str = Field(alias="dateKey")
    feeders: Dict[str, FeederEntry] = Field(default_factory=dict)
    turbines: Dict[str, TurbineEntry] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _fill_fixed_ids(self):
        feeders = {name: self.feeders.get(name) or FeederEntry() for name in FEEDERS}
        feeders.update({k: v for k, v in self.feeders.items() if k not in feeders})
        turbines = {name: self.turbines.get(name) or TurbineEntry() for name in TURBINES}
        turbines.update({k: v for k, v in self.turbines.items() if k not in turbines})
        self.feeders = feeders
        self.turbines = turbines
        return self

    def to_dict(self):
        return self.model_dump(by_alias=True)


class UserSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field("Engineer", alias="displayName")
    decimal_precision: int = Field(2, alias="decimalPrecision")

    def to_dict(self):
        return self.model_dump(by_alias=True)


class DaySummary(BaseModel):
    """Aggregate row used when browsing a month of remote days."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    date_key: str = Field(alias="dateKey")
    production: float
    export_val: float = Field(alias="exportVal")
    consumption: float

    def to_dict(self):
        return self.model_dump(by_alias=True)


def default_day(date_key: str) -> DayRecord:
    return DayRecord(date_key=date_key)


def format_date_key(d: date) -> str:
    return d.strftime(DATE_KEY_FORMAT)


def today_key() -> str:
    return format_date_key(date.today())


def month_key(date_key: str) -> str:
    return date_key[:7]
