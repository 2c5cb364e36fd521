"""Derived energy figures for a day record.

Every function here is pure and never raises on malformed readings: text that
does not parse as a finite number counts as zero.
"""
import math
import re
from typing import NamedTuple, Optional, Union

from plantlog.records import DEFAULT_HOURS, DayRecord, FeederEntry, TurbineEntry

# Standard cubic feet per cubic meter
CUBIC_FEET_PER_M3 = 35.3146667
MIN_HOURS = 0.000001

# (upper bound on MW/hr, m3 of gas per MWh); bounds are inclusive
GAS_TIERS = [
    (3, 1000),
    (5, 700),
    (8, 500),
]
GAS_TOP_TIER_RATE = 420

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
# Plain decimal or exponent notation; rejects "1_000", "nan" and "inf"
_DECIMAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


class FeederComputation(NamedTuple):
    start: float
    end: float
    diff: float


class TurbineComputation(NamedTuple):
    prev: float
    pres: float
    hours: float
    diff: float
    mw_per_hr: float


class DayStats(NamedTuple):
    production: float
    export_val: float
    consumption: float
    is_export: bool
    gas_m3: float
    gas_mmscf: float


def strip_commas(value: str) -> str:
    return value.replace(",", "")


def parse_reading(value: Union[str, float, int, None], default: float = 0.0) -> float:
    """Permissive numeric parse: anything that is not a finite number gives `default`."""
    if value is None:
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = strip_commas(str(value)).strip()
        if not _DECIMAL.fullmatch(text):
            return default
        number = float(text)
    return number if math.isfinite(number) else default


def feeder_row(record: DayRecord, feeder_id: str) -> FeederComputation:
    entry = record.feeders.get(feeder_id) or FeederEntry()
    start = parse_reading(entry.start)
    end = parse_reading(entry.end)
    return FeederComputation(start=start, end=end, diff=start - end)


def feeder_net_flow(record: DayRecord) -> float:
    """Signed feeder flow: positive is export, negative is withdrawal."""
    return sum((feeder_row(record, f).diff for f in record.feeders), 0.0)


def turbine_row(record: DayRecord, turbine_id: str) -> TurbineComputation:
    entry = record.turbines.get(turbine_id) or TurbineEntry()
    prev = parse_reading(entry.previous)
    pres = parse_reading(entry.present)
    hours = max(MIN_HOURS, parse_reading(entry.hours or DEFAULT_HOURS))
    diff = pres - prev
    return TurbineComputation(prev=prev, pres=pres, hours=hours, diff=diff, mw_per_hr=diff / hours)


def turbine_net_production(record: DayRecord) -> float:
    return sum((turbine_row(record, t).diff for t in record.turbines), 0.0)


def consumption(record: DayRecord) -> float:
    return turbine_net_production(record) - feeder_net_flow(record)


def gas_for_turbine(diff_mwh: float, mw_per_hr: float) -> float:
    """Gas burned in m3, tiered on the generation rate (not on the energy)."""
    for upper_bound, m3_per_mwh in GAS_TIERS:
        if mw_per_hr <= upper_bound:
            return diff_mwh * m3_per_mwh
    return diff_mwh * GAS_TOP_TIER_RATE


def cubic_meters_to_mmscf(m3: float) -> float:
    return (m3 * CUBIC_FEET_PER_M3) / 1_000_000


def total_gas(record: DayRecord) -> float:
    total = 0.0
    for t in record.turbines:
        row = turbine_row(record, t)
        total += gas_for_turbine(row.diff, row.mw_per_hr)
    return total


def clamp_hours(value: Optional[str]) -> str:
    """Normalise an operating-hours entry into "1".."24".

    Blank input means a full day ("24"); anything without a leading integer,
    or an integer below one, becomes "1"; larger values are capped at "24".
    """
    if not value:
        return DEFAULT_HOURS
    match = _LEADING_INT.match(str(value))
    if match is None:
        return "1"
    hours = int(match.group(1))
    if hours < 1:
        return "1"
    if hours > 24:
        return DEFAULT_HOURS
    return str(hours)


def day_stats(record: DayRecord) -> DayStats:
    production = turbine_net_production(record)
    export_val = feeder_net_flow(record)
    gas_m3 = total_gas(record)
    return DayStats(
        production=production,
        export_val=export_val,
        consumption=production - export_val,
        is_export=export_val >= 0,
        gas_m3=gas_m3,
        gas_mmscf=cubic_meters_to_mmscf(gas_m3),
    )
