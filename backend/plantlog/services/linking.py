from datetime import datetime, timedelta
from typing import Optional

from plantlog.records import DATE_KEY_FORMAT, DayRecord


def previous_date_key(date_key: str) -> Optional[str]:
    """Calendar date one day before `date_key`, or None if it does not parse."""
    try:
        current = datetime.strptime(date_key, DATE_KEY_FORMAT).date()
        return (current - timedelta(days=1)).strftime(DATE_KEY_FORMAT)
    except (TypeError, ValueError, OverflowError):
        return None


def link_with_previous(today: DayRecord, previous: Optional[DayRecord]) -> DayRecord:
    """
    Carry yesterday's closing readings into today's blank opening readings.

    Returns a new record; neither argument is modified. A feeder's `start`
    takes yesterday's `end` and a turbine's `previous` takes yesterday's
    `present`, only where today's value is blank and yesterday's is not.
    """
    linked = today.model_copy(deep=True)
    if previous is None:
        return linked

    for name, feeder in linked.feeders.items():
        prev_feeder = previous.feeders.get(name)
        if prev_feeder is not None and prev_feeder.end and not feeder.start:
            feeder.start = prev_feeder.end

    for name, turbine in linked.turbines.items():
        prev_turbine = previous.turbines.get(name)
        if prev_turbine is not None and prev_turbine.present and not turbine.previous:
            turbine.previous = prev_turbine.present

    return linked
