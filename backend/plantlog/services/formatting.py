import math
from datetime import datetime
from typing import Optional, Union

from plantlog.records import DATE_KEY_FORMAT
from plantlog.services.calculations import parse_reading

# Keeps a leading minus sign on the left in right-to-left text
LRM = "\u200e"


def round_half_up(value: float, decimals: int = 2) -> float:
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def format_number(
    value: Union[float, int, str],
    decimals: int = 2,
    thousands_separator: bool = True,
    unit: Optional[str] = None,
    force_sign: bool = False,
) -> str:
    if isinstance(value, str):
        number = parse_reading(value, default=math.nan)
    else:
        number = float(value)
    if not math.isfinite(number):
        return f"0 {unit}" if unit else "0"

    rounded = round_half_up(number, decimals)
    magnitude = abs(rounded)
    if magnitude % 1:
        formatted = f"{magnitude:.{decimals}f}".rstrip("0").rstrip(".")
    else:
        formatted = str(int(magnitude))

    if thousands_separator:
        whole, dot, fraction = formatted.partition(".")
        formatted = f"{int(whole):,}{dot}{fraction}"

    if rounded < 0:
        result = f"{LRM}-{formatted}"
    elif force_sign and rounded > 0:
        result = f"+{formatted}"
    else:
        result = formatted

    return f"{result} {unit}" if unit else result


def format_mwh(value) -> str:
    return format_number(value, unit="MWh")


def format_nm3(value) -> str:
    return format_number(value, unit="Nm³")


def _parse_date_key(date_key: str):
    try:
        return datetime.strptime(date_key, DATE_KEY_FORMAT)
    except (TypeError, ValueError):
        return None


def format_date(date_key: str, long: bool = False) -> str:
    """Human date for a date key ("Jan 20, 2026"); unparsable keys come back unchanged."""
    d = _parse_date_key(date_key)
    if d is None:
        return date_key
    if long:
        return f"{d:%A}, {d:%B} {d.day}, {d.year}"
    return f"{d:%b} {d.day}, {d.year}"


def format_month(month_key: str) -> str:
    d = _parse_date_key(f"{month_key}-01")
    return f"{d:%b} {d.year}" if d else month_key


def weekday_letter(date_key: str) -> str:
    d = _parse_date_key(date_key)
    return f"{d:%a}"[0] if d else ""


def flow_label(is_export: bool) -> str:
    return "Export" if is_export else "Withdrawal"
