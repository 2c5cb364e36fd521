"""
Spreadsheet and plain-text reports.

Every figure comes from services.calculations; nothing here recomputes a
metric on its own.
"""
import io
from collections import defaultdict
from typing import Dict, Iterable, List

import pandas as pd
from openpyxl.utils import get_column_letter

from plantlog.records import DayRecord, month_key
from plantlog.services.calculations import day_stats, feeder_row, gas_for_turbine, turbine_row
from plantlog.services.formatting import flow_label, format_date, format_month, round_half_up

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
TEXT_MIME_TYPE = "text/plain"

DAILY_ROWS_LIMIT = 31
MONTHLY_ROWS_LIMIT = 12


def round2(value: float) -> float:
    return round_half_up(value, 2)


def _plain(value: float) -> str:
    """Two-decimal number without trailing zeros or grouping, e.g. 2.5, 100."""
    value = round2(value)
    return str(int(value)) if value.is_integer() else str(value)


def report_filename(date_key: str, extension: str) -> str:
    return f"PowerPlant_Report_{date_key}.{extension}"


def feeders_frame(day: DayRecord) -> pd.DataFrame:
    rows = []
    for name in day.feeders:
        row = feeder_row(day, name)
        rows.append({"Feeder": name, "Start": row.start, "End": row.end, "Difference": round2(row.diff)})
    return pd.DataFrame(rows, columns=["Feeder", "Start", "End", "Difference"])


def turbines_frame(day: DayRecord) -> pd.DataFrame:
    rows = []
    for name in day.turbines:
        row = turbine_row(day, name)
        rows.append({
            "Turbine": f"Turbine {name}",
            "Previous": row.prev,
            "Present": row.pres,
            "Hours": row.hours,
            "Difference (MWh)": round2(row.diff),
            "MW/hr": round2(row.mw_per_hr),
            "Gas Consumed (m³)": round2(gas_for_turbine(row.diff, row.mw_per_hr)),
        })
    columns = ["Turbine", "Previous", "Present", "Hours", "Difference (MWh)", "MW/hr", "Gas Consumed (m³)"]
    return pd.DataFrame(rows, columns=columns)


def summary_frame(day: DayRecord) -> pd.DataFrame:
    stats = day_stats(day)
    return pd.DataFrame(
        [
            ["Production", round2(stats.production), "MWh"],
            [flow_label(stats.is_export), round2(abs(stats.export_val)), "MWh"],
            ["Consumption", round2(stats.consumption), "MWh"],
            ["Gas Consumed", round2(stats.gas_m3), "m³"],
            ["Gas Consumed", round(stats.gas_mmscf, 4), "MMscf"],
        ],
        columns=["Metric", "Value", "Unit"],
    )


def daily_summary(days: Iterable[DayRecord]) -> pd.DataFrame:
    """One row per day for the most recent days, oldest first."""
    recent = sorted(days, key=lambda d: d.date_key)[-DAILY_ROWS_LIMIT:]
    rows = []
    for day in recent:
        stats = day_stats(day)
        rows.append([
            format_date(day.date_key),
            round2(stats.production),
            round2(stats.export_val),
            round2(stats.consumption),
            round2(stats.gas_m3),
        ])
    columns = [
        "Date",
        "Production (MWh)",
        "Export/Withdrawal (MWh)",
        "Consumption (MWh)",
        "Gas Consumed (m³)",
    ]
    return pd.DataFrame(rows, columns=columns)


def monthly_totals(days: Iterable[DayRecord]) -> List[Dict]:
    """Per-month totals (YYYY-MM), keeping export and withdrawal days apart."""
    months = defaultdict(lambda: {
        "production": 0.0,
        "export_total": 0.0,
        "withdrawal_total": 0.0,
        "has_export": False,
        "has_withdrawal": False,
        "consumption": 0.0,
        "gas_consumed": 0.0,
        "days_count": 0,
    })
    for day in days:
        stats = day_stats(day)
        m = months[month_key(day.date_key)]
        m["production"] += stats.production
        m["consumption"] += stats.consumption
        m["gas_consumed"] += stats.gas_m3
        m["days_count"] += 1
        if stats.is_export:
            m["export_total"] += stats.export_val
            m["has_export"] = True
        else:
            m["withdrawal_total"] += abs(stats.export_val)
            m["has_withdrawal"] = True
    return [{"month": key, **totals} for key, totals in sorted(months.items())]


def monthly_summary(days: Iterable[DayRecord]) -> pd.DataFrame:
    """
    Last twelve months of totals.

    Export and withdrawal get separate columns when any month mixes both;
    otherwise a single flow column named after the one direction seen.
    """
    months = monthly_totals(days)[-MONTHLY_ROWS_LIMIT:]
    mixed = any(m["has_export"] and m["has_withdrawal"] for m in months)

    if mixed:
        columns = [
            "Month", "Production (MWh)", "Export (MWh)", "Withdrawal (MWh)",
            "Consumption (MWh)", "Gas Consumed (m³)", "Days",
        ]
        rows = [
            [
                format_month(m["month"]),
                round2(m["production"]),
                round2(m["export_total"]),
                round2(m["withdrawal_total"]),
                round2(m["consumption"]),
                round2(m["gas_consumed"]),
                m["days_count"],
            ]
            for m in months
        ]
        return pd.DataFrame(rows, columns=columns)

    all_export = all(m["has_export"] and not m["has_withdrawal"] for m in months)
    flow_key = "export_total" if all_export else "withdrawal_total"
    columns = [
        "Month", "Production (MWh)", f"{flow_label(all_export)} (MWh)",
        "Consumption (MWh)", "Gas Consumed (m³)", "Days",
    ]
    rows = [
        [
            format_month(m["month"]),
            round2(m["production"]),
            round2(m[flow_key]),
            round2(m["consumption"]),
            round2(m["gas_consumed"]),
            m["days_count"],
        ]
        for m in months
    ]
    return pd.DataFrame(rows, columns=columns)


def _fit_columns(worksheet, frame: pd.DataFrame):
    for idx, column in enumerate(frame.columns, start=1):
        width = max([len(str(column))] + [len(str(v)) for v in frame[column]]) + 2
        worksheet.column_dimensions[get_column_letter(idx)].width = max(width, 10)


def write_workbook(sheets: Dict[str, pd.DataFrame]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=name, index=False)
            _fit_columns(writer.sheets[name], frame)
    return buffer.getvalue()


def build_excel_report(current: DayRecord, all_days: List[DayRecord]) -> bytes:
    return write_workbook({
        "Feeders": feeders_frame(current),
        "Turbines": turbines_frame(current),
        "Summary": summary_frame(current),
        "Daily Summary": daily_summary(all_days),
        "Monthly Summary": monthly_summary(all_days),
    })


def export_rows_to_excel(rows: List[Dict], sheet_name: str = "Data") -> bytes:
    return write_workbook({sheet_name: pd.DataFrame(rows)})


def build_text_report(day: DayRecord) -> str:
    stats = day_stats(day)
    separator = "═" * 40
    rule = "─" * 40
    lines = [
        separator,
        f"  Daily Report - {format_date(day.date_key, long=True)}",
        separator,
        "",
        "▶ Feeders",
        rule,
    ]
    for name in day.feeders:
        row = feeder_row(day, name)
        lines.append(f"  {name}: Start: {_plain(row.start)} → End: {_plain(row.end)} (Difference: {_plain(row.diff)})")
    lines += ["", "▶ Turbines", rule]
    for name in day.turbines:
        row = turbine_row(day, name)
        lines.append(f"  Turbine {name}: Previous: {_plain(row.prev)} → Present: {_plain(row.pres)}")
        lines.append(
            f"       Hours: {_plain(row.hours)}h | Difference: {_plain(row.diff)} MWh | {_plain(row.mw_per_hr)} MW/h"
        )
    lines += [
        "",
        "▶ Summary",
        rule,
        f"  Production: {_plain(stats.production)} MWh",
        f"  {flow_label(stats.is_export)}: {_plain(abs(stats.export_val))} MWh",
        f"  Consumption: {_plain(stats.consumption)} MWh",
        f"  Gas Consumed: {_plain(stats.gas_m3)} m³",
        "",
        separator,
    ]
    return "\n".join(lines)
