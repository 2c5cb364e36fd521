import pytest

from plantlog.records import DayRecord, FeederEntry, default_day
from plantlog.services.calculations import (
    clamp_hours,
    consumption,
    cubic_meters_to_mmscf,
    day_stats,
    feeder_net_flow,
    feeder_row,
    gas_for_turbine,
    parse_reading,
    total_gas,
    turbine_net_production,
    turbine_row,
)


@pytest.mark.parametrize("raw, expected", [
    ("", 0.0),
    (None, 0.0),
    ("abc", 0.0),
    ("nan", 0.0),
    ("inf", 0.0),
    ("  42 ", 42.0),
    ("1,250.5", 1250.5),
    ("-3", -3.0),
    (7, 7.0),
    ("1_000", 0.0),
    ("12abc", 0.0),
    ("1e3", 1000.0),
    (".5", 0.5),
    ("5.", 5.0),
    ("1e999", 0.0),
    ("\u0661\u0662", 0.0),
])
def test_parse_reading_is_permissive(raw, expected):
    assert parse_reading(raw) == expected


def test_parse_reading_custom_default():
    assert parse_reading("oops", default=-1.0) == -1.0


@pytest.mark.parametrize("rate, expected", [
    (0, 10000),
    (3, 10000),
    (3.0001, 7000),
    (5, 7000),
    (5.0001, 5000),
    (8, 5000),
    (8.0001, 4200),
    (50, 4200),
])
def test_gas_tiers_step_on_rate_only(rate, expected):
    assert gas_for_turbine(10, rate) == pytest.approx(expected)


def test_gas_negative_rate_uses_lowest_tier():
    assert gas_for_turbine(-2, -0.5) == -2000


def test_mmscf_conversion_constant():
    assert cubic_meters_to_mmscf(1_000_000) == pytest.approx(35.3146667)
    assert cubic_meters_to_mmscf(70000) == (70000 * 35.3146667) / 1_000_000


def test_concrete_day(make_day):
    day = make_day(
        "2026-01-20",
        feeders={"F2": ("500", "300")},
        turbines={"A": ("1000", "1100", "24")},
    )

    assert feeder_net_flow(day) == 200
    row = turbine_row(day, "A")
    assert row.diff == 100
    assert row.mw_per_hr == pytest.approx(4.1667, abs=1e-4)
    assert gas_for_turbine(row.diff, row.mw_per_hr) == 70000
    assert total_gas(day) == 70000
    assert cubic_meters_to_mmscf(total_gas(day)) == pytest.approx(2.472, abs=1e-3)


def test_feeder_flow_sign_is_kept(make_day):
    withdrawal = make_day("2026-01-20", feeders={"F2": ("100", "250"), "F3": ("10", "20")})
    assert feeder_net_flow(withdrawal) == -160


def test_feeder_with_equal_readings_contributes_nothing(make_day):
    day = make_day("2026-01-20", feeders={"F2": ("500", "300")})
    before = feeder_net_flow(day)
    day.feeders["F9"] = FeederEntry(start="1234", end="1234")
    assert feeder_net_flow(day) == before


def test_consumption_is_production_minus_flow(make_day):
    day = make_day(
        "2026-02-01",
        feeders={"F2": ("900", "400"), "F4": ("12.5", "20")},
        turbines={"A": ("100", "350", "24"), "S": ("5", "x", "")},
    )
    assert consumption(day) == turbine_net_production(day) - feeder_net_flow(day)


def test_blank_record_is_all_zero():
    day = default_day("2026-03-01")
    stats = day_stats(day)
    assert stats.production == 0
    assert stats.export_val == 0
    assert stats.consumption == 0
    assert stats.is_export is True
    assert stats.gas_m3 == 0


def test_turbine_row_hours_defaults_and_floor(make_day):
    day = make_day("2026-01-20", turbines={"A": ("0", "48", ""), "B": ("0", "10", "0")})

    blank_hours = turbine_row(day, "A")
    assert blank_hours.hours == 24
    assert blank_hours.mw_per_hr == 2

    zero_hours = turbine_row(day, "B")
    assert zero_hours.hours == 0.000001
    assert zero_hours.mw_per_hr == pytest.approx(10 / 0.000001)


def test_rows_for_unknown_ids_are_zero():
    day = default_day("2026-01-20")
    assert feeder_row(day, "nope") == (0.0, 0.0, 0.0)
    assert turbine_row(day, "nope").diff == 0.0


def test_each_turbine_is_tiered_independently(make_day):
    # A runs at 2 MW/hr (1000 m3/MWh), B at 10 MW/hr (420 m3/MWh)
    day = make_day("2026-01-20", turbines={"A": ("0", "48", "24"), "B": ("0", "240", "24")})
    assert total_gas(day) == 48 * 1000 + 240 * 420


@pytest.mark.parametrize("raw, expected", [
    ("", "24"),
    (None, "24"),
    ("0", "1"),
    ("-3", "1"),
    ("abc", "1"),
    ("25", "24"),
    ("100", "24"),
    ("12", "12"),
    ("7.9", "7"),
    ("1", "1"),
    ("24", "24"),
])
def test_clamp_hours(raw, expected):
    assert clamp_hours(raw) == expected


def test_record_always_has_fixed_ids():
    day = DayRecord.model_validate({"dateKey": "2026-01-20", "feeders": {"F2": {"start": "1"}}})
    assert list(day.feeders) == ["F2", "F3", "F4", "F5"]
    assert list(day.turbines) == ["A", "B", "C", "S"]
    assert day.feeders["F2"].start == "1"
    assert day.turbines["S"].hours == "24"
