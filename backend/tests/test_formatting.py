import pytest

from plantlog.services.formatting import (
    LRM,
    flow_label,
    format_date,
    format_month,
    format_mwh,
    format_nm3,
    format_number,
    round_half_up,
    weekday_letter,
)


@pytest.mark.parametrize("value, expected", [
    (0, "0"),
    (100, "100"),
    (2.5, "2.5"),
    (2.50, "2.5"),
    (1234567.891, "1,234,567.89"),
    (0.125, "0.13"),
    ("1,250", "1,250"),
    ("", "0"),
    ("abc", "0"),
    (float("nan"), "0"),
])
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_negative_numbers_keep_their_sign_on_the_left():
    assert format_number(-1500) == f"{LRM}-1,500"
    assert format_number(-0.001) == "0"


def test_format_number_options():
    assert format_number(1234.5678, decimals=3, thousands_separator=False) == "1234.568"
    assert format_number(3, force_sign=True) == "+3"
    assert format_number(0, force_sign=True) == "0"
    assert format_number("oops", unit="MWh") == "0 MWh"


def test_unit_helpers():
    assert format_mwh(1200) == "1,200 MWh"
    assert format_nm3(70000) == "70,000 Nm³"


def test_round_half_up():
    assert round_half_up(0.125) == 0.13
    assert round_half_up(2.5, 0) == 3
    assert round_half_up(-2.5, 0) == -2


def test_format_date():
    assert format_date("2026-01-20") == "Jan 20, 2026"
    assert format_date("2026-01-20", long=True) == "Tuesday, January 20, 2026"
    assert format_date("not a date") == "not a date"


def test_format_month():
    assert format_month("2026-02") == "Feb 2026"
    assert format_month("2026-13") == "2026-13"


def test_weekday_letter():
    assert weekday_letter("2026-01-20") == "T"
    assert weekday_letter("2026-01-24") == "S"
    assert weekday_letter("") == ""


def test_flow_label():
    assert flow_label(True) == "Export"
    assert flow_label(False) == "Withdrawal"
