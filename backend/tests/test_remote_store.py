from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from plantlog.exceptions import RemoteStoreError
from plantlog.models.day import DailyData, FeederReading, TurbineReading
from plantlog.records import UserSettings
from plantlog.services.remote_store import month_bounds


def test_upsert_creates_parent_and_children(remote_store, db, make_day):
    day = make_day("2026-01-20", feeders={"F2": ("500", "300")}, turbines={"A": ("1000", "1100", "24")})

    remote_store.upsert_day("user-1", day)

    assert db.query(DailyData).count() == 1
    assert db.query(FeederReading).count() == 4
    assert db.query(TurbineReading).count() == 4
    assert remote_store.fetch_day("user-1", "2026-01-20") == day


def test_upsert_updates_in_place(remote_store, db, make_day):
    remote_store.upsert_day("user-1", make_day("2026-01-20", feeders={"F2": ("1", "2")}))
    remote_store.upsert_day("user-1", make_day("2026-01-20", feeders={"F2": ("3", "4")}))

    assert db.query(DailyData).count() == 1
    assert db.query(FeederReading).count() == 4
    assert remote_store.fetch_day("user-1", "2026-01-20").feeders["F2"].start == "3"


def test_rows_are_scoped_to_their_user(remote_store, make_day):
    remote_store.upsert_day("user-1", make_day("2026-01-20", feeders={"F2": ("1", "2")}))

    assert remote_store.fetch_day("user-2", "2026-01-20") is None
    assert remote_store.fetch_date_keys("user-2") == []
    assert remote_store.find_day_id("user-2", "2026-01-20") is None


def test_fetch_date_keys_ascending(remote_store, make_day):
    for date_key in ["2026-01-22", "2026-01-20", "2026-01-21"]:
        remote_store.upsert_day("user-1", make_day(date_key))

    assert remote_store.fetch_date_keys("user-1") == ["2026-01-20", "2026-01-21", "2026-01-22"]


def test_month_summaries(remote_store, make_day):
    remote_store.upsert_day("user-1", make_day(
        "2026-01-20",
        feeders={"F2": ("3000", "1000")},
        turbines={"A": ("1000", "5000", "24")},
    ))
    remote_store.upsert_day("user-1", make_day("2026-01-31"))
    remote_store.upsert_day("user-1", make_day("2026-02-01"))

    summaries = remote_store.fetch_month_summaries("user-1", "2026-01")

    assert [s.date_key for s in summaries] == ["2026-01-31", "2026-01-20"]
    day = summaries[1]
    assert day.production == 4
    assert day.export_val == 2
    assert day.consumption == 2
    assert day.to_dict()["exportVal"] == 2


def test_month_bounds():
    assert month_bounds("2026-12") == ("2026-12-01", "2027-01-01")
    assert month_bounds("2026-02") == ("2026-02-01", "2026-03-01")
    assert month_bounds("2026-13") is None
    assert month_bounds("garbage") is None


def test_invalid_month_gives_no_summaries(remote_store):
    assert remote_store.fetch_month_summaries("user-1", "nope") == []


def test_delete_removes_children_then_parent(remote_store, db, make_day):
    remote_store.upsert_day("user-1", make_day("2026-01-20"))
    remote_store.upsert_day("user-1", make_day("2026-01-21"))
    day_id = remote_store.find_day_id("user-1", "2026-01-20")

    remote_store.delete_day("user-1", day_id)

    assert remote_store.fetch_date_keys("user-1") == ["2026-01-21"]
    assert db.query(FeederReading).count() == 4
    assert db.query(TurbineReading).count() == 4


def test_delete_of_other_users_day_fails(remote_store, make_day):
    remote_store.upsert_day("user-1", make_day("2026-01-20"))
    day_id = remote_store.find_day_id("user-1", "2026-01-20")

    with pytest.raises(RemoteStoreError):
        remote_store.delete_day("user-2", day_id)
    assert remote_store.fetch_date_keys("user-1") == ["2026-01-20"]


def test_failed_delete_leaves_rows(remote_store, db, make_day):
    remote_store.upsert_day("user-1", make_day("2026-01-20"))
    day_id = remote_store.find_day_id("user-1", "2026-01-20")

    with mock.patch.object(db, "commit", side_effect=OperationalError("DELETE", {}, Exception("down"))):
        with pytest.raises(RemoteStoreError):
            remote_store.delete_day("user-1", day_id)

    assert db.query(FeederReading).count() == 4
    assert remote_store.fetch_date_keys("user-1") == ["2026-01-20"]


def test_profile_round_trip(remote_store):
    assert remote_store.fetch_profile("user-1") is None

    remote_store.update_profile("user-1", UserSettings(display_name="Nadia", decimal_precision=3))

    assert remote_store.fetch_profile("user-1") == UserSettings(display_name="Nadia", decimal_precision=3)
