import json
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException
from pydantic import ValidationError

from plantlog.dependencies import (
    get_day_sync,
    get_identity,
    get_local_store,
    get_remote_store,
    get_session_factory,
    require_identity,
)
from plantlog.exceptions import RemoteStoreError, StorageError, SyncError
from plantlog.records import DayRecord
from plantlog.services.auth import Identity
from plantlog.services.calculations import clamp_hours, day_stats, feeder_row, gas_for_turbine, turbine_row
from plantlog.services.formatting import flow_label, weekday_letter
from plantlog.services.local_store import LocalDayStore
from plantlog.services.remote_store import RemoteDayStore
from plantlog.services.sync import DaySync, mirror_day_job
from plantlog.tasks import sync_local_days_to_remote

logger = logging.getLogger(__name__)

router = APIRouter()


def _user_id(identity: Optional[Identity]) -> Optional[str]:
    return identity.user_id if identity else None


@router.get("/days")
def list_days(local: LocalDayStore = Depends(get_local_store)):
    return {"days": [{"dateKey": d, "weekday": weekday_letter(d)} for d in local.day_index()]}


@router.get("/days/{date_key}")
def get_day(
    date_key: str,
    sync: DaySync = Depends(get_day_sync),
    identity: Optional[Identity] = Depends(get_identity),
):
    return sync.load_day(date_key, _user_id(identity)).to_dict()


@router.put("/days/{date_key}")
def save_day(
    date_key: str,
    background_tasks: BackgroundTasks,
    payload: dict = Body(...),
    sync: DaySync = Depends(get_day_sync),
    identity: Optional[Identity] = Depends(get_identity),
    session_factory=Depends(get_session_factory),
):
    try:
        record = DayRecord.model_validate({**payload, "dateKey": date_key})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    for turbine in record.turbines.values():
        turbine.hours = clamp_hours(turbine.hours)
    try:
        sync.save_day(record, mirror=False)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))

    user_id = _user_id(identity)
    if user_id:
        # Runs after the local write has succeeded; failures are only logged
        background_tasks.add_task(mirror_day_job, session_factory, sync.local, record, user_id)
    return {"status": "saved", "mirroring": bool(user_id), "day": record.to_dict()}


@router.delete("/days/{date_key}")
def delete_day(
    date_key: str,
    sync: DaySync = Depends(get_day_sync),
    identity: Optional[Identity] = Depends(get_identity),
):
    try:
        sync.delete_day(date_key, _user_id(identity))
    except SyncError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "deleted", "dateKey": date_key}


@router.get("/days/{date_key}/stats")
def get_day_stats(
    date_key: str,
    sync: DaySync = Depends(get_day_sync),
    identity: Optional[Identity] = Depends(get_identity),
):
    day = sync.load_day(date_key, _user_id(identity))
    stats = day_stats(day)
    turbines = {}
    for name in day.turbines:
        row = turbine_row(day, name)
        turbines[name] = {**row._asdict(), "gas_m3": gas_for_turbine(row.diff, row.mw_per_hr)}
    return {
        "dateKey": date_key,
        "feeders": {name: feeder_row(day, name)._asdict() for name in day.feeders},
        "turbines": turbines,
        "flow": flow_label(stats.is_export),
        **stats._asdict(),
    }


@router.get("/months/{month_key}/summaries")
def month_summaries(
    month_key: str,
    remote: RemoteDayStore = Depends(get_remote_store),
    identity: Identity = Depends(require_identity),
):
    try:
        summaries = remote.fetch_month_summaries(identity.user_id, month_key)
    except RemoteStoreError as e:
        logger.error("Month summaries for %s failed: %s", month_key, e)
        return []
    return [s.to_dict() for s in summaries]


@router.get("/backup")
def export_backup(local: LocalDayStore = Depends(get_local_store)):
    return json.loads(local.export_bundle())


@router.post("/backup")
def import_backup(bundle: dict = Body(...), local: LocalDayStore = Depends(get_local_store)):
    if not local.import_bundle(json.dumps(bundle)):
        raise HTTPException(status_code=400, detail="Invalid backup")
    return {"status": "imported", "days": len(local.day_index())}


@router.post("/sync", status_code=202)
def sync_all_days(identity: Identity = Depends(require_identity)):
    try:
        result = sync_local_days_to_remote.delay(identity.user_id)
    except Exception as e:
        logger.error("Could not queue sync for %s: %s", identity.user_id, e)
        raise HTTPException(status_code=503, detail="Sync queue unavailable")
    return {"status": "queued", "task_id": result.id}
