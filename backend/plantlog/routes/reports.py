import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from plantlog.dependencies import get_day_sync, get_identity, get_remote_store, require_identity
from plantlog.exceptions import RemoteStoreError
from plantlog.services.auth import Identity
from plantlog.services.remote_store import RemoteDayStore
from plantlog.services.reports import (
    TEXT_MIME_TYPE,
    XLSX_MIME_TYPE,
    build_excel_report,
    build_text_report,
    export_rows_to_excel,
    report_filename,
)
from plantlog.services.sync import DaySync

logger = logging.getLogger(__name__)

router = APIRouter()


def _attachment(content, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/reports/{date_key}/excel")
def excel_report(
    date_key: str,
    sync: DaySync = Depends(get_day_sync),
    identity: Optional[Identity] = Depends(get_identity),
):
    current = sync.load_day(date_key, identity.user_id if identity else None)
    content = build_excel_report(current, sync.local.all_days())
    return _attachment(content, report_filename(date_key, "xlsx"), XLSX_MIME_TYPE)


@router.get("/reports/{date_key}/text")
def text_report(
    date_key: str,
    sync: DaySync = Depends(get_day_sync),
    identity: Optional[Identity] = Depends(get_identity),
):
    current = sync.load_day(date_key, identity.user_id if identity else None)
    return _attachment(build_text_report(current), report_filename(date_key, "txt"), TEXT_MIME_TYPE)


@router.get("/reports/months/{month_key}/excel")
def month_summaries_report(
    month_key: str,
    remote: RemoteDayStore = Depends(get_remote_store),
    identity: Identity = Depends(require_identity),
):
    try:
        rows = [s.to_dict() for s in remote.fetch_month_summaries(identity.user_id, month_key)]
    except RemoteStoreError as e:
        logger.error("Month report for %s failed: %s", month_key, e)
        rows = []
    return _attachment(export_rows_to_excel(rows), f"PowerPlant_Month_{month_key}.xlsx", XLSX_MIME_TYPE)
