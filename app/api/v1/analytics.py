from fastapi import APIRouter, Depends, Query

from app.analytics import db as analytics_db
from app.core.security import require_api_key

router = APIRouter()


@router.get("/analytics/stages")
def stage_summary(
    days: int = Query(default=7, ge=1, le=365),
    _: None = Depends(require_api_key),
):
    return analytics_db.get_stage_summary(days=days)


@router.get("/analytics/runs")
def latest_runs(
    limit: int = Query(default=20, ge=1, le=200),
    _: None = Depends(require_api_key),
):
    return analytics_db.get_latest_runs(limit=limit)
