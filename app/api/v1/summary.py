"""
Summary & analytics API endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import CurrentUser, get_cache, get_current_user, get_db
from app.api.responses import envelope
from app.application.summary import SummaryService
from app.infrastructure.cache import AnalyticsCache
from app.utils.validation import require_month


router = APIRouter(prefix="/api/v1/summary", tags=["summary"])


def _service(db: Session, cache: AnalyticsCache) -> SummaryService:
    return SummaryService(db, cache)


@router.get("")
def get_summary(
    month: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_cache),
):
    """Income/expense summary, optionally for one month (YYYY-MM)"""
    if month:
        require_month(month)
    return envelope(_service(db, cache).get_summary(user.id, month))


@router.get("/trends")
def get_monthly_trends(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_cache),
):
    return envelope(_service(db, cache).get_monthly_trends(user.id))


@router.get("/tips")
def get_saving_tips(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_cache),
):
    return envelope(_service(db, cache).get_saving_tips(user.id))


@router.get("/budget/{month}")
def get_budget_comparison(
    month: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_cache),
):
    """Budget vs actual for one month"""
    return envelope(_service(db, cache).get_budget_comparison(user.id, require_month(month)))
