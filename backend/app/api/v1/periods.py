from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from backend.app.api.deps import get_current_user_id
from backend.app.database import get_db_session
from backend.app.schemas.periods import (
    PeriodUpsert, PeriodResponse, PeriodWithSummary, PeriodDetail, PeriodDeleteResponse,
    PeriodForceDeleteResponse,
)
from backend.app.services.period_service import upsert_period, list_periods, get_month_period
from backend.app.services.deletion_service import delete_period, force_delete_period

router = APIRouter()

@router.post("/", response_model=PeriodResponse)
async def upsert_period_endpoint(
    period_data: PeriodUpsert,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Create or update a budget period.

    - Monthly periods are keyed by month and year, weekly ones also by week number
    - Derives available amount and daily allowance from income and target
    - Posting again for the same slot refreshes the existing period
    """
    return upsert_period(db, user_id, period_data)

@router.get("/all", response_model=List[PeriodWithSummary])
async def list_periods_endpoint(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Get all periods with spending summaries, newest first.
    """
    return list_periods(db, user_id)

@router.get("/{year}/{month}", response_model=PeriodDetail)
async def get_month_period_endpoint(
    year: int,
    month: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Get the monthly period for a month with its transactions.

    - Expected spending is measured against today's day of month
    - Returns 404 if no monthly period exists for that month
    """
    return get_month_period(db, user_id, year, month)

@router.delete("/{period_id}", response_model=PeriodDeleteResponse)
async def delete_period_endpoint(
    period_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Delete a period without transactions.

    - Returns 400 with the transaction count if the period still has transactions
    """
    return delete_period(db, user_id, period_id)

@router.delete("/{period_id}/force", response_model=PeriodForceDeleteResponse)
async def force_delete_period_endpoint(
    period_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Delete a period and all of its transactions in one step.
    """
    return force_delete_period(db, user_id, period_id)
