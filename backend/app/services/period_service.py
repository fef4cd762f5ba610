import logging
from datetime import datetime, date
from typing import List, Dict, Any, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy.dialects import sqlite, postgresql

from backend.app.errors import NotFoundError
from backend.app.models.models import BudgetPeriod
from backend.app.schemas.periods import PeriodUpsert
from backend.app.services.allowance_service import (
    PeriodSlot, resolve_period, calculate_allowance, days_in_month
)
from backend.app.services.scoped_repository import UserScopedRepository

logger = logging.getLogger(__name__)

NATURAL_KEY_COLUMNS = ["user_id", "month", "year", "week_slot"]

# Always written together so the derived fields never drift from income/target
BUDGET_FIELDS = ["income_amount", "target_amount", "available_amount", "daily_allowance", "period_kind"]

# Dialects with INSERT ... ON CONFLICT DO UPDATE
UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

def upsert_period(db: Session, user_id: str, period_data: PeriodUpsert) -> BudgetPeriod:
    """Create the user's period for a slot, or refresh its budget if it already exists"""
    slot = resolve_period(
        period_data.period_kind,
        period_data.month,
        period_data.year,
        period_data.week_number,
    )
    allowance = calculate_allowance(period_data.income_amount, period_data.target_amount, slot.day_count)

    values = {
        "user_id": user_id,
        "month": slot.month,
        "year": slot.year,
        "week_number": slot.week_number,
        "week_slot": slot.week_slot,
        "period_kind": slot.kind,
        "income_amount": period_data.income_amount,
        "target_amount": period_data.target_amount,
        "available_amount": allowance.available_amount,
        "daily_allowance": allowance.daily_allowance,
    }

    insert = UPSERT_INSERTS.get(db.get_bind().dialect.name)
    if insert is not None:
        _write_period_atomic(db, insert, values)
    else:
        _write_period_with_retry(db, user_id, slot, values)

    period = UserScopedRepository(db, user_id).find_period(slot.month, slot.year, slot.week_slot)
    logger.info(
        "Upserted %s period %s for user %s (%s-%02d, week %s)",
        slot.kind.value, period.id, user_id, slot.year, slot.month, slot.week_number,
    )
    return period

def _write_period_atomic(db: Session, insert, values: Dict[str, Any]):
    """Single INSERT ... ON CONFLICT statement keyed on the natural key"""
    stmt = insert(BudgetPeriod.__table__).values(**values)
    update_set = {field: stmt.excluded[field] for field in BUDGET_FIELDS}
    update_set["updated_at"] = datetime.utcnow()
    stmt = stmt.on_conflict_do_update(index_elements=NATURAL_KEY_COLUMNS, set_=update_set)

    try:
        db.execute(stmt)
        db.commit()
    except Exception:
        db.rollback()
        raise

def _apply_budget(period: BudgetPeriod, values: Dict[str, Any]):
    for field in BUDGET_FIELDS:
        setattr(period, field, values[field])

def _write_period_with_retry(db: Session, user_id: str, slot: PeriodSlot, values: Dict[str, Any]):
    """Find-then-write for dialects without ON CONFLICT; a lost insert race becomes an update"""
    repo = UserScopedRepository(db, user_id)
    existing = repo.find_period(slot.month, slot.year, slot.week_slot)
    if existing:
        _apply_budget(existing, values)
    else:
        db.add(BudgetPeriod(**values))

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent insert for period slot %s, retrying as update", slot.natural_key(user_id))
        existing = repo.find_period(slot.month, slot.year, slot.week_slot)
        if existing is None:
            raise
        _apply_budget(existing, values)
        db.commit()

def _spent(period: BudgetPeriod) -> float:
    return sum(transaction.amount for transaction in period.transactions)

def list_periods(db: Session, user_id: str) -> List[Dict[str, Any]]:
    """All of the user's periods, newest first, each with a spending summary"""
    periods = UserScopedRepository(db, user_id).periods().order_by(
        BudgetPeriod.year.desc(),
        BudgetPeriod.month.desc(),
        BudgetPeriod.week_slot.asc(),
    ).all()

    results = []
    for period in periods:
        total_spent = _spent(period)
        results.append({
            **_period_fields(period),
            "summary": {
                "total_spent": total_spent,
                "remaining_budget": period.available_amount - total_spent,
                "transaction_count": len(period.transactions),
            },
        })

    logger.debug("Listed %d periods for user %s", len(results), user_id)
    return results

def get_month_period(db: Session, user_id: str, year: int, month: int, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Get the monthly period for a given month with its transactions

    Args:
        db: Database session
        user_id: Owner of the period
        year: Calendar year
        month: Calendar month (1-12)
        today: Reference date for expected spending, defaults to the current date

    Returns:
        Dictionary with the period (transactions newest first) and a spending summary.
        expected_spent uses today's day of month whatever month is requested.
    """
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise NotFoundError("Period not found for this month")

    period = UserScopedRepository(db, user_id).periods().filter(
        BudgetPeriod.year == year,
        BudgetPeriod.month == month,
        BudgetPeriod.week_number.is_(None),
    ).first()
    if not period:
        raise NotFoundError("Period not found for this month")

    today = today or date.today()
    total_spent = _spent(period)
    expected_spent = period.daily_allowance * today.day

    return {
        "period": {**_period_fields(period), "transactions": list(period.transactions)},
        "summary": {
            "total_spent": total_spent,
            "remaining_budget": period.available_amount - total_spent,
            "expected_spent": expected_spent,
            "difference": expected_spent - total_spent,
            "days_in_month": days_in_month(year, month),
            "current_day": today.day,
        },
    }

def _period_fields(period: BudgetPeriod) -> Dict[str, Any]:
    return {
        "id": period.id,
        "user_id": period.user_id,
        "income_amount": period.income_amount,
        "target_amount": period.target_amount,
        "available_amount": period.available_amount,
        "daily_allowance": period.daily_allowance,
        "period_kind": period.period_kind,
        "month": period.month,
        "year": period.year,
        "week_number": period.week_number,
        "created_at": period.created_at,
        "updated_at": period.updated_at,
    }
