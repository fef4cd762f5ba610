import logging
from typing import Dict, Any

from sqlalchemy.orm import Session

from backend.app.errors import ConflictError
from backend.app.models.models import BudgetPeriod
from backend.app.services.scoped_repository import UserScopedRepository

logger = logging.getLogger(__name__)

def _deleted_period(period: BudgetPeriod) -> Dict[str, Any]:
    return {
        "id": period.id,
        "month": period.month,
        "year": period.year,
        "week_number": period.week_number,
    }

def delete_period(db: Session, user_id: str, period_id: str) -> Dict[str, Any]:
    """Delete a period that has no transactions; refuses otherwise"""
    repo = UserScopedRepository(db, user_id)
    period = repo.get_period(period_id)

    transaction_count = repo.period_transactions(period_id).count()
    if transaction_count > 0:
        raise ConflictError(
            "Cannot delete period with existing transactions. Please delete all transactions first.",
            transaction_count=transaction_count,
        )

    deleted = _deleted_period(period)
    db.delete(period)
    db.commit()

    logger.info("Deleted period %s for user %s", period_id, user_id)
    return {
        "message": "Period deleted successfully",
        "deleted_period": deleted,
    }

def force_delete_period(db: Session, user_id: str, period_id: str) -> Dict[str, Any]:
    """Delete a period together with all of its transactions as one database transaction"""
    repo = UserScopedRepository(db, user_id)
    period = repo.get_period(period_id)
    deleted = _deleted_period(period)

    # delete-orphan cascade removes the transactions in the same flush
    transaction_count = len(period.transactions)
    try:
        db.delete(period)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Force delete of period %s rolled back", period_id)
        raise

    logger.info(
        "Force deleted period %s for user %s with %d transactions",
        period_id, user_id, transaction_count,
    )
    return {
        "message": "Period and all associated transactions deleted successfully",
        "deleted_period": deleted,
        "deleted_transactions": transaction_count,
    }
