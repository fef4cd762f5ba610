import logging
import math
from sqlalchemy.orm import Session
from typing import List, Dict, Any
from datetime import datetime

from backend.app.errors import ValidationError
from backend.app.models.models import Transaction
from backend.app.schemas.transactions import TransactionCreate, TransactionUpdate
from backend.app.services.allowance_service import format_difference
from backend.app.services.scoped_repository import UserScopedRepository

logger = logging.getLogger(__name__)

def create_transaction(db: Session, user_id: str, transaction: TransactionCreate) -> Transaction:
    """Record spending against one of the user's periods"""
    if transaction.amount is None or not transaction.period_id:
        raise ValidationError("Amount and period ID are required")
    if not math.isfinite(transaction.amount):
        raise ValidationError("Amount must be a finite number")
    if transaction.amount <= 0:
        raise ValidationError("Amount must be positive")

    # Period must belong to the caller
    period = UserScopedRepository(db, user_id).get_period(transaction.period_id)

    db_transaction = Transaction(
        user_id=user_id,
        period_id=period.id,
        amount=transaction.amount,
        kind=transaction.kind.value,
        description=transaction.description or "",
        date=transaction.date or datetime.utcnow(),
    )

    db.add(db_transaction)
    db.commit()
    db.refresh(db_transaction)

    logger.info("Created transaction %s of %.2f in period %s", db_transaction.id, db_transaction.amount, period.id)
    return db_transaction

def list_period_transactions(db: Session, user_id: str, period_id: str) -> List[Dict[str, Any]]:
    """
    Get a period's ledger with running totals

    Args:
        db: Database session
        user_id: Owner of the period
        period_id: Period whose transactions are listed

    Returns:
        Transactions oldest first, each with running_total, expected_spent
        (daily allowance x day of month of the transaction) and a signed difference string
    """
    repo = UserScopedRepository(db, user_id)
    period = repo.get_period(period_id)

    newest_first = repo.period_transactions(period_id).order_by(
        Transaction.date.desc(),
        Transaction.created_at.desc(),
    ).all()

    running_total = 0.0
    ledger = []
    for transaction in reversed(newest_first):
        running_total += transaction.amount
        expected_spent = period.daily_allowance * transaction.date.day
        ledger.append({
            **_transaction_fields(transaction),
            "running_total": running_total,
            "expected_spent": expected_spent,
            "difference": format_difference(expected_spent - running_total),
        })

    logger.debug("Built ledger of %d transactions for period %s", len(ledger), period_id)
    return ledger

def list_transactions(db: Session, user_id: str, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
    """Get the user's transactions across all periods, newest first, paginated"""
    query = UserScopedRepository(db, user_id).transactions()

    total = query.count()
    transactions = query.order_by(
        Transaction.date.desc(),
        Transaction.created_at.desc(),
    ).offset(offset).limit(limit).all()

    return {
        "transactions": transactions,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }

def update_transaction(db: Session, user_id: str, transaction_id: str, update: TransactionUpdate) -> Transaction:
    """Apply only the fields present in the update"""
    transaction = UserScopedRepository(db, user_id).get_transaction(transaction_id)

    update_data = update.model_dump(exclude_unset=True)
    if "amount" in update_data:
        if update_data["amount"] is not None and not math.isfinite(update_data["amount"]):
            raise ValidationError("Amount must be a finite number")
        if update_data["amount"] is None or update_data["amount"] <= 0:
            raise ValidationError("Amount must be positive")
    if update_data.get("date") is None:
        update_data.pop("date", None)
    if "kind" in update_data:
        if update_data["kind"] is None:
            update_data.pop("kind")
        else:
            update_data["kind"] = update_data["kind"].value
    if "description" in update_data and update_data["description"] is None:
        update_data["description"] = ""

    for key, value in update_data.items():
        setattr(transaction, key, value)

    db.commit()
    db.refresh(transaction)

    logger.info("Updated transaction %s fields %s", transaction_id, sorted(update_data))
    return transaction

def delete_transaction(db: Session, user_id: str, transaction_id: str) -> Dict[str, Any]:
    transaction = UserScopedRepository(db, user_id).get_transaction(transaction_id)

    db.delete(transaction)
    db.commit()

    logger.info("Deleted transaction %s for user %s", transaction_id, user_id)
    return {"message": "Transaction deleted successfully", "id": transaction_id}

def _transaction_fields(transaction: Transaction) -> Dict[str, Any]:
    return {
        "id": transaction.id,
        "user_id": transaction.user_id,
        "period_id": transaction.period_id,
        "amount": transaction.amount,
        "kind": transaction.kind,
        "description": transaction.description,
        "date": transaction.date,
        "created_at": transaction.created_at,
        "updated_at": transaction.updated_at,
    }
