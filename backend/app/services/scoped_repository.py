from typing import Optional

from sqlalchemy.orm import Session, Query

from backend.app.errors import NotFoundError
from backend.app.models.models import BudgetPeriod, Transaction


class UserScopedRepository:
    """
    Read access to periods and transactions restricted to a single user.

    Every lookup filters on ``user_id``, so rows owned by someone else behave
    exactly like rows that do not exist.
    """

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def periods(self) -> Query:
        return self.db.query(BudgetPeriod).filter(BudgetPeriod.user_id == self.user_id)

    def transactions(self) -> Query:
        return self.db.query(Transaction).filter(Transaction.user_id == self.user_id)

    def period_transactions(self, period_id: str) -> Query:
        return self.transactions().filter(Transaction.period_id == period_id)

    def find_period(self, month: int, year: int, week_slot: int) -> Optional[BudgetPeriod]:
        return self.periods().filter(
            BudgetPeriod.month == month,
            BudgetPeriod.year == year,
            BudgetPeriod.week_slot == week_slot,
        ).first()

    def get_period(self, period_id: str) -> BudgetPeriod:
        period = self.periods().filter(BudgetPeriod.id == period_id).first()
        if not period:
            raise NotFoundError("Period not found")
        return period

    def get_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.transactions().filter(Transaction.id == transaction_id).first()
        if not transaction:
            raise NotFoundError("Transaction not found")
        return transaction
