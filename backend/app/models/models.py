from uuid import uuid4
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, DateTime, Float, ForeignKey, Enum as PgEnum, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# --- ENUMS ---

class PeriodKind(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"

class TransactionKind(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"

# Stored in budget_periods.week_slot for monthly periods so the natural key
# never contains NULL
MONTHLY_WEEK_SLOT = 0

# --- SQLALCHEMY MODELS ---

class BudgetPeriod(Base):
    """A monthly or weekly budgeting interval with its derived daily allowance"""
    __tablename__ = "budget_periods"
    __table_args__ = (
        UniqueConstraint("user_id", "month", "year", "week_slot", name="uq_budget_periods_natural_key"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    income_amount = Column(Float, nullable=False)
    target_amount = Column(Float, nullable=False)
    available_amount = Column(Float, nullable=False)
    daily_allowance = Column(Float, nullable=False)
    period_kind = Column(PgEnum(PeriodKind), nullable=False, default=PeriodKind.MONTHLY)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    week_number = Column(Integer, nullable=True)  # Only set for weekly periods
    week_slot = Column(Integer, nullable=False, default=MONTHLY_WEEK_SLOT)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    transactions = relationship(
        "Transaction",
        back_populates="period",
        order_by="Transaction.date.desc()",
        cascade="all, delete-orphan",
    )

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    period_id = Column(String, ForeignKey("budget_periods.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    kind = Column(String, nullable=False, default=TransactionKind.EXPENSE.value)
    description = Column(String, nullable=False, default="")
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    period = relationship("BudgetPeriod", back_populates="transactions")
