from typing import List, Optional
from datetime import datetime

from backend.app.models.models import PeriodKind
from backend.app.schemas.base import CamelModel
from backend.app.schemas.transactions import TransactionResponse

class PeriodUpsert(CamelModel):
    # Amounts stay optional here so missing values surface as engine validation errors
    income_amount: Optional[float] = None
    target_amount: Optional[float] = None
    period_kind: PeriodKind = PeriodKind.MONTHLY
    month: Optional[int] = None
    year: Optional[int] = None
    week_number: Optional[int] = None

class PeriodResponse(CamelModel):
    id: str
    user_id: str
    income_amount: float
    target_amount: float
    available_amount: float
    daily_allowance: float
    period_kind: PeriodKind
    month: int
    year: int
    week_number: Optional[int] = None
    created_at: datetime
    updated_at: datetime

class PeriodListSummary(CamelModel):
    total_spent: float
    remaining_budget: float
    transaction_count: int

class PeriodWithSummary(PeriodResponse):
    summary: PeriodListSummary

class PeriodWithTransactions(PeriodResponse):
    transactions: List[TransactionResponse] = []

class PeriodMonthSummary(CamelModel):
    total_spent: float
    remaining_budget: float
    expected_spent: float
    difference: float
    days_in_month: int
    current_day: int

class PeriodDetail(CamelModel):
    period: PeriodWithTransactions
    summary: PeriodMonthSummary

class DeletedPeriod(CamelModel):
    id: str
    month: int
    year: int
    week_number: Optional[int] = None

class PeriodDeleteResponse(CamelModel):
    message: str
    deleted_period: DeletedPeriod

class PeriodForceDeleteResponse(PeriodDeleteResponse):
    deleted_transactions: int
