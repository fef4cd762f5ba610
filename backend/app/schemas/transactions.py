from pydantic import Field
from typing import List, Optional
from datetime import datetime

from backend.app.models.models import PeriodKind, TransactionKind
from backend.app.schemas.base import CamelModel

class TransactionCreate(CamelModel):
    period_id: Optional[str] = None
    amount: Optional[float] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    kind: TransactionKind = TransactionKind.EXPENSE

class TransactionUpdate(CamelModel):
    amount: Optional[float] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    kind: Optional[TransactionKind] = None

class PeriodBrief(CamelModel):
    id: str
    month: int
    year: int
    week_number: Optional[int] = None
    period_kind: PeriodKind
    daily_allowance: float

class TransactionResponse(CamelModel):
    id: str
    user_id: str
    period_id: str
    amount: float
    kind: str
    description: str
    date: datetime
    created_at: datetime
    updated_at: datetime

class TransactionWithPeriod(TransactionResponse):
    period: PeriodBrief

class LedgerEntry(TransactionResponse):
    running_total: float
    expected_spent: float
    difference: str  # Signed, e.g. "+12.50" or "-3.00"

class Pagination(CamelModel):
    total: int
    limit: int
    offset: int
    has_more: bool

class TransactionPage(CamelModel):
    transactions: List[TransactionWithPeriod]
    pagination: Pagination

class TransactionDeleteResponse(CamelModel):
    message: str
    id: str = Field(..., description="ID of the removed transaction")
