from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from backend.app.api.deps import get_current_user_id
from backend.app.config import get_settings
from backend.app.database import get_db_session
from backend.app.schemas.transactions import (
    TransactionCreate,
    TransactionUpdate,
    TransactionWithPeriod,
    LedgerEntry,
    TransactionPage,
    TransactionDeleteResponse,
)
from backend.app.services.transaction_service import (
    create_transaction,
    list_period_transactions,
    list_transactions,
    update_transaction,
    delete_transaction,
)

router = APIRouter()
settings = get_settings()

@router.post("/", response_model=TransactionWithPeriod, status_code=status.HTTP_201_CREATED)
async def create_transaction_endpoint(
    transaction_data: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Record a transaction against one of the user's periods.

    - Amount must be positive
    - Date defaults to now
    - Returns 404 if the period does not belong to the user
    """
    return create_transaction(db, user_id, transaction_data)

@router.get("/period/{period_id}", response_model=List[LedgerEntry])
async def list_period_transactions_endpoint(
    period_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Get a period's transactions, oldest first, with running totals
    and the difference against expected spending.
    """
    return list_period_transactions(db, user_id, period_id)

@router.get("/", response_model=TransactionPage)
async def list_transactions_endpoint(
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Maximum number of transactions to return"),
    offset: int = Query(0, ge=0, description="Number of transactions to skip"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Get all of the user's transactions across periods.

    - Results are paginated and sorted by date (newest first)
    """
    return list_transactions(db, user_id, limit, offset)

@router.put("/{transaction_id}", response_model=TransactionWithPeriod)
async def update_transaction_endpoint(
    transaction_id: str,
    transaction_update: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Update a transaction's amount, description, date or kind.

    - Fields left out of the body are not changed
    """
    return update_transaction(db, user_id, transaction_id, transaction_update)

@router.delete("/{transaction_id}", response_model=TransactionDeleteResponse)
async def delete_transaction_endpoint(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_session)
):
    """
    Delete a transaction.
    """
    return delete_transaction(db, user_id, transaction_id)
