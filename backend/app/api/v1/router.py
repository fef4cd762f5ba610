from fastapi import APIRouter
from backend.app.api.v1 import periods, transactions

api_router = APIRouter()
api_router.include_router(periods.router, prefix="/periods", tags=["periods"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
