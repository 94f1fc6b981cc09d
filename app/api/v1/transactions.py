"""
Transaction API endpoints
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import CurrentUser, get_cache, get_current_user, get_db
from app.api.responses import envelope
from app.application.transactions import TransactionFilters, TransactionService, serialize_transaction
from app.infrastructure.cache import AnalyticsCache
from app.utils.validation import IsoDate, PositiveAmount


router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


# === Request models ===

class CreateTransactionRequest(BaseModel):
    type: Literal["income", "expense"]
    amount: PositiveAmount
    description: str = ""
    category: Optional[str] = None
    date: Optional[IsoDate] = None


class UpdateTransactionRequest(BaseModel):
    type: Optional[Literal["income", "expense"]] = None
    amount: Optional[PositiveAmount] = None
    description: Optional[str] = None
    category: Optional[str] = None
    date: Optional[IsoDate] = None


def _service(db: Session, cache: AnalyticsCache) -> TransactionService:
    return TransactionService(db, cache)


# === Endpoints ===

@router.post("", status_code=201)
def create_transaction(
    req: CreateTransactionRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_cache),
):
    """Создать операцию (доход или расход)"""
    tx = _service(db, cache).create(
        user_id=user.id,
        type=req.type,
        amount=req.amount,
        description=req.description,
        category=req.category,
        date=req.date,
    )
    return envelope(serialize_transaction(tx), message="Transaction created successfully")


@router.get("")
def list_transactions(
    category: Optional[str] = None,
    type: Optional[str] = None,
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_cache),
):
    """List own transactions, newest first"""
    filters = TransactionFilters(
        category=category, type=type, start_date=start_date, end_date=end_date
    )
    transactions = _service(db, cache).get_all(user.id, filters)
    return envelope([serialize_transaction(tx) for tx in transactions], count=len(transactions))


@router.get("/{transaction_id}")
def get_transaction(
    transaction_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_cache),
):
    tx = _service(db, cache).get_by_id(user.id, transaction_id)
    return envelope(serialize_transaction(tx))


@router.patch("/{transaction_id}")
def update_transaction(
    transaction_id: str,
    req: UpdateTransactionRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_cache),
):
    tx = _service(db, cache).update(user.id, transaction_id, req.model_dump(exclude_unset=True))
    return envelope(serialize_transaction(tx), message="Transaction updated successfully")


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_cache),
):
    _service(db, cache).delete(user.id, transaction_id)
    return envelope(message="Transaction deleted successfully")
