"""
Transaction use cases - ledger queries and mutations

Every mutation drops the user's cached analytics before returning, so the
next summary read always sees the write.
"""
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.categorization import auto_categorize
from app.domain.errors import not_found
from app.infrastructure.cache import AnalyticsCache
from app.infrastructure.db.models import Transaction
from app.utils.dates import isoformat, today_iso, utcnow
from app.utils.validation import require_amount

# fields a PATCH may touch
_UPDATABLE = ("type", "category", "amount", "description", "date")


@dataclass
class TransactionFilters:
    category: Optional[str] = None
    type: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


def serialize_transaction(tx: Transaction) -> dict:
    return {
        "id": tx.id,
        "userId": tx.user_id,
        "type": tx.type,
        "category": tx.category,
        "amount": float(tx.amount),
        "description": tx.description,
        "date": tx.date,
        "createdAt": isoformat(tx.created_at),
        "updatedAt": isoformat(tx.updated_at),
    }


class TransactionService:
    def __init__(self, db: Session, cache: AnalyticsCache):
        self.db = db
        self.cache = cache

    def create(
        self,
        user_id: str,
        type: str,
        amount,
        description: str = "",
        category: Optional[str] = None,
        date: Optional[str] = None,
    ) -> Transaction:
        """
        Создать операцию (доход/расход)

        Args:
            user_id: owner
            type: income | expense
            amount: positive amount
            description: free text, used for auto-categorization
            category: explicit category (derived from description when omitted)
            date: YYYY-MM-DD, today when omitted

        Returns:
            Persisted Transaction
        """
        now = utcnow()
        tx = Transaction(
            user_id=user_id,
            type=type,
            category=category or auto_categorize(description),
            amount=require_amount(amount),
            description=description or "",
            date=date or today_iso(),
            created_at=now,
            updated_at=now,
        )
        self.db.add(tx)
        self.db.commit()

        self.cache.invalidate_user(user_id)
        return tx

    def get_all(self, user_id: str, filters: Optional[TransactionFilters] = None) -> List[Transaction]:
        """
        Owner-scoped list, newest date first

        Category and type match case-insensitively, the date range is
        inclusive and compared as ISO strings.
        """
        filters = filters or TransactionFilters()
        query = self.db.query(Transaction).filter(Transaction.user_id == user_id)

        if filters.category:
            query = query.filter(func.lower(Transaction.category) == filters.category.lower())
        if filters.type:
            query = query.filter(func.lower(Transaction.type) == filters.type.lower())
        if filters.start_date:
            query = query.filter(Transaction.date >= filters.start_date)
        if filters.end_date:
            query = query.filter(Transaction.date <= filters.end_date)

        # ties keep insertion order
        return query.order_by(Transaction.date.desc(), Transaction.created_at).all()

    def get_by_id(self, user_id: str, transaction_id: str) -> Transaction:
        tx = self.db.query(Transaction).filter(Transaction.id == transaction_id).first()
        if not tx or tx.user_id != user_id:
            raise not_found("Transaction", transaction_id)
        return tx

    def update(self, user_id: str, transaction_id: str, changes: dict) -> Transaction:
        """
        Partial update

        A new description without an explicit category re-derives the category.
        """
        tx = self.get_by_id(user_id, transaction_id)
        changes = {k: v for k, v in changes.items() if k in _UPDATABLE and v is not None}

        if changes.get("description") and not changes.get("category"):
            changes["category"] = auto_categorize(changes["description"])
        if "amount" in changes:
            changes["amount"] = require_amount(changes["amount"])

        for field, value in changes.items():
            setattr(tx, field, value)
        tx.updated_at = utcnow()
        self.db.commit()

        self.cache.invalidate_user(user_id)
        return tx

    def delete(self, user_id: str, transaction_id: str) -> None:
        tx = self.get_by_id(user_id, transaction_id)
        self.db.delete(tx)
        self.db.commit()

        self.cache.invalidate_user(user_id)
