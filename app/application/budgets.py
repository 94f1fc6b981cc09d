"""
Budget use cases - one budget per user and month
"""
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.errors import not_found
from app.infrastructure.db.models import Budget
from app.utils.dates import isoformat, utcnow
from app.utils.validation import require_amount


def serialize_budget(budget: Budget) -> dict:
    return {
        "id": budget.id,
        "userId": budget.user_id,
        "month": budget.month,
        "monthlyGoal": float(budget.monthly_goal),
        "savingsTarget": float(budget.savings_target),
        "categoryBudgets": dict(budget.category_budgets or {}),
        "createdAt": isoformat(budget.created_at),
        "updatedAt": isoformat(budget.updated_at),
    }


class BudgetService:
    def __init__(self, db: Session):
        self.db = db

    def _find(self, user_id: str, month: str) -> Budget | None:
        return self.db.query(Budget).filter(
            Budget.user_id == user_id,
            Budget.month == month,
        ).first()

    def upsert(
        self,
        user_id: str,
        month: str,
        monthly_goal,
        savings_target,
        category_budgets: Optional[dict] = None,
    ) -> Budget:
        """
        Создать или обновить бюджет месяца

        A second call for the same (user, month) updates the existing record.
        Omitted category budgets keep the stored mapping.
        """
        monthly_goal = require_amount(monthly_goal, "monthlyGoal", allow_zero=True)
        savings_target = require_amount(savings_target, "savingsTarget", allow_zero=True)
        if category_budgets is not None:
            category_budgets = {
                category: float(require_amount(limit, f"categoryBudgets.{category}", allow_zero=True))
                for category, limit in category_budgets.items()
            }

        budget = self._find(user_id, month)
        now = utcnow()

        if budget is None:
            budget = Budget(
                user_id=user_id,
                month=month,
                monthly_goal=monthly_goal,
                savings_target=savings_target,
                category_budgets=category_budgets or {},
                created_at=now,
                updated_at=now,
            )
            self.db.add(budget)
            try:
                self.db.commit()
                return budget
            except IntegrityError:
                # a concurrent insert for the same month won; other violations propagate
                self.db.rollback()
                budget = self._find(user_id, month)
                if budget is None:
                    raise

        budget.monthly_goal = monthly_goal
        budget.savings_target = savings_target
        if category_budgets is not None:
            budget.category_budgets = dict(category_budgets)
        budget.updated_at = now
        self.db.commit()
        return budget

    def get_all(self, user_id: str) -> List[Budget]:
        return (
            self.db.query(Budget)
            .filter(Budget.user_id == user_id)
            .order_by(Budget.month)
            .all()
        )

    def find_by_month(self, user_id: str, month: str) -> Budget | None:
        return self._find(user_id, month)

    def get_by_month(self, user_id: str, month: str) -> Budget:
        budget = self._find(user_id, month)
        if budget is None:
            raise not_found("Budget", month)
        return budget

    def delete(self, user_id: str, budget_id: str) -> None:
        budget = self.db.query(Budget).filter(Budget.id == budget_id).first()
        if not budget or budget.user_id != user_id:
            raise not_found("Budget", budget_id)
        self.db.delete(budget)
        self.db.commit()
