"""
Budget API endpoints
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.api.deps import CurrentUser, get_current_user, get_db
from app.api.responses import envelope
from app.application.budgets import BudgetService, serialize_budget
from app.utils.validation import Month, NonNegativeAmount, require_month


router = APIRouter(prefix="/api/v1/budgets", tags=["budgets"])


# === Request models ===

class UpsertBudgetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    month: Month
    monthly_goal: NonNegativeAmount = Field(alias="monthlyGoal")
    savings_target: NonNegativeAmount = Field(alias="savingsTarget")
    category_budgets: Optional[Dict[str, NonNegativeAmount]] = Field(default=None, alias="categoryBudgets")


# === Endpoints ===

@router.post("", status_code=201)
def upsert_budget(
    req: UpsertBudgetRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Создать или обновить бюджет месяца"""
    budget = BudgetService(db).upsert(
        user_id=user.id,
        month=req.month,
        monthly_goal=req.monthly_goal,
        savings_target=req.savings_target,
        category_budgets=req.category_budgets,
    )
    return envelope(serialize_budget(budget), message="Budget saved successfully")


@router.get("")
def list_budgets(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    budgets = BudgetService(db).get_all(user.id)
    return envelope([serialize_budget(b) for b in budgets], count=len(budgets))


@router.get("/{month}")
def get_budget_by_month(
    month: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    budget = BudgetService(db).get_by_month(user.id, require_month(month))
    return envelope(serialize_budget(budget))


@router.delete("/{budget_id}")
def delete_budget(
    budget_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    BudgetService(db).delete(user.id, budget_id)
    return envelope(message="Budget deleted successfully")
