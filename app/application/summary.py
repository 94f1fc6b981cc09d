"""
Summary service - derived analytics over the ledger, read through the cache.

Cache keys:
    summary_<userId>_<month|all>   income/expense summary
    analytics_<userId>_trends      monthly trends

Any new cached analytics must use one of these prefixes, otherwise ledger
writes will not invalidate it.
"""
import copy
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from app.application.budgets import BudgetService
from app.application.transactions import TransactionFilters, TransactionService
from app.domain.categorization import DEFAULT_CATEGORY, TRANSACTION_TYPE_EXPENSE, TRANSACTION_TYPE_INCOME
from app.domain.tips import generate_saving_tips
from app.infrastructure.cache import AnalyticsCache, analytics_prefix, summary_prefix
from app.infrastructure.db.models import User
from app.utils.dates import month_bounds
from app.utils.money import DEFAULT_CURRENCY, round1, round2

ALL_TIME = "all-time"


def summary_key(user_id: str, month: Optional[str] = None) -> str:
    return f"{summary_prefix(user_id)}_{month or 'all'}"


def trends_key(user_id: str) -> str:
    return f"{analytics_prefix(user_id)}_trends"


def _percent(part: Decimal, whole: Decimal) -> float:
    """part / whole * 100 rounded to 0.1, 0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return round1(part / whole * 100)


class SummaryService:
    def __init__(self, db: Session, cache: AnalyticsCache):
        self.db = db
        self.cache = cache
        self.transactions = TransactionService(db, cache)
        self.budgets = BudgetService(db)

    def get_summary(self, user_id: str, month: Optional[str] = None) -> dict:
        """
        Income/expense summary for a month or all time

        Returns:
            {totalIncome, totalExpense, balance, transactionCount,
             categoryBreakdown, period, cached}
        """
        key = summary_key(user_id, month)
        cached = self.cache.get(key)
        if cached is not None:
            return {**copy.deepcopy(cached), "cached": True}

        filters = TransactionFilters()
        if month:
            filters.start_date, filters.end_date = month_bounds(month)
        transactions = self.transactions.get_all(user_id, filters)

        income = Decimal("0")
        expense = Decimal("0")
        breakdown: dict[str, dict] = {}
        for tx in transactions:
            category = tx.category or DEFAULT_CATEGORY
            entry = breakdown.setdefault(
                category, {"income": Decimal("0"), "expense": Decimal("0"), "count": 0}
            )
            if tx.type == TRANSACTION_TYPE_INCOME:
                income += tx.amount
                entry["income"] += tx.amount
            elif tx.type == TRANSACTION_TYPE_EXPENSE:
                expense += tx.amount
                entry["expense"] += tx.amount
            entry["count"] += 1

        summary = {
            "totalIncome": round2(income),
            "totalExpense": round2(expense),
            "balance": round2(income - expense),
            "transactionCount": len(transactions),
            "categoryBreakdown": {
                category: {
                    "income": round2(entry["income"]),
                    "expense": round2(entry["expense"]),
                    "count": entry["count"],
                }
                for category, entry in breakdown.items()
            },
            "period": month or ALL_TIME,
            "cached": False,
        }

        self.cache.set(key, copy.deepcopy(summary))
        return summary

    def get_monthly_trends(self, user_id: str) -> List[dict]:
        """Per-month income/expense/balance, ascending by YYYY-MM."""
        key = trends_key(user_id)
        cached = self.cache.get(key)
        if cached is not None:
            return copy.deepcopy(cached)

        monthly: dict[str, dict] = {}
        for tx in self.transactions.get_all(user_id):
            month = tx.date[:7]
            entry = monthly.setdefault(
                month, {"income": Decimal("0"), "expense": Decimal("0"), "count": 0}
            )
            if tx.type in (TRANSACTION_TYPE_INCOME, TRANSACTION_TYPE_EXPENSE):
                entry[tx.type] += tx.amount
            entry["count"] += 1

        trends = [
            {
                "month": month,
                "income": round2(entry["income"]),
                "expense": round2(entry["expense"]),
                "count": entry["count"],
                "balance": round2(entry["income"] - entry["expense"]),
            }
            for month, entry in sorted(monthly.items())
        ]

        self.cache.set(key, copy.deepcopy(trends))
        return trends

    def _currency(self, user_id: str) -> str:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user and user.preferences:
            return str(user.preferences.get("currency") or DEFAULT_CURRENCY)
        return DEFAULT_CURRENCY

    def get_saving_tips(self, user_id: str) -> dict:
        """Tips are recomputed on every call; the summary underneath may be cached."""
        summary = self.get_summary(user_id)
        expense_by_category = {
            category: entry["expense"]
            for category, entry in summary["categoryBreakdown"].items()
        }
        tips = generate_saving_tips(
            summary["totalIncome"],
            summary["totalExpense"],
            expense_by_category,
            currency=self._currency(user_id),
        )
        return {
            "tips": tips,
            "summary": {
                "totalIncome": summary["totalIncome"],
                "totalExpense": summary["totalExpense"],
                "balance": summary["balance"],
            },
        }

    def get_budget_comparison(self, user_id: str, month: str) -> dict:
        """
        Сравнение факта с бюджетом месяца

        A missing budget yields budget=None and no analysis block.
        """
        summary = self.get_summary(user_id, month)
        budget = self.budgets.find_by_month(user_id, month)

        result = {
            "month": month,
            "actual": {
                "income": summary["totalIncome"],
                "expense": summary["totalExpense"],
                "balance": summary["balance"],
            },
            "budget": None,
        }
        if budget is None:
            return result

        goal = budget.monthly_goal
        target = budget.savings_target
        expense = Decimal(str(summary["totalExpense"]))
        balance = Decimal(str(summary["balance"]))

        result["budget"] = {
            "monthlyGoal": float(goal),
            "savingsTarget": float(target),
            "categoryBudgets": dict(budget.category_budgets or {}),
        }
        result["analysis"] = {
            "withinBudget": expense <= goal,
            "savingsAchieved": balance >= target,
            "budgetUtilization": _percent(expense, goal),
            "savingsProgress": _percent(balance, target),
        }
        return result
