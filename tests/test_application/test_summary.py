"""
Tests for SummaryService (analytics over the ledger)
"""
import pytest

from app.application.budgets import BudgetService
from app.application.summary import SummaryService, summary_key, trends_key
from app.application.transactions import TransactionService
from app.domain.tips import ONBOARDING_TIP


@pytest.fixture
def transactions(db_session, cache):
    return TransactionService(db_session, cache)


@pytest.fixture
def service(db_session, cache):
    return SummaryService(db_session, cache)


@pytest.fixture
def ledger(transactions, user):
    """Небольшой журнал за два месяца"""
    transactions.create(user.id, "income", 5000, "Salary", date="2026-02-01")
    transactions.create(user.id, "expense", 1200, "Groceries", date="2026-02-10")
    transactions.create(user.id, "expense", 300, "Uber", date="2026-02-11")
    transactions.create(user.id, "income", 5000, "Salary", date="2026-03-01")
    transactions.create(user.id, "expense", 400, "Pizza", date="2026-03-05")
    return user


# ---------------------------------------------------------------------------
# get_summary
# ---------------------------------------------------------------------------

def test_summary_all_time(service, ledger):
    summary = service.get_summary(ledger.id)

    assert summary["totalIncome"] == 10000
    assert summary["totalExpense"] == 1900
    assert summary["balance"] == 8100
    assert summary["transactionCount"] == 5
    assert summary["period"] == "all-time"
    assert summary["cached"] is False
    assert summary["categoryBreakdown"]["food"] == {"income": 0, "expense": 1600, "count": 2}
    assert summary["categoryBreakdown"]["salary"]["income"] == 10000


def test_summary_for_month(service, ledger):
    summary = service.get_summary(ledger.id, "2026-02")

    assert summary["period"] == "2026-02"
    assert summary["totalIncome"] == 5000
    assert summary["totalExpense"] == 1500
    assert set(summary["categoryBreakdown"]) == {"salary", "food", "transport"}


def test_summary_second_read_is_cached(service, ledger):
    first = service.get_summary(ledger.id)
    second = service.get_summary(ledger.id)

    assert first["cached"] is False
    assert second["cached"] is True
    assert {**second, "cached": False} == first


def test_cached_summary_is_a_copy(service, cache, ledger):
    """Изменение результата не портит кэш"""
    first = service.get_summary(ledger.id)
    first["categoryBreakdown"]["food"]["expense"] = -1

    again = service.get_summary(ledger.id)
    assert again["categoryBreakdown"]["food"]["expense"] == 1600
    assert cache.get(summary_key(ledger.id))["cached"] is False


def test_write_after_read_is_visible(service, transactions, ledger):
    service.get_summary(ledger.id)
    service.get_summary(ledger.id, "2026-03")

    transactions.create(ledger.id, "expense", 100, "Movie", date="2026-03-07")

    summary = service.get_summary(ledger.id, "2026-03")
    assert summary["cached"] is False
    assert summary["totalExpense"] == 500
    assert service.get_summary(ledger.id)["totalExpense"] == 2000


def test_summary_empty_ledger(service, user):
    summary = service.get_summary(user.id, "2026-01")
    assert summary["totalIncome"] == 0
    assert summary["transactionCount"] == 0
    assert summary["categoryBreakdown"] == {}


# ---------------------------------------------------------------------------
# get_monthly_trends
# ---------------------------------------------------------------------------

def test_monthly_trends(service, cache, ledger):
    trends = service.get_monthly_trends(ledger.id)

    assert [t["month"] for t in trends] == ["2026-02", "2026-03"]
    assert trends[0] == {"month": "2026-02", "income": 5000, "expense": 1500, "count": 3, "balance": 3500}
    assert trends[1]["balance"] == 4600
    assert cache.get(trends_key(ledger.id)) == trends


def test_trends_invalidated_by_write(service, transactions, ledger):
    service.get_monthly_trends(ledger.id)
    transactions.create(ledger.id, "expense", 50, "Coffee", date="2026-04-02")

    trends = service.get_monthly_trends(ledger.id)
    assert trends[-1]["month"] == "2026-04"


# ---------------------------------------------------------------------------
# get_saving_tips
# ---------------------------------------------------------------------------

def test_tips_for_empty_ledger(service, user):
    result = service.get_saving_tips(user.id)
    assert result["tips"] == [ONBOARDING_TIP]
    assert result["summary"] == {"totalIncome": 0, "totalExpense": 0, "balance": 0}


def test_tips_use_summary(service, ledger):
    result = service.get_saving_tips(ledger.id)

    assert result["tips"][0].startswith("✅")
    assert '"food"' in result["tips"][1]
    assert "₹" in result["tips"][1]
    # food 1600 of 1900 is above 30%
    assert any("meal prepping" in tip for tip in result["tips"])
    assert result["summary"]["balance"] == 8100


def test_tips_currency_from_preferences(service, transactions, make_user):
    user = make_user(email="usd@example.com", preferences={"currency": "USD"})
    transactions.create(user.id, "expense", 100, "Doctor visit", date="2026-03-01")

    tips = service.get_saving_tips(user.id)["tips"]
    assert any("100.00 $" in tip for tip in tips)


# ---------------------------------------------------------------------------
# get_budget_comparison
# ---------------------------------------------------------------------------

def test_budget_comparison_without_budget(service, ledger):
    result = service.get_budget_comparison(ledger.id, "2026-02")

    assert result["budget"] is None
    assert "analysis" not in result
    assert result["actual"] == {"income": 5000, "expense": 1500, "balance": 3500}


def test_budget_comparison_with_budget(service, db_session, ledger):
    """Факт против плана месяца"""
    BudgetService(db_session).upsert(ledger.id, "2026-02", 2000, 4000, {"food": 1000})

    result = service.get_budget_comparison(ledger.id, "2026-02")

    assert result["budget"] == {"monthlyGoal": 2000, "savingsTarget": 4000, "categoryBudgets": {"food": 1000}}
    assert result["analysis"] == {
        "withinBudget": True,
        "savingsAchieved": False,
        "budgetUtilization": 75.0,
        "savingsProgress": 87.5,
    }


def test_budget_comparison_zero_goal(service, db_session, ledger):
    BudgetService(db_session).upsert(ledger.id, "2026-02", 0, 0)

    analysis = service.get_budget_comparison(ledger.id, "2026-02")["analysis"]
    assert analysis["budgetUtilization"] == 0
    assert analysis["savingsProgress"] == 0
    assert analysis["withinBudget"] is False
    assert analysis["savingsAchieved"] is True
