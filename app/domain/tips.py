"""
Saving tips - rule set over income/expense totals

Rules are evaluated in a fixed order and each appends at most one tip.
Rules for savings rate and category shares are independent, so several tips
can be returned at once.
"""
from decimal import Decimal
from typing import Dict, List

from app.utils.money import DEFAULT_CURRENCY, format_money, round1, to_decimal

SAVINGS_RATE_TARGET = Decimal("20")
FOOD_SHARE_LIMIT = Decimal("0.30")
ENTERTAINMENT_SHARE_LIMIT = Decimal("0.15")
SHOPPING_SHARE_LIMIT = Decimal("0.25")

ONBOARDING_TIP = "Start tracking your income and expenses to get personalized saving tips!"
BALANCED_TIP = "📊 Your spending looks balanced. Keep tracking to maintain good financial health!"


def savings_rate(total_income, total_expense) -> Decimal | None:
    """(income - expense) / income * 100, None when there is no income."""
    income = to_decimal(total_income)
    if income <= 0:
        return None
    return (income - to_decimal(total_expense)) / income * 100


def generate_saving_tips(
    total_income,
    total_expense,
    expense_by_category: Dict[str, object],
    currency: str = DEFAULT_CURRENCY,
) -> List[str]:
    """
    Build the list of saving tips

    Args:
        total_income: sum of income amounts
        total_expense: sum of expense amounts
        expense_by_category: expense sum per category (zero entries ignored)
        currency: ISO code used when quoting amounts

    Returns:
        Non-empty list of tip strings
    """
    income = to_decimal(total_income)
    expense = to_decimal(total_expense)

    if income == 0 and expense == 0:
        return [ONBOARDING_TIP]

    tips: List[str] = []

    rate = savings_rate(income, expense)
    if rate is not None:
        if rate < SAVINGS_RATE_TARGET:
            tips.append(
                f"⚠️ Your savings rate is {round1(rate):.1f}%. "
                "Aim for at least 20% to build a healthy financial cushion."
            )
        else:
            tips.append(f"✅ Great job! Your savings rate is {round1(rate):.1f}%. Keep it up!")

    totals = {
        cat: to_decimal(amount)
        for cat, amount in expense_by_category.items()
        if to_decimal(amount) > 0
    }

    if totals:
        # max() keeps the first category on ties
        top_category = max(totals, key=lambda cat: totals[cat])
        top_amount = totals[top_category]
        share = round1(top_amount / expense * 100) if expense > 0 else 0.0
        tips.append(
            f'💡 Your highest spending category is "{top_category}" at '
            f"{format_money(top_amount, currency)} ({share:.1f}% of total expenses). "
            "Consider setting a budget limit for this category."
        )

    def _share_above(category: str, limit: Decimal) -> bool:
        return expense > 0 and category in totals and totals[category] / expense > limit

    if _share_above("food", FOOD_SHARE_LIMIT):
        tips.append("🍕 Food expenses are over 30% of your total spending. Try meal prepping to cut costs!")

    if _share_above("entertainment", ENTERTAINMENT_SHARE_LIMIT):
        tips.append(
            "🎬 Entertainment costs are above 15%. "
            "Look for free or low-cost alternatives for fun activities."
        )

    if _share_above("shopping", SHOPPING_SHARE_LIMIT):
        tips.append(
            "🛍️ Shopping makes up over 25% of your expenses. Try the 24-hour rule: "
            "wait a day before making non-essential purchases."
        )

    if not tips:
        tips.append(BALANCED_TIP)

    return tips
