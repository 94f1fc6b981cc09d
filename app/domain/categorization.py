"""
Keyword-based auto-categorization of ledger entries

Категория подбирается по ключевым словам в описании операции.
"""

# Transaction types
TRANSACTION_TYPE_INCOME = "income"
TRANSACTION_TYPE_EXPENSE = "expense"
TRANSACTION_TYPES = (TRANSACTION_TYPE_INCOME, TRANSACTION_TYPE_EXPENSE)

DEFAULT_CATEGORY = "other"

# Declaration order is the match priority: the first category with a
# matching keyword wins.
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "food": [
        "restaurant", "food", "pizza", "burger", "coffee", "lunch", "dinner",
        "breakfast", "cafe", "snack", "meal", "grocery", "groceries", "supermarket",
    ],
    "transport": [
        "uber", "lyft", "taxi", "bus", "train", "metro", "fuel", "gas", "petrol",
        "diesel", "parking", "toll", "flight", "airline",
    ],
    "shopping": [
        "amazon", "flipkart", "mall", "clothes", "shoes", "electronics", "gadget",
        "fashion", "store", "shop",
    ],
    "entertainment": [
        "movie", "netflix", "spotify", "concert", "game", "theatre", "park", "club",
        "party", "subscription",
    ],
    "health": [
        "hospital", "doctor", "medicine", "pharmacy", "gym", "fitness", "yoga",
        "medical", "dental", "insurance",
    ],
    "utilities": [
        "electricity", "water", "internet", "phone", "mobile", "recharge", "bill",
        "rent", "maintenance",
    ],
    "education": [
        "course", "book", "tuition", "school", "college", "university", "class",
        "training", "certification",
    ],
    "salary": [
        "salary", "paycheck", "wage", "bonus", "stipend", "freelance", "payment",
        "commission",
    ],
    "investment": [
        "stock", "mutual fund", "sip", "dividend", "interest", "investment", "crypto",
        "returns",
    ],
}


def auto_categorize(description: str | None) -> str:
    """
    Подобрать категорию по описанию (case-insensitive substring match)

    Example:
        >>> auto_categorize("Uber ride to airport")
        'transport'
        >>> auto_categorize("Lunch at restaurant")
        'food'
        >>> auto_categorize("Misc")
        'other'
    """
    if not description:
        return DEFAULT_CATEGORY
    lower = description.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        for keyword in keywords:
            if keyword in lower:
                return category
    return DEFAULT_CATEGORY
