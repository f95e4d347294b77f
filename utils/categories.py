"""Fixed category catalogue shared by ledger transactions and group expenses."""

EXPENSE_CATEGORIES = [
    {"id": "food", "label": "Food", "icon": "🍔"},
    {"id": "travel", "label": "Travel", "icon": "✈️"},
    {"id": "rent", "label": "Rent", "icon": "🏠"},
    {"id": "utilities", "label": "Utilities", "icon": "💡"},
    {"id": "shopping", "label": "Shopping", "icon": "🛍️"},
    {"id": "salary", "label": "Salary", "icon": "💰"},
    {"id": "business_expense", "label": "Business Expense", "icon": "💼"},
    {"id": "other", "label": "Other", "icon": "📝"},
]

DEFAULT_CATEGORY = "other"

VALID_CATEGORY_IDS = [c["id"] for c in EXPENSE_CATEGORIES]


def is_valid_category(category):
    return category in VALID_CATEGORY_IDS


def get_category_by_id(category_id):
    for category in EXPENSE_CATEGORIES:
        if category["id"] == category_id:
            return category
    return None


def sanitize_category(category):
    """Return a valid category id, falling back to "other"."""
    if not category or not is_valid_category(category):
        return DEFAULT_CATEGORY
    return category
