import csv

import pandas as pd

from app.clock import today


EXPORT_COLUMNS = ["date", "amount", "category", "description", "created_at"]
UNKNOWN_CATEGORY = "unknown"
SUPPORTED_FORMATS = {"csv"}


def expenses_to_csv(expenses) -> str:
    """One row per expense, fixed column order, every field double-quoted."""
    rows = [
        {
            "date": expense.date.isoformat(),
            "amount": f"{expense.amount:.2f}",
            "category": expense.category.name if expense.category else UNKNOWN_CATEGORY,
            "description": expense.description,
            "created_at": expense.created_at.isoformat(),
        }
        for expense in expenses
    ]

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def export_filename() -> str:
    return f"expenses-{today().isoformat()}.csv"
